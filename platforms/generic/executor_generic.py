import subprocess
import sys

from core.executor_base import ExecutorBase

# Spins one core until the deadline passed in argv[1]
BURN_SCRIPT = (
    "import sys, time\n"
    "deadline = time.monotonic() + float(sys.argv[1])\n"
    "while time.monotonic() < deadline:\n"
    "    pass\n"
)


class PythonBurnExecutor(ExecutorBase):
    """
    Portable load generator for hosts without stress-ng.
    Runs a busy loop in a child interpreter so it can be terminated like any process.
    """
    process_pattern = 'speed-guard-burn'

    def __init__(self, python: str = None):
        self.python = python or sys.executable

    def build_command(self, duration_seconds: int):
        # trailing tag lets the untracked sweep find the process by cmdline
        return [self.python, '-c', BURN_SCRIPT, str(int(duration_seconds)), self.process_pattern]

    def launch(self, duration_seconds: int):
        return subprocess.Popen(
            self.build_command(duration_seconds),
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL
        )
