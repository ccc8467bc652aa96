import logging
import subprocess

from core.executor_base import ExecutorBase

logger = logging.getLogger(__name__)


class StressNgExecutor(ExecutorBase):
    process_pattern = 'stress-ng'

    def __init__(self, binary: str = 'stress-ng'):
        self.binary = binary

    def build_command(self, duration_seconds: int):
        return [
            self.binary,
            '--cpu', '1',
            '--timeout', f'{int(duration_seconds)}s',
            '--quiet'
        ]

    def launch(self, duration_seconds: int):
        cmd = self.build_command(duration_seconds)
        process = subprocess.Popen(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL
        )
        logger.debug(f"Launched {' '.join(cmd)} as PID {process.pid}")
        return process
