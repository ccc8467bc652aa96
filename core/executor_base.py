import shutil
from abc import ABC, abstractmethod


class ExecutorBase(ABC):
    # Matched against process names/command lines by the untracked sweep
    process_pattern = ''

    @abstractmethod
    def launch(self, duration_seconds: int):
        """
        Start one single-core load generator.

        Args:
            duration_seconds (int): Hard cap after which the process exits on its own.

        Returns:
            A subprocess.Popen-like handle (pid, poll, wait, terminate, kill).
        """
        pass


def get_executor(backend: str = 'auto') -> 'ExecutorBase':
    if backend == 'auto':
        backend = 'stress-ng' if shutil.which('stress-ng') else 'python'

    if backend == 'stress-ng':
        from platforms.linux.executor_linux import StressNgExecutor
        return StressNgExecutor()
    elif backend == 'python':
        from platforms.generic.executor_generic import PythonBurnExecutor
        return PythonBurnExecutor()
    else:
        raise NotImplementedError(f"Unsupported load backend: {backend}")
