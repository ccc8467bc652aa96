import datetime
import logging
import os
import subprocess
import threading
import time
from typing import List, Optional

import psutil

from .error_handling import CapacityExceeded, SafetyBlocked, WorkerTerminationFailure, safe_execute
from .executor_base import ExecutorBase
from .history import HistoryBuffer
from .models import GuardSettings, LoadWorker

logger = logging.getLogger(__name__)

MAX_STRESS_DURATION = 300  # seconds
TERMINATE_GRACE_SECONDS = 5.0


class LoadController:
    """
    Registry of running load workers.

    start_one() refuses when the last recorded CPU sample is above the safety
    threshold or when every core already has a worker. cancel_all() stops the
    workers that were registered when it was called: graceful terminate, then
    kill after the grace period.
    """

    def __init__(self, executor: ExecutorBase, history: HistoryBuffer, settings: GuardSettings,
                 max_workers: Optional[int] = None,
                 max_duration: int = MAX_STRESS_DURATION,
                 grace_seconds: float = TERMINATE_GRACE_SECONDS,
                 sweep_untracked: bool = True):
        self.executor = executor
        self.history = history
        self.settings = settings
        cores = psutil.cpu_count() or 1
        # never more workers than cores, whatever is configured
        self.max_workers = min(max_workers, cores) if max_workers else cores
        self.max_duration = max_duration
        self.grace_seconds = grace_seconds
        self.sweep_untracked = sweep_untracked
        self._workers: List[LoadWorker] = []
        self._lock = threading.Lock()

    def _reap_locked(self):
        running = []
        for worker in self._workers:
            if worker.is_running():
                running.append(worker)
            else:
                logger.info(f"Stress process {worker.identifier} finished")
        self._workers = running

    def start_one(self) -> LoadWorker:
        # Pre-flight uses the last recorded sample, not a fresh reading
        latest = self.history.latest()
        if latest is not None and latest.cpu_percent > self.settings.safety_threshold:
            raise SafetyBlocked(
                f"CPU usage too high ({latest.cpu_percent}%) - load increase blocked by Speed Guard"
            )

        with self._lock:
            self._reap_locked()
            if len(self._workers) >= self.max_workers:
                raise CapacityExceeded(
                    f"Maximum stress processes already running ({self.max_workers})"
                )
            process = self.executor.launch(self.max_duration)
            worker = LoadWorker(
                identifier=process.pid,
                start_time=datetime.datetime.now(),
                process=process
            )
            self._workers.append(worker)
            active = len(self._workers)

        logger.info(f"Started stress process PID: {worker.identifier} ({active}/{self.max_workers})")
        return worker

    def cancel_all(self) -> int:
        with self._lock:
            self._reap_locked()
            snapshot = self._workers
            self._workers = []

        for worker in snapshot:
            try:
                worker.process.terminate()
            except OSError as e:
                logger.debug(f"terminate() on {worker.identifier} failed: {e}")

        deadline = time.monotonic() + self.grace_seconds
        for worker in snapshot:
            self._wait_or_kill(worker, deadline)

        if self.sweep_untracked:
            self.sweep(exclude={w.identifier for w in snapshot})

        if snapshot:
            logger.info(f"Terminated {len(snapshot)} stress processes")
        return len(snapshot)

    def _wait_or_kill(self, worker: LoadWorker, deadline: float):
        try:
            worker.process.wait(timeout=max(0.0, deadline - time.monotonic()))
            return
        except subprocess.TimeoutExpired:
            failure = WorkerTerminationFailure(
                f"Stress process {worker.identifier} ignored terminate within {self.grace_seconds}s"
            )
            logger.warning(f"{failure}; killing")

        try:
            worker.process.kill()
            worker.process.wait(timeout=self.grace_seconds)
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Could not kill stress process {worker.identifier}: {e}")

    @safe_execute(default_return=0)
    def sweep(self, exclude=frozenset()) -> int:
        """Stop load processes that aren't in the registry: terminate, wait, then kill."""
        pattern = self.executor.process_pattern
        if not pattern:
            return 0
        with self._lock:
            tracked = {w.identifier for w in self._workers} | set(exclude) | {os.getpid()}

        strays = []
        for proc in psutil.process_iter(['pid', 'name', 'cmdline']):
            try:
                if proc.info['pid'] in tracked:
                    continue
                cmdline = ' '.join(proc.info.get('cmdline') or [])
                if pattern in (proc.info.get('name') or '') or pattern in cmdline:
                    proc.terminate()
                    strays.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                pass
        if not strays:
            return 0

        _, alive = psutil.wait_procs(strays, timeout=self.grace_seconds)
        for proc in alive:
            logger.warning(f"Untracked stress process {proc.pid} ignored terminate; killing")
            try:
                proc.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
                logger.error(f"Could not kill untracked stress process {proc.pid}: {e}")

        logger.warning(f"Sweep stopped {len(strays)} untracked stress processes")
        return len(strays)

    def active_count(self) -> int:
        with self._lock:
            self._reap_locked()
            return len(self._workers)

    def workers(self) -> List[LoadWorker]:
        with self._lock:
            self._reap_locked()
            return list(self._workers)
