import datetime
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from .analyzer import Analyzer
from .context import GuardContext
from .error_handling import CycleFailure
from .models import Alert, AlertKind
from .monitor_base import MonitorBase

logger = logging.getLogger(__name__)

JOB_ID = 'speed_guard_cycle'
DEFAULT_INTERVAL_SECONDS = 2.0


class SpeedGuard:
    """
    Background guard loop.

    Every interval: take a sample, record it, raise alerts for crossed
    thresholds and cancel all load when CPU or temperature reach their
    critical bound. Runs as a single interval job on an APScheduler
    BackgroundScheduler so cycles never overlap.
    """

    def __init__(self, context: GuardContext, monitor: MonitorBase,
                 interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
                 scheduler=None):
        self.context = context
        self.monitor = monitor
        self.analyzer = Analyzer(context.settings)
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler(daemon=True)
        self._lifecycle_lock = threading.RLock()
        self._stopped = False

    @property
    def is_enabled(self) -> bool:
        return self.context.is_enabled

    @property
    def is_running(self) -> bool:
        if self._stopped or not self.scheduler.running:
            return False
        job = self.scheduler.get_job(JOB_ID)
        return job is not None and job.next_run_time is not None

    def start(self):
        with self._lifecycle_lock:
            if self._stopped:
                logger.warning("Speed Guard already shut down; not starting")
                return
            if not self.scheduler.running:
                self.scheduler.start()
            if self.scheduler.get_job(JOB_ID) is None:
                self.scheduler.add_job(
                    func=self.run_cycle,
                    trigger='interval',
                    seconds=self.interval_seconds,
                    id=JOB_ID,
                    max_instances=1,
                    coalesce=True,
                    next_run_time=datetime.datetime.now()
                )
                logger.info("Speed Guard monitoring started")
            paused = self.scheduler.get_job(JOB_ID).next_run_time is None
            if self.context.is_enabled and paused:
                self.scheduler.resume_job(JOB_ID)
            elif not self.context.is_enabled and not paused:
                self.scheduler.pause_job(JOB_ID)

    def toggle(self) -> bool:
        with self._lifecycle_lock:
            enabled = self.context.toggle_enabled()
            if enabled:
                self.start()
                logger.info("Speed Guard activated")
            else:
                if self.scheduler.running and self.scheduler.get_job(JOB_ID) is not None:
                    self.scheduler.pause_job(JOB_ID)
                logger.info("Speed Guard deactivated")
            return enabled

    def run_cycle(self) -> bool:
        """One monitoring pass. Returns False when skipped or failed."""
        if self._stopped or not self.context.is_enabled:
            return False
        try:
            self._cycle()
            return True
        except CycleFailure as e:
            logger.error(f"Speed Guard monitoring error: {e}")
        except Exception:
            logger.exception("Unexpected Speed Guard monitoring error")
        return False

    def _cycle(self):
        try:
            sample = self.monitor.get_sample()
        except Exception as e:
            raise CycleFailure(f"sampling failed: {e}") from e
        self.context.history.record(sample)

        assessment = self.analyzer.analyze(sample)
        for alert in assessment.alerts:
            logger.warning(alert.message)
            self.context.alerts.record(alert)

        # one throttle per cycle, however many bounds were crossed
        if assessment.should_throttle:
            self.emergency_throttle('; '.join(assessment.throttle_reasons))

    def emergency_throttle(self, reason: str = '') -> int:
        logger.critical(f"EMERGENCY THROTTLE ACTIVATED: {reason}")
        cancelled = self.context.controller.cancel_all()
        self.context.alerts.record(Alert(
            timestamp=datetime.datetime.now(),
            kind=AlertKind.EMERGENCY,
            message=f'Emergency throttle activated - {cancelled} stress processes terminated',
            value=None
        ))
        return cancelled

    def shutdown(self):
        """Stop the loop, wait for an in-flight cycle, then cancel all load."""
        with self._lifecycle_lock:
            if self._stopped:
                return
            self._stopped = True
            if self.scheduler.running:
                self.scheduler.shutdown(wait=True)
        cancelled = self.context.controller.cancel_all()
        logger.info(f"Speed Guard stopped; cancelled {cancelled} stress processes")
