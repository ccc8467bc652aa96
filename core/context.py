import threading
from dataclasses import dataclass, field

from .history import AlertLog, HistoryBuffer
from .load_controller import LoadController
from .models import GuardSettings


@dataclass
class GuardContext:
    """
    Everything the guard loop and the HTTP handlers share.
    Each resource carries its own lock; the enabled flag is guarded here.
    """
    settings: GuardSettings
    history: HistoryBuffer
    alerts: AlertLog
    controller: LoadController
    enabled: bool = True
    _state_lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    @property
    def is_enabled(self) -> bool:
        with self._state_lock:
            return self.enabled

    def toggle_enabled(self) -> bool:
        with self._state_lock:
            self.enabled = not self.enabled
            return self.enabled


def build_context(config, executor) -> GuardContext:
    settings = GuardSettings.from_config(config)
    history = HistoryBuffer(int(getattr(config, 'HISTORY_SIZE', 100)))
    controller = LoadController(
        executor,
        history,
        settings,
        max_workers=getattr(config, 'MAX_WORKERS', None),
        max_duration=int(getattr(config, 'MAX_STRESS_DURATION', 300)),
        grace_seconds=float(getattr(config, 'TERMINATE_GRACE_SECONDS', 5.0)),
        sweep_untracked=bool(getattr(config, 'SWEEP_UNTRACKED', True)),
    )
    return GuardContext(settings=settings, history=history, alerts=AlertLog(), controller=controller)
