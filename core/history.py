import threading
from collections import deque
from datetime import datetime, timedelta
from typing import List, Optional

from .models import Alert, AlertKind, Sample

DEFAULT_HISTORY_SIZE = 100


class HistoryBuffer:
    """Fixed-capacity FIFO of recent samples, oldest first."""

    def __init__(self, capacity: int = DEFAULT_HISTORY_SIZE):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._samples = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, sample: Sample):
        with self._lock:
            self._samples.append(sample)

    def recent(self, k: int) -> List[Sample]:
        if k <= 0:
            return []
        with self._lock:
            samples = list(self._samples)
        return samples[-k:]

    def latest(self) -> Optional[Sample]:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def __len__(self):
        with self._lock:
            return len(self._samples)


class AlertLog:
    """Append-only log of threshold alerts. Grows for the process lifetime."""

    def __init__(self):
        self._alerts: List[Alert] = []
        self._lock = threading.Lock()

    def record(self, alert: Alert):
        with self._lock:
            self._alerts.append(alert)

    def recent(self, window: timedelta = timedelta(hours=24), limit: int = 20,
               now: Optional[datetime] = None) -> List[Alert]:
        if limit <= 0:
            return []
        now = now or datetime.now()
        with self._lock:
            alerts = list(self._alerts)
        in_window = [a for a in alerts if now - a.timestamp <= window]
        return in_window[-limit:]

    def count(self, kind: Optional[AlertKind] = None) -> int:
        with self._lock:
            if kind is None:
                return len(self._alerts)
            return sum(1 for a in self._alerts if a.kind == kind)

    def __len__(self):
        return self.count()
