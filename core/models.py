from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional
import datetime


class AlertKind(str, Enum):
    CPU = 'CPU'
    MEMORY = 'MEMORY'
    TEMPERATURE = 'TEMPERATURE'
    EMERGENCY = 'EMERGENCY'


@dataclass(frozen=True)
class Sample:
    timestamp: datetime.datetime
    cpu_percent: float  # 0-100
    memory_percent: float  # 0-100
    temperature_celsius: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'cpu': round(self.cpu_percent, 2),
            'memory': round(self.memory_percent, 2),
            'temperature': self.temperature_celsius,
        }


@dataclass(frozen=True)
class Alert:
    timestamp: datetime.datetime
    kind: AlertKind
    message: str
    value: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'type': self.kind.value,
            'message': self.message,
            'value': self.value,
        }


@dataclass
class LoadWorker:
    identifier: int  # pid of the load process
    start_time: datetime.datetime
    process: Any = field(repr=False, compare=False)

    def is_running(self) -> bool:
        return self.process.poll() is None


@dataclass(frozen=True)
class GuardSettings:
    cpu_threshold: float = 90.0
    safety_threshold: float = 95.0  # above this, load is cancelled
    memory_threshold: float = 85.0
    temperature_threshold: float = 80.0
    critical_temperature: float = 90.0

    def __post_init__(self):
        if self.safety_threshold < self.cpu_threshold:
            raise ValueError("safety_threshold must not be below cpu_threshold")
        if self.critical_temperature < self.temperature_threshold:
            raise ValueError("critical_temperature must not be below temperature_threshold")

    @classmethod
    def from_config(cls, config) -> 'GuardSettings':
        return cls(
            cpu_threshold=float(getattr(config, 'CPU_THRESHOLD', 90.0)),
            safety_threshold=float(getattr(config, 'SAFETY_THRESHOLD', 95.0)),
            memory_threshold=float(getattr(config, 'MEMORY_THRESHOLD', 85.0)),
            temperature_threshold=float(getattr(config, 'TEMPERATURE_THRESHOLD', 80.0)),
            critical_temperature=float(getattr(config, 'CRITICAL_TEMPERATURE', 90.0)),
        )


@dataclass
class Assessment:
    alerts: List[Alert] = field(default_factory=list)
    throttle_reasons: List[str] = field(default_factory=list)

    @property
    def should_throttle(self) -> bool:
        return bool(self.throttle_reasons)
