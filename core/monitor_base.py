from abc import ABC, abstractmethod
from typing import Dict, Any

from .models import Sample


class MonitorBase(ABC):
    @abstractmethod
    def get_sample(self) -> Sample:
        """
        Take one CPU/memory/temperature reading.
        May block for the CPU measurement window. Temperature is None
        when the host exposes no sensor.
        """
        pass

    @abstractmethod
    def get_host_details(self) -> Dict[str, Any]:
        """
        Collect derived host fields for the status endpoint.
        Expected format:
        {
            'cpu_count': int,
            'memory_used_gb': float,
            'memory_total_gb': float,
            'disk_percent': float,
            'load_avg': [float, float, float],
            'uptime': float
        }
        """
        pass
