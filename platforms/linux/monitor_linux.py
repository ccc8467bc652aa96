import datetime
import logging
import os
import time

import psutil

from core.error_handling import SamplingUnavailable
from core.models import Sample
from core.monitor_base import MonitorBase

logger = logging.getLogger(__name__)

# Checked in order before falling back to any sensor named like a CPU
PREFERRED_SENSORS = ('coretemp', 'k10temp', 'cpu_thermal', 'cpu-thermal', 'zenpower')

GB = 1024 ** 3


class LinuxMonitor(MonitorBase):
    def __init__(self, cpu_interval: float = 1.0, disk_path: str = '/'):
        self.cpu_interval = cpu_interval
        self.disk_path = disk_path

    def get_sample(self) -> Sample:
        cpu_percent = psutil.cpu_percent(interval=self.cpu_interval)
        memory_percent = psutil.virtual_memory().percent

        try:
            temperature = self.read_temperature()
        except SamplingUnavailable as e:
            logger.debug(f"Temperature skipped: {e}")
            temperature = None

        return Sample(
            timestamp=datetime.datetime.now(),
            cpu_percent=round(cpu_percent, 2),
            memory_percent=round(memory_percent, 2),
            temperature_celsius=temperature,
        )

    def read_temperature(self) -> float:
        if not hasattr(psutil, 'sensors_temperatures'):
            raise SamplingUnavailable("psutil has no sensor support on this platform")
        try:
            temps = psutil.sensors_temperatures()
        except (OSError, RuntimeError) as e:
            raise SamplingUnavailable(f"sensor read failed: {e}") from e
        if not temps:
            raise SamplingUnavailable("no temperature sensors exposed")

        for name in PREFERRED_SENSORS:
            entries = temps.get(name)
            if entries:
                return entries[0].current

        for name, entries in temps.items():
            lowered = name.lower()
            if ('cpu' in lowered or 'core' in lowered) and entries:
                return entries[0].current

        raise SamplingUnavailable(f"no CPU sensor among {sorted(temps)}")

    def get_host_details(self):
        memory = psutil.virtual_memory()
        disk = psutil.disk_usage(self.disk_path)
        load_avg = os.getloadavg() if hasattr(os, 'getloadavg') else (0.0, 0.0, 0.0)

        return {
            'cpu_count': psutil.cpu_count(),
            'memory_used_gb': round(memory.used / GB, 2),
            'memory_total_gb': round(memory.total / GB, 2),
            'disk_percent': round((disk.used / disk.total) * 100, 2),
            'load_avg': [round(x, 2) for x in load_avg],
            'uptime': time.time() - psutil.boot_time()
        }
