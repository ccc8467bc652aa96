from .models import Alert, AlertKind, Assessment, GuardSettings, Sample


class Analyzer:
    def __init__(self, settings: GuardSettings):
        self.settings = settings

    def analyze(self, sample: Sample) -> Assessment:
        settings = self.settings
        assessment = Assessment()
        timestamp = sample.timestamp

        # 1. Check CPU
        if sample.cpu_percent > settings.cpu_threshold:
            assessment.alerts.append(Alert(
                timestamp=timestamp,
                kind=AlertKind.CPU,
                message=f"HIGH CPU ALERT: {sample.cpu_percent}% usage detected",
                value=sample.cpu_percent
            ))
            if sample.cpu_percent > settings.safety_threshold:
                assessment.throttle_reasons.append(
                    f"CPU {sample.cpu_percent}% above safety threshold {settings.safety_threshold}%"
                )

        # 2. Check Memory (alert only)
        if sample.memory_percent > settings.memory_threshold:
            assessment.alerts.append(Alert(
                timestamp=timestamp,
                kind=AlertKind.MEMORY,
                message=f"HIGH MEMORY ALERT: {sample.memory_percent}% usage detected",
                value=sample.memory_percent
            ))

        # 3. Check Temperature, skipped when the host has no sensor
        temp = sample.temperature_celsius
        if temp is not None and temp > settings.temperature_threshold:
            assessment.alerts.append(Alert(
                timestamp=timestamp,
                kind=AlertKind.TEMPERATURE,
                message=f"HIGH TEMPERATURE ALERT: {temp}°C detected",
                value=temp
            ))
            if temp > settings.critical_temperature:
                assessment.throttle_reasons.append(
                    f"temperature {temp}°C above critical {settings.critical_temperature}°C"
                )

        return assessment
