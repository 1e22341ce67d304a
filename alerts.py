# alerts.py
"""
Single-slot transient alert with automatic dismissal
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

ALERT_TYPES = ('success', 'warning', 'error')


@dataclass(frozen=True)
class Alert:
    alert_type: str
    message: str
    shown_at: float


class AlertCenter:
    """Holds at most one alert; the latest replaces any prior one"""

    def __init__(self, timeout_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self._alert: Optional[Alert] = None
        self._lock = threading.Lock()

    def show(self, alert_type: str, message) -> Alert:
        if alert_type not in ALERT_TYPES:
            alert_type = 'error'
        alert = Alert(alert_type, str(message), self.clock())
        with self._lock:
            self._alert = alert
        return alert

    def success(self, message):
        return self.show('success', message)

    def warning(self, message):
        return self.show('warning', message)

    def error(self, message):
        return self.show('error', message)

    def current(self) -> Optional[Alert]:
        """The visible alert, or None once it has expired or been dismissed"""
        with self._lock:
            alert = self._alert
            if alert is not None and self.clock() - alert.shown_at >= self.timeout_seconds:
                self._alert = alert = None
            return alert

    def dismiss(self):
        with self._lock:
            self._alert = None
