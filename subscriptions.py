# subscriptions.py
"""
Cancellable handle returned by every live subscription
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Subscription:
    """Wraps a teardown callable; close() runs it at most once"""

    def __init__(self, teardown: Optional[Callable[[], None]] = None, name: str = "subscription"):
        self._teardown = teardown
        self._closed = False
        self._lock = threading.Lock()
        self.name = name

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        with self._lock:
            if self._closed:
                return
            self._closed = True
            teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()
        logger.debug(f"Closed {self.name}")

    def check(self) -> bool:
        """True while the subscription is still delivering"""
        return not self._closed
