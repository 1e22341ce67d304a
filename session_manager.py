# session_manager.py
"""
Session bootstrap and identity tracking on top of the identity provider
"""

import logging
import threading
from typing import Callable, List, Optional

from error_handling import AuthError
from subscriptions import Subscription

logger = logging.getLogger(__name__)

AlertCallback = Callable[[str, str], None]


def _log_alert(alert_type: str, message: str):
    logger.warning(f"[{alert_type}] {message}")


class SessionManager:
    """
    Establishes an authenticated identity and publishes identity changes.

    Startup reuses an existing session, else signs in with the bootstrap
    token, else anonymously. Failures never block readiness: a rate-limited
    failure sets `rate_limited`, any other failure is raised as an alert.
    """

    def __init__(self, identity, initial_auth_token: Optional[str] = None,
                 on_alert: Optional[AlertCallback] = None):
        self.identity = identity
        self.initial_auth_token = initial_auth_token
        self.on_alert = on_alert or _log_alert
        self.user_id: Optional[str] = None
        self.is_ready = False
        self.rate_limited = False
        self.last_error: Optional[AuthError] = None
        self._listeners: List[Callable[[Optional[str]], None]] = []
        self._provider_subscription: Optional[Subscription] = None
        self._lock = threading.RLock()

    def start(self):
        if self._provider_subscription is not None:
            return

        existing = self.identity.current_user
        if existing is not None:
            logger.info(f"Reusing existing session: {existing.uid}")
        else:
            try:
                if self.initial_auth_token:
                    self.identity.sign_in_with_custom_token(self.initial_auth_token)
                else:
                    self.identity.sign_in_anonymously()
            except AuthError as e:
                self._record_failure(e, '로그인 실패')

        self._provider_subscription = self.identity.on_auth_state_changed(self._handle_identity_change)
        # Ready even after a failed sign-in so the UI renders a fallback
        self.is_ready = True

    def _record_failure(self, error: AuthError, alert_prefix: str):
        self.last_error = error
        logger.error(f"{alert_prefix}: [{error.code}] {error.message}")
        if error.is_rate_limited:
            self.rate_limited = True
        else:
            self.on_alert('error', f"{alert_prefix}: {error.message}")

    def _handle_identity_change(self, user):
        user_id = user.uid if user is not None else None
        with self._lock:
            if user_id:
                logger.info(f"Authenticated: {user_id}")
                self.rate_limited = False
            else:
                logger.info("Signed out")
            changed = user_id != self.user_id
            self.user_id = user_id
            self.is_ready = True
            listeners = list(self._listeners)
        if changed:
            for listener in listeners:
                listener(user_id)

    def subscribe(self, listener: Callable[[Optional[str]], None]) -> Subscription:
        """Listen for identity changes; the listener is called immediately with the current id"""
        with self._lock:
            self._listeners.append(listener)
            current = self.user_id

        def _remove():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        listener(current)
        return Subscription(_remove, name="session listener")

    def retry(self) -> bool:
        """Sign out and sign in anonymously again; returns True on success"""
        self.rate_limited = False
        self.last_error = None
        try:
            self.identity.sign_out()
            self.identity.sign_in_anonymously()
            return True
        except AuthError as e:
            self._record_failure(e, '재로그인 실패')
            return False

    def close(self):
        if self._provider_subscription is not None:
            self._provider_subscription.close()
            self._provider_subscription = None
        with self._lock:
            self._listeners.clear()
