# app_controller.py
"""
Client context and the session/data reconciliation controller.

The controller owns the shared state the views render: the current identity,
the latest report snapshot, and the named error states. It re-establishes the
report subscription whenever the identity changes and drops the previous
identity's data before the new subscription delivers anything.
"""

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from google.auth import exceptions as ga_exceptions

from alerts import AlertCenter
from config_management import AppConfig
from date_utils import to_iso_timestamp, utc_now
from error_handling import ConfigInvalidError, StoreError, create_error_report
from firebase_auth import FirebaseIdentityProvider
from report_store import WATCH_LOST, ReportStore, build_firestore_client
from report_views import sort_by_created_desc
from session_manager import SessionManager
from subscriptions import Subscription
from weekly_report import WeeklyReport

logger = logging.getLogger(__name__)

INIT_FAILED_MESSAGE = 'Firebase 초기화 오류'


@dataclass
class ClientContext:
    """Connection handles constructed once by the entry point and passed in"""
    config: AppConfig
    identity: Optional[FirebaseIdentityProvider] = None
    session: Optional[SessionManager] = None
    store: Optional[ReportStore] = None


def build_client_context(config: AppConfig, alerts: AlertCenter) -> ClientContext:
    if not config.is_valid:
        return ClientContext(config=config)

    identity = FirebaseIdentityProvider(config.firebase.api_key, timeout=config.request_timeout_seconds)
    session = SessionManager(identity, config.initial_auth_token, on_alert=alerts.show)
    try:
        client = build_firestore_client(config, identity)
    except (OSError, ValueError, ga_exceptions.GoogleAuthError) as e:
        logger.error(f"Firestore client initialization failed: {e}")
        return ClientContext(config=config, identity=identity, session=session)
    return ClientContext(config=config, identity=identity, session=session,
                         store=ReportStore(client, config.app_id))


@dataclass(frozen=True)
class AppSnapshot:
    """Point-in-time copy of controller state for rendering"""
    user_id: Optional[str]
    auth_ready: bool
    loading: bool
    submissions: Optional[List[WeeklyReport]]
    permission_error: bool
    rate_limited: bool
    config_error: Optional[str]
    connected: bool
    last_error: dict = field(default_factory=dict)


class SafetyReportController:

    def __init__(self, context: ClientContext, alerts: AlertCenter,
                 clock: Callable = utc_now):
        self.context = context
        self.alerts = alerts
        self.clock = clock
        self.submissions: Optional[List[WeeklyReport]] = None
        self.loading = True
        self.permission_error = False
        self.config_error: Optional[str] = None
        self.last_error = {}
        self.started = False
        self._subscription: Optional[Subscription] = None
        self._subscribed_user: Optional[str] = None
        self._generation = 0
        self._session_subscription: Optional[Subscription] = None
        self._lock = threading.RLock()

    @property
    def session(self) -> Optional[SessionManager]:
        return self.context.session

    @property
    def store(self) -> Optional[ReportStore]:
        return self.context.store

    @property
    def connected(self) -> bool:
        return self.store is not None

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user_id if self.session else None

    @property
    def auth_ready(self) -> bool:
        return bool(self.session and self.session.is_ready)

    @property
    def rate_limited(self) -> bool:
        return bool(self.session and self.session.rate_limited)

    def start(self):
        if self.started:
            return
        self.started = True

        try:
            self.context.config.require_valid()
        except ConfigInvalidError as e:
            logger.error(f"Startup aborted: {e.message}")
            self.config_error = e.message
            self.alerts.error(e.message)
            self.loading = False
            return

        if self.session is None or self.store is None:
            self.alerts.error(INIT_FAILED_MESSAGE)
            self.loading = False
            return

        self.session.start()
        self._session_subscription = self.session.subscribe(self._on_identity_change)
        self.refresh()

    def _on_identity_change(self, user_id: Optional[str]):
        logger.info(f"Identity changed: {user_id or 'signed out'}")
        self.refresh()

    def _detach_subscription(self) -> Optional[Subscription]:
        """Forget the current subscription; the caller closes it outside the lock"""
        subscription, self._subscription = self._subscription, None
        self._subscribed_user = None
        # Invalidate callbacks still in flight for the old subscription
        self._generation += 1
        return subscription

    @staticmethod
    def _close(subscription: Optional[Subscription]):
        if subscription is not None:
            subscription.close()

    def refresh(self):
        """Bring the report subscription in line with the current identity and error state"""
        current = self._subscription
        if current is not None:
            # A watch that stopped on its own reports through _on_subscription_error
            current.check()

        stale = None
        with self._lock:
            if self.permission_error or self.rate_limited:
                if self._subscription is not None:
                    stale = self._detach_subscription()
                generation = None
            else:
                user_id = self.user_id
                if self.store is None or not self.auth_ready or not user_id:
                    if self._subscribed_user is not None or self._subscription is not None:
                        stale = self._detach_subscription()
                        self.submissions = None
                    if self.auth_ready and not user_id:
                        self.loading = False
                    generation = None
                elif user_id == self._subscribed_user:
                    generation = None
                else:
                    stale = self._detach_subscription()
                    self.submissions = None
                    self.loading = True
                    self._subscribed_user = user_id
                    generation = self._generation

        self._close(stale)
        if generation is None:
            return

        subscription = self.store.subscribe(
            user_id,
            lambda reports: self._on_snapshot(generation, reports),
            lambda error: self._on_subscription_error(generation, error),
        )

        with self._lock:
            if generation == self._generation:
                self._subscription = subscription
                return
        subscription.close()

    def _on_snapshot(self, generation: int, reports: List[WeeklyReport]):
        ordered = sort_by_created_desc(reports)
        with self._lock:
            if generation != self._generation:
                logger.debug("Dropped snapshot from a closed subscription")
                return
            self.submissions = ordered
            self.loading = False
            self.permission_error = False
        logger.info(f"Received snapshot with {len(ordered)} reports")

    def _on_subscription_error(self, generation: int, error: StoreError):
        with self._lock:
            if generation != self._generation:
                return
            self.last_error = create_error_report(error, 'report subscription')
            if error.permission_denied:
                self.permission_error = True
                self._subscribed_user = None
            else:
                self.alerts.error(f"데이터 로딩 실패: {error.message}")
                if error.code == WATCH_LOST:
                    # Resubscribe; the fresh one-shot read reclassifies the failure
                    self._subscribed_user = None
            self.loading = False

    def retry(self) -> bool:
        """User-triggered recovery: re-authenticate and resubscribe"""
        with self._lock:
            self.permission_error = False
            self.loading = True
            stale = self._detach_subscription()
        self._close(stale)
        if self.session is None:
            self.loading = False
            return False
        ok = self.session.retry()
        if not ok:
            self.loading = False
        self.refresh()
        return ok

    def create_report(self, report: WeeklyReport) -> Optional[str]:
        """Write one report for the current user; failures become alerts"""
        user_id = self.user_id
        if self.store is None or not user_id:
            self.alerts.error('데이터베이스에 연결되지 않았습니다.' if self.store is None else '로그인 정보가 없습니다.')
            return None

        document = replace(report, user_id=user_id, created_at=to_iso_timestamp(self.clock()), id=None)
        try:
            report_id = self.store.create(user_id, document)
        except StoreError as e:
            self.last_error = create_error_report(e, 'create report')
            if e.permission_denied:
                self.alerts.error('저장 실패: 쓰기 권한이 없습니다.')
            else:
                self.alerts.error(f"저장 실패: {e.message}")
            return None

        self.alerts.success('보고서가 안전하게 저장되었습니다.')
        return report_id

    def delete_report(self, report_id: str) -> bool:
        user_id = self.user_id
        if self.store is None or not user_id:
            self.alerts.error('연결 안 됨')
            return False

        try:
            self.store.delete(user_id, report_id)
        except StoreError as e:
            self.last_error = create_error_report(e, 'delete report')
            self.alerts.error(f"삭제 실패: {e.message}")
            return False

        self.alerts.success('보고서가 삭제되었습니다.')
        return True

    def snapshot(self) -> AppSnapshot:
        with self._lock:
            return AppSnapshot(
                user_id=self.user_id,
                auth_ready=self.auth_ready,
                loading=self.loading,
                submissions=list(self.submissions) if self.submissions is not None else None,
                permission_error=self.permission_error,
                rate_limited=self.rate_limited,
                config_error=self.config_error,
                connected=self.connected,
                last_error=dict(self.last_error),
            )

    def close(self):
        with self._lock:
            stale = self._detach_subscription()
        self._close(stale)
        if self._session_subscription is not None:
            self._session_subscription.close()
            self._session_subscription = None
        if self.session is not None:
            self.session.close()
