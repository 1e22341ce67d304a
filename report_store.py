# report_store.py
"""
Report Store Adapter over Cloud Firestore.
All reads and writes are scoped to artifacts/{app_id}/users/{user_id}/weeklyReports
"""

import logging
from datetime import datetime, timezone
from typing import Callable, List

from google.api_core import exceptions as gapi_exceptions
from google.auth import credentials as ga_credentials
from google.auth import exceptions as ga_exceptions
from google.cloud import firestore

from error_handling import AuthError, PERMISSION_DENIED, StoreError, log_errors
from subscriptions import Subscription
from weekly_report import WeeklyReport

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[List[WeeklyReport]], None]
ErrorCallback = Callable[[StoreError], None]

WATCH_LOST = 'watch-lost'
WATCH_LOST_MESSAGE = '실시간 연결이 끊어졌습니다.'


class FirebaseTokenCredentials(ga_credentials.Credentials):
    """Google credentials that present the signed-in user's Firebase ID token"""

    def __init__(self, identity):
        super().__init__()
        self._identity = identity

    def refresh(self, request):
        try:
            self.token = self._identity.get_id_token(force_refresh=self.token is not None)
        except AuthError as e:
            raise ga_exceptions.RefreshError(f"Firebase token refresh failed: {e.message}") from e
        user = self._identity.current_user
        if user is not None:
            # google-auth compares expiry against naive UTC
            self.expiry = datetime.fromtimestamp(user.expires_at, timezone.utc).replace(tzinfo=None)


def build_firestore_client(app_config, identity) -> firestore.Client:
    return firestore.Client(
        project=app_config.firebase.project_id,
        credentials=FirebaseTokenCredentials(identity)
    )


def translate_store_error(error: Exception) -> StoreError:
    if isinstance(error, StoreError):
        return error
    if isinstance(error, gapi_exceptions.PermissionDenied):
        return StoreError(error.message or 'Missing or insufficient permissions.', code=PERMISSION_DENIED)
    if isinstance(error, gapi_exceptions.Unauthenticated):
        return StoreError(error.message or str(error), code='unauthenticated')
    if isinstance(error, ga_exceptions.RefreshError):
        return StoreError(str(error), code='unauthenticated')
    if isinstance(error, gapi_exceptions.GoogleAPICallError):
        return StoreError(error.message or str(error), code='unavailable')
    return StoreError(str(error), code='unknown')


class ReportStore:
    """Per-user weekly report collection"""

    def __init__(self, client, app_id: str):
        self.client = client
        self.app_id = app_id

    def collection_path(self, user_id: str) -> str:
        return f"artifacts/{self.app_id}/users/{user_id}/weeklyReports"

    def collection(self, user_id: str):
        return self.client.collection('artifacts', self.app_id, 'users', user_id, 'weeklyReports')

    @log_errors("create report")
    def create(self, user_id: str, report: WeeklyReport) -> str:
        """Append a report document and return its assigned id"""
        try:
            _, doc_ref = self.collection(user_id).add(report.to_document())
        except (gapi_exceptions.GoogleAPICallError, ga_exceptions.GoogleAuthError) as e:
            raise translate_store_error(e) from e
        logger.info(f"Created report {doc_ref.id} in {self.collection_path(user_id)}")
        return doc_ref.id

    @log_errors("delete report")
    def delete(self, user_id: str, report_id: str):
        try:
            self.collection(user_id).document(report_id).delete()
        except (gapi_exceptions.GoogleAPICallError, ga_exceptions.GoogleAuthError) as e:
            raise translate_store_error(e) from e
        logger.info(f"Deleted report {report_id} from {self.collection_path(user_id)}")

    def subscribe(self, user_id: str, on_snapshot: SnapshotCallback,
                  on_error: ErrorCallback) -> Subscription:
        """
        Deliver full-collection snapshots until the returned handle is closed.

        The first emission is a one-shot read so that an authorization
        failure surfaces through on_error before the watch is opened.
        Later emissions come from the Firestore real-time listener.
        """
        path = self.collection_path(user_id)
        collection = self.collection(user_id)
        logger.info(f"Subscribing to {path}")

        try:
            initial = [WeeklyReport.from_document(doc.id, doc.to_dict()) for doc in collection.stream()]
        except (gapi_exceptions.GoogleAPICallError, ga_exceptions.GoogleAuthError) as e:
            error = translate_store_error(e)
            logger.error(f"Snapshot read failed for {path} [{error.code}]: {error.message}")
            on_error(error)
            subscription = Subscription(name=f"snapshot {path}")
            subscription.close()
            return subscription

        on_snapshot(initial)

        def _on_watch_snapshot(docs, changes, read_time):
            on_snapshot([WeeklyReport.from_document(doc.id, doc.to_dict()) for doc in docs])

        watch = collection.on_snapshot(_on_watch_snapshot)
        return WatchSubscription(watch, on_error, name=f"snapshot {path}")


class WatchSubscription(Subscription):
    """
    Subscription over a Firestore real-time watch.

    A watch whose stream fails shuts itself down on a background thread and
    raises there, out of reach of the caller. check() notices the stopped
    watch and reports it through on_error exactly once.
    """

    def __init__(self, watch, on_error: ErrorCallback, name: str = "subscription"):
        super().__init__(watch.unsubscribe, name=name)
        self._watch = watch
        self._on_error = on_error

    def check(self) -> bool:
        if self.closed:
            return False
        if self._watch.is_active:
            return True
        self.close()
        error = StoreError(WATCH_LOST_MESSAGE, code=WATCH_LOST)
        logger.error(f"Real-time listener stopped for {self.name}")
        self._on_error(error)
        return False
