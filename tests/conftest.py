import itertools
import os
import sys
from datetime import datetime, timedelta

import pytest
import pytz
from google.api_core import exceptions as gapi_exceptions

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from alerts import AlertCenter
from app_controller import ClientContext, SafetyReportController
from config_management import AppConfig, FirebaseSettings
from error_handling import AuthError
from firebase_auth import FirebaseUser
from report_store import ReportStore
from session_manager import SessionManager
from subscriptions import Subscription


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeIdentityProvider:
    """In-memory stand-in for FirebaseIdentityProvider"""

    def __init__(self):
        self._user = None
        self._listeners = []
        self._uids = (f"user-{n}" for n in itertools.count(1))
        self.failures = []
        self.calls = []

    @property
    def current_user(self):
        return self._user

    def _next_failure(self):
        if self.failures:
            raise self.failures.pop(0)

    def _set_user(self, user):
        previous, self._user = self._user, user
        if previous is not None and user is not None and previous.uid == user.uid:
            return
        for listener in list(self._listeners):
            listener(user)

    def sign_in_anonymously(self):
        self.calls.append('anonymous')
        self._next_failure()
        user = FirebaseUser(uid=next(self._uids), id_token='token', refresh_token='refresh',
                            expires_at=9e9, is_anonymous=True)
        self._set_user(user)
        return user

    def sign_in_with_custom_token(self, token):
        self.calls.append(('custom', token))
        self._next_failure()
        user = FirebaseUser(uid='custom-user', id_token='token', refresh_token='refresh', expires_at=9e9)
        self._set_user(user)
        return user

    def sign_out(self):
        self.calls.append('sign_out')
        self._set_user(None)

    def get_id_token(self, force_refresh=False):
        if self._user is None:
            raise AuthError("No signed-in user", code='auth/no-current-user')
        return self._user.id_token

    def on_auth_state_changed(self, callback):
        self._listeners.append(callback)
        callback(self._user)
        return Subscription(lambda: self._listeners.remove(callback))


class FakeDocumentSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = dict(data)

    def to_dict(self):
        return dict(self._data)


class FakeDocumentReference:
    def __init__(self, collection, doc_id):
        self._collection = collection
        self.id = doc_id

    def delete(self):
        self._collection.client.check(self._collection.path)
        self._collection.documents.pop(self.id, None)
        self._collection.notify()


class FakeWatch:
    def __init__(self, collection, callback):
        self._collection = collection
        self.callback = callback
        self.active = True

    @property
    def is_active(self):
        return self.active

    def unsubscribe(self):
        self.active = False
        if self in self._collection.watches:
            self._collection.watches.remove(self)

    def fail(self):
        """Stop delivering the way a watch does when its stream errors"""
        self.unsubscribe()


class FakeCollection:
    def __init__(self, client, path):
        self.client = client
        self.path = path
        self.documents = {}
        self.watches = []

    def add(self, data):
        self.client.check(self.path)
        doc_id = f"doc-{next(self.client.ids)}"
        self.documents[doc_id] = dict(data)
        self.notify()
        return None, FakeDocumentReference(self, doc_id)

    def document(self, doc_id):
        return FakeDocumentReference(self, doc_id)

    def snapshots(self):
        return [FakeDocumentSnapshot(doc_id, data) for doc_id, data in self.documents.items()]

    def stream(self):
        self.client.check(self.path)
        return iter(self.snapshots())

    def on_snapshot(self, callback):
        watch = FakeWatch(self, callback)
        self.watches.append(watch)
        callback(self.snapshots(), [], None)
        return watch

    def notify(self):
        for watch in list(self.watches):
            watch.callback(self.snapshots(), [], None)


class FakeFirestoreClient:
    """Path-addressed collections with switchable permission failures"""

    def __init__(self):
        self.collections = {}
        self.ids = itertools.count(1)
        self.denied = set()
        self.unavailable = set()

    def collection(self, *path):
        key = '/'.join(path)
        if key not in self.collections:
            self.collections[key] = FakeCollection(self, key)
        return self.collections[key]

    def check(self, path):
        if path in self.denied:
            raise gapi_exceptions.PermissionDenied("Missing or insufficient permissions.")
        if path in self.unavailable:
            raise gapi_exceptions.ServiceUnavailable("The service is currently unavailable.")


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        firebase=FirebaseSettings(api_key='test-key', project_id='test-project'),
        app_id='test-app',
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def alerts(clock) -> AlertCenter:
    return AlertCenter(timeout_seconds=5.0, clock=clock)


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def firestore_client() -> FakeFirestoreClient:
    return FakeFirestoreClient()


@pytest.fixture
def store(firestore_client, app_config) -> ReportStore:
    return ReportStore(firestore_client, app_config.app_id)


@pytest.fixture
def session(identity, alerts) -> SessionManager:
    return SessionManager(identity, on_alert=alerts.show)


@pytest.fixture
def submit_time():
    return pytz.utc.localize(datetime(2025, 7, 21, 6, 30, 0))


@pytest.fixture
def controller(app_config, identity, session, store, alerts, submit_time) -> SafetyReportController:
    times = (submit_time + timedelta(minutes=n) for n in itertools.count())
    context = ClientContext(config=app_config, identity=identity, session=session, store=store)
    return SafetyReportController(context, alerts, clock=lambda: next(times))
