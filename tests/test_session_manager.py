from error_handling import AuthError
from session_manager import SessionManager


def test_start_signs_in_anonymously(session, identity):
    session.start()
    assert identity.calls == ['anonymous']
    assert session.user_id == 'user-1'
    assert session.is_ready


def test_start_prefers_bootstrap_token(identity, alerts):
    session = SessionManager(identity, initial_auth_token='bootstrap', on_alert=alerts.show)
    session.start()
    assert identity.calls == [('custom', 'bootstrap')]
    assert session.user_id == 'custom-user'


def test_start_reuses_existing_session(session, identity):
    identity.sign_in_anonymously()
    identity.calls.clear()
    session.start()
    assert identity.calls == []
    assert session.user_id == 'user-1'


def test_rate_limited_sign_in_still_becomes_ready(session, identity, alerts):
    identity.failures.append(AuthError('TOO_MANY_ATTEMPTS_TRY_LATER', code='auth/too-many-requests'))
    session.start()
    assert session.is_ready
    assert session.rate_limited
    assert session.user_id is None
    assert alerts.current() is None


def test_other_sign_in_failure_raises_alert(session, identity, alerts):
    identity.failures.append(AuthError('ADMIN_ONLY_OPERATION', code='auth/admin-restricted-operation'))
    session.start()
    assert session.is_ready
    assert not session.rate_limited
    assert alerts.current().alert_type == 'error'
    assert alerts.current().message.startswith('로그인 실패')


def test_subscribers_hear_identity_changes_once(session, identity):
    session.start()
    seen = []
    subscription = session.subscribe(seen.append)
    assert seen == ['user-1']

    session.retry()
    assert seen == ['user-1', None, 'user-2']

    subscription.close()
    session.retry()
    assert seen == ['user-1', None, 'user-2']


def test_retry_clears_rate_limit_on_success(session, identity):
    identity.failures.append(AuthError('TOO_MANY_ATTEMPTS_TRY_LATER', code='auth/too-many-requests'))
    session.start()
    assert session.retry()
    assert not session.rate_limited
    assert session.user_id == 'user-1'


def test_retry_failure_is_recorded(session, identity, alerts):
    session.start()
    identity.failures.append(AuthError('USER_DISABLED', code='auth/user-disabled'))
    assert not session.retry()
    assert session.last_error.code == 'auth/user-disabled'
    assert alerts.current().message.startswith('재로그인 실패')
    assert session.user_id is None


def test_close_stops_notifications(session, identity):
    session.start()
    seen = []
    session.subscribe(seen.append)
    session.close()
    identity.sign_out()
    assert seen == ['user-1']
