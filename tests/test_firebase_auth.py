from unittest import mock

import pytest
import requests

from error_handling import AuthError
from firebase_auth import FirebaseIdentityProvider


def _response(status_code=200, payload=None):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = payload or {}
    return response


def _sign_up_payload(uid='anon-1', token='id-token-1'):
    return {'idToken': token, 'refreshToken': 'refresh-1', 'expiresIn': '3600', 'localId': uid}


@pytest.fixture
def http():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def provider(http, clock):
    return FirebaseIdentityProvider('api-key', http_session=http, clock=clock)


def test_anonymous_sign_in_sets_current_user(provider, http, clock):
    http.post.return_value = _response(payload=_sign_up_payload())

    user = provider.sign_in_anonymously()

    assert user.uid == 'anon-1'
    assert user.is_anonymous
    assert user.expires_at == clock() + 3600
    assert provider.current_user is user
    url = http.post.call_args[0][0]
    assert url.endswith('/accounts:signUp')
    assert http.post.call_args[1]['params'] == {'key': 'api-key'}


def test_rate_limit_message_is_classified(provider, http):
    http.post.return_value = _response(400, {'error': {'message': 'TOO_MANY_ATTEMPTS_TRY_LATER'}})

    with pytest.raises(AuthError) as exc_info:
        provider.sign_in_anonymously()

    assert exc_info.value.code == 'auth/too-many-requests'
    assert exc_info.value.is_rate_limited
    assert provider.current_user is None


def test_http_429_is_rate_limited(provider, http):
    http.post.return_value = _response(429, {'error': {'message': 'RESOURCE_EXHAUSTED'}})
    with pytest.raises(AuthError) as exc_info:
        provider.sign_in_anonymously()
    assert exc_info.value.kind == AuthError.RATE_LIMITED


def test_other_errors_are_not_rate_limited(provider, http):
    http.post.return_value = _response(400, {'error': {'message': 'OPERATION_NOT_ALLOWED : disabled'}})
    with pytest.raises(AuthError) as exc_info:
        provider.sign_in_anonymously()
    assert exc_info.value.code == 'auth/operation-not-allowed'
    assert exc_info.value.kind == AuthError.OTHER


def test_network_failure_becomes_auth_error(provider, http):
    http.post.side_effect = requests.ConnectionError('offline')
    with pytest.raises(AuthError) as exc_info:
        provider.sign_in_anonymously()
    assert exc_info.value.code == 'auth/network-request-failed'


def test_custom_token_uid_comes_from_id_token_claims(provider, http):
    http.post.return_value = _response(payload={'idToken': 'jwt', 'refreshToken': 'r', 'expiresIn': '3600'})

    with mock.patch('firebase_auth.jwt.decode', return_value={'user_id': 'custom-uid'}) as decode:
        user = provider.sign_in_with_custom_token('custom-token')

    decode.assert_called_once_with('jwt', verify=False)
    assert user.uid == 'custom-uid'
    assert not user.is_anonymous
    assert http.post.call_args[1]['json'] == {'token': 'custom-token', 'returnSecureToken': True}


def test_listener_is_called_immediately_and_on_change(provider, http):
    seen = []
    subscription = provider.on_auth_state_changed(seen.append)
    assert seen == [None]

    http.post.return_value = _response(payload=_sign_up_payload())
    provider.sign_in_anonymously()
    provider.sign_out()
    assert [user.uid if user else None for user in seen] == [None, 'anon-1', None]

    subscription.close()
    provider.sign_in_anonymously()
    assert len(seen) == 3


def test_expired_token_is_refreshed_without_identity_change(provider, http, clock):
    http.post.return_value = _response(payload=_sign_up_payload())
    provider.sign_in_anonymously()
    seen = []
    provider.on_auth_state_changed(seen.append)

    clock.advance(3600)
    http.post.return_value = _response(payload={
        'id_token': 'id-token-2', 'refresh_token': 'refresh-2', 'expires_in': '3600', 'user_id': 'anon-1'
    })

    assert provider.get_id_token() == 'id-token-2'
    assert http.post.call_args[1]['data'] == {'grant_type': 'refresh_token', 'refresh_token': 'refresh-1'}
    # Only the immediate call; a refresh is not an identity change
    assert len(seen) == 1


def test_get_id_token_without_user_fails(provider):
    with pytest.raises(AuthError) as exc_info:
        provider.get_id_token()
    assert exc_info.value.code == 'auth/no-current-user'
