# firebase_auth.py
"""
Firebase Authentication client over the Identity Toolkit REST API.
Supports anonymous and custom-token sign-in, local sign-out, ID token refresh
and identity-change listeners.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import requests
from google.auth import jwt

from error_handling import AuthError
from subscriptions import Subscription

logger = logging.getLogger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Refresh this many seconds before the ID token actually expires
TOKEN_EXPIRY_MARGIN = 60

# REST error messages -> SDK-style error codes
REST_ERROR_CODES = {
    'TOO_MANY_ATTEMPTS_TRY_LATER': 'auth/too-many-requests',
    'QUOTA_EXCEEDED': 'auth/too-many-requests',
    'ADMIN_ONLY_OPERATION': 'auth/admin-restricted-operation',
    'OPERATION_NOT_ALLOWED': 'auth/operation-not-allowed',
    'INVALID_CUSTOM_TOKEN': 'auth/invalid-custom-token',
    'CREDENTIAL_MISMATCH': 'auth/custom-token-mismatch',
    'TOKEN_EXPIRED': 'auth/user-token-expired',
    'USER_DISABLED': 'auth/user-disabled',
    'USER_NOT_FOUND': 'auth/user-not-found',
    'INVALID_REFRESH_TOKEN': 'auth/invalid-refresh-token',
    'API_KEY_INVALID': 'auth/invalid-api-key',
}


@dataclass(frozen=True)
class FirebaseUser:
    uid: str
    id_token: str
    refresh_token: str
    expires_at: float
    is_anonymous: bool = False

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at - TOKEN_EXPIRY_MARGIN


def _uid_from_id_token(id_token: str) -> Optional[str]:
    """Read the uid claim without verifying the signature; the token came straight from Google"""
    try:
        claims = jwt.decode(id_token, verify=False)
    except ValueError as e:
        logger.warning(f"Could not decode ID token claims: {e}")
        return None
    return claims.get('user_id') or claims.get('sub')


def _error_from_response(response) -> AuthError:
    message = f"HTTP {response.status_code}"
    try:
        payload = response.json()
        message = payload.get('error', {}).get('message', message)
    except ValueError:
        pass
    reason = message.split(' ')[0].split(':')[0]
    if response.status_code == 429:
        return AuthError(message, code='auth/too-many-requests')
    code = REST_ERROR_CODES.get(reason, f"auth/{reason.lower().replace('_', '-')}")
    return AuthError(message, code=code)


class FirebaseIdentityProvider:
    """Identity provider backed by Firebase Authentication"""

    def __init__(self, api_key: str, http_session: Optional[requests.Session] = None,
                 timeout: float = 30.0, clock: Callable[[], float] = time.time):
        self.api_key = api_key
        self.http = http_session or requests.Session()
        self.timeout = timeout
        self.clock = clock
        self._user: Optional[FirebaseUser] = None
        self._listeners: List[Callable[[Optional[FirebaseUser]], None]] = []
        self._lock = threading.RLock()

    @property
    def current_user(self) -> Optional[FirebaseUser]:
        return self._user

    def _post(self, url: str, **kwargs) -> Dict:
        try:
            response = self.http.post(url, params={'key': self.api_key}, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise AuthError(str(e), code='auth/network-request-failed') from e
        if response.status_code != 200:
            raise _error_from_response(response)
        return response.json()

    def _user_from_payload(self, payload: Dict, is_anonymous: bool) -> FirebaseUser:
        id_token = payload.get('idToken') or payload.get('id_token')
        uid = payload.get('localId') or payload.get('user_id') or _uid_from_id_token(id_token)
        if not id_token or not uid:
            raise AuthError("Sign-in response did not include an identity", code='auth/internal-error')
        expires_in = int(payload.get('expiresIn') or payload.get('expires_in') or 3600)
        return FirebaseUser(
            uid=uid,
            id_token=id_token,
            refresh_token=payload.get('refreshToken') or payload.get('refresh_token') or '',
            expires_at=self.clock() + expires_in,
            is_anonymous=is_anonymous,
        )

    def _set_user(self, user: Optional[FirebaseUser]):
        with self._lock:
            previous = self._user
            self._user = user
            listeners = list(self._listeners)
        # Token refreshes keep the same uid and are not identity changes
        if previous is not None and user is not None and previous.uid == user.uid:
            return
        for listener in listeners:
            listener(user)

    def sign_in_anonymously(self) -> FirebaseUser:
        payload = self._post(f"{IDENTITY_TOOLKIT_URL}/accounts:signUp", json={'returnSecureToken': True})
        user = self._user_from_payload(payload, is_anonymous=True)
        logger.info(f"Anonymous sign-in succeeded: {user.uid}")
        self._set_user(user)
        return user

    def sign_in_with_custom_token(self, token: str) -> FirebaseUser:
        payload = self._post(
            f"{IDENTITY_TOOLKIT_URL}/accounts:signInWithCustomToken",
            json={'token': token, 'returnSecureToken': True}
        )
        user = self._user_from_payload(payload, is_anonymous=False)
        logger.info(f"Custom token sign-in succeeded: {user.uid}")
        self._set_user(user)
        return user

    def sign_out(self):
        """Local sign-out; Firebase has no server-side session to end"""
        if self._user is not None:
            logger.info(f"Signing out {self._user.uid}")
        self._set_user(None)

    def get_id_token(self, force_refresh: bool = False) -> str:
        user = self._user
        if user is None:
            raise AuthError("No signed-in user", code='auth/no-current-user')
        if force_refresh or user.is_expired(self.clock()):
            user = self._refresh(user)
        return user.id_token

    def _refresh(self, user: FirebaseUser) -> FirebaseUser:
        payload = self._post(
            SECURE_TOKEN_URL,
            data={'grant_type': 'refresh_token', 'refresh_token': user.refresh_token}
        )
        refreshed = self._user_from_payload(payload, is_anonymous=user.is_anonymous)
        logger.debug(f"Refreshed ID token for {refreshed.uid}")
        self._set_user(refreshed)
        return refreshed

    def on_auth_state_changed(self, callback: Callable[[Optional[FirebaseUser]], None]) -> Subscription:
        """Register an identity listener; it is called once immediately with the current user"""
        with self._lock:
            self._listeners.append(callback)
            current = self._user

        def _remove():
            with self._lock:
                if callback in self._listeners:
                    self._listeners.remove(callback)

        callback(current)
        return Subscription(_remove, name="auth state listener")
