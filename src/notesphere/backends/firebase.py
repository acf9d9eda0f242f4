"""Firebase Authentication gateway.

A thin async HTTP client over the Identity Toolkit REST API.  The managed
service has no push channel for REST callers, so auth-state notifications
are emitted locally whenever sign-up, sign-in or sign-out succeeds.

Endpoints used
--------------
POST identitytoolkit  /v1/accounts:signUp             – create account + sign in
POST identitytoolkit  /v1/accounts:signInWithPassword – sign in
POST identitytoolkit  /v1/accounts:update             – set display name
POST securetoken      /v1/token                       – refresh the ID token

Failures come back as ``{"error": {"message": "EMAIL_EXISTS", ...}}`` and are
translated to :class:`notesphere.errors.AuthError` codes.

Environment variables (direct kwargs take precedence):
    NOTESPHERE_FIREBASE_API_KEY   – web API key of the Firebase project
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx
from loguru import logger

from notesphere.backends.base import AuthStateEmitter
from notesphere.errors import AuthError, AuthErrorCode
from notesphere.note import Identity

IDENTITY_URL = "https://identitytoolkit.googleapis.com/v1"
TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

#: Refresh this many seconds before the ID token actually expires
_REFRESH_MARGIN = 60.0

_ERROR_CODES: dict[str, AuthErrorCode] = {
    "EMAIL_EXISTS": AuthErrorCode.DUPLICATE_EMAIL,
    "INVALID_EMAIL": AuthErrorCode.INVALID_EMAIL,
    "MISSING_EMAIL": AuthErrorCode.INVALID_EMAIL,
    "INVALID_LOGIN_CREDENTIALS": AuthErrorCode.BAD_CREDENTIAL,
    "INVALID_PASSWORD": AuthErrorCode.BAD_CREDENTIAL,
    "EMAIL_NOT_FOUND": AuthErrorCode.BAD_CREDENTIAL,
    "MISSING_PASSWORD": AuthErrorCode.BAD_CREDENTIAL,
    "WEAK_PASSWORD": AuthErrorCode.WEAK_SECRET,
    "TOO_MANY_ATTEMPTS_TRY_LATER": AuthErrorCode.RATE_LIMITED,
}


def auth_error_from_response(response: httpx.Response) -> AuthError:
    """Build an :class:`AuthError` from a failed Identity Toolkit response."""
    try:
        message = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        message = f"HTTP {response.status_code}"
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    key = message.split(":", 1)[0].strip()
    return AuthError(_ERROR_CODES.get(key, AuthErrorCode.OTHER), message)


@dataclass
class _Tokens:
    id_token: str
    refresh_token: str
    expires_at: float


class FirebaseAuthGateway(AuthStateEmitter):
    """Auth gateway backed by Firebase Authentication (email/password)."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__()
        self._api_key = api_key or os.getenv("NOTESPHERE_FIREBASE_API_KEY", "")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._clock = clock
        self._tokens: _Tokens | None = None

    # ------------------------------------------------------------------
    # Gateway API
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str, display_name: str | None = None) -> Identity:
        data = await self._post(
            f"{IDENTITY_URL}/accounts:signUp",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        self._store_tokens(data["idToken"], data["refreshToken"], data["expiresIn"])
        if display_name:
            updated = await self._post(
                f"{IDENTITY_URL}/accounts:update",
                json={"idToken": data["idToken"], "displayName": display_name, "returnSecureToken": True},
            )
            if "idToken" in updated:
                self._store_tokens(updated["idToken"], updated["refreshToken"], updated["expiresIn"])
        identity = Identity(uid=data["localId"], email=data["email"], display_name=display_name or None)
        logger.info("registered firebase account {}", identity.uid)
        self._set_current(identity)
        return identity

    async def login(self, email: str, password: str) -> Identity:
        data = await self._post(
            f"{IDENTITY_URL}/accounts:signInWithPassword",
            json={"email": email, "password": password, "returnSecureToken": True},
        )
        self._store_tokens(data["idToken"], data["refreshToken"], data["expiresIn"])
        identity = Identity(
            uid=data["localId"],
            email=data["email"],
            display_name=data.get("displayName") or None,
        )
        self._set_current(identity)
        return identity

    async def logout(self) -> None:
        self._tokens = None
        self._set_current(None)

    async def id_token(self) -> str:
        """Current ID token, refreshed when it is close to expiry."""
        if self._tokens is None:
            raise AuthError(AuthErrorCode.OTHER, "Not signed in")
        if self._tokens.expires_at - _REFRESH_MARGIN <= self._clock():
            logger.debug("refreshing firebase id token")
            data = await self._post(
                TOKEN_URL,
                data={"grant_type": "refresh_token", "refresh_token": self._tokens.refresh_token},
            )
            self._store_tokens(data["id_token"], data["refresh_token"], data["expires_in"])
        return self._tokens.id_token

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _post(self, url: str, **kwargs: Any) -> dict[str, Any]:
        try:
            r = await self._client.post(url, params={"key": self._api_key}, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("firebase auth request failed: {}", exc)
            raise AuthError(AuthErrorCode.OTHER, str(exc)) from exc
        if r.is_error:
            raise auth_error_from_response(r)
        return r.json()

    def _store_tokens(self, id_token: str, refresh_token: str, expires_in: str | int) -> None:
        self._tokens = _Tokens(id_token, refresh_token, self._clock() + float(expires_in))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "FirebaseAuthGateway":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
