"""In-process auth gateway.

Keeps accounts in memory with bcrypt password hashes (via passlib) and
reproduces the managed service's coded failures (duplicate email, weak
password, too many attempts …), so the session layer can be exercised
without a network.  Hashing runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import re
import time
import uuid
from dataclasses import dataclass
from typing import Callable

from loguru import logger
from passlib.context import CryptContext

from notesphere.backends.base import AuthStateEmitter
from notesphere.errors import AuthError, AuthErrorCode
from notesphere.note import Identity

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 6

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _bcrypt_input(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


@dataclass
class _Account:
    uid: str
    email: str
    password_hash: str
    display_name: str | None = None

    def identity(self) -> Identity:
        return Identity(uid=self.uid, email=self.email, display_name=self.display_name)


class LocalAuthGateway(AuthStateEmitter):
    """Auth gateway whose accounts live in this process only."""

    def __init__(
        self,
        *,
        max_failed_attempts: int = 5,
        lockout_seconds: float = 60.0,
        bcrypt_rounds: int = 12,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__()
        self._accounts: dict[str, _Account] = {}
        self._failures: dict[str, list[float]] = {}
        self._max_failed_attempts = max_failed_attempts
        self._lockout_seconds = lockout_seconds
        self._pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=bcrypt_rounds)
        self._clock = clock

    # ------------------------------------------------------------------
    # Gateway API
    # ------------------------------------------------------------------

    async def register(self, email: str, password: str, display_name: str | None = None) -> Identity:
        key = self._check_email(email)
        if key in self._accounts:
            raise AuthError(AuthErrorCode.DUPLICATE_EMAIL, "EMAIL_EXISTS")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthError(
                AuthErrorCode.WEAK_SECRET,
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters",
            )
        password_hash = await asyncio.to_thread(self._pwd_context.hash, _bcrypt_input(password))
        # Another register for the same email may have finished while hashing
        if key in self._accounts:
            raise AuthError(AuthErrorCode.DUPLICATE_EMAIL, "EMAIL_EXISTS")
        account = _Account(
            uid=uuid.uuid4().hex,
            email=email.strip(),
            password_hash=password_hash,
            display_name=display_name or None,
        )
        self._accounts[key] = account
        logger.info("registered local account {}", account.uid)
        identity = account.identity()
        self._set_current(identity)
        return identity

    async def login(self, email: str, password: str) -> Identity:
        key = self._check_email(email)
        if self._locked_out(key):
            raise AuthError(AuthErrorCode.RATE_LIMITED, "TOO_MANY_ATTEMPTS_TRY_LATER")
        account = self._accounts.get(key)
        if account is None or not await self._verify(password, account.password_hash):
            self._failures.setdefault(key, []).append(self._clock())
            raise AuthError(AuthErrorCode.BAD_CREDENTIAL, "INVALID_LOGIN_CREDENTIALS")
        self._failures.pop(key, None)
        identity = account.identity()
        self._set_current(identity)
        return identity

    async def logout(self) -> None:
        self._set_current(None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_email(self, email: str) -> str:
        email = email.strip()
        if not _EMAIL_RE.match(email):
            raise AuthError(AuthErrorCode.INVALID_EMAIL, "INVALID_EMAIL")
        return email.lower()

    async def _verify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self._pwd_context.verify, _bcrypt_input(password), password_hash)

    def _locked_out(self, key: str) -> bool:
        attempts = self._failures.get(key)
        if not attempts:
            return False
        cutoff = self._clock() - self._lockout_seconds
        recent = [t for t in attempts if t > cutoff]
        if recent:
            self._failures[key] = recent
        else:
            del self._failures[key]
        return len(recent) >= self._max_failed_attempts
