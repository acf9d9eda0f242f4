"""Sign-in / sign-up boundary in front of the auth gateway.

Checks form input before anything is sent, writes the ``users/{uid}``
profile on registration, and turns :class:`AuthError` codes into the text
shown to the user.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from loguru import logger

from notesphere.backends.base import AuthGateway, DocumentStore
from notesphere.errors import AuthError, AuthErrorCode, RemoteStoreError
from notesphere.note import Identity, UserProfile, utcnow
from notesphere.notifications import Notifier
from notesphere.session import NOTES_ROUTE, USERS, Navigate

AUTH_MESSAGES: dict[AuthErrorCode, str] = {
    AuthErrorCode.DUPLICATE_EMAIL: "This email is already registered. Please login.",
    AuthErrorCode.INVALID_EMAIL: "Invalid email format.",
    AuthErrorCode.BAD_CREDENTIAL: "Incorrect email or password.",
    AuthErrorCode.WEAK_SECRET: "Password should be at least 6 characters.",
    AuthErrorCode.RATE_LIMITED: "Too many failed attempts. Try again later.",
}


def auth_error_message(err: AuthError) -> str:
    """User-facing text for a failed sign-in or sign-up."""
    if err.code in AUTH_MESSAGES:
        return AUTH_MESSAGES[err.code]
    return err.message or "Something went wrong!"


class AccountService:
    def __init__(
        self,
        auth: AuthGateway,
        store: DocumentStore,
        *,
        notifier: Notifier | None = None,
        navigate: Navigate | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._auth = auth
        self._store = store
        self.notifier = notifier or Notifier()
        self._navigate = navigate
        self._clock = clock

    async def sign_in(self, email: str, password: str) -> Identity | None:
        if not email.strip() or not password.strip():
            self.notifier.error("Please enter both email and password.")
            return None
        try:
            identity = await self._auth.login(email.strip(), password)
        except AuthError as exc:
            logger.warning("sign-in failed: {}", exc.code.value)
            self.notifier.error(auth_error_message(exc))
            return None
        self.notifier.success("Login successful!")
        self._go(NOTES_ROUTE)
        return identity

    async def sign_up(self, name: str, email: str, password: str) -> Identity | None:
        if not email.strip() or not password.strip():
            self.notifier.error("Please enter both email and password.")
            return None
        if not name.strip():
            self.notifier.error("Please enter your name.")
            return None
        try:
            identity = await self._auth.register(email.strip(), password, display_name=name.strip())
        except AuthError as exc:
            logger.warning("sign-up failed: {}", exc.code.value)
            self.notifier.error(auth_error_message(exc))
            return None

        profile = UserProfile(name=name.strip(), email=identity.email, created_at=self._clock())
        try:
            await self._store.set(USERS, identity.uid, profile.to_fields())
        except RemoteStoreError as exc:
            # The account exists either way; the greeting falls back to the email
            logger.error("writing profile for {} failed: {}", identity.uid, exc)

        self.notifier.success("Account created successfully!")
        self._go(NOTES_ROUTE)
        return identity

    def _go(self, route: str) -> None:
        if self._navigate is not None:
            self._navigate(route)
