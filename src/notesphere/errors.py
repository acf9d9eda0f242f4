"""Exception hierarchy shared by the backends and the session layer."""

from __future__ import annotations

from enum import Enum


class NoteSphereError(Exception):
    """Base class for every error raised by notesphere."""


class ValidationError(NoteSphereError):
    """Input rejected locally, before any remote call is made."""


class AuthErrorCode(str, Enum):
    DUPLICATE_EMAIL = "duplicate-email"
    INVALID_EMAIL = "invalid-email"
    BAD_CREDENTIAL = "bad-credential"
    WEAK_SECRET = "weak-secret"
    RATE_LIMITED = "rate-limited"
    OTHER = "other"


class AuthError(NoteSphereError):
    """Coded failure from the auth gateway."""

    def __init__(self, code: AuthErrorCode, message: str = "") -> None:
        super().__init__(message or code.value)
        self.code = code
        self.message = message


class RemoteStoreError(NoteSphereError):
    """Any failure talking to the document store."""
