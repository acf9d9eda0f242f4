"""NoteSphere note-taking client library."""

from notesphere.accounts import AccountService, auth_error_message
from notesphere.backends import open_backends
from notesphere.cache import NoteCache
from notesphere.errors import AuthError, AuthErrorCode, RemoteStoreError, ValidationError
from notesphere.note import Identity, Note, UserProfile
from notesphere.notes import NoteService, validate_note
from notesphere.notifications import Notification, Notifier
from notesphere.session import SessionController, SessionPhase, SessionState

__all__ = [
    "AccountService",
    "AuthError",
    "AuthErrorCode",
    "Identity",
    "Note",
    "NoteCache",
    "NoteService",
    "Notification",
    "Notifier",
    "RemoteStoreError",
    "SessionController",
    "SessionPhase",
    "SessionState",
    "UserProfile",
    "ValidationError",
    "auth_error_message",
    "open_backends",
    "validate_note",
]
