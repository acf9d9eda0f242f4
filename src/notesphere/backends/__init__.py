"""Auth gateway and document store implementations.

Environment variables (direct kwargs take precedence):
    NOTESPHERE_BACKEND   – ``local`` (default) or ``firebase``
"""

from __future__ import annotations

import os

from notesphere.backends.base import AuthGateway, DocumentStore
from notesphere.backends.duckdb_store import DuckDBDocumentStore
from notesphere.backends.firebase import FirebaseAuthGateway
from notesphere.backends.firestore import FirestoreDocumentStore
from notesphere.backends.local_auth import LocalAuthGateway

__all__ = [
    "AuthGateway",
    "DocumentStore",
    "DuckDBDocumentStore",
    "FirebaseAuthGateway",
    "FirestoreDocumentStore",
    "LocalAuthGateway",
    "open_backends",
]


def open_backends(kind: str | None = None) -> tuple[AuthGateway, DocumentStore]:
    """Build the ``(auth, store)`` pair selected by *kind* or ``NOTESPHERE_BACKEND``."""
    kind = (kind or os.getenv("NOTESPHERE_BACKEND", "local")).lower()
    if kind == "firebase":
        auth = FirebaseAuthGateway()
        return auth, FirestoreDocumentStore(token_provider=auth.id_token)
    if kind == "local":
        return LocalAuthGateway(), DuckDBDocumentStore()
    raise ValueError(f"Unknown backend {kind!r}; expected 'local' or 'firebase'")
