"""Protocols for the two external services the client depends on."""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from notesphere.note import Identity

AuthListener = Callable[[Identity | None], None]
Unsubscribe = Callable[[], None]


@runtime_checkable
class AuthGateway(Protocol):
    """Email/password identity service.

    Implementations (Firebase Authentication, the in-process local gateway)
    must satisfy this protocol so the session layer can swap them freely.
    Every method raises :class:`notesphere.errors.AuthError` on failure.
    """

    @property
    def current_user(self) -> Identity | None:
        """The signed-in identity, or ``None``."""
        ...

    async def register(self, email: str, password: str, display_name: str | None = None) -> Identity:
        """Create an account and sign it in."""
        ...

    async def login(self, email: str, password: str) -> Identity:
        ...

    async def logout(self) -> None:
        ...

    def on_auth_state_change(self, callback: AuthListener) -> Unsubscribe:
        """Call *callback* now with the current user and again on every change.

        Returns a callable that removes the listener.
        """
        ...


class AuthStateEmitter:
    """Listener bookkeeping shared by the gateway implementations."""

    def __init__(self) -> None:
        self._listeners: list[AuthListener] = []
        self._current: Identity | None = None

    @property
    def current_user(self) -> Identity | None:
        return self._current

    def on_auth_state_change(self, callback: AuthListener) -> Unsubscribe:
        self._listeners.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current(self, identity: Identity | None) -> None:
        previous = self._current
        self._current = identity
        # Listeners only hear about a different account (or sign-out)
        if (previous.uid if previous else None) == (identity.uid if identity else None):
            return
        for callback in list(self._listeners):
            callback(identity)


@runtime_checkable
class DocumentStore(Protocol):
    """Per-document collection store.

    Field values are plain Python (``str``, ``datetime``, ``int`` …).  Every
    method raises :class:`notesphere.errors.RemoteStoreError` on failure.
    """

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        """Insert a document under a store-assigned id and return the id."""
        ...

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Create or overwrite the document *doc_id*."""
        ...

    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch a document's fields, or ``None`` when not found."""
        ...

    async def query_by_owner(
        self,
        collection: str,
        owner_id: str,
        order_by: str,
        descending: bool = True,
    ) -> list[tuple[str, dict[str, Any]]]:
        """Return ``(id, fields)`` for every document whose ``ownerId`` matches."""
        ...

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge *fields* into an existing document; missing documents raise."""
        ...

    async def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document.  Deleting a missing document is not an error."""
        ...
