"""Note access layer: the signed-in user's notes in the document store."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from loguru import logger

from notesphere.backends.base import AuthGateway, DocumentStore
from notesphere.errors import ValidationError
from notesphere.note import Note, utcnow

NOTES = "notes"


def validate_note(title: str, content: str) -> tuple[str, str]:
    """Return ``(title, content)`` trimmed; raise when either is blank."""
    title = (title or "").strip()
    content = (content or "").strip()
    if not title or not content:
        raise ValidationError("Please enter a title and content!")
    return title, content


class NoteService:
    """Add, list, update and delete notes on behalf of ``auth.current_user``.

    Ownership is enforced by :meth:`list`, which only ever returns the
    caller's notes; :meth:`update` and :meth:`delete` act on ids alone.
    """

    def __init__(
        self,
        store: DocumentStore,
        auth: AuthGateway,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._auth = auth
        self._clock = clock

    async def add(self, title: str, content: str) -> str | None:
        """Create a note and return its id; ``None`` when nobody is signed in."""
        title, content = validate_note(title, content)
        user = self._auth.current_user
        if user is None:
            return None
        note_id = await self._store.create(
            NOTES,
            {"ownerId": user.uid, "title": title, "content": content, "createdAt": self._clock()},
        )
        logger.debug("added note {} for {}", note_id, user.uid)
        return note_id

    async def list(self) -> list[Note]:
        """The current user's notes, newest first."""
        user = self._auth.current_user
        if user is None:
            return []
        docs = await self._store.query_by_owner(NOTES, user.uid, order_by="createdAt", descending=True)
        return [Note.from_document(doc_id, fields) for doc_id, fields in docs]

    async def update(self, note_id: str, title: str, content: str) -> None:
        title, content = validate_note(title, content)
        await self._store.update(NOTES, note_id, {"title": title, "content": content, "editedAt": self._clock()})
        logger.debug("updated note {}", note_id)

    async def delete(self, note_id: str) -> None:
        await self._store.delete(NOTES, note_id)
        logger.debug("deleted note {}", note_id)
