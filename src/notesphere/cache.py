"""NoteCache: the last fetched note list plus a live search view."""

from __future__ import annotations

from typing import Iterable, Iterator

import polars as pl

from notesphere.note import Note

_FRAME_SCHEMA = {
    "id": pl.Utf8,
    "title": pl.Utf8,
    "content": pl.Utf8,
    "created_at": pl.Datetime(time_zone="UTC"),
    "edited_at": pl.Datetime(time_zone="UTC"),
    "updated": pl.Datetime(time_zone="UTC"),
}


class NoteCache:
    """Canonical note sequence and the search-filtered view derived from it.

    The canonical sequence is only ever replaced wholesale (after a fresh
    ``list()``); filtering never touches it.
    """

    def __init__(self, notes: Iterable[Note] = (), search_filter: str = "") -> None:
        self._canonical: tuple[Note, ...] = tuple(notes)
        self._search_filter = search_filter
        self._view: tuple[Note, ...] = ()
        self._refilter()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def replace(self, notes: Iterable[Note]) -> None:
        self._canonical = tuple(notes)
        self._refilter()

    def clear(self) -> None:
        self.replace(())

    def set_search_filter(self, query: str) -> None:
        self._search_filter = query or ""
        self._refilter()

    def _refilter(self) -> None:
        q = self._search_filter
        if not q.strip():
            self._view = self._canonical
        else:
            self._view = tuple(n for n in self._canonical if n.matches(q))

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def canonical(self) -> tuple[Note, ...]:
        return self._canonical

    @property
    def view(self) -> tuple[Note, ...]:
        """The active view: filtered when a search is active, else everything."""
        return self._view

    @property
    def search_filter(self) -> str:
        return self._search_filter

    def get(self, note_id: str) -> Note | None:
        return next((n for n in self._canonical if n.id == note_id), None)

    def to_frame(self) -> pl.DataFrame:
        """Render the active view as a Polars DataFrame for table widgets."""
        return pl.DataFrame([n.to_dict() for n in self._view], schema=_FRAME_SCHEMA)

    def __iter__(self) -> Iterator[Note]:
        return iter(self._view)

    def __len__(self) -> int:
        return len(self._view)
