"""Shared fixtures: in-process backends, a ticking clock, and store doubles."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from notesphere.backends.duckdb_store import DuckDBDocumentStore
from notesphere.backends.local_auth import LocalAuthGateway
from notesphere.errors import RemoteStoreError
from notesphere.notes import NoteService
from notesphere.session import SessionController

T0 = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


class TickingClock:
    """Returns a strictly increasing UTC time, one second per call."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class RecordingStore:
    """Wraps a document store, logging calls and failing the ones in ``fail``.

    ``errors`` maps a method name to an arbitrary exception to raise instead.
    """

    def __init__(self, inner: DuckDBDocumentStore) -> None:
        self.inner = inner
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self.errors: dict[str, Exception] = {}

    def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.errors:
            raise self.errors[name]
        if name in self.fail:
            raise RemoteStoreError(f"{name} unavailable")

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        self._enter("create")
        return await self.inner.create(collection, fields)

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._enter("set")
        await self.inner.set(collection, doc_id, fields)

    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        self._enter("read")
        return await self.inner.read(collection, doc_id)

    async def query_by_owner(self, collection, owner_id, order_by, descending=True):
        self._enter("query_by_owner")
        return await self.inner.query_by_owner(collection, owner_id, order_by, descending)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        self._enter("update")
        await self.inner.update(collection, doc_id, fields)

    async def delete(self, collection: str, doc_id: str) -> None:
        self._enter("delete")
        await self.inner.delete(collection, doc_id)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture()
def auth() -> LocalAuthGateway:
    return LocalAuthGateway(bcrypt_rounds=4)


@pytest.fixture()
def duck():
    store = DuckDBDocumentStore(":memory:")
    yield store
    store.close()


@pytest.fixture()
def store(duck: DuckDBDocumentStore) -> RecordingStore:
    return RecordingStore(duck)


@pytest.fixture()
def notes(store: RecordingStore, auth: LocalAuthGateway, clock: TickingClock) -> NoteService:
    return NoteService(store, auth, clock=clock)


@pytest.fixture()
def routes() -> list[str]:
    return []


@pytest.fixture()
async def session(auth, store, notes, routes):
    controller = SessionController(auth, store, notes=notes, navigate=routes.append)
    await controller.start()
    await controller.wait_idle()
    yield controller
    await controller.close()
