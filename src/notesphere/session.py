"""Session controller: follows the auth gateway and owns the note state.

Lifecycle
---------
``start()`` (or ``async with``) subscribes to the gateway's auth-state stream
and starts a single worker task.  Every notification is queued and handled
to completion before the next one is looked at, so transitions never
interleave.  A transition builds a fresh :class:`SessionState` and swaps it
in only once all of its remote calls have returned.

``close()`` unsubscribes, stops the worker and marks the controller dead;
remote calls already in flight run to completion but their results are
dropped.

Note actions (``add_note`` / ``edit_note`` / ``delete_note``) validate
locally, call the note service, notify the user, then re-list the whole
collection.  A second trigger of the same action while the first is still
pending is ignored.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable

from loguru import logger

from notesphere.backends.base import AuthGateway, DocumentStore, Unsubscribe
from notesphere.cache import NoteCache
from notesphere.errors import AuthError, NoteSphereError, RemoteStoreError, ValidationError
from notesphere.note import Identity, Note
from notesphere.notes import NoteService
from notesphere.notifications import Notifier

USERS = "users"

LOGIN_ROUTE = "/login"
NOTES_ROUTE = "/notes"

Navigate = Callable[[str], None]


class SessionPhase(str, Enum):
    SIGNED_OUT = "signed-out"
    AUTHENTICATING = "authenticating"
    SIGNED_IN = "signed-in"


@dataclass
class SessionState:
    """Everything the UI shows for one signed-in (or signed-out) session."""

    identity: Identity | None = None
    display_name: str = ""
    notes: NoteCache = field(default_factory=NoteCache)

    def current_identity(self) -> Identity | None:
        return self.identity

    def is_signed_in(self) -> bool:
        return self.identity is not None


_STOP = object()


class SessionController:
    def __init__(
        self,
        auth: AuthGateway,
        store: DocumentStore,
        *,
        notes: NoteService | None = None,
        notifier: Notifier | None = None,
        navigate: Navigate | None = None,
    ) -> None:
        self._auth = auth
        self._store = store
        self._notes = notes or NoteService(store, auth)
        self.notifier = notifier or Notifier()
        self._navigate = navigate

        self._state = SessionState()
        self._phase = SessionPhase.SIGNED_OUT
        self._queue: asyncio.Queue[object] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._unsubscribe: Unsubscribe | None = None
        self._alive = False
        # Bumped on every auth transition; stale note reloads compare against it
        self._generation = 0
        self._in_flight: set[str] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        if self._worker is not None:
            return
        self._alive = True
        self._worker = asyncio.create_task(self._run())
        self._unsubscribe = self._auth.on_auth_state_change(self._on_auth_state_change)
        logger.debug("session controller started")

    async def close(self) -> None:
        if self._worker is None:
            return
        self._alive = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._queue.put_nowait(_STOP)
        worker, self._worker = self._worker, None
        await worker
        logger.debug("session controller closed")

    async def wait_idle(self) -> None:
        """Wait until every queued auth notification has been handled."""
        await self._queue.join()

    async def __aenter__(self) -> "SessionController":
        await self.start()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    def current_identity(self) -> Identity | None:
        return self._state.current_identity()

    def is_signed_in(self) -> bool:
        return self._state.is_signed_in()

    @property
    def display_name(self) -> str:
        return self._state.display_name

    @property
    def greeting(self) -> str:
        return self._state.display_name or "Guest"

    @property
    def cache(self) -> NoteCache:
        return self._state.notes

    @property
    def notes(self) -> tuple[Note, ...]:
        """The active view: what the notes page shows right now."""
        return self._state.notes.view

    # ------------------------------------------------------------------
    # Auth transitions
    # ------------------------------------------------------------------

    def _on_auth_state_change(self, identity: Identity | None) -> None:
        if self._alive:
            self._queue.put_nowait(identity)

    async def _run(self) -> None:
        while True:
            item = await self._queue.get()
            try:
                if item is _STOP:
                    return
                if self._alive:
                    await self._transition(item)  # type: ignore[arg-type]
            except Exception:
                logger.exception("auth transition failed")
                self._phase = SessionPhase.SIGNED_IN if self._state.is_signed_in() else SessionPhase.SIGNED_OUT
            finally:
                self._queue.task_done()

    async def _transition(self, identity: Identity | None) -> None:
        self._generation += 1
        if identity is None:
            self._state = SessionState()
            self._phase = SessionPhase.SIGNED_OUT
            logger.info("signed out")
            self._go(LOGIN_ROUTE)
            return

        self._phase = SessionPhase.AUTHENTICATING
        logger.info("signing in {}", identity.uid)
        display_name = await self._resolve_display_name(identity)
        cache = NoteCache()
        try:
            cache.replace(await self._notes.list())
        except NoteSphereError as exc:
            logger.error("loading notes for {} failed: {}", identity.uid, exc)
            if self._alive:
                self.notifier.error("Failed to load notes.")
        if not self._alive:
            return
        current = self._auth.current_user
        if current is None or current.uid != identity.uid:
            # The account changed mid-transition; its own notification is queued
            logger.debug("dropping superseded sign-in for {}", identity.uid)
            return
        self._state = SessionState(identity=identity, display_name=display_name, notes=cache)
        self._phase = SessionPhase.SIGNED_IN

    async def _resolve_display_name(self, identity: Identity) -> str:
        try:
            profile = await self._store.read(USERS, identity.uid)
        except NoteSphereError as exc:
            logger.warning("profile lookup for {} failed: {}", identity.uid, exc)
            return identity.email
        if profile and profile.get("name"):
            return profile["name"]
        return identity.email

    def _go(self, route: str) -> None:
        if self._alive and self._navigate is not None:
            self._navigate(route)

    # ------------------------------------------------------------------
    # Note actions
    # ------------------------------------------------------------------

    def set_search_filter(self, query: str) -> None:
        self._state.notes.set_search_filter(query)

    async def reload_notes(self) -> bool:
        """Re-list the collection and replace the cache."""
        if not self.is_signed_in():
            return False
        generation = self._generation
        try:
            notes = await self._notes.list()
        except (AuthError, RemoteStoreError) as exc:
            logger.error("reloading notes failed: {}", exc)
            if self._alive:
                self.notifier.error("Failed to load notes.")
            return False
        # Results for an earlier session must not leak into the current one
        if not self._alive or generation != self._generation:
            logger.debug("dropping stale note reload")
            return False
        self._state.notes.replace(notes)
        return True

    async def add_note(self, title: str, content: str) -> bool:
        if not self.is_signed_in():
            return False
        return await self._mutate(
            "add",
            lambda: self._notes.add(title, content),
            "Note added successfully!",
            "Failed to add note.",
        )

    async def edit_note(self, note_id: str, title: str, content: str) -> bool:
        if not note_id:
            return False
        return await self._mutate(
            f"edit:{note_id}",
            lambda: self._notes.update(note_id, title, content),
            "Note updated successfully!",
            "Failed to update note.",
        )

    async def delete_note(self, note_id: str) -> bool:
        return await self._mutate(
            f"delete:{note_id}",
            lambda: self._notes.delete(note_id),
            "Note deleted successfully!",
            "Failed to delete note.",
        )

    async def sign_out(self) -> None:
        try:
            await self._auth.logout()
        except AuthError as exc:
            logger.error("sign-out failed: {}", exc)
            self.notifier.error("Sign-out failed. Please try again.")

    async def _mutate(
        self,
        action: str,
        call: Callable[[], Awaitable[object]],
        success: str,
        failure: str,
    ) -> bool:
        if action in self._in_flight:
            logger.debug("ignoring {}: already in flight", action)
            return False
        self._in_flight.add(action)
        try:
            await call()
        except ValidationError as exc:
            self.notifier.error(str(exc))
            return False
        except (AuthError, RemoteStoreError) as exc:
            logger.error("{} failed: {}", action, exc)
            if self._alive:
                self.notifier.error(failure)
            return False
        finally:
            self._in_flight.discard(action)
        if not self._alive:
            return False
        self.notifier.success(success)
        await self.reload_notes()
        return True
