"""Unit tests for notesphere.backends.open_backends and shared plumbing."""

import sys
from pathlib import Path

import pytest
from loguru import logger

from notesphere.backends import open_backends
from notesphere.backends.duckdb_store import DuckDBDocumentStore
from notesphere.backends.firebase import FirebaseAuthGateway
from notesphere.backends.firestore import FirestoreDocumentStore
from notesphere.backends.local_auth import LocalAuthGateway
from notesphere.log import configure_logging
from notesphere.notifications import Notifier


# ---------------------------------------------------------------------------
# open_backends()
# ---------------------------------------------------------------------------


class TestOpenBackends:
    async def test_default_is_local(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("NOTESPHERE_BACKEND", raising=False)
        auth, store = open_backends()
        assert isinstance(auth, LocalAuthGateway)
        assert isinstance(store, DuckDBDocumentStore)
        await store.aclose()

    async def test_firebase_from_env(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("NOTESPHERE_BACKEND", "firebase")
        monkeypatch.setenv("NOTESPHERE_FIREBASE_API_KEY", "k")
        monkeypatch.setenv("NOTESPHERE_FIREBASE_PROJECT_ID", "demo")
        auth, store = open_backends()
        assert isinstance(auth, FirebaseAuthGateway)
        assert isinstance(store, FirestoreDocumentStore)
        await auth.aclose()
        await store.aclose()

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            open_backends("sqlite")


# ---------------------------------------------------------------------------
# Notifier
# ---------------------------------------------------------------------------


class TestNotifier:
    def test_keeps_only_recent(self):
        notifier = Notifier(keep=2)
        for i in range(3):
            notifier.info(str(i))
        assert [n.message for n in notifier.recent] == ["1", "2"]

    def test_last_is_none_when_empty(self):
        assert Notifier().last is None


# ---------------------------------------------------------------------------
# configure_logging()
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    def test_writes_file_sink(self, tmp_path: Path):
        log_file = tmp_path / "notesphere.log"
        try:
            configure_logging("debug", str(log_file))
            logger.debug("sink check")
        finally:
            logger.remove()
            logger.add(sys.stderr)
        assert "sink check" in log_file.read_text(encoding="utf-8")

    def test_level_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        log_file = tmp_path / "quiet.log"
        monkeypatch.setenv("NOTESPHERE_LOG_LEVEL", "warning")
        monkeypatch.setenv("NOTESPHERE_LOG_FILE", str(log_file))
        try:
            configure_logging()
            logger.info("hidden")
            logger.warning("shown")
        finally:
            logger.remove()
            logger.add(sys.stderr)
        text = log_file.read_text(encoding="utf-8")
        assert "shown" in text
        assert "hidden" not in text
