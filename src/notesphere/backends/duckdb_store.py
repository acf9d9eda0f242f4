"""Embedded DuckDB document store.

A local stand-in for Cloud Firestore, used for development and tests.  All
collections share one table; each row keeps its fields as Firestore-typed
JSON (see :mod:`notesphere.backends.codec`), so owner filters and ordering
run as plain SQL over ``json_extract_string``.

Every statement runs on one dedicated worker thread, in submission order, so
the event loop is never blocked and calls never overlap on the connection.

Environment variables (direct kwargs take precedence):
    NOTESPHERE_LOCAL_DB   – database file path (default: ``:memory:``)
"""

from __future__ import annotations

import asyncio
import json
import os
import re
import uuid
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from functools import partial
from pathlib import Path
from typing import Any, Callable, Iterator, TypeVar

import duckdb
from loguru import logger

from notesphere.backends.codec import decode_fields, encode_fields
from notesphere.errors import RemoteStoreError

_FIELD_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

T = TypeVar("T")


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except duckdb.Error as exc:
        logger.error("duckdb {} failed: {}", action, exc)
        raise RemoteStoreError(f"{action} failed: {exc}") from exc


def _field_path(field: str, kind: str) -> str:
    if not _FIELD_RE.match(field):
        raise ValueError(f"Invalid field name: {field!r}")
    return f"$.{field}.{kind}"


class DuckDBDocumentStore:
    """Document store backed by a single DuckDB table."""

    _TABLE = "documents"

    def __init__(self, db_path: Path | str | None = None) -> None:
        self._db_path = str(db_path or os.getenv("NOTESPHERE_LOCAL_DB", ":memory:"))
        self.conn: duckdb.DuckDBPyConnection = duckdb.connect(self._db_path)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="duckdb-store")
        self._closed = False
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {self._TABLE} (
                collection  VARCHAR NOT NULL,
                doc_id      VARCHAR NOT NULL,
                fields      JSON    NOT NULL,
                PRIMARY KEY (collection, doc_id)
            );
        """)

    async def _call(self, fn: Callable[..., T], *args: Any) -> T:
        if self._closed:
            raise RemoteStoreError(f"Store {self._db_path} is closed")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, partial(fn, *args))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        await self._call(self._insert, collection, doc_id, json.dumps(encode_fields(fields)))
        return doc_id

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self._call(self._upsert, collection, doc_id, json.dumps(encode_fields(fields)))

    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        raw = await self._call(self._read_raw, collection, doc_id)
        return None if raw is None else _decode(collection, doc_id, raw)

    async def query_by_owner(
        self,
        collection: str,
        owner_id: str,
        order_by: str,
        descending: bool = True,
    ) -> list[tuple[str, dict[str, Any]]]:
        direction = "DESC" if descending else "ASC"
        owner_path = _field_path("ownerId", "stringValue")
        ts_path = _field_path(order_by, "timestampValue")
        str_path = _field_path(order_by, "stringValue")
        sql = f"""
            SELECT doc_id, fields FROM {self._TABLE}
            WHERE collection = ? AND json_extract_string(fields, '{owner_path}') = ?
            ORDER BY COALESCE(
                json_extract_string(fields, '{ts_path}'),
                json_extract_string(fields, '{str_path}')
            ) {direction}, doc_id
        """
        rows = await self._call(self._select, "query", sql, [collection, owner_id])
        return [(doc_id, _decode(collection, doc_id, raw)) for doc_id, raw in rows]

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self._call(self._merge, collection, doc_id, encode_fields(fields))

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._call(self._remove, collection, doc_id)

    # ------------------------------------------------------------------
    # Statements (worker thread only)
    # ------------------------------------------------------------------

    def _insert(self, collection: str, doc_id: str, payload: str) -> None:
        with _store_errors("create"):
            self.conn.execute(
                f"INSERT INTO {self._TABLE} (collection, doc_id, fields) VALUES (?, ?, ?)",
                [collection, doc_id, payload],
            )

    def _upsert(self, collection: str, doc_id: str, payload: str) -> None:
        with _store_errors("set"):
            self.conn.execute(
                f"""
                INSERT INTO {self._TABLE} (collection, doc_id, fields)
                VALUES (?, ?, ?)
                ON CONFLICT (collection, doc_id) DO UPDATE SET fields = excluded.fields;
                """,
                [collection, doc_id, payload],
            )

    def _select(self, action: str, sql: str, params: list[Any]) -> list[tuple[Any, ...]]:
        with _store_errors(action):
            return self.conn.execute(sql, params).fetchall()

    def _read_raw(self, collection: str, doc_id: str) -> Any:
        with _store_errors("read"):
            row = self.conn.execute(
                f"SELECT fields FROM {self._TABLE} WHERE collection = ? AND doc_id = ?",
                [collection, doc_id],
            ).fetchone()
        return None if row is None else row[0]

    def _merge(self, collection: str, doc_id: str, encoded: dict[str, Any]) -> None:
        raw = self._read_raw(collection, doc_id)
        if raw is None:
            raise RemoteStoreError(f"No document {collection}/{doc_id}")
        current = _loads(collection, doc_id, raw)
        current.update(encoded)
        with _store_errors("update"):
            self.conn.execute(
                f"UPDATE {self._TABLE} SET fields = ? WHERE collection = ? AND doc_id = ?",
                [json.dumps(current), collection, doc_id],
            )

    def _remove(self, collection: str, doc_id: str) -> None:
        with _store_errors("delete"):
            self.conn.execute(
                f"DELETE FROM {self._TABLE} WHERE collection = ? AND doc_id = ?",
                [collection, doc_id],
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self.conn.close()

    async def aclose(self) -> None:
        self.close()

    async def __aenter__(self) -> "DuckDBDocumentStore":
        return self

    async def __aexit__(self, *_: object) -> None:
        self.close()


def _loads(collection: str, doc_id: str, raw: Any) -> dict[str, Any]:
    try:
        fields = json.loads(raw) if isinstance(raw, str) else raw
    except ValueError as exc:
        raise RemoteStoreError(f"Corrupt document {collection}/{doc_id}: {exc}") from exc
    if not isinstance(fields, dict):
        raise RemoteStoreError(f"Corrupt document {collection}/{doc_id}: not a field map")
    return fields


def _decode(collection: str, doc_id: str, raw: Any) -> dict[str, Any]:
    fields = _loads(collection, doc_id, raw)
    try:
        return decode_fields(fields)
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        logger.error("undecodable document {}/{}: {}", collection, doc_id, exc)
        raise RemoteStoreError(f"Undecodable document {collection}/{doc_id}: {exc}") from exc
