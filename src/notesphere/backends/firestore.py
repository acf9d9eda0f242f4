"""Cloud Firestore document store.

A thin async HTTP client over the Firestore REST API (v1).  Requests are
authorised with the signed-in user's Firebase ID token, so the project's
security rules see the same caller as the web SDK would.

Routes used (relative to ``projects/{project}/databases/(default)/documents``)
------------------------------------------------------------------------------
POST   /{collection}              – create with an auto id
PATCH  /{collection}/{id}         – set, or update with an ``updateMask``
GET    /{collection}/{id}         – read
DELETE /{collection}/{id}         – delete (idempotent server side)
POST   :runQuery                  – owner-filtered, ordered structured query

The owner query needs a composite index on ``(ownerId, <order field>)``.

Environment variables (direct kwargs take precedence):
    NOTESPHERE_FIREBASE_PROJECT_ID   – Firebase / GCP project id
"""

from __future__ import annotations

import os
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from notesphere.backends.codec import decode_fields, encode_fields
from notesphere.errors import AuthError, RemoteStoreError

FIRESTORE_URL = "https://firestore.googleapis.com/v1"

TokenProvider = Callable[[], Awaitable[str]]


def _doc_id(name: str) -> str:
    """Last path segment of a full document resource name."""
    return name.rsplit("/", 1)[-1]


def _body(r: httpx.Response) -> Any:
    try:
        return r.json()
    except ValueError as exc:
        raise RemoteStoreError(f"Malformed Firestore response: {exc}") from exc


def _decode(path: str, fields: dict[str, Any]) -> dict[str, Any]:
    try:
        return decode_fields(fields)
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        logger.error("undecodable document {}: {}", path, exc)
        raise RemoteStoreError(f"Undecodable document {path}: {exc}") from exc


class FirestoreDocumentStore:
    """HTTP document store backed by Cloud Firestore."""

    def __init__(
        self,
        project_id: str | None = None,
        *,
        token_provider: TokenProvider | None = None,
        database: str = "(default)",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._project_id = project_id or os.getenv("NOTESPHERE_FIREBASE_PROJECT_ID", "")
        self._token_provider = token_provider
        self._root = f"/projects/{self._project_id}/databases/{database}/documents"
        self._client = httpx.AsyncClient(
            base_url=FIRESTORE_URL,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        r = await self._send("POST", f"{self._root}/{collection}", json={"fields": encode_fields(fields)})
        return _doc_id(r.json()["name"])

    async def set(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        await self._send("PATCH", f"{self._root}/{collection}/{doc_id}", json={"fields": encode_fields(fields)})

    async def read(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        r = await self._send("GET", f"{self._root}/{collection}/{doc_id}", missing_ok=True)
        if r is None:
            return None
        return _decode(f"{collection}/{doc_id}", _body(r).get("fields", {}))

    async def query_by_owner(
        self,
        collection: str,
        owner_id: str,
        order_by: str,
        descending: bool = True,
    ) -> list[tuple[str, dict[str, Any]]]:
        query = {
            "structuredQuery": {
                "from": [{"collectionId": collection}],
                "where": {
                    "fieldFilter": {
                        "field": {"fieldPath": "ownerId"},
                        "op": "EQUAL",
                        "value": {"stringValue": owner_id},
                    }
                },
                "orderBy": [
                    {
                        "field": {"fieldPath": order_by},
                        "direction": "DESCENDING" if descending else "ASCENDING",
                    }
                ],
            }
        }
        r = await self._send("POST", f"{self._root}:runQuery", json=query)
        results = []
        # An empty result set still yields one entry carrying only ``readTime``
        for entry in _body(r):
            doc = entry.get("document")
            if doc is not None:
                doc_id = _doc_id(doc["name"])
                results.append((doc_id, _decode(f"{collection}/{doc_id}", doc.get("fields", {}))))
        return results

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        params = [("updateMask.fieldPaths", key) for key in fields]
        params.append(("currentDocument.exists", "true"))
        await self._send(
            "PATCH",
            f"{self._root}/{collection}/{doc_id}",
            params=params,
            json={"fields": encode_fields(fields)},
        )

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._send("DELETE", f"{self._root}/{collection}/{doc_id}", missing_ok=True)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    async def _send(self, method: str, url: str, *, missing_ok: bool = False, **kwargs: Any) -> httpx.Response | None:
        headers = {}
        if self._token_provider is not None:
            try:
                token = await self._token_provider()
            except AuthError as exc:
                logger.error("firestore {} {}: no ID token: {}", method, url, exc)
                raise RemoteStoreError(f"{method} {url} failed: no ID token ({exc.code.value})") from exc
            headers["Authorization"] = f"Bearer {token}"
        try:
            r = await self._client.request(method, url, headers=headers, **kwargs)
            if missing_ok and r.status_code == 404:
                return None
            r.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("firestore {} {} failed: {}", method, url, exc)
            raise RemoteStoreError(f"{method} {url} failed: {exc}") from exc
        return r

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "FirestoreDocumentStore":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()
