"""Unit tests for notesphere.backends.firestore.FirestoreDocumentStore."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from notesphere.backends.firestore import FirestoreDocumentStore
from notesphere.errors import AuthError, AuthErrorCode, RemoteStoreError

ROOT = "/v1/projects/demo/databases/(default)/documents"
CREATED = datetime(2026, 4, 1, 10, 0, tzinfo=timezone.utc)


class Recorder:
    def __init__(self, response: httpx.Response | None = None) -> None:
        self.response = response or httpx.Response(200, json={})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


async def _token() -> str:
    return "id-token"


def _store(recorder: Recorder) -> FirestoreDocumentStore:
    return FirestoreDocumentStore("demo", token_provider=_token, transport=httpx.MockTransport(recorder))


def _doc(doc_id: str, title: str) -> dict:
    return {
        "name": f"projects/demo/databases/(default)/documents/notes/{doc_id}",
        "fields": {
            "ownerId": {"stringValue": "u1"},
            "title": {"stringValue": title},
            "content": {"stringValue": "body"},
            "createdAt": {"timestampValue": "2026-04-01T10:00:00.000000Z"},
        },
    }


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------


class TestDocuments:
    async def test_create_returns_generated_id(self):
        recorder = Recorder(httpx.Response(200, json=_doc("abc123", "A")))
        doc_id = await _store(recorder).create("notes", {"title": "A", "createdAt": CREATED})
        assert doc_id == "abc123"
        assert recorder.last.method == "POST"
        assert recorder.last.url.path == f"{ROOT}/notes"
        body = json.loads(recorder.last.content)
        assert body["fields"]["createdAt"] == {"timestampValue": "2026-04-01T10:00:00.000000Z"}

    async def test_bearer_token_sent(self):
        recorder = Recorder(httpx.Response(200, json=_doc("abc123", "A")))
        await _store(recorder).create("notes", {"title": "A"})
        assert recorder.last.headers["Authorization"] == "Bearer id-token"

    async def test_set_patches_without_mask(self):
        recorder = Recorder()
        await _store(recorder).set("users", "u1", {"name": "Ada"})
        assert recorder.last.method == "PATCH"
        assert recorder.last.url.path == f"{ROOT}/users/u1"
        assert "updateMask.fieldPaths" not in recorder.last.url.params

    async def test_read_decodes_fields(self):
        recorder = Recorder(httpx.Response(200, json=_doc("n1", "Hello")))
        fields = await _store(recorder).read("notes", "n1")
        assert fields["title"] == "Hello"
        assert fields["createdAt"] == CREATED

    async def test_read_missing_returns_none(self):
        recorder = Recorder(httpx.Response(404, json={"error": {"code": 404, "status": "NOT_FOUND"}}))
        assert await _store(recorder).read("notes", "gone") is None

    async def test_update_uses_mask_and_precondition(self):
        recorder = Recorder()
        await _store(recorder).update("notes", "n1", {"title": "T", "content": "C", "editedAt": CREATED})
        params = recorder.last.url.params
        assert params.get_list("updateMask.fieldPaths") == ["title", "content", "editedAt"]
        assert params["currentDocument.exists"] == "true"

    async def test_update_missing_raises(self):
        recorder = Recorder(httpx.Response(404, json={"error": {"code": 404}}))
        with pytest.raises(RemoteStoreError):
            await _store(recorder).update("notes", "gone", {"title": "T"})

    async def test_delete_missing_is_silent(self):
        recorder = Recorder(httpx.Response(404))
        await _store(recorder).delete("notes", "gone")
        assert recorder.last.method == "DELETE"

    async def test_server_error_raises(self):
        recorder = Recorder(httpx.Response(503))
        with pytest.raises(RemoteStoreError):
            await _store(recorder).read("notes", "n1")

    async def test_network_error_raises(self):
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        store = FirestoreDocumentStore("demo", transport=httpx.MockTransport(boom))
        with pytest.raises(RemoteStoreError):
            await store.delete("notes", "n1")


# ---------------------------------------------------------------------------
# Structured query
# ---------------------------------------------------------------------------


class TestQuery:
    async def test_query_body(self):
        recorder = Recorder(httpx.Response(200, json=[{"readTime": "2026-04-01T10:00:00Z"}]))
        await _store(recorder).query_by_owner("notes", "u1", order_by="createdAt")
        assert recorder.last.url.path == f"{ROOT}:runQuery"
        query = json.loads(recorder.last.content)["structuredQuery"]
        assert query["from"] == [{"collectionId": "notes"}]
        assert query["where"]["fieldFilter"] == {
            "field": {"fieldPath": "ownerId"},
            "op": "EQUAL",
            "value": {"stringValue": "u1"},
        }
        assert query["orderBy"] == [{"field": {"fieldPath": "createdAt"}, "direction": "DESCENDING"}]

    async def test_empty_result_set(self):
        recorder = Recorder(httpx.Response(200, json=[{"readTime": "2026-04-01T10:00:00Z"}]))
        assert await _store(recorder).query_by_owner("notes", "u1", order_by="createdAt") == []

    async def test_results_keep_server_order(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json=[
                    {"document": _doc("n2", "second"), "readTime": "x"},
                    {"document": _doc("n1", "first"), "readTime": "x"},
                ],
            )
        )
        docs = await _store(recorder).query_by_owner("notes", "u1", order_by="createdAt")
        assert [doc_id for doc_id, _ in docs] == ["n2", "n1"]
        assert docs[0][1]["title"] == "second"


# ---------------------------------------------------------------------------
# Failure wrapping
# ---------------------------------------------------------------------------


def _geo_doc(doc_id: str) -> dict:
    doc = _doc(doc_id, "somewhere")
    doc["fields"]["where"] = {"geoPointValue": {"latitude": 52.5, "longitude": 13.4}}
    return doc


async def _expired_session() -> str:
    raise AuthError(AuthErrorCode.OTHER, "TOKEN_EXPIRED")


class TestFailureWrapping:
    async def test_query_with_unsupported_value_raises_store_error(self):
        recorder = Recorder(httpx.Response(200, json=[{"document": _geo_doc("n1"), "readTime": "x"}]))
        with pytest.raises(RemoteStoreError):
            await _store(recorder).query_by_owner("notes", "u1", order_by="createdAt")

    async def test_read_with_unsupported_value_raises_store_error(self):
        recorder = Recorder(httpx.Response(200, json=_geo_doc("n1")))
        with pytest.raises(RemoteStoreError):
            await _store(recorder).read("notes", "n1")

    async def test_malformed_body_raises_store_error(self):
        recorder = Recorder(httpx.Response(200, content=b"<html>proxy error</html>"))
        with pytest.raises(RemoteStoreError):
            await _store(recorder).read("notes", "n1")

    async def test_token_failure_raises_store_error(self):
        recorder = Recorder()
        store = FirestoreDocumentStore(
            "demo", token_provider=_expired_session, transport=httpx.MockTransport(recorder)
        )
        with pytest.raises(RemoteStoreError) as info:
            await store.set("users", "u1", {"name": "Ada"})
        assert isinstance(info.value.__cause__, AuthError)
        assert recorder.requests == []
