"""Tests for the HTTP entry repository against a mocked transport."""

import asyncio
import json

import httpx
import pytest

from mindmirror.core.errors import RemoteError
from mindmirror.journal import HttpEntryRepository
from mindmirror.models.types import EntryCreate

BASE_URL = "http://journal.test/api"

RECORD = {
    "_id": "abc123",
    "title": "Morning",
    "tags": ["mood"],
    "videoUrl": "video-1700000000000",
    "duration": "1:05",
    "createdAt": "2026-01-01T12:00:00Z",
}


def _run(coro):
    return asyncio.run(coro)


def _repository(handler) -> HttpEntryRepository:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpEntryRepository(BASE_URL + "/", client=client)


class TestRequests:
    """Endpoint mapping."""

    def test_create_posts_wire_payload(self):
        """POST /entries carries the remote field names."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=RECORD)

        entry = _run(
            _repository(handler).create(
                EntryCreate(title="Morning", tags=["mood"], video_url="video-1700000000000", duration="1:05")
            )
        )

        assert seen["method"] == "POST"
        assert seen["url"] == f"{BASE_URL}/entries"
        assert seen["body"]["videoUrl"] == "video-1700000000000"
        assert "userId" not in seen["body"]
        assert entry.entry_id == "abc123"

    def test_list(self):
        """GET /entries returns parsed entries."""

        def handler(request):
            assert request.url.path == "/api/entries"
            return httpx.Response(200, json=[RECORD, {**RECORD, "_id": "older"}])

        entries = _run(_repository(handler).list())
        assert [e.entry_id for e in entries] == ["abc123", "older"]

    def test_get_and_missing(self):
        """GET /entries/{id} maps 404 to None."""

        def handler(request):
            if request.url.path.endswith("/abc123"):
                return httpx.Response(200, json=RECORD)
            return httpx.Response(404, json={"message": "Entry not found"})

        repository = _repository(handler)

        async def scenario():
            return await repository.get("abc123"), await repository.get("missing")

        found, missing = _run(scenario())
        assert found.title == "Morning"
        assert missing is None

    def test_delete_and_missing(self):
        """DELETE /entries/{id} maps 404 to False."""

        def handler(request):
            assert request.method == "DELETE"
            if request.url.path.endswith("/abc123"):
                return httpx.Response(200, json={"message": "Entry deleted"})
            return httpx.Response(404)

        repository = _repository(handler)

        async def scenario():
            return await repository.delete("abc123"), await repository.delete("missing")

        assert _run(scenario()) == (True, False)


class TestFailures:
    """Every failure surfaces as RemoteError."""

    def test_server_error(self):
        """5xx responses carry the status code."""
        repository = _repository(lambda request: httpx.Response(500))

        with pytest.raises(RemoteError) as exc_info:
            _run(repository.list())
        assert exc_info.value.status_code == 500

    def test_connection_error(self):
        """Transport failures are wrapped."""

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RemoteError, match="connection refused"):
            _run(_repository(handler).list())

    def test_non_json_body(self):
        """A body that is not JSON is malformed."""
        repository = _repository(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(RemoteError, match="not JSON"):
            _run(repository.list())

    def test_malformed_record(self):
        """A record missing fields is rejected."""
        bad = {k: v for k, v in RECORD.items() if k != "createdAt"}
        repository = _repository(lambda request: httpx.Response(200, json=[bad]))

        with pytest.raises(RemoteError, match="Malformed"):
            _run(repository.list())


class TestLifecycle:
    """Client ownership."""

    def test_injected_client_left_open(self):
        """aclose does not close a client the caller owns."""
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
        repository = HttpEntryRepository(BASE_URL, client=client)

        async def scenario():
            await repository.aclose()
            return await repository.list()

        assert _run(scenario()) == []
        assert not client.is_closed

    def test_owned_client_closed(self):
        """The repository closes a client it created."""

        async def scenario():
            async with HttpEntryRepository(BASE_URL, timeout=1.0) as repository:
                pass
            return repository._client.is_closed

        assert _run(scenario()) is True
