"""HTTP entry repository.

Talks to a REST entry service:

    POST   {base}/entries        -> 201, created record
    GET    {base}/entries        -> list of records, newest first
    GET    {base}/entries/{id}   -> record, 404 if absent
    DELETE {base}/entries/{id}   -> 2xx, 404 if absent
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mindmirror.core.errors import RemoteError
from mindmirror.journal.repository import EntryRepository
from mindmirror.models.domain import JournalEntryEntity
from mindmirror.models.types import EntryCreate, parse_entries, parse_entry

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpEntryRepository(EntryRepository):
    """Entry repository backed by a remote JSON API.

    Usage:
        async with HttpEntryRepository("http://localhost:5000/api") as repository:
            entries = await repository.list()
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize HTTP repository.

        Args:
            base_url: API root, e.g. http://localhost:5000/api.
            timeout: Request timeout in seconds (ignored when client is given).
            client: Pre-configured client; the caller keeps ownership.
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteError(f"{method} {url} failed: {e}") from e
        logger.debug(f"{method} {url} -> {response.status_code}")
        return response

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_error:
            raise RemoteError(
                f"{response.request.method} {response.request.url} returned "
                f"{response.status_code}",
                status_code=response.status_code,
            )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(f"Response from {response.request.url} is not JSON") from e

    async def create(self, payload: EntryCreate) -> JournalEntryEntity:
        body = payload.model_dump(by_alias=True, exclude_none=True)
        response = await self._request("POST", "/entries", json=body)
        self._raise_for_status(response)
        entity = parse_entry(self._json(response))
        logger.info(f"Created remote entry {entity.entry_id}")
        return entity

    async def list(self) -> list[JournalEntryEntity]:
        response = await self._request("GET", "/entries")
        self._raise_for_status(response)
        return parse_entries(self._json(response))

    async def get(self, entry_id: str) -> JournalEntryEntity | None:
        response = await self._request("GET", f"/entries/{entry_id}")
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return parse_entry(self._json(response))

    async def delete(self, entry_id: str) -> bool:
        response = await self._request("DELETE", f"/entries/{entry_id}")
        if response.status_code == 404:
            return False
        self._raise_for_status(response)
        logger.info(f"Deleted remote entry {entry_id}")
        return True

    async def aclose(self) -> None:
        """Close the underlying client if this repository created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpEntryRepository":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
