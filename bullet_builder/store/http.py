"""HTTP client for the user document resource."""

import logging
from datetime import datetime
from typing import Any

import httpx

from bullet_builder.config import Settings, get_settings
from bullet_builder.store.repositories import RemoteRecord, RemoteStoreError, StoreErrorKind

logger = logging.getLogger(__name__)

# 408 timeout, 409 user row not created yet, 429 throttled
_TRANSIENT_4XX = frozenset({408, 409, 429})


def classify_status(status_code: int) -> StoreErrorKind:
    """Map a non-2xx HTTP status to a store error kind."""
    if status_code in (401, 403):
        return StoreErrorKind.unauthorized
    if status_code >= 500 or status_code in _TRANSIENT_4XX:
        return StoreErrorKind.transient
    return StoreErrorKind.permanent


def _error_message(response: httpx.Response) -> str:
    """Extract the {error: string} message from an error body if present."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return f"Request failed with status {response.status_code}"


def _parse_datetime(value: Any) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_record(data: Any) -> RemoteRecord:
    """Parse a record object returned by the store.

    Raises:
        RemoteStoreError: If the object has no usable id
    """
    if not isinstance(data, dict) or not data.get("id"):
        raise RemoteStoreError(StoreErrorKind.permanent, "Malformed record: missing id")
    return RemoteRecord(
        id=str(data["id"]),
        content=data.get("content"),
        title=data.get("title"),
        updated_at=_parse_datetime(data.get("updatedAt")),
    )


class HttpRemoteStore:
    """RemoteStore implementation over the JSON REST resource."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        path: str = "/api/user-data",
    ) -> None:
        """Initialize store.

        Args:
            client: httpx client carrying base URL and session credentials
            path: Resource path
        """
        self._client = client
        self._path = path

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, **client_kwargs: Any
    ) -> "HttpRemoteStore":
        """Build a store with its own client from settings."""
        settings = settings or get_settings()
        client = httpx.AsyncClient(
            base_url=settings.api_base_url,
            timeout=settings.request_timeout_s,
            **client_kwargs,
        )
        return cls(client, path=settings.user_data_path)

    async def aclose(self) -> None:
        """Close the underlying client."""
        await self._client.aclose()

    async def _request(self, method: str, json: dict[str, Any] | None = None) -> Any:
        try:
            response = await self._client.request(method, self._path, json=json)
        except httpx.TransportError as e:
            # Connection errors and timeouts
            raise RemoteStoreError(StoreErrorKind.transient, f"Network error: {e}") from e
        except httpx.HTTPError as e:
            # Undecodable bodies, redirect loops, bad URLs
            logger.warning(f"{method} {self._path} failed: {type(e).__name__}: {e}")
            raise RemoteStoreError(StoreErrorKind.permanent, f"Request failed: {e}") from e

        if response.is_error:
            kind = classify_status(response.status_code)
            message = _error_message(response)
            logger.warning(
                f"{method} {self._path} failed: {response.status_code} ({kind.value})"
            )
            raise RemoteStoreError(kind, message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(
                StoreErrorKind.permanent,
                "Malformed response body",
                status_code=response.status_code,
            ) from e

    async def fetch_latest(self) -> RemoteRecord | None:
        """Get the newest record, or None if the user has none."""
        try:
            data = await self._request("GET")
        except RemoteStoreError as e:
            if e.status_code == 404:
                return None
            raise

        if not isinstance(data, list):
            raise RemoteStoreError(StoreErrorKind.permanent, "Expected a list of records")
        if not data:
            return None
        # Store returns records newest first
        return parse_record(data[0])

    async def create(
        self, *, user_id: str, content: dict[str, Any], title: str | None = None
    ) -> RemoteRecord:
        """POST a new record."""
        payload: dict[str, Any] = {"userId": user_id, "content": content}
        if title is not None:
            payload["title"] = title
        return parse_record(await self._request("POST", payload))

    async def update(
        self,
        *,
        record_id: str,
        user_id: str,
        content: dict[str, Any],
        title: str | None = None,
    ) -> RemoteRecord:
        """PUT new content to an existing record."""
        payload: dict[str, Any] = {"id": record_id, "userId": user_id, "content": content}
        if title is not None:
            payload["title"] = title
        data = await self._request("PUT", payload)
        if isinstance(data, dict) and not data.get("id"):
            # Confirmation without an id still refers to the record we sent
            data = {**data, "id": record_id}
        return parse_record(data)
