"""Remote store protocol for the per-user document."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol


class StoreErrorKind(str, Enum):
    """Failure classification decided at the transport boundary."""

    transient = "transient"
    permanent = "permanent"
    unauthorized = "unauthorized"


class RemoteStoreError(Exception):
    """Remote store request failed."""

    def __init__(
        self, kind: StoreErrorKind, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        """Whether the save protocol may retry this failure."""
        return self.kind == StoreErrorKind.transient


@dataclass
class RemoteRecord:
    """Stored document record."""

    id: str
    content: Any
    title: str | None = None
    updated_at: datetime | None = None


class RemoteStore(Protocol):
    """Store holding user document records for the current session's user."""

    async def fetch_latest(self) -> RemoteRecord | None:
        """Get the most recently updated record.

        Returns:
            Latest record or None if the user has none

        Raises:
            RemoteStoreError: On transport or server failure
        """
        ...

    async def create(
        self, *, user_id: str, content: dict[str, Any], title: str | None = None
    ) -> RemoteRecord:
        """Create a new record.

        Args:
            user_id: Owner of the record
            content: Document content
            title: Optional record title

        Returns:
            Created record carrying the store-assigned id

        Raises:
            RemoteStoreError: On failure, or when the response has no id
        """
        ...

    async def update(
        self,
        *,
        record_id: str,
        user_id: str,
        content: dict[str, Any],
        title: str | None = None,
    ) -> RemoteRecord:
        """Replace the content of an existing record.

        Args:
            record_id: Id returned by create
            user_id: Owner of the record
            content: Document content
            title: Optional record title

        Returns:
            Updated record

        Raises:
            RemoteStoreError: On failure
        """
        ...
