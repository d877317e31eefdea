"""In-memory implementation of the remote store."""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any

from bullet_builder.auth import AuthContext, current_user_id
from bullet_builder.store.repositories import RemoteRecord, RemoteStoreError, StoreErrorKind


class InMemoryRemoteStore:
    """In-memory implementation of RemoteStore.

    Records are scoped to the user of the injected auth context, mirroring
    how the HTTP resource scopes by session.
    """

    def __init__(self, auth: AuthContext) -> None:
        self._auth = auth
        self._records: dict[str, tuple[str, RemoteRecord]] = {}
        self.calls: list[str] = []

    def _require_user(self) -> str:
        user_id = current_user_id(self._auth)
        if user_id is None:
            raise RemoteStoreError(StoreErrorKind.unauthorized, "Unauthorized", status_code=401)
        return user_id

    def records_for(self, user_id: str) -> list[RemoteRecord]:
        """All records of a user, newest first."""
        records = [rec for owner, rec in self._records.values() if owner == user_id]
        return sorted(
            records,
            key=lambda r: r.updated_at or datetime.min.replace(tzinfo=timezone.utc),
            reverse=True,
        )

    def seed(self, user_id: str, content: Any, record_id: str | None = None) -> RemoteRecord:
        """Insert a record directly, bypassing auth."""
        record = RemoteRecord(
            id=record_id or uuid.uuid4().hex,
            content=copy.deepcopy(content),
            updated_at=datetime.now(timezone.utc),
        )
        self._records[record.id] = (user_id, record)
        return record

    async def fetch_latest(self) -> RemoteRecord | None:
        """Get the newest record of the current user."""
        self.calls.append("fetch_latest")
        user_id = self._require_user()
        records = self.records_for(user_id)
        return copy.deepcopy(records[0]) if records else None

    async def create(
        self, *, user_id: str, content: dict[str, Any], title: str | None = None
    ) -> RemoteRecord:
        """Create a record for the current user."""
        self.calls.append("create")
        owner = self._require_user()
        if owner != user_id:
            raise RemoteStoreError(StoreErrorKind.unauthorized, "User mismatch", status_code=403)
        record = RemoteRecord(
            id=uuid.uuid4().hex,
            content=copy.deepcopy(content),
            title=title,
            updated_at=datetime.now(timezone.utc),
        )
        self._records[record.id] = (owner, record)
        return copy.deepcopy(record)

    async def update(
        self,
        *,
        record_id: str,
        user_id: str,
        content: dict[str, Any],
        title: str | None = None,
    ) -> RemoteRecord:
        """Replace content of a record owned by the current user."""
        self.calls.append("update")
        owner = self._require_user()
        existing = self._records.get(record_id)
        if existing is None or existing[0] != owner or owner != user_id:
            raise RemoteStoreError(
                StoreErrorKind.permanent, "Work not found or unauthorized", status_code=404
            )
        record = RemoteRecord(
            id=record_id,
            content=copy.deepcopy(content),
            title=title if title is not None else existing[1].title,
            updated_at=datetime.now(timezone.utc),
        )
        self._records[record_id] = (owner, record)
        return copy.deepcopy(record)
