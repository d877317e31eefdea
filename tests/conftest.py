"""Shared pytest fixtures for all test suites."""

import asyncio
from typing import Any

import pytest

from bullet_builder.auth import AuthUser, StaticAuthContext
from bullet_builder.store.http import parse_record
from bullet_builder.store.inmemory import InMemoryRemoteStore
from bullet_builder.store.repositories import RemoteRecord, RemoteStoreError
from bullet_builder.sync.scheduler import ManualScheduler
from bullet_builder.sync.user_data import SyncConfig, UserDataSync


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class ScriptedStore(InMemoryRemoteStore):
    """In-memory store with scripted failures and an optional write gate.

    Usage:
        store.failures = [RemoteStoreError(...)]  # raised by the next writes
        store.gate = asyncio.Event()              # writes block until set
        store.fetch_gate = asyncio.Event()        # fetch_latest blocks until set
        store.create_payloads = [{"content": {}}] # next create answers with this body
    """

    def __init__(self, auth: StaticAuthContext) -> None:
        super().__init__(auth)
        self.writes: list[tuple[str, dict[str, Any]]] = []
        self.failures: list[RemoteStoreError] = []
        self.always_fail: RemoteStoreError | None = None
        self.fetch_failure: RemoteStoreError | None = None
        self.gate: asyncio.Event | None = None
        self.fetch_gate: asyncio.Event | None = None
        self.create_payloads: list[dict[str, Any]] = []
        self.unexpected: Exception | None = None
        self.in_flight = 0
        self.max_in_flight = 0

    async def _before_write(self, operation: str, payload: dict[str, Any]) -> None:
        self.writes.append((operation, payload))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await self._gate_and_fail()
        finally:
            self.in_flight -= 1

    async def _gate_and_fail(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.unexpected is not None:
            raise self.unexpected
        if self.always_fail is not None:
            raise self.always_fail
        if self.failures:
            raise self.failures.pop(0)

    async def fetch_latest(self) -> RemoteRecord | None:
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_failure is not None:
            self.calls.append("fetch_latest")
            raise self.fetch_failure
        return await super().fetch_latest()

    async def create(
        self, *, user_id: str, content: dict[str, Any], title: str | None = None
    ) -> RemoteRecord:
        await self._before_write("create", {"userId": user_id, "content": content})
        if self.create_payloads:
            # Parsed like a response body, so a payload without an id fails
            return parse_record(self.create_payloads.pop(0))
        return await super().create(user_id=user_id, content=content, title=title)

    async def update(
        self,
        *,
        record_id: str,
        user_id: str,
        content: dict[str, Any],
        title: str | None = None,
    ) -> RemoteRecord:
        await self._before_write("update", {"id": record_id, "userId": user_id, "content": content})
        return await super().update(
            record_id=record_id, user_id=user_id, content=content, title=title
        )


@pytest.fixture
def user() -> AuthUser:
    return AuthUser(id="user-1", email="member@uscg.mil")


@pytest.fixture
def auth(user: AuthUser) -> StaticAuthContext:
    return StaticAuthContext(user)


@pytest.fixture
def store(auth: StaticAuthContext) -> ScriptedStore:
    return ScriptedStore(auth)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sync_config() -> SyncConfig:
    """Round numbers so tests can reason about windows."""
    return SyncConfig(
        critical_debounce_s=0.2,
        routine_debounce_s=1.0,
        min_save_interval_s=0.0,
        max_attempts=3,
        retry_backoff_s=0.5,
        saved_display_s=2.0,
        error_display_s=5.0,
    )


@pytest.fixture
def sync(
    store: ScriptedStore,
    auth: StaticAuthContext,
    sync_config: SyncConfig,
    scheduler: ManualScheduler,
    sleep: RecordingSleep,
) -> UserDataSync:
    return UserDataSync(store, auth, sync_config, scheduler=scheduler, sleep_fn=sleep)
