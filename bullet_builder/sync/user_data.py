"""User document synchronisation with the remote store.

UserDataSync owns the in-memory document and mirrors it to a RemoteStore:
- Optimistic updates (applied synchronously, persisted later)
- Debounced saves parameterised by urgency
- Single-flight writes (at most one outstanding save per session)
- Minimum interval between successful saves
- Create-then-update record id reuse
- Bounded retries with linear backoff for transient failures
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from bullet_builder.auth import AuthContext, AuthStatus, current_user_id
from bullet_builder.config import Settings, get_settings
from bullet_builder.models.bullet import Bullet
from bullet_builder.models.common import SaveStatus
from bullet_builder.models.document import (
    ChatSession,
    UserDocument,
    default_document,
    duplicate_bullet_ids,
)
from bullet_builder.store.http import HttpRemoteStore
from bullet_builder.store.repositories import (
    RemoteRecord,
    RemoteStore,
    RemoteStoreError,
    StoreErrorKind,
)
from bullet_builder.sync.scheduler import AsyncioScheduler, ScheduledCall, Scheduler
from bullet_builder.utils.logging import StructuredSyncLogger
from bullet_builder.utils.metrics import PrometheusSyncMetrics

logger = logging.getLogger(__name__)

_str_map = TypeAdapter(dict[str, str])


class Urgency(str, Enum):
    """How soon a requested save should reach the store."""

    immediate = "immediate"
    critical = "critical"
    routine = "routine"


class SyncState(str, Enum):
    """Save state machine."""

    idle = "idle"
    pending_save = "pending_save"
    saving = "saving"
    retrying = "retrying"
    error = "error"


class SaveFailedError(Exception):
    """Manual save did not reach the store."""

    def __init__(self, message: str, kind: StoreErrorKind | None = None) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass
class SyncConfig:
    """Timing and retry configuration (seconds)."""

    critical_debounce_s: float = 0.25
    routine_debounce_s: float = 1.5
    min_save_interval_s: float = 1.0
    max_attempts: int = 3
    retry_backoff_s: float = 1.0
    saved_display_s: float = 2.0
    error_display_s: float = 5.0
    document_title: str | None = "Untitled Work"

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "SyncConfig":
        """Build config from application settings."""
        settings = settings or get_settings()
        return cls(
            critical_debounce_s=settings.critical_debounce_ms / 1000,
            routine_debounce_s=settings.routine_debounce_ms / 1000,
            min_save_interval_s=settings.min_save_interval_ms / 1000,
            max_attempts=settings.save_max_attempts,
            retry_backoff_s=settings.retry_backoff_ms / 1000,
            saved_display_s=settings.saved_display_ms / 1000,
            error_display_s=settings.error_display_ms / 1000,
            document_title=settings.document_title,
        )

    def delay_for(self, urgency: Urgency) -> float:
        """Debounce delay for an urgency level."""
        if urgency == Urgency.immediate:
            return 0.0
        if urgency == Urgency.critical:
            return self.critical_debounce_s
        return self.routine_debounce_s


# Metrics interface (to be implemented by actual metrics system)
class SyncMetrics:
    """Interface for sync metrics."""

    def record_save_latency(self, outcome: str, latency_ms: float) -> None:
        """Record save attempt latency."""
        pass

    def inc_save_error(self, reason: str) -> None:
        """Increment save error counter."""
        pass

    def inc_load(self, outcome: str) -> None:
        """Increment load counter."""
        pass


# Logging interface
class SyncLogger:
    """Interface for structured logging."""

    def log_save_attempt(
        self,
        user_id: str,
        attempt: int,
        operation: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a save attempt."""
        pass

    def log_load(self, user_id: str, outcome: str, record_id: str | None = None) -> None:
        """Log a document load."""
        pass


Listener = Callable[["UserDataSync"], None]
DocumentChange = Callable[[UserDocument], UserDocument]


class UserDataSync:
    """Keeps a user's document consistent between memory and the remote store."""

    def __init__(
        self,
        store: RemoteStore,
        auth: AuthContext,
        config: SyncConfig | None = None,
        *,
        scheduler: Scheduler | None = None,
        sleep_fn: Callable[[float], Awaitable[None]] | None = None,
        metrics: SyncMetrics | None = None,
        sync_logger: SyncLogger | None = None,
    ) -> None:
        """Initialize sync.

        Args:
            store: Remote document store
            auth: Source of the current user identity
            config: Timing and retry configuration (default: SyncConfig())
            scheduler: Timer primitive and clock (default: event loop)
            sleep_fn: Injectable sleep for retry backoff (default: asyncio.sleep)
            metrics: Metrics recorder (optional, defaults to no-op)
            sync_logger: Structured logger (optional, defaults to no-op)
        """
        self._store = store
        self._auth = auth
        self._config = config or SyncConfig()
        self._scheduler = scheduler or AsyncioScheduler()
        self._sleep = sleep_fn or asyncio.sleep
        self._metrics = metrics or SyncMetrics()
        self._log = sync_logger or SyncLogger()

        self._document = default_document()
        self.is_loading = False
        self.load_error: str | None = None
        self.save_error: str | None = None
        self.save_status = SaveStatus.idle
        self.remote_id: str | None = None

        self._state = SyncState.idle
        self._timer: ScheduledCall | None = None
        self._timer_due = 0.0
        self._timer_urgency = Urgency.routine
        self._status_timer: ScheduledCall | None = None
        self._flush_task: asyncio.Task[SaveFailedError | None] | None = None
        self._follow_up: Urgency | None = None
        self._dirty = False
        self._unsaved = False
        self._last_save_at: float | None = None
        self._loaded_user_id: str | None = None
        # Bumped on reset/close so stale completions leave state alone
        self._generation = 0
        self._closed = False
        self._listeners: list[Listener] = []
        self._replay: list[tuple[DocumentChange, Urgency]] = []

    # --- read-only surface ---

    @property
    def document(self) -> UserDocument:
        """Current document; the source of truth for UI consumers."""
        return self._document

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._auth.status == AuthStatus.authenticated

    @property
    def has_unsaved_changes(self) -> bool:
        """Whether the in-memory document is ahead of the last durable save."""
        return self._dirty or self._unsaved

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a change callback; returns a function that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Sync listener failed")

    def _set_state(self, state: SyncState) -> None:
        self._state = state
        self._notify()

    # --- load ---

    async def load(self) -> None:
        """Load the latest remote document for the current user.

        Falls back to defaults when there is no record, the session is not
        authorised, or the request fails (failures set load_error).
        """
        user_id = current_user_id(self._auth)
        if user_id is None:
            self.is_loading = False
            self._notify()
            return

        generation = self._generation
        self.is_loading = True
        self.load_error = None
        self._notify()

        outcome = "empty"
        try:
            record = await self._store.fetch_latest()
            if generation != self._generation:
                return
            if record is None:
                self._document = default_document()
            else:
                self._document = UserDocument.from_remote(record.content)
                self.remote_id = record.id
                outcome = "loaded"
        except RemoteStoreError as e:
            if generation != self._generation:
                return
            if e.kind == StoreErrorKind.unauthorized:
                # Same as having no document yet
                self._document = default_document()
                outcome = "unauthorized"
            else:
                self.load_error = e.message
                self._document = default_document()
                outcome = "error"
        except (ValidationError, ValueError) as e:
            if generation != self._generation:
                return
            self.load_error = f"Stored document could not be read: {e}"
            self._document = default_document()
            outcome = "error"
        finally:
            if generation == self._generation:
                self.is_loading = False

        replay, self._replay = self._replay, []
        for change, _ in replay:
            self._document = change(self._document)

        self._loaded_user_id = user_id
        self._metrics.inc_load(outcome)
        self._log.log_load(user_id, outcome, record_id=self.remote_id)
        self._notify()

        if replay and current_user_id(self._auth) is not None:
            self._dirty = True
            self.schedule_save(min((u for _, u in replay), key=self._config.delay_for))

    async def handle_auth_change(self) -> None:
        """React to an auth status transition."""
        status = self._auth.status
        if status == AuthStatus.pending:
            return
        if status == AuthStatus.unauthenticated:
            self.reset()
            return

        user_id = current_user_id(self._auth)
        if self._loaded_user_id is not None and user_id != self._loaded_user_id:
            self.reset()
        await self.load()

    # --- granular updates ---

    def update_bullets(self, bullets: Iterable[Bullet | Mapping[str, Any]]) -> None:
        """Replace the bullet list wholesale and save promptly."""
        new_bullets = [b if isinstance(b, Bullet) else Bullet.model_validate(b) for b in bullets]
        duplicates = duplicate_bullet_ids(new_bullets)
        if duplicates:
            logger.warning(f"Bullet list contains duplicate ids: {', '.join(duplicates)}")
        self._apply(lambda doc: doc.model_copy(update={"bullets": new_bullets}), Urgency.critical)

    def update_preferences(
        self, changes: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> None:
        """Shallow-merge preference changes."""
        merged = {**(changes or {}), **fields}
        self._apply(
            lambda doc: doc.model_copy(update={"preferences": doc.preferences.merged(merged)}),
            Urgency.routine,
        )

    def update_evaluation_data(
        self, changes: Mapping[str, Any] | None = None, /, **fields: Any
    ) -> None:
        """Shallow-merge evaluation header changes."""
        merged = {**(changes or {}), **fields}
        self._apply(
            lambda doc: doc.model_copy(
                update={"evaluation_data": doc.evaluation_data.merged(merged)}
            ),
            Urgency.routine,
        )

    def update_bullet_weights(self, weights: Mapping[str, str], *, replace: bool = False) -> None:
        """Merge (or replace) bullet weights."""
        new_weights = _str_map.validate_python(dict(weights))
        self._apply(
            lambda doc: doc.model_copy(
                update={"bullet_weights": new_weights if replace else {**doc.bullet_weights, **new_weights}}
            ),
            Urgency.routine,
        )

    def update_summaries(self, summaries: Mapping[str, str], *, replace: bool = False) -> None:
        """Merge (or replace) category summaries."""
        new_summaries = _str_map.validate_python(dict(summaries))
        self._apply(
            lambda doc: doc.model_copy(
                update={"summaries": new_summaries if replace else {**doc.summaries, **new_summaries}}
            ),
            Urgency.routine,
        )

    def update_chat_session(self, session_id: str, session: ChatSession | Mapping[str, Any]) -> None:
        """Store one chat session, leaving the others untouched."""
        if not session_id:
            raise ValueError("session_id must not be empty")
        new_session = session if isinstance(session, ChatSession) else ChatSession.model_validate(session)
        self._apply(
            lambda doc: doc.model_copy(
                update={"chat_sessions": {**doc.chat_sessions, session_id: new_session}}
            ),
            Urgency.routine,
        )

    def _apply(self, change: DocumentChange, urgency: Urgency) -> None:
        self._document = change(self._document)
        if self.is_loading:
            # Replayed over the loaded document once load() resolves
            self._replay.append((change, urgency))
            self._notify()
            return
        self._changed(urgency)

    def _changed(self, urgency: Urgency) -> None:
        self._notify()
        if current_user_id(self._auth) is None:
            # Kept in memory only; nothing is persisted without an identity
            return
        self._dirty = True
        self.schedule_save(urgency)

    # --- save scheduling ---

    def schedule_save(self, urgency: Urgency = Urgency.routine) -> None:
        """Request a debounced save.

        Each request restarts the debounce window, except that a pending
        critical or immediate save is never pushed back by a later request.
        """
        if self._closed:
            return
        delay = self._config.delay_for(urgency)
        due = self._scheduler.time() + delay

        if self._timer is not None:
            if self._timer_urgency != Urgency.routine and self._timer_due <= due:
                return
            self._timer.cancel()

        self._arm_timer(delay, urgency)
        if self._state not in (SyncState.saving, SyncState.retrying):
            self._set_state(SyncState.pending_save)

    def _arm_timer(self, delay: float, urgency: Urgency) -> None:
        self._timer = self._scheduler.call_later(delay, self._on_timer)
        self._timer_due = self._scheduler.time() + delay
        self._timer_urgency = urgency

    def _on_timer(self) -> None:
        urgency = self._timer_urgency
        self._timer = None
        if self._closed:
            return
        if current_user_id(self._auth) is None:
            self._dirty = False
            self._set_state(SyncState.idle)
            return

        if self._flush_task is not None and not self._flush_task.done():
            # Single-flight: run again once the in-flight save settles
            self._follow_up = urgency
            return

        if self._last_save_at is not None and urgency != Urgency.immediate:
            elapsed = self._scheduler.time() - self._last_save_at
            remaining = self._config.min_save_interval_s - elapsed
            if remaining > 0:
                self._arm_timer(remaining, urgency)
                return

        self._flush_task = asyncio.get_running_loop().create_task(self._flush())

    async def _flush(self) -> SaveFailedError | None:
        """Write the current document; never raises for save failures."""
        user_id = current_user_id(self._auth)
        if user_id is None:
            return SaveFailedError("Not authenticated", kind=StoreErrorKind.unauthorized)

        generation = self._generation
        self._dirty = False
        content = self._document.to_wire()
        self._cancel_status_timer()
        self.save_status = SaveStatus.saving
        self.save_error = None
        self._set_state(SyncState.saving)

        error: RemoteStoreError | None = None
        for attempt in range(1, self._config.max_attempts + 1):
            operation = "update" if self.remote_id else "create"
            attempt_start = time.monotonic()
            try:
                record = await self._write(user_id, content)
            except RemoteStoreError as e:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_save_latency("error", elapsed_ms)
                self._metrics.inc_save_error(e.kind.value)
                self._log.log_save_attempt(
                    user_id, attempt, operation, "error", elapsed_ms, error_reason=e.kind.value
                )
                if generation != self._generation:
                    return None
                error = e
                if e.retryable and attempt < self._config.max_attempts:
                    self._set_state(SyncState.retrying)
                    await self._sleep(self._config.retry_backoff_s * attempt)
                    if generation != self._generation:
                        return None
                    continue
                break
            else:
                elapsed_ms = (time.monotonic() - attempt_start) * 1000
                self._metrics.record_save_latency("success", elapsed_ms)
                self._log.log_save_attempt(user_id, attempt, operation, "success", elapsed_ms)
                if generation != self._generation:
                    return None
                if self.remote_id is None:
                    self.remote_id = record.id
                self._last_save_at = self._scheduler.time()
                error = None
                break

        result: SaveFailedError | None = None
        if error is None:
            self._unsaved = False
            self.save_status = SaveStatus.saved
            self._schedule_status_revert(SaveStatus.saved, self._config.saved_display_s)
            self._set_state(SyncState.pending_save if self._timer is not None else SyncState.idle)
        else:
            self._unsaved = True
            self.save_error = error.message
            self.save_status = SaveStatus.error
            self._schedule_status_revert(SaveStatus.error, self._config.error_display_s)
            self._set_state(SyncState.pending_save if self._timer is not None else SyncState.error)
            result = SaveFailedError(error.message, kind=error.kind)

        # Changes made while the write was in flight still need saving
        follow_up, self._follow_up = self._follow_up, None
        if self._dirty and self._timer is None and not self._closed:
            self.schedule_save(follow_up or Urgency.routine)
        return result

    async def _write(self, user_id: str, content: dict[str, Any]) -> RemoteRecord:
        """One create or update; every failure surfaces as RemoteStoreError."""
        try:
            if self.remote_id:
                return await self._store.update(
                    record_id=self.remote_id,
                    user_id=user_id,
                    content=content,
                    title=self._config.document_title,
                )
            return await self._store.create(
                user_id=user_id,
                content=content,
                title=self._config.document_title,
            )
        except RemoteStoreError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error from {type(self._store).__name__} during save")
            raise RemoteStoreError(StoreErrorKind.permanent, f"Unexpected save error: {e}") from e

    async def save_now(self) -> None:
        """Save immediately, bypassing debounce and the minimum interval.

        Raises:
            SaveFailedError: If the save fails or there is no signed-in user
        """
        if current_user_id(self._auth) is None:
            raise SaveFailedError("Not authenticated", kind=StoreErrorKind.unauthorized)

        await self.wait_idle()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._follow_up = None

        task = asyncio.get_running_loop().create_task(self._flush())
        self._flush_task = task
        await asyncio.wait([task])
        result = task.result()
        if result is not None:
            raise result

    async def wait_idle(self) -> None:
        """Wait until no save is in flight."""
        while self._flush_task is not None and not self._flush_task.done():
            await asyncio.wait([self._flush_task])

    # --- status display ---

    def _cancel_status_timer(self) -> None:
        if self._status_timer is not None:
            self._status_timer.cancel()
            self._status_timer = None

    def _schedule_status_revert(self, expected: SaveStatus, delay: float) -> None:
        self._cancel_status_timer()

        def revert() -> None:
            self._status_timer = None
            if self.save_status != expected:
                return
            self.save_status = SaveStatus.idle
            if self._state == SyncState.error:
                self._state = SyncState.idle
            self._notify()

        self._status_timer = self._scheduler.call_later(delay, revert)

    # --- teardown ---

    def _discard(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._cancel_status_timer()
        # An in-flight write keeps running but its completion is ignored
        self._flush_task = None
        self._follow_up = None
        self._replay = []
        self._document = default_document()
        self.remote_id = None
        self.is_loading = False
        self.load_error = None
        self.save_error = None
        self.save_status = SaveStatus.idle
        self._state = SyncState.idle
        self._dirty = False
        self._unsaved = False
        self._last_save_at = None
        self._loaded_user_id = None

    def reset(self) -> None:
        """Drop the session's document and cancel pending saves (sign-out)."""
        self._discard()
        self._notify()

    def close(self) -> None:
        """Tear down: cancel pending saves and stop accepting new ones."""
        self._closed = True
        self._discard()
        self._listeners.clear()


def create_user_data_sync_from_settings(
    auth: AuthContext,
    settings: Settings | None = None,
    store: RemoteStore | None = None,
) -> UserDataSync:
    """Create a sync wired to the HTTP store, Prometheus metrics and structured logs."""
    settings = settings or get_settings()
    return UserDataSync(
        store or HttpRemoteStore.from_settings(settings),
        auth,
        SyncConfig.from_settings(settings),
        metrics=PrometheusSyncMetrics(),
        sync_logger=StructuredSyncLogger(),
    )
