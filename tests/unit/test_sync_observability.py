"""Tests for sync metrics and structured logging."""

import logging

import pytest
from prometheus_client import REGISTRY

from bullet_builder.auth import StaticAuthContext
from bullet_builder.config import Settings
from bullet_builder.store.inmemory import InMemoryRemoteStore
from bullet_builder.sync.user_data import create_user_data_sync_from_settings
from bullet_builder.utils.logging import StructuredSyncLogger
from bullet_builder.utils.metrics import PrometheusSyncMetrics


def sample(name: str, labels: dict[str, str]) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_prometheus_metrics_are_recorded() -> None:
    metrics = PrometheusSyncMetrics()
    loads_before = sample("document_loads_total", {"outcome": "loaded"})
    errors_before = sample("document_save_errors_total", {"reason": "transient"})
    latency_before = sample("document_save_latency_ms_count", {"outcome": "success"})

    metrics.inc_load("loaded")
    metrics.inc_save_error("transient")
    metrics.record_save_latency("success", 42.0)

    assert sample("document_loads_total", {"outcome": "loaded"}) == loads_before + 1
    assert sample("document_save_errors_total", {"reason": "transient"}) == errors_before + 1
    assert sample("document_save_latency_ms_count", {"outcome": "success"}) == latency_before + 1


def test_save_attempt_log_carries_structured_fields(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="bullet_builder.utils.logging")

    StructuredSyncLogger().log_save_attempt("user-1", 2, "update", "error", 12.3456, error_reason="transient")

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.getMessage() == "Document save: update - error"
    assert record.structured == {
        "user_id": "user-1",
        "attempt": 2,
        "operation": "update",
        "outcome": "error",
        "latency_ms": 12.35,
        "error_reason": "transient",
    }


def test_load_log_levels(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="bullet_builder.utils.logging")
    sync_logger = StructuredSyncLogger()

    sync_logger.log_load("user-1", "loaded", record_id="r1")
    sync_logger.log_load("user-1", "error")

    assert [r.levelno for r in caplog.records[-2:]] == [logging.INFO, logging.WARNING]
    assert caplog.records[-2].structured["record_id"] == "r1"


@pytest.mark.asyncio
async def test_factory_wires_settings(auth: StaticAuthContext) -> None:
    settings = Settings(routine_debounce_ms=3000, document_title="My Evaluation")
    store = InMemoryRemoteStore(auth)

    sync = create_user_data_sync_from_settings(auth, settings, store=store)
    await sync.load()
    await sync.save_now()

    assert sync._config.routine_debounce_s == 3.0
    assert store.records_for("user-1")[0].title == "My Evaluation"
    assert isinstance(sync._metrics, PrometheusSyncMetrics)
