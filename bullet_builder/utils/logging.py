"""Structured logging for document sync."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredSyncLogger:
    """Structured logger for save attempts and loads."""

    def log_save_attempt(
        self,
        user_id: str,
        attempt: int,
        operation: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a save attempt with structured data."""
        log_data: dict[str, Any] = {
            "user_id": user_id,
            "attempt": attempt,
            "operation": operation,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Document save: {operation} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_load(self, user_id: str, outcome: str, record_id: str | None = None) -> None:
        """Log a document load."""
        log_data: dict[str, Any] = {"user_id": user_id, "outcome": outcome, "record_id": record_id}
        if outcome == "error":
            logger.warning(f"Document load: {outcome}", extra={"structured": log_data})
        else:
            logger.info(f"Document load: {outcome}", extra={"structured": log_data})
