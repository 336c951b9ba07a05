"""Structured logging for document persistence."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredSaveLogger:
    """Structured logger for save attempts."""

    def log_attempt(
        self,
        context_id: str,
        attempt: int,
        target: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a save attempt with structured data."""
        log_data: dict[str, Any] = {
            "context_id": context_id,
            "attempt": attempt,
            "target": target,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Itinerary save: {context_id} {target} - {outcome}"

        if outcome in ("success", "skipped") and target == "remote":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})
