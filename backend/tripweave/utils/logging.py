"""Structured logging for oracle calls and fallbacks."""

import logging
from typing import Any

logger = logging.getLogger(__name__)


class StructuredOracleLogger:
    """Structured logger for oracle consultation."""

    def log_call(
        self,
        *,
        oracle: str,
        operation: str,
        outcome: str,
        latency_ms: float,
        reason: str | None = None,
    ) -> None:
        """Log an oracle call with structured data."""
        log_data: dict[str, Any] = {
            "oracle": oracle,
            "operation": operation,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if reason:
            log_data["reason"] = reason

        log_msg = f"Oracle call: {oracle}.{operation} - {outcome}"

        if outcome == "ok":
            logger.info(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_fallback(self, *, operation: str, reason: str, **fields: Any) -> None:
        """Log that a deterministic fallback replaced oracle output."""
        log_data: dict[str, Any] = {"operation": operation, "reason": reason, **fields}
        logger.warning(
            f"Fallback taken for {operation}: {reason}", extra={"structured": log_data}
        )
