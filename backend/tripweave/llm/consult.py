"""Caller-side oracle consultation: timeout enforcement, logging and metrics.

Oracles never raise out of here. Expiry and exceptions are folded into
``Invalid`` so every call site handles its fallback explicitly.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable
from typing import TypeVar

from backend.tripweave.models.results import Invalid, Ok, OracleResult
from backend.tripweave.utils.logging import StructuredOracleLogger
from backend.tripweave.utils.metrics import EngineMetrics, NoopEngineMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def consult(
    call: Awaitable[OracleResult[T]],
    *,
    oracle: str,
    operation: str,
    timeout_s: float | None,
    metrics: EngineMetrics | None = None,
    oracle_logger: StructuredOracleLogger | None = None,
) -> OracleResult[T]:
    """Await one oracle call under a timeout.

    Args:
        call: The pending oracle coroutine
        oracle: Oracle name for logs and metrics ("recommendation", "judge", "date")
        operation: Engine operation name ("arrange", "regenerate", ...)
        timeout_s: Caller-enforced timeout in seconds (None disables it)
        metrics: Metrics sink
        oracle_logger: Structured logger

    Returns:
        The oracle's result, or Invalid on timeout or exception
    """
    metrics = metrics or NoopEngineMetrics()
    oracle_logger = oracle_logger or StructuredOracleLogger()

    start = time.perf_counter()
    try:
        result = await asyncio.wait_for(call, timeout=timeout_s)
    except asyncio.TimeoutError:
        result = Invalid(f"timeout after {timeout_s}s")
        outcome = "timeout"
    except Exception as e:
        logger.error(f"Oracle {oracle}.{operation} raised: {e}")
        result = Invalid(f"oracle error: {e}")
        outcome = "error"
    else:
        if isinstance(result, Ok):
            outcome = "ok"
        elif isinstance(result, Invalid):
            outcome = "invalid"
        else:
            result = Invalid(f"unexpected oracle result type {type(result).__name__}")
            outcome = "invalid"

    latency_ms = (time.perf_counter() - start) * 1000
    metrics.record_oracle_call(oracle, outcome, latency_ms)
    oracle_logger.log_call(
        oracle=oracle,
        operation=operation,
        outcome=outcome,
        latency_ms=latency_ms,
        reason=result.reason if isinstance(result, Invalid) else None,
    )
    return result
