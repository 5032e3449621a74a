"""Duplicate confirmation filter - fail-open duplicate gate for new bookings."""

import logging
from typing import Any

from backend.tripweave.config import settings
from backend.tripweave.llm.client import DuplicateJudgeOracle
from backend.tripweave.llm.consult import consult
from backend.tripweave.models.confirmation import (
    ConfirmationRecord,
    DuplicateVerdict,
    booking_key_fields,
)
from backend.tripweave.models.results import Invalid
from backend.tripweave.utils.logging import StructuredOracleLogger
from backend.tripweave.utils.metrics import EngineMetrics, NoopEngineMetrics

logger = logging.getLogger(__name__)


def sample_recent(records: list[ConfirmationRecord], size: int) -> list[ConfirmationRecord]:
    """Most recent ``size`` records, newest first."""
    return sorted(records, key=lambda r: r.created_at, reverse=True)[:size]


def summarize_for_judge(record: ConfirmationRecord) -> dict[str, Any]:
    """Identifying fields of a stored confirmation, tagged with its id."""
    return {"id": record.id, **record.key_fields()}


class DuplicateConfirmationFilter:
    """Decide whether a new booking duplicates an existing confirmation."""

    def __init__(
        self,
        oracle: DuplicateJudgeOracle,
        *,
        sample_size: int | None = None,
        metrics: EngineMetrics | None = None,
        oracle_logger: StructuredOracleLogger | None = None,
    ):
        self.oracle = oracle
        self.sample_size = sample_size or settings.duplicate_sample_size
        self.metrics = metrics or NoopEngineMetrics()
        self.oracle_logger = oracle_logger or StructuredOracleLogger()

    async def check(
        self,
        candidate: dict[str, Any],
        existing: list[ConfirmationRecord],
        *,
        timeout_s: float | None = None,
    ) -> DuplicateVerdict:
        """Judge ``candidate`` against the owner's recent confirmations.

        Args:
            candidate: Booking payload of the new confirmation
            existing: The owner's stored confirmations
            timeout_s: Oracle timeout (defaults to settings.oracle_timeout_s)

        Returns:
            DuplicateVerdict. Oracle failure or malformed output is reported
            as not-duplicate with source "fail_open".
        """
        sample = sample_recent(existing, self.sample_size)
        if not sample:
            return DuplicateVerdict(is_duplicate=False, source="no_candidates")

        result = await consult(
            self.oracle.judge_duplicate(
                candidate=booking_key_fields(candidate),
                existing=[summarize_for_judge(r) for r in sample],
            ),
            oracle="judge",
            operation="duplicate_check",
            timeout_s=timeout_s if timeout_s is not None else settings.oracle_timeout_s,
            metrics=self.metrics,
            oracle_logger=self.oracle_logger,
        )
        if isinstance(result, Invalid):
            return self._fail_open(result.reason)

        return self._interpret(result.value, {r.id for r in sample})

    def _interpret(self, payload: dict[str, Any], sample_ids: set[str]) -> DuplicateVerdict:
        flag = payload.get("isDuplicate")
        raw_ids = payload.get("duplicateIds", [])
        if not isinstance(flag, bool):
            return self._fail_open("isDuplicate missing or not a boolean")
        if not isinstance(raw_ids, list):
            return self._fail_open("duplicateIds is not a list")

        if not flag:
            return DuplicateVerdict(is_duplicate=False, source="oracle")

        ids: list[str] = []
        for value in raw_ids:
            text = str(value)
            if text in sample_ids and text not in ids:
                ids.append(text)
            else:
                logger.info(f"Ignoring duplicate id {text!r} outside the sample")

        if not ids:
            return self._fail_open("duplicate reported without any known confirmation id")
        return DuplicateVerdict(is_duplicate=True, duplicate_ids=ids, source="oracle")

    def _fail_open(self, reason: str) -> DuplicateVerdict:
        self.metrics.inc_fallback("duplicate_check", "fail_open")
        self.oracle_logger.log_fallback(operation="duplicate_check", reason=reason)
        return DuplicateVerdict(is_duplicate=False, source="fail_open", reason=reason)
