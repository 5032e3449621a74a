"""Oracle clients for arrangement, regeneration, duplicate judgment and date parsing.

Security: Reads API key from environment only, never hardcoded.
Provides a deterministic stub when no key is present so every engine path
still resolves through its documented fallback.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from openai import AsyncOpenAI

from backend.tripweave.config import settings
from backend.tripweave.models.itinerary import Activity
from backend.tripweave.models.results import Invalid, Ok, OracleResult
from backend.tripweave.models.trip import Trip
from backend.tripweave.verification.bookings import structural_duplicate_ids

logger = logging.getLogger(__name__)

ACTIVITY_SHAPE = """[
  {
    "id": "string (preserve existing IDs)",
    "name": "string",
    "timeBlock": "morning" | "afternoon" | "evening",
    "time": "optional specific time",
    "description": "string",
    "type": "attraction" | "restaurant" | "activity" | "transport" | "accommodation" | "other",
    "location": "string",
    "sourceType": "ai" | "inspiration" | "confirmation" | "manual",
    "sourceId": "optional string",
    "isFixed": "boolean"
  }
]"""


@dataclass(frozen=True)
class TripContext:
    """Trip facts handed to the recommendation oracle."""

    day_number: int
    destination: str = "destination"
    vibe: str = "mixed"
    budget: str = "mid"
    travelers: int = 1

    @classmethod
    def from_trip(cls, trip: Trip, day_number: int) -> "TripContext":
        """Build context from a trip document."""
        details = trip.details
        return cls(
            day_number=day_number,
            destination=details.destination or "destination",
            vibe=details.vibe or "mixed",
            budget=details.budget or "mid",
            travelers=details.travelers,
        )


class RecommendationOracle(Protocol):
    """Creative ordering and content generation for a single day."""

    async def arrange(
        self, *, context: TripContext, existing: list[Activity], new_item: Activity
    ) -> OracleResult[list[dict[str, Any]]]:
        """Return a re-ordered day containing existing activities plus ``new_item``."""
        ...

    async def regenerate(
        self, *, context: TripContext, keep: list[Activity], excluded_names: list[str]
    ) -> OracleResult[list[dict[str, Any]]]:
        """Return a full replacement day that includes ``keep`` verbatim."""
        ...


class DuplicateJudgeOracle(Protocol):
    """Fuzzy comparison of a new booking against existing ones."""

    async def judge_duplicate(
        self, *, candidate: dict[str, Any], existing: list[dict[str, Any]]
    ) -> OracleResult[dict[str, Any]]:
        """Return ``{"isDuplicate": bool, "duplicateIds": [str]}``."""
        ...


class DateParserOracle(Protocol):
    """Normalization of ambiguous date strings."""

    async def parse_date(self, raw: str) -> OracleResult[str | None]:
        """Return an ISO-8601 date string, or None when no date is present."""
        ...


def strip_code_fences(content: str) -> str:
    """Remove markdown code fences around a JSON payload."""
    text = content.strip()
    text = text.replace("```json", "").replace("```JSON", "").replace("```", "")
    return text.strip()


def parse_activity_array(content: str | None) -> OracleResult[list[dict[str, Any]]]:
    """Parse an oracle response that must be a JSON array of objects."""
    if not content or not content.strip():
        return Invalid("empty response")
    try:
        payload = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        return Invalid(f"malformed JSON: {e.msg}")
    if not isinstance(payload, list):
        return Invalid(f"expected JSON array, got {type(payload).__name__}")
    if not all(isinstance(item, dict) for item in payload):
        return Invalid("array contains non-object entries")
    return Ok(payload)


def parse_json_object(content: str | None) -> OracleResult[dict[str, Any]]:
    """Parse an oracle response that must be a JSON object."""
    if not content or not content.strip():
        return Invalid("empty response")
    try:
        payload = json.loads(strip_code_fences(content))
    except json.JSONDecodeError as e:
        return Invalid(f"malformed JSON: {e.msg}")
    if not isinstance(payload, dict):
        return Invalid(f"expected JSON object, got {type(payload).__name__}")
    return Ok(payload)


def _dump_activities(activities: list[Activity]) -> list[dict[str, Any]]:
    return [a.model_dump(mode="json", by_alias=True, exclude_none=True) for a in activities]


class DeterministicStubOracle:
    """Deterministic stub oracle for testing (no API key required).

    Never invents activities: regeneration is reported as unavailable so the
    caller's deterministic fallback runs.
    """

    _DATE_FORMATS = (
        "%B %d, %Y",
        "%b %d, %Y",
        "%d %B %Y",
        "%d %b %Y",
        "%m/%d/%Y",
        "%Y/%m/%d",
        "%A, %B %d, %Y",
    )

    async def arrange(
        self, *, context: TripContext, existing: list[Activity], new_item: Activity
    ) -> OracleResult[list[dict[str, Any]]]:
        """Append the new item without reordering."""
        return Ok(_dump_activities([*existing, new_item]))

    async def regenerate(
        self, *, context: TripContext, keep: list[Activity], excluded_names: list[str]
    ) -> OracleResult[list[dict[str, Any]]]:
        """Stub cannot generate new activities."""
        return Invalid("stub oracle does not generate activities")

    async def judge_duplicate(
        self, *, candidate: dict[str, Any], existing: list[dict[str, Any]]
    ) -> OracleResult[dict[str, Any]]:
        """Judge by structural comparison of identifying fields."""
        ids = structural_duplicate_ids(candidate, existing)
        return Ok({"isDuplicate": bool(ids), "duplicateIds": ids})

    async def parse_date(self, raw: str) -> OracleResult[str | None]:
        """Try a fixed list of common human date formats."""
        text = raw.strip()
        for fmt in self._DATE_FORMATS:
            try:
                return Ok(datetime.strptime(text, fmt).date().isoformat())
            except ValueError:
                continue
        return Ok(None)


class OpenAIOracle:
    """OpenAI-backed oracle."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", temperature: float = 0.7):
        """Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (read from environment)
            model: Model name to use (default: gpt-4o-mini for cost efficiency)
            temperature: Sampling temperature for creative ordering
        """
        self.client = AsyncOpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature

    async def _complete(self, prompt: str, *, temperature: float | None = None) -> str | None:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature if temperature is None else temperature,
        )
        return response.choices[0].message.content

    async def arrange(
        self, *, context: TripContext, existing: list[Activity], new_item: Activity
    ) -> OracleResult[list[dict[str, Any]]]:
        """Ask the model to slot ``new_item`` into the day."""
        try:
            content = await self._complete(self._build_arrange_prompt(context, existing, new_item))
        except Exception as e:
            logger.error(f"OpenAI arrange call failed: {e}")
            return Invalid(f"oracle error: {e}")
        return parse_activity_array(content)

    async def regenerate(
        self, *, context: TripContext, keep: list[Activity], excluded_names: list[str]
    ) -> OracleResult[list[dict[str, Any]]]:
        """Ask the model for a replacement day around the kept activities."""
        try:
            content = await self._complete(
                self._build_regenerate_prompt(context, keep, excluded_names)
            )
        except Exception as e:
            logger.error(f"OpenAI regenerate call failed: {e}")
            return Invalid(f"oracle error: {e}")
        return parse_activity_array(content)

    async def judge_duplicate(
        self, *, candidate: dict[str, Any], existing: list[dict[str, Any]]
    ) -> OracleResult[dict[str, Any]]:
        """Ask the model whether ``candidate`` duplicates any existing booking."""
        try:
            content = await self._complete(
                self._build_duplicate_prompt(candidate, existing), temperature=0.0
            )
        except Exception as e:
            logger.error(f"OpenAI duplicate judgment failed: {e}")
            return Invalid(f"oracle error: {e}")
        return parse_json_object(content)

    async def parse_date(self, raw: str) -> OracleResult[str | None]:
        """Ask the model to normalize a free-text date."""
        prompt = (
            "Convert the following text to an ISO-8601 calendar date (YYYY-MM-DD). "
            'Return ONLY JSON of the form {"date": "YYYY-MM-DD"} or {"date": null} '
            "if the text contains no date.\n\n"
            f"Text: {raw}"
        )
        try:
            content = await self._complete(prompt, temperature=0.0)
        except Exception as e:
            logger.error(f"OpenAI date parsing failed: {e}")
            return Invalid(f"oracle error: {e}")

        result = parse_json_object(content)
        if isinstance(result, Invalid):
            return result
        value = result.value.get("date")
        if value is not None and not isinstance(value, str):
            return Invalid("date field is not a string")
        return Ok(value)

    def _build_context_lines(self, context: TripContext) -> list[str]:
        return [
            "Trip Context:",
            f"- Destination: {context.destination}",
            f"- Vibe: {context.vibe}",
            f"- Budget: {context.budget}",
            f"- Travelers: {context.travelers}",
            "",
        ]

    def _build_arrange_prompt(
        self, context: TripContext, existing: list[Activity], new_item: Activity
    ) -> str:
        lines = [
            f"You are an expert travel planner. Rearrange day {context.day_number} "
            "of a trip so that it includes one new activity.",
            "",
        ]
        lines.extend(self._build_context_lines(context))
        lines.append(f"Existing Activities for Day {context.day_number}:")
        lines.append(json.dumps(_dump_activities(existing), indent=2))
        lines.append("")
        if new_item.is_fixed:
            lines.append("New Fixed Activity (a booking; MUST be included and MUST NOT change):")
        else:
            lines.append("New Activity to Add:")
        lines.append(json.dumps(_dump_activities([new_item])[0], indent=2))
        lines.append("")
        lines.append(
            f"""Task:
1. Place the new activity in an appropriate time block (suggested: {new_item.time_block.value})
2. Order the other activities so the day flows logically
3. Keep a sensible spread across morning, afternoon and evening
4. Activities with isFixed: true must be returned exactly as given

Return ONLY a valid JSON array in this exact format (no markdown, no explanations):
{ACTIVITY_SHAPE}

Rules:
- Return every existing activity plus the new activity, nothing more
- Preserve every id exactly
- Do not duplicate or invent activities"""
        )
        return "\n".join(lines)

    def _build_regenerate_prompt(
        self, context: TripContext, keep: list[Activity], excluded_names: list[str]
    ) -> str:
        lines = [
            f"You are an expert travel planner. Create fresh activities for day "
            f"{context.day_number} of a trip.",
            "",
        ]
        lines.extend(self._build_context_lines(context))
        lines.append("Activities to Keep (include exactly as given, do not modify):")
        lines.append(json.dumps(_dump_activities(keep), indent=2))
        lines.append("")
        lines.append("Activities Already Scheduled Elsewhere (DO NOT repeat these):")
        lines.append(", ".join(sorted(excluded_names)) or "none")
        lines.append("")
        lines.append(
            f"""Task:
1. Include every activity from "Activities to Keep" unchanged
2. Add new activities so each of morning, afternoon and evening has 2-3 activities
3. Match the trip's vibe and budget and keep a logical flow

Return ONLY a valid JSON array in this exact format (no markdown, no explanations):
{ACTIVITY_SHAPE}

Rules:
- Preserve ids of kept activities; omit "id" for new activities
- New activities use sourceType "ai" and isFixed false
- Never repeat an activity from the already-scheduled list"""
        )
        return "\n".join(lines)

    def _build_duplicate_prompt(
        self, candidate: dict[str, Any], existing: list[dict[str, Any]]
    ) -> str:
        return f"""You compare travel bookings. Decide whether the NEW booking is the same booking
as any EXISTING booking.

Be conservative: only report a duplicate when most identifying fields coincide
(booking reference, category, names such as hotel/airline/flight number, and dates).
Similar but different trips (other dates, other flights) are NOT duplicates.

NEW booking:
{json.dumps(candidate, indent=2, default=str)}

EXISTING bookings:
{json.dumps(existing, indent=2, default=str)}

Return ONLY JSON: {{"isDuplicate": true | false, "duplicateIds": ["existing id", ...]}}"""


def get_oracle() -> "OpenAIOracle | DeterministicStubOracle":
    """Factory function to get appropriate oracle based on config.

    Returns:
        OpenAIOracle if API key is configured, DeterministicStubOracle otherwise
    """
    api_key = settings.openai_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenAI oracle")
        return OpenAIOracle(
            api_key=api_key.get_secret_value(),
            model=settings.openai_model,
            temperature=settings.openai_temperature,
        )
    else:
        logger.warning("No OpenAI API key configured, using deterministic stub oracle")
        return DeterministicStubOracle()
