"""Tests for oracle clients.

All tests are deterministic and do not make real network calls.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import SecretStr

from backend.tripweave.llm.client import (
    DeterministicStubOracle,
    OpenAIOracle,
    TripContext,
    get_oracle,
    parse_activity_array,
    parse_json_object,
    strip_code_fences,
)
from backend.tripweave.llm.consult import consult
from backend.tripweave.models.common import TimeBlock
from backend.tripweave.models.results import Invalid, Ok


@pytest.fixture
def context() -> TripContext:
    """Oracle context for day 1."""
    return TripContext(day_number=1, destination="Siargao", vibe="relaxed", budget="mid", travelers=2)


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestParsing:
    """Test payload parsing helpers."""

    def test_strip_code_fences(self) -> None:
        """Markdown fences around JSON are removed."""
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_parse_activity_array(self) -> None:
        """A fenced JSON array of objects parses."""
        result = parse_activity_array('```json\n[{"name": "Surf"}]\n```')
        assert result == Ok([{"name": "Surf"}])

    @pytest.mark.parametrize(
        "content",
        [None, "", "not json", '{"name": "Surf"}', '["Surf"]', "[1, 2]"],
    )
    def test_parse_activity_array_rejects(self, content: str | None) -> None:
        """Anything but an array of objects is Invalid."""
        assert isinstance(parse_activity_array(content), Invalid)

    def test_parse_json_object(self) -> None:
        """Objects parse; arrays do not."""
        assert parse_json_object('{"isDuplicate": false}') == Ok({"isDuplicate": False})
        assert isinstance(parse_json_object("[]"), Invalid)


class TestDeterministicStubOracle:
    """Test DeterministicStubOracle."""

    @pytest.mark.asyncio
    async def test_arrange_appends(self, context: TripContext, activity_factory) -> None:
        """Arrange returns existing activities followed by the new item."""
        existing = [activity_factory("a1", "Surf Lesson")]
        new_item = activity_factory("a2", "Rock Pools", TimeBlock.afternoon)

        result = await DeterministicStubOracle().arrange(
            context=context, existing=existing, new_item=new_item
        )

        assert isinstance(result, Ok)
        assert [a["id"] for a in result.value] == ["a1", "a2"]
        assert result.value[1]["timeBlock"] == "afternoon"

    @pytest.mark.asyncio
    async def test_regenerate_is_invalid(self, context: TripContext) -> None:
        """The stub never invents activities."""
        result = await DeterministicStubOracle().regenerate(context=context, keep=[], excluded_names=[])
        assert isinstance(result, Invalid)

    @pytest.mark.asyncio
    async def test_judge_duplicate_structural(self) -> None:
        """Same hotel and check-in date is a duplicate."""
        result = await DeterministicStubOracle().judge_duplicate(
            candidate={"category": "hotel", "hotelName": "Kalinaw Resort", "checkInDate": "2025-03-10"},
            existing=[
                {"id": "c1", "category": "hotel", "hotelName": "kalinaw resort", "checkInDate": "2025-03-10"},
                {"id": "c2", "category": "hotel", "hotelName": "Kalinaw Resort", "checkInDate": "2025-04-10"},
            ],
        )
        assert result == Ok({"isDuplicate": True, "duplicateIds": ["c1"]})

    @pytest.mark.asyncio
    async def test_parse_date(self) -> None:
        """Common formats parse; nonsense yields None."""
        stub = DeterministicStubOracle()
        assert await stub.parse_date("12 Mar 2025") == Ok("2025-03-12")
        assert await stub.parse_date("03/12/2025") == Ok("2025-03-12")
        assert await stub.parse_date("someday") == Ok(None)


class TestOpenAIOracle:
    """Test OpenAIOracle with a mocked client."""

    @pytest.mark.asyncio
    async def test_arrange_parses_response(self, context: TripContext, activity_factory) -> None:
        """A fenced array response is parsed."""
        oracle = OpenAIOracle(api_key="test-key")
        oracle.client = MagicMock()
        oracle.client.chat.completions.create = AsyncMock(
            return_value=_completion('```json\n[{"id": "a1", "name": "Surf"}]\n```')
        )

        result = await oracle.arrange(
            context=context, existing=[activity_factory("a1", "Surf")], new_item=activity_factory("a2", "Pools")
        )

        assert result == Ok([{"id": "a1", "name": "Surf"}])
        prompt = oracle.client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "Siargao" in prompt
        assert '"id": "a2"' in prompt

    @pytest.mark.asyncio
    async def test_api_error_becomes_invalid(self, context: TripContext) -> None:
        """Client exceptions are folded into Invalid."""
        oracle = OpenAIOracle(api_key="test-key")
        oracle.client = MagicMock()
        oracle.client.chat.completions.create = AsyncMock(side_effect=RuntimeError("rate limited"))

        result = await oracle.regenerate(context=context, keep=[], excluded_names=["sugba lagoon"])

        assert isinstance(result, Invalid)
        assert "rate limited" in result.reason

    @pytest.mark.asyncio
    async def test_regenerate_prompt_lists_exclusions(self, context: TripContext) -> None:
        """Excluded names are shown to the model."""
        oracle = OpenAIOracle(api_key="test-key")
        oracle.client = MagicMock()
        oracle.client.chat.completions.create = AsyncMock(return_value=_completion("[]"))

        await oracle.regenerate(context=context, keep=[], excluded_names=["sugba lagoon"])

        prompt = oracle.client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert "sugba lagoon" in prompt

    @pytest.mark.asyncio
    async def test_parse_date(self) -> None:
        """Date responses are unwrapped from their JSON object."""
        oracle = OpenAIOracle(api_key="test-key")
        oracle.client = MagicMock()
        oracle.client.chat.completions.create = AsyncMock(return_value=_completion('{"date": "2025-03-12"}'))

        assert await oracle.parse_date("Wed 12 Mar") == Ok("2025-03-12")


class TestGetOracle:
    """Test the oracle factory."""

    def test_stub_without_key(self) -> None:
        """No API key selects the stub."""
        with patch("backend.tripweave.llm.client.settings") as mock_settings:
            mock_settings.openai_api_key = None
            assert isinstance(get_oracle(), DeterministicStubOracle)

    def test_openai_with_key(self) -> None:
        """A configured key selects OpenAI."""
        with patch("backend.tripweave.llm.client.settings") as mock_settings:
            mock_settings.openai_api_key = SecretStr("sk-test")
            mock_settings.openai_model = "gpt-4o-mini"
            mock_settings.openai_temperature = 0.7
            oracle = get_oracle()
        assert isinstance(oracle, OpenAIOracle)
        assert oracle.model == "gpt-4o-mini"


class TestConsult:
    """Test caller-side timeout and error folding."""

    @pytest.mark.asyncio
    async def test_ok_passes_through(self) -> None:
        """Ok results are returned and recorded."""
        metrics = MagicMock()

        async def call() -> Ok[list]:
            return Ok([])

        result = await consult(call(), oracle="recommendation", operation="arrange", timeout_s=1, metrics=metrics)

        assert result == Ok([])
        metrics.record_oracle_call.assert_called_once()
        assert metrics.record_oracle_call.call_args.args[:2] == ("recommendation", "ok")

    @pytest.mark.asyncio
    async def test_timeout_becomes_invalid(self) -> None:
        """An expired timeout is an oracle failure."""
        metrics = MagicMock()

        async def slow() -> Ok[list]:
            await asyncio.sleep(5)
            return Ok([])

        result = await consult(slow(), oracle="recommendation", operation="arrange", timeout_s=0.01, metrics=metrics)

        assert isinstance(result, Invalid)
        assert "timeout" in result.reason
        assert metrics.record_oracle_call.call_args.args[1] == "timeout"

    @pytest.mark.asyncio
    async def test_exception_becomes_invalid(self) -> None:
        """Exceptions never escape."""

        async def broken() -> Ok[list]:
            raise ConnectionError("reset by peer")

        result = await consult(broken(), oracle="judge", operation="duplicate_check", timeout_s=1)

        assert isinstance(result, Invalid)
        assert "reset by peer" in result.reason
