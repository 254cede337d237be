"""
Tests for AI parsing of free-text EOD replies and the regex fallback.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.services.conversation import checkin_service
from app.services.openai_service import EodParsingError, OpenAIService


def _completion(content: str | None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=120),
    )


def _service(create: AsyncMock) -> OpenAIService:
    service = OpenAIService()
    service.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    return service


@pytest.mark.asyncio
async def test_parse_eod_report_maps_json_fields():
    create = AsyncMock(
        return_value=_completion(
            '{"tasks_completed": "Audit; deck", "blockers": null,'
            ' "tomorrow_priority": "Board prep", "hours_worked": "7.5"}'
        )
    )

    parsed = await _service(create).parse_eod_report("long free text")

    assert parsed.tasks_completed == "Audit; deck"
    assert parsed.blockers is None
    assert parsed.tomorrow_priority == "Board prep"
    assert parsed.hours_worked == 7.5
    assert create.await_args.kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_out_of_range_hours_are_dropped():
    create = AsyncMock(return_value=_completion('{"tasks_completed": "x", "hours_worked": 30}'))

    parsed = await _service(create).parse_eod_report("text")

    assert parsed.hours_worked is None


@pytest.mark.asyncio
async def test_missing_tasks_fall_back_to_original_text():
    create = AsyncMock(return_value=_completion("{}"))

    parsed = await _service(create).parse_eod_report("Fixed the build")

    assert parsed.tasks_completed == "Fixed the build"


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["not json", None])
async def test_bad_responses_raise(content):
    with pytest.raises(EodParsingError):
        await _service(AsyncMock(return_value=_completion(content))).parse_eod_report("text")


def test_missing_api_key_is_not_recoverable(monkeypatch):
    monkeypatch.setattr("app.services.openai_service.settings.OPENAI_API_KEY", None)

    with pytest.raises(EodParsingError) as exc_info:
        OpenAIService()._get_client()

    assert exc_info.value.recoverable is False


@pytest.mark.asyncio
async def test_reply_parsing_falls_back_to_regex(monkeypatch):
    monkeypatch.setattr("app.services.openai_service.settings.ENABLE_AI_EOD_PARSING", True)
    monkeypatch.setattr("app.services.openai_service.settings.OPENAI_API_KEY", "sk-test")
    monkeypatch.setattr(
        checkin_service.openai_service,
        "parse_eod_report",
        AsyncMock(side_effect=EodParsingError("OpenAI API call failed")),
    )

    parsed = await checkin_service.parse_eod_reply("Shipped the page\nBlockers: none\nWorked 6 hours")

    assert parsed.blockers is None
    assert parsed.hours_worked == 6.0
