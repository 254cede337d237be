# app/services/openai_service.py
"""
OpenAI Service for free-text EOD parsing.
Turns a free-form end-of-day reply into the flattened report fields.
"""

import json
from typing import Any

import openai
from openai import AsyncOpenAI

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.conversation.eod_text_parser import MAX_HOURS, ParsedEodReport

logger = get_logger(__name__)

MAX_TOKENS = 500


class EodParsingError(Exception):
    """Raised when the AI parse of an EOD reply fails."""

    def __init__(self, message: str, api_error: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.api_error = api_error
        self.recoverable = recoverable


SYSTEM_MESSAGE = """You extract structured fields from an employee's end-of-day report.
Return ONLY a JSON object with these keys:
  "tasks_completed": string, a concise semicolon-separated list of what was done
  "blockers": string or null, anything blocking progress (null when none)
  "tomorrow_priority": string or null, the stated plan for tomorrow
  "hours_worked": number or null, hours worked today if stated (0-24)
Do not invent information that is not in the report."""


class OpenAIService:
    """Single-call completion client; callers fall back to regex parsing on failure."""

    def __init__(self):
        self.client: AsyncOpenAI | None = None

    @property
    def enabled(self) -> bool:
        return bool(settings.ENABLE_AI_EOD_PARSING and settings.OPENAI_API_KEY)

    def _get_client(self) -> AsyncOpenAI:
        if self.client is None:
            if not settings.OPENAI_API_KEY:
                raise EodParsingError("OPENAI_API_KEY not configured", recoverable=False)
            self.client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY, timeout=settings.OPENAI_TIMEOUT_SECONDS
            )
            logger.info("OpenAI client initialized", model=settings.OPENAI_MODEL)
        return self.client

    async def parse_eod_report(self, text: str) -> ParsedEodReport:
        """
        Parse a free-text EOD reply.

        Raises:
            EodParsingError: API failure or a response that is not the expected JSON
        """
        client = self._get_client()

        try:
            response = await client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": text},
                ],
                max_tokens=MAX_TOKENS,
                temperature=0,
                response_format={"type": "json_object"},
            )
        except openai.APIError as e:
            logger.warning("OpenAI EOD parse call failed", error=str(e), error_type=type(e).__name__)
            raise EodParsingError("OpenAI API call failed", api_error=str(e)) from e

        if not response.choices or not response.choices[0].message.content:
            raise EodParsingError("Empty response from OpenAI API")

        parsed = self._parse_result(response.choices[0].message.content, text)
        logger.info(
            "EOD report parsed with OpenAI",
            has_blockers=parsed.blockers is not None,
            hours_worked=parsed.hours_worked,
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return parsed

    def _parse_result(self, raw_result: str, original_text: str) -> ParsedEodReport:
        try:
            result: dict[str, Any] = json.loads(raw_result)
        except json.JSONDecodeError as e:
            raise EodParsingError(f"OpenAI returned invalid JSON: {e}") from e

        hours = result.get("hours_worked")
        try:
            hours = float(hours) if hours is not None else None
        except (TypeError, ValueError):
            hours = None
        if hours is not None and not 0 <= hours <= MAX_HOURS:
            hours = None

        return ParsedEodReport(
            tasks_completed=result.get("tasks_completed") or original_text,
            blockers=result.get("blockers") or None,
            tomorrow_priority=result.get("tomorrow_priority") or None,
            hours_worked=hours,
        )


# Singleton instance for application use
openai_service = OpenAIService()
