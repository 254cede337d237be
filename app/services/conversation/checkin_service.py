# app/services/conversation/checkin_service.py
"""
Recording of conversational replies: morning status check-ins, free-text
EOD reports and bare-number hours updates.
"""

from datetime import datetime
from uuid import uuid4

from app.config import settings
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import CheckInOutcome, PromptType
from app.models.domain.event_log_domain import (
    CheckInLogEntry,
    PromptResponseLogEntry,
    ReportLogEntry,
)
from app.models.domain.schedule_domain import TeamMember
from app.repositories.event_log_repository import (
    check_in_log,
    eod_report_log,
    prompt_response_log,
)
from app.services.conversation.eod_text_parser import ParsedEodReport, parse_eod_text
from app.services.messaging.prompt_correlation import responded_prompt_type
from app.services.openai_service import EodParsingError, openai_service
from app.services.schedule.work_schedule_service import get_work_schedule
from app.services.schedule.workday_calendar import minutes_since_midnight, to_local

logger = get_logger(__name__)


class ConversationServiceError(Exception):
    """Raised when a reply cannot be recorded."""

    def __init__(self, message: str, user_id: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.user_id = user_id
        self.recoverable = recoverable


def _format_minutes(total_minutes: int) -> str:
    hours, minutes = divmod(total_minutes % (24 * 60), 60)
    return f"{hours:02d}:{minutes:02d}"


async def record_status_reply(member: TeamMember, text: str, now: datetime) -> CheckInOutcome:
    """Log a check-in; late when after the first block start plus the grace period."""
    local = to_local(now)
    today = local.date()

    try:
        schedule = await get_work_schedule(member, today)
        prompt_type = await responded_prompt_type(member.user_id, PromptType.STATUS)
        threshold = schedule.first_block.start_minutes + settings.LATE_GRACE_MINUTES
        is_late = minutes_since_midnight(local) > threshold

        await check_in_log.append(
            CheckInLogEntry(
                created_at=now,
                log_date=today,
                user_id=member.user_id,
                response_text=text,
                is_late=is_late,
            )
        )
        await prompt_response_log.append(
            PromptResponseLogEntry(
                created_at=now,
                log_date=today,
                user_id=member.user_id,
                prompt_type=prompt_type.value,
                response_text=text,
            )
        )
    except DatabaseError as e:
        logger.error("Failed to record status reply", user_id=member.user_id, error=str(e))
        raise ConversationServiceError(
            f"Could not record check-in: {e}", user_id=member.user_id
        ) from e

    logger.info("Status check-in recorded", user_id=member.user_id, is_late=is_late)
    return CheckInOutcome(
        user_id=member.user_id,
        log_date=today,
        is_late=is_late,
        responded_at=now,
        late_threshold=_format_minutes(threshold),
    )


async def parse_eod_reply(text: str) -> ParsedEodReport:
    """AI parse when enabled, regex extraction otherwise or on failure."""
    if openai_service.enabled:
        try:
            return await openai_service.parse_eod_report(text)
        except EodParsingError as e:
            logger.warning("AI EOD parse failed, using regex fallback", error=str(e))
    return parse_eod_text(text)


async def record_eod_text_reply(member: TeamMember, text: str, now: datetime) -> ParsedEodReport:
    """Write one report row for a free-text EOD reply."""
    today = to_local(now).date()
    parsed = await parse_eod_reply(text)
    prompt_type = await responded_prompt_type(member.user_id, PromptType.EOD)

    try:
        await eod_report_log.append(
            ReportLogEntry(
                created_at=now,
                log_date=today,
                user_id=member.user_id,
                tasks_completed=parsed.tasks_completed,
                blockers=parsed.blockers,
                tomorrow_priority=parsed.tomorrow_priority,
                hours_worked=parsed.hours_worked,
                raw_response=text,
                source="free_text",
            )
        )
        await prompt_response_log.append(
            PromptResponseLogEntry(
                created_at=now,
                log_date=today,
                user_id=member.user_id,
                prompt_type=prompt_type.value,
                response_text=text,
            )
        )
    except DatabaseError as e:
        logger.error("Failed to record EOD reply", user_id=member.user_id, error=str(e))
        raise ConversationServiceError(
            f"Could not record EOD report: {e}", user_id=member.user_id
        ) from e

    logger.info(
        "Free-text EOD recorded",
        user_id=member.user_id,
        hours_worked=parsed.hours_worked,
        has_blockers=parsed.blockers is not None,
    )
    return parsed


async def record_hours_update(user_id: str, hours: float, now: datetime) -> ReportLogEntry | None:
    """
    Append a copy of today's latest EOD row with new hours.

    Returns None when no report exists for today.
    """
    today = to_local(now).date()

    try:
        latest = await eod_report_log.latest(user_id=user_id, log_date=today)
        if latest is None:
            logger.info("Hours update without an EOD report today", user_id=user_id, hours=hours)
            return None

        updated = latest.model_copy(
            update={
                "id": uuid4(),
                "created_at": now,
                "hours_worked": hours,
                "source": "hours_update",
            }
        )
        await eod_report_log.append(updated)
    except DatabaseError as e:
        logger.error("Failed to record hours update", user_id=user_id, error=str(e))
        raise ConversationServiceError(f"Could not update hours: {e}", user_id=user_id) from e

    logger.info(
        "EOD hours updated",
        user_id=user_id,
        previous_hours=latest.hours_worked,
        hours_worked=hours,
    )
    return updated
