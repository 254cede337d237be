# app/services/prompt_service.py
"""
Prompt Service - sends the four daily prompts to one team member.

Sending a prompt logs it to the prompt log and moves the user into the
matching conversation mode. Follow-ups are skipped when the user has
already responded today.
"""

from datetime import UTC, datetime

from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import ConversationMode, PromptType
from app.models.domain.event_log_domain import PromptLogEntry
from app.models.domain.schedule_domain import TeamMember, WorkSchedule
from app.models.domain.tracker_domain import TaskPeriod, TrackerTask
from app.repositories.event_log_repository import check_in_log, eod_report_log, prompt_log
from app.services.conversation.state_service import set_conversation_mode
from app.services.eod_form.eod_form_service import eod_form_service
from app.services.messaging import prompt_messages
from app.services.messaging.chat_service import chat_service
from app.services.messaging.prompt_correlation import remember_prompt
from app.services.schedule.workday_calendar import to_local
from app.services.tracker.task_actions import task_list_card
from app.services.tracker.task_tracker_client import TaskTrackerError, task_tracker_client

logger = get_logger(__name__)

MONDAY = 0

MODE_BY_PROMPT = {
    PromptType.STATUS: ConversationMode.AWAITING_STATUS,
    PromptType.STATUS_FOLLOWUP: ConversationMode.AWAITING_STATUS,
    PromptType.EOD: ConversationMode.AWAITING_EOD,
    PromptType.EOD_FOLLOWUP: ConversationMode.AWAITING_EOD,
}


async def has_responded(user_id: str, prompt_type: PromptType, now: datetime) -> bool:
    """Whether today's status check-in (or EOD report) is already logged."""
    log = eod_report_log if prompt_type.is_eod else check_in_log
    latest = await log.latest(user_id=user_id, log_date=to_local(now).date())
    return latest is not None


async def _due_tasks(member: TeamMember, period: TaskPeriod) -> list[TrackerTask]:
    if not member.tracker_user_id:
        return []
    try:
        return await task_tracker_client.get_tasks_due(member.tracker_user_id, period)
    except TaskTrackerError as e:
        logger.warning(
            "Tracker tasks unavailable for status prompt", user_id=member.user_id, error=str(e)
        )
        return []


async def send_prompt(
    member: TeamMember,
    prompt_type: PromptType,
    schedule: WorkSchedule,
    now: datetime | None = None,
) -> bool:
    """
    Send one prompt. Returns False when a follow-up was skipped because the
    user already responded.

    Delivery and logging errors propagate to the caller's per-user handler.
    """
    now = now or datetime.now(UTC)
    local = to_local(now)

    if prompt_type.is_followup and await has_responded(member.user_id, prompt_type, now):
        logger.info(
            "Follow-up skipped, already responded",
            user_id=member.user_id,
            prompt_type=prompt_type.value,
        )
        return False

    card = None
    if prompt_type == PromptType.STATUS:
        is_week_view = local.weekday() == MONDAY
        period = TaskPeriod.WEEK if is_week_view else TaskPeriod.TODAY
        tasks = await _due_tasks(member, period)
        text = prompt_messages.status_prompt(member, tasks, is_week_view)
        card = task_list_card(tasks)
    elif prompt_type == PromptType.STATUS_FOLLOWUP:
        text = prompt_messages.status_followup(member)
    elif prompt_type == PromptType.EOD:
        text = prompt_messages.eod_prompt(member, schedule)
        card = (await eod_form_service.start(member.user_id, member.name, now)).card
    else:
        text = prompt_messages.eod_followup(member)

    await chat_service.send_direct_message(member.user_id, text, card)

    await prompt_log.append(
        PromptLogEntry(
            created_at=now,
            log_date=local.date(),
            user_id=member.user_id,
            prompt_type=prompt_type.value,
            message_text=text,
        )
    )
    await set_conversation_mode(member.user_id, MODE_BY_PROMPT[prompt_type], now)
    await remember_prompt(member.user_id, prompt_type)

    logger.info(
        "Prompt sent",
        user_id=member.user_id,
        prompt_type=prompt_type.value,
        schedule_source=schedule.source.value,
    )
    return True
