# app/services/eod_form/eod_form_service.py
"""
EOD Form Service.

Each card action re-reads the user's draft, runs the pure step transition,
writes the draft back when the step is accepted and answers with the next
card. Submission writes one report row, clears the draft and the
conversation mode, then posts the summary to the team channel.
"""

from datetime import UTC, datetime
from typing import Any

from app.config import settings
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import ChatReply, PromptType
from app.models.domain.eod_domain import EodDraft, EodFormAction, SourceTask
from app.models.domain.event_log_domain import PromptResponseLogEntry, ReportLogEntry
from app.models.domain.tracker_domain import TaskPeriod
from app.repositories.event_log_repository import eod_report_log, prompt_response_log
from app.repositories.team_repository import get_team_member
from app.services.conversation.state_service import clear_conversation_mode
from app.services.eod_form.cards import card_for_step, header_card, warning_card
from app.services.eod_form.draft_store import clear_draft, load_draft, save_draft
from app.services.eod_form.summary import flatten_report, format_eod_summary, format_hours
from app.services.eod_form.workflow import (
    STALE_TASK_CARD,
    StepResult,
    apply_header,
    apply_meetings,
    apply_task,
    apply_tomorrow,
    apply_unplanned,
    confirm_submission,
    start_draft,
)
from app.services.messaging.chat_service import ChatServiceError, chat_service
from app.services.messaging.prompt_correlation import responded_prompt_type
from app.services.schedule.workday_calendar import to_local
from app.services.tracker.task_tracker_client import TaskTrackerError, task_tracker_client

logger = get_logger(__name__)

SESSION_EXPIRED = "Your EOD session expired. Type 'eod' to restart the report."
SAVE_FAILED = "Sorry, I couldn't save your report just now. Please press submit again."
DRAFT_SAVE_FAILED = "Sorry, I couldn't save that step just now. Please try again."


class EodFormService:
    """Drives the structured EOD wizard for one action at a time."""

    async def start(self, user_id: str, user_name: str, now: datetime | None = None) -> ChatReply:
        """Open today's wizard, resuming an existing draft for the same day."""
        now = now or datetime.now(UTC)
        today = to_local(now).date()

        existing = await load_draft(user_id)
        if existing and existing.log_date == today:
            logger.info("Resuming EOD draft", user_id=user_id, step=existing.step.value)
            return ChatReply(
                text="Picking up your end-of-day report where you left off.",
                card=card_for_step(existing, existing.step),
            )

        draft = start_draft(user_id, user_name, today)
        if not await save_draft(draft):
            return ChatReply(text=DRAFT_SAVE_FAILED)
        logger.info("EOD draft started", user_id=user_id, log_date=today.isoformat())
        return ChatReply(text="Let's do your end-of-day report.", card=header_card(draft))

    async def handle_action(
        self,
        user_id: str,
        action: EodFormAction,
        form: dict[str, str],
        params: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> ChatReply:
        now = now or datetime.now(UTC)
        params = params or {}

        draft = await load_draft(user_id)
        if draft is None:
            logger.info("EOD action on expired session", user_id=user_id, action=action.value)
            return ChatReply(text=SESSION_EXPIRED)

        result = await self._transition(draft, action, form, params)

        if not result.accepted:
            logger.info(
                "EOD step rejected",
                user_id=user_id,
                action=action.value,
                error_count=len(result.errors),
            )
            return ChatReply(
                text="Please fix the highlighted fields.",
                card=card_for_step(result.draft, result.next_step, result.errors),
            )

        if result.submitted:
            return await self._finalize(result.draft, now)

        if not await save_draft(result.draft):
            return ChatReply(text=DRAFT_SAVE_FAILED, card=card_for_step(draft, draft.step))

        if result.needs_confirmation:
            return ChatReply(
                text="A few things to check before you submit.",
                card=warning_card(result.draft, result.warnings),
            )

        if result.errors:
            return ChatReply(
                text="Your report isn't complete yet.",
                card=card_for_step(result.draft, result.next_step, result.errors),
            )

        return ChatReply(text="Saved.", card=card_for_step(result.draft, result.next_step))

    async def _transition(
        self,
        draft: EodDraft,
        action: EodFormAction,
        form: dict[str, str],
        params: dict[str, Any],
    ) -> StepResult:
        if action == EodFormAction.HEADER:
            source_tasks = [] if draft.source_task_cache else await self._source_tasks(draft.user_id)
            return apply_header(draft, form, source_tasks)

        if action in (EodFormAction.TASK_NEXT, EodFormAction.TASK_DONE):
            try:
                task_index = int(params.get("task_index", draft.current_task_index))
            except (TypeError, ValueError):
                return StepResult(
                    accepted=False, draft=draft, next_step=draft.step, errors=[STALE_TASK_CARD]
                )
            return apply_task(
                draft,
                form,
                task_index,
                finish=action == EodFormAction.TASK_DONE,
                link_prefix=settings.TASK_LINK_PREFIX,
            )

        if action in (EodFormAction.MEETINGS_TO_TOMORROW, EodFormAction.MEETINGS_TO_UNPLANNED):
            return apply_meetings(
                draft, form, include_unplanned=action == EodFormAction.MEETINGS_TO_UNPLANNED
            )

        if action == EodFormAction.UNPLANNED:
            return apply_unplanned(draft, form)

        if action == EodFormAction.TOMORROW:
            return apply_tomorrow(draft, form)

        return confirm_submission(draft)

    async def _source_tasks(self, user_id: str) -> list[SourceTask]:
        """Up to 10 due tracker tasks for pre-fill; empty when unavailable."""
        try:
            member = await get_team_member(user_id)
            if not member or not member.tracker_user_id:
                return []
            tasks = await task_tracker_client.get_tasks_due(member.tracker_user_id, TaskPeriod.TODAY)
        except (TaskTrackerError, DatabaseError) as e:
            logger.warning("Could not load tracker tasks for EOD", user_id=user_id, error=str(e))
            return []
        return [task.to_source_task() for task in tasks[:10]]

    async def _finalize(self, draft: EodDraft, now: datetime) -> ChatReply:
        summary = format_eod_summary(draft)
        prompt_type = await responded_prompt_type(draft.user_id, PromptType.EOD)

        try:
            await eod_report_log.append(
                ReportLogEntry(
                    created_at=now,
                    log_date=draft.log_date,
                    user_id=draft.user_id,
                    source="structured",
                    details=draft.model_dump(mode="json", exclude={"source_task_cache"}),
                    **flatten_report(draft, summary),
                )
            )
            await prompt_response_log.append(
                PromptResponseLogEntry(
                    created_at=now,
                    log_date=draft.log_date,
                    user_id=draft.user_id,
                    prompt_type=prompt_type.value,
                    response_text=summary,
                )
            )
        except DatabaseError as e:
            logger.error("Failed to log structured EOD", user_id=draft.user_id, error=str(e))
            await save_draft(draft)
            return ChatReply(text=SAVE_FAILED)

        await clear_draft(draft.user_id)
        await clear_conversation_mode(draft.user_id)

        try:
            await chat_service.post_to_team_channel(summary)
        except ChatServiceError as e:
            logger.error("Failed to post EOD summary to team channel", user_id=draft.user_id, error=str(e))

        logger.info(
            "Structured EOD submitted",
            user_id=draft.user_id,
            task_count=len(draft.tasks),
            total_hours=draft.total_hours,
        )

        meetings = draft.meetings
        preview = [
            f"- {len(draft.tasks)} task{'s' if len(draft.tasks) != 1 else ''} "
            f"({format_hours(draft.task_hours)})",
            f"- {meetings.count if meetings else 0} meetings "
            f"({format_hours(meetings.total_hours if meetings else 0)})",
            f"- Total: {format_hours(draft.total_hours)}",
        ]
        if draft.unplanned:
            preview.append(f"- Unplanned: {format_hours(draft.unplanned.hours)}")
        return ChatReply(text="EOD report submitted. Thanks!\n" + "\n".join(preview))


eod_form_service = EodFormService()
