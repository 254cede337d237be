"""
Missed-response Escalation Job.

Once a member's follow-up window has closed without a status check-in (or
an EOD report), the miss is logged once per day, the member is reminded
and the escalation recipients are notified.
"""

from datetime import UTC, datetime

from app.config import settings
from app.infrastructure.observability.logging import bind_job_context, get_logger, log_job_run
from app.jobs.job_metrics import JobMetrics
from app.models.domain.conversation_domain import MissedType, PromptType
from app.models.domain.event_log_domain import (
    EscalationLogEntry,
    MissedResponseLogEntry,
    SystemEventLogEntry,
)
from app.models.domain.schedule_domain import TeamMember, WorkHoursDefaults
from app.repositories.event_log_repository import (
    escalation_log,
    missed_response_log,
    system_event_log,
)
from app.repositories.team_repository import (
    get_active_team_members,
    get_holidays_on,
    get_special_periods_covering,
)
from app.services.messaging import prompt_messages
from app.services.messaging.chat_service import ChatServiceError, chat_service
from app.services.prompt_service import has_responded
from app.services.schedule.dispatch_windows import window_closed
from app.services.schedule.work_schedule_service import resolve_work_schedule
from app.services.schedule.workday_calendar import (
    is_eod_workday_given,
    is_workday_given,
    minutes_since_midnight,
    to_local,
)

logger = get_logger(__name__)

FOLLOWUP_BY_MISSED = {
    MissedType.STATUS: PromptType.STATUS_FOLLOWUP,
    MissedType.EOD: PromptType.EOD_FOLLOWUP,
}


class EscalationJob:
    def __init__(self, job_name: str, missed_type: MissedType):
        self.job_name = job_name
        self.missed_type = missed_type

    async def run_once(self, now: datetime | None = None) -> dict:
        now = now or datetime.now(UTC)
        local = to_local(now)
        today = local.date()
        now_minutes = minutes_since_midnight(local)
        followup = FOLLOWUP_BY_MISSED[self.missed_type]

        metrics = JobMetrics(self.job_name)
        bind_job_context(self.job_name, log_date=today.isoformat())

        holidays = await get_holidays_on(today)
        guard = is_eod_workday_given if self.missed_type == MissedType.EOD else is_workday_given
        if not guard(today, holidays):
            logger.info("No escalations today", date=today.isoformat())
            metrics.finalize()
            return {**metrics.to_dict(), "skipped_reason": "not_workday"}

        special_periods = await get_special_periods_covering(today)
        defaults = WorkHoursDefaults.from_settings(settings)
        members = [m for m in await get_active_team_members() if m.is_tracked]
        recipients = settings.escalation_recipients()

        for member in members:
            metrics.users_considered += 1
            try:
                schedule = resolve_work_schedule(member, today, special_periods, defaults)
                if not window_closed(schedule, followup, now_minutes):
                    metrics.record_skipped(member.user_id, self.missed_type.value, "window_open")
                    continue
                if await has_responded(member.user_id, followup, now):
                    continue
                already = await missed_response_log.latest(
                    user_id=member.user_id,
                    log_date=today,
                    missed_type=self.missed_type.value,
                )
                if already:
                    metrics.record_deduplicated(member.user_id, self.missed_type.value)
                    continue

                await self._escalate(member, recipients, now)
                metrics.record_sent(member.user_id, self.missed_type.value)
            except Exception as e:
                metrics.record_failure(member.user_id, self.missed_type.value, e)

        metrics.finalize()
        result = metrics.to_dict()
        await system_event_log.append(
            SystemEventLogEntry(
                created_at=now,
                log_date=today,
                event_type=self.job_name,
                status="partial" if metrics.failures else "ok",
                details=result,
            )
        )
        log_job_run(self.job_name, result)
        return result

    async def _escalate(self, member: TeamMember, recipients: list[str], now: datetime) -> None:
        today = to_local(now).date()
        missed = self.missed_type.value

        await missed_response_log.append(
            MissedResponseLogEntry(
                created_at=now, log_date=today, user_id=member.user_id, missed_type=missed
            )
        )
        await escalation_log.append(
            EscalationLogEntry(
                created_at=now,
                log_date=today,
                user_id=member.user_id,
                escalation_type=missed,
                recipients=",".join(recipients) or None,
            )
        )

        await chat_service.send_direct_message(
            member.user_id, prompt_messages.missed_notice(member, missed)
        )

        notice = prompt_messages.escalation_notice(member, missed, today.strftime("%a %b %d"))
        for recipient in recipients:
            try:
                await chat_service.send_direct_message(recipient, notice)
            except ChatServiceError as e:
                logger.error(
                    "Failed to notify escalation recipient",
                    recipient=recipient,
                    user_id=member.user_id,
                    error=str(e),
                )

        logger.info(
            "Missed response escalated",
            user_id=member.user_id,
            missed_type=missed,
            recipient_count=len(recipients),
        )


status_escalation_job = EscalationJob("status_escalations", MissedType.STATUS)
eod_escalation_job = EscalationJob("eod_escalations", MissedType.EOD)


async def run_status_escalations() -> dict:
    return await status_escalation_job.run_once()


async def run_eod_escalations() -> dict:
    return await eod_escalation_job.run_once()
