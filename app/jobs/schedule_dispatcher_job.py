"""
Schedule Dispatcher Job.

Runs every 30 minutes on workdays. Sends the four daily prompts to members
whose schedule differs from the organisation default: members with a custom
start time, or every tracked member while a split-shift special period is
active. Each prompt goes out at most once per user per day, guarded by a
dedup marker in Redis.
"""

from datetime import UTC, date, datetime, timedelta

from app.config import settings
from app.infrastructure.observability.logging import bind_job_context, get_logger, log_job_run
from app.jobs.job_metrics import JobMetrics
from app.models.domain.conversation_domain import PromptType
from app.models.domain.schedule_domain import (
    MINUTES_PER_DAY,
    SpecialPeriod,
    TeamMember,
    WorkHoursDefaults,
    WorkSchedule,
)
from app.repositories.team_repository import (
    get_active_team_members,
    get_holidays_on,
    get_special_periods_covering,
)
from app.services import redis_store
from app.services.prompt_service import send_prompt
from app.services.schedule.dispatch_windows import has_window_after_midnight, is_time_for_prompt
from app.services.schedule.work_schedule_service import (
    has_active_split_special_period,
    resolve_work_schedule,
)
from app.services.schedule.workday_calendar import (
    is_eod_workday_given,
    is_workday_given,
    minutes_since_midnight,
    to_local,
)

logger = get_logger(__name__)

ALL_PROMPT_TYPES = (
    PromptType.STATUS,
    PromptType.STATUS_FOLLOWUP,
    PromptType.EOD,
    PromptType.EOD_FOLLOWUP,
)


class DedupStoreError(Exception):
    """The dedup marker could not be read or written."""


def dedup_key(prompt_type: PromptType, user_id: str, on_date: date) -> str:
    return f"dispatch:{prompt_type.value}:{user_id}:{on_date.isoformat()}"


def select_dispatch_members(
    members: list[TeamMember], on_date: date, special_periods: list[SpecialPeriod]
) -> list[TeamMember]:
    """Tracked members with a custom start, or all tracked members during a split period."""
    tracked = [m for m in members if m.is_tracked]
    if has_active_split_special_period(on_date, special_periods):
        return tracked
    return [m for m in tracked if m.custom_start_time]


class ScheduleDispatcherJob:
    """Fires prompts inside each member's own windows."""

    job_name = "schedule_dispatcher"
    prompt_types: tuple[PromptType, ...] = ALL_PROMPT_TYPES

    def select_members(
        self, members: list[TeamMember], on_date: date, special_periods: list[SpecialPeriod]
    ) -> list[TeamMember]:
        return select_dispatch_members(members, on_date, special_periods)

    async def run_once(self, now: datetime | None = None) -> dict:
        """
        Run a single dispatch pass.

        Shifts that ran past midnight are still inside yesterday's windows, so
        yesterday's schedules are checked first with now + 24h.

        Returns:
            Dict: run metrics (users considered, prompts sent, deduplicated, failures)
        """
        now = now or datetime.now(UTC)
        local = to_local(now)
        today = local.date()
        now_minutes = minutes_since_midnight(local)

        metrics = JobMetrics(self.job_name)
        bind_job_context(self.job_name, log_date=today.isoformat())

        members = await get_active_team_members()
        await self._dispatch_work_day(
            today - timedelta(days=1), now_minutes + MINUTES_PER_DAY, members, now, metrics
        )
        ran_today = await self._dispatch_work_day(today, now_minutes, members, now, metrics)

        metrics.finalize()
        result = metrics.to_dict()
        if not ran_today:
            result["skipped_reason"] = "not_workday"
        log_job_run(self.job_name, result)
        return result

    async def _dispatch_work_day(
        self,
        work_date: date,
        minutes: int,
        members: list[TeamMember],
        now: datetime,
        metrics: JobMetrics,
    ) -> bool:
        """Send the prompts due at `minutes` past midnight of `work_date`."""
        after_midnight = minutes >= MINUTES_PER_DAY
        holidays = await get_holidays_on(work_date)
        if not is_workday_given(work_date, holidays):
            if not after_midnight:
                logger.info("Not a workday, skipping dispatch", date=work_date.isoformat())
            return False
        eod_allowed = is_eod_workday_given(work_date, holidays)

        special_periods = await get_special_periods_covering(work_date)
        defaults = WorkHoursDefaults.from_settings(settings)

        for member in self.select_members(members, work_date, special_periods):
            try:
                schedule = resolve_work_schedule(member, work_date, special_periods, defaults)
                if after_midnight and not has_window_after_midnight(schedule, self.prompt_types):
                    continue
                metrics.users_considered += 1
                for prompt_type in self.prompt_types:
                    if not is_time_for_prompt(schedule, prompt_type, minutes):
                        continue
                    if prompt_type.is_eod and not eod_allowed:
                        metrics.record_skipped(member.user_id, prompt_type.value, "half_day")
                        continue
                    await self._dispatch_prompt(member, prompt_type, schedule, work_date, now, metrics)
            except Exception as e:
                metrics.record_failure(member.user_id, "dispatch", e)
        return True

    async def _dispatch_prompt(
        self,
        member: TeamMember,
        prompt_type: PromptType,
        schedule: WorkSchedule,
        work_date: date,
        now: datetime,
        metrics: JobMetrics,
    ) -> None:
        key = dedup_key(prompt_type, member.user_id, work_date)
        already_sent = await redis_store.exists(key)
        if already_sent is None:
            # Unknown marker: sending could repeat a prompt
            metrics.record_failure(
                member.user_id, prompt_type.value, DedupStoreError(f"Could not read {key}")
            )
            return
        if already_sent:
            metrics.record_deduplicated(member.user_id, prompt_type.value)
            return

        sent = await send_prompt(member, prompt_type, schedule, now)
        if sent:
            metrics.record_sent(member.user_id, prompt_type.value)
        else:
            metrics.record_skipped(member.user_id, prompt_type.value, "responded")

        if not await redis_store.set_with_ttl(key, "1", settings.DISPATCH_DEDUP_TTL_SECONDS):
            metrics.record_failure(
                member.user_id, prompt_type.value, DedupStoreError(f"Could not write {key}")
            )


schedule_dispatcher_job = ScheduleDispatcherJob()


async def run_schedule_dispatcher() -> dict:
    """Run a single iteration of the schedule dispatcher."""
    return await schedule_dispatcher_job.run_once()
