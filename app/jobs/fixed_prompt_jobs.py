"""
Fixed-time prompt jobs for members on the organisation schedule.

Host cron invokes each entry point around its default time. A job only
sends while now is inside the prompt's window for the member's resolved
schedule, and shares the dispatcher's dedup markers, so repeated or early
invocations are harmless.
"""

from datetime import date

from app.jobs.schedule_dispatcher_job import ScheduleDispatcherJob, select_dispatch_members
from app.models.domain.conversation_domain import PromptType
from app.models.domain.schedule_domain import SpecialPeriod, TeamMember


class FixedPromptJob(ScheduleDispatcherJob):
    """One prompt type, for the tracked members the dispatcher does not cover."""

    def __init__(self, job_name: str, prompt_type: PromptType):
        self.job_name = job_name
        self.prompt_types = (prompt_type,)

    def select_members(
        self, members: list[TeamMember], on_date: date, special_periods: list[SpecialPeriod]
    ) -> list[TeamMember]:
        dispatched = {m.user_id for m in select_dispatch_members(members, on_date, special_periods)}
        return [m for m in members if m.is_tracked and m.user_id not in dispatched]


status_prompt_job = FixedPromptJob("status_prompts", PromptType.STATUS)
status_followup_job = FixedPromptJob("status_followups", PromptType.STATUS_FOLLOWUP)
eod_prompt_job = FixedPromptJob("eod_prompts", PromptType.EOD)
eod_followup_job = FixedPromptJob("eod_followups", PromptType.EOD_FOLLOWUP)


async def run_status_prompts() -> dict:
    return await status_prompt_job.run_once()


async def run_status_followups() -> dict:
    return await status_followup_job.run_once()


async def run_eod_prompts() -> dict:
    return await eod_prompt_job.run_once()


async def run_eod_followups() -> dict:
    return await eod_followup_job.run_once()
