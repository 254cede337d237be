# app/services/schedule/work_schedule_service.py
"""
Work schedule resolution.

Priority: per-user override > active special period > organisation default.
The resolver itself is pure; the async wrapper loads the inputs.
"""

from datetime import date

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.schedule_domain import (
    ScheduleSource,
    SpecialPeriod,
    TeamMember,
    TimeBlock,
    WorkHoursDefaults,
    WorkSchedule,
)
from app.repositories.team_repository import get_special_periods_covering

logger = get_logger(__name__)

FRIDAY = 4

# Special periods without their own times fall back to these
SPECIAL_WEEKDAY_FALLBACK = ("10:00", "17:00")
SPECIAL_FRIDAY_FALLBACK = ("10:00", "14:00")


def _normalize_blocks(blocks: list[TimeBlock]) -> list[TimeBlock]:
    """Order blocks by start and drop any block overlapping an earlier one."""
    ordered = sorted(blocks, key=lambda b: b.start_minutes)
    kept: list[TimeBlock] = []
    for block in ordered:
        if kept and block.start_minutes < kept[-1].end_minutes:
            logger.warning(
                "Dropping overlapping work block",
                block_start=block.start,
                block_end=block.end,
                previous_end=kept[-1].end,
            )
            continue
        kept.append(block)
    return kept


def _build_schedule(
    blocks: list[TimeBlock],
    explicit_hours: float | None,
    source: ScheduleSource,
    special_period_name: str | None = None,
) -> WorkSchedule:
    blocks = _normalize_blocks(blocks)
    total = (
        float(explicit_hours)
        if explicit_hours is not None
        else sum(block.duration_hours for block in blocks)
    )
    return WorkSchedule(
        blocks=blocks,
        total_expected_hours=round(total, 2),
        source=source,
        special_period_name=special_period_name,
    )


def _active_special_period(
    on_date: date, special_periods: list[SpecialPeriod]
) -> SpecialPeriod | None:
    for period in special_periods:
        if period.covers(on_date):
            return period
    return None


def resolve_work_schedule(
    member: TeamMember | None,
    on_date: date,
    special_periods: list[SpecialPeriod],
    defaults: WorkHoursDefaults,
) -> WorkSchedule:
    """
    Effective blocks and expected hours for one user on one date.

    Never fails: a missing sub-field falls back to the next tier's default.
    """
    is_friday = on_date.weekday() == FRIDAY

    override = member.schedule_override() if member else None
    if override:
        blocks = [TimeBlock(start=override.start, end=override.end)]
        if override.start_2 and override.end_2:
            blocks.append(TimeBlock(start=override.start_2, end=override.end_2))
        return _build_schedule(blocks, override.hours_per_day, ScheduleSource.CUSTOM)

    period = _active_special_period(on_date, special_periods)
    if period:
        if is_friday:
            start = period.friday_start or SPECIAL_FRIDAY_FALLBACK[0]
            end = period.friday_end or SPECIAL_FRIDAY_FALLBACK[1]
            second = (period.friday_start_2, period.friday_end_2)
        else:
            start = period.weekday_start or SPECIAL_WEEKDAY_FALLBACK[0]
            end = period.weekday_end or SPECIAL_WEEKDAY_FALLBACK[1]
            second = (period.weekday_start_2, period.weekday_end_2)

        blocks = [TimeBlock(start=start, end=end)]
        if second[0] and second[1]:
            blocks.append(TimeBlock(start=second[0], end=second[1]))
        return _build_schedule(
            blocks, period.hours_per_day, ScheduleSource.SPECIAL_PERIOD, period.name
        )

    if is_friday:
        block = TimeBlock(start=defaults.friday_start, end=defaults.friday_end)
        explicit = defaults.friday_hours
    else:
        block = TimeBlock(start=defaults.weekday_start, end=defaults.weekday_end)
        explicit = defaults.weekday_hours
    return _build_schedule([block], explicit, ScheduleSource.DEFAULT)


def has_active_split_special_period(on_date: date, special_periods: list[SpecialPeriod]) -> bool:
    period = _active_special_period(on_date, special_periods)
    return bool(period and period.is_split)


async def get_work_schedule(member: TeamMember | None, on_date: date) -> WorkSchedule:
    """Load special periods for the date and resolve the member's schedule."""
    special_periods = await get_special_periods_covering(on_date)
    schedule = resolve_work_schedule(
        member, on_date, special_periods, WorkHoursDefaults.from_settings(settings)
    )
    logger.debug(
        "Work schedule resolved",
        user_id=member.user_id if member else None,
        date=on_date.isoformat(),
        source=schedule.source.value,
        blocks=[f"{b.start}-{b.end}" for b in schedule.blocks],
        total_expected_hours=schedule.total_expected_hours,
    )
    return schedule
