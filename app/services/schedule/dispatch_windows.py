# app/services/schedule/dispatch_windows.py
"""
Prompt dispatch windows, in minutes since midnight.

STATUS           [first start,      first start + 15]
STATUS_FOLLOWUP  [first start + 20, first start + 35]
EOD              [last end - 30,    last end - 15]
EOD_FOLLOWUP     [last end - 10,    last end + 5]

Windows are inclusive on both ends. A last block running past midnight keeps
its end beyond 24:00. The minutes after midnight belong to the day the shift
started, so callers check those against yesterday's schedule with now + 24h.
"""

from app.models.domain.conversation_domain import PromptType
from app.models.domain.schedule_domain import MINUTES_PER_DAY, WorkSchedule

WINDOW_OFFSETS: dict[PromptType, tuple[int, int]] = {
    PromptType.STATUS: (0, 15),
    PromptType.STATUS_FOLLOWUP: (20, 35),
    PromptType.EOD: (-30, -15),
    PromptType.EOD_FOLLOWUP: (-10, 5),
}


def prompt_window(schedule: WorkSchedule, prompt_type: PromptType) -> tuple[int, int]:
    anchor = (
        schedule.last_block.end_minutes
        if prompt_type.is_eod
        else schedule.first_block.start_minutes
    )
    low, high = WINDOW_OFFSETS[prompt_type]
    return anchor + low, anchor + high


def is_time_for_prompt(schedule: WorkSchedule, prompt_type: PromptType, now_minutes: int) -> bool:
    low, high = prompt_window(schedule, prompt_type)
    return low <= now_minutes <= high


def has_window_after_midnight(schedule: WorkSchedule, prompt_types) -> bool:
    return any(prompt_window(schedule, t)[1] >= MINUTES_PER_DAY for t in prompt_types)


def window_closed(schedule: WorkSchedule, prompt_type: PromptType, now_minutes: int) -> bool:
    """True once now is past the window's upper bound."""
    return now_minutes > prompt_window(schedule, prompt_type)[1]
