from app.models.domain.conversation_domain import PromptType
from app.models.domain.schedule_domain import ScheduleSource, TimeBlock, WorkSchedule
from app.services.schedule.dispatch_windows import (
    has_window_after_midnight,
    is_time_for_prompt,
    prompt_window,
    window_closed,
)


def _schedule(*blocks) -> WorkSchedule:
    return WorkSchedule(
        blocks=[TimeBlock(start=s, end=e) for s, e in blocks],
        total_expected_hours=8,
        source=ScheduleSource.CUSTOM,
    )


def test_windows_anchor_on_first_start_and_last_end():
    schedule = _schedule(("09:00", "12:00"), ("13:00", "17:00"))

    assert prompt_window(schedule, PromptType.STATUS) == (540, 555)
    assert prompt_window(schedule, PromptType.STATUS_FOLLOWUP) == (560, 575)
    assert prompt_window(schedule, PromptType.EOD) == (990, 1005)
    assert prompt_window(schedule, PromptType.EOD_FOLLOWUP) == (1010, 1025)


def test_window_bounds_are_inclusive():
    schedule = _schedule(("09:00", "17:00"))

    assert is_time_for_prompt(schedule, PromptType.STATUS, 540)
    assert is_time_for_prompt(schedule, PromptType.STATUS, 555)
    assert not is_time_for_prompt(schedule, PromptType.STATUS, 556)
    assert not is_time_for_prompt(schedule, PromptType.STATUS, 539)


def test_gap_between_status_and_followup():
    schedule = _schedule(("09:00", "17:00"))

    for minute in range(556, 560):
        assert not is_time_for_prompt(schedule, PromptType.STATUS, minute)
        assert not is_time_for_prompt(schedule, PromptType.STATUS_FOLLOWUP, minute)


def test_overnight_eod_window_is_measured_from_the_start_day():
    schedule = _schedule(("18:00", "02:00"))

    # EOD window is [01:30, 01:45] of the following day
    assert is_time_for_prompt(schedule, PromptType.EOD, 1440 + 95)
    assert not is_time_for_prompt(schedule, PromptType.EOD, 1440 + 120)
    assert is_time_for_prompt(schedule, PromptType.EOD_FOLLOWUP, 1440 + 125)


def test_early_minutes_do_not_match_the_same_day_overnight_window():
    schedule = _schedule(("18:00", "02:00"))

    assert not is_time_for_prompt(schedule, PromptType.EOD, 95)
    assert not is_time_for_prompt(schedule, PromptType.EOD_FOLLOWUP, 125)


def test_has_window_after_midnight():
    late_start = _schedule(("23:45", "07:45"))
    day_shift = _schedule(("09:00", "17:00"))

    assert has_window_after_midnight(late_start, [PromptType.STATUS])
    assert not has_window_after_midnight(day_shift, list(PromptType))


def test_window_closed():
    schedule = _schedule(("09:00", "17:00"))

    assert not window_closed(schedule, PromptType.STATUS_FOLLOWUP, 575)
    assert window_closed(schedule, PromptType.STATUS_FOLLOWUP, 576)
    assert window_closed(schedule, PromptType.EOD_FOLLOWUP, 1026)
