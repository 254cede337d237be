# app/services/eod_form/validation.py
"""
Field validation for the structured EOD wizard.

Every validator is pure: it takes the submitted form values and returns the
parsed slice (or None) together with a list of blocking error messages.
Submission warnings are computed from a complete draft.
"""

import re
from dataclasses import dataclass, field

from app.models.domain.eod_domain import (
    MAX_CARRY_OVER_DAY,
    Blocker,
    EodDraft,
    EodStep,
    Issue,
    MeetingInfo,
    Priority,
    TaskEntry,
    TaskStatus,
    UnplannedInfo,
)

FormValues = dict[str, str]

MAX_HOURS = 24.0
MAX_PRIORITIES = 3
MEETING_NOTE_THRESHOLD_HOURS = 2.0
HOURS_MISMATCH_TOLERANCE = 0.083  # 5 minutes
LOW_TASK_HOURS_THRESHOLD = 6.0
CARRY_OVER_REVIEW_DAY = 4
SPECIFIC_OUTCOME_MIN_WORDS = 10

VAGUE_OUTCOME_PATTERNS = [
    re.compile(r"^worked on\s+\w+(\s+\w+)?\s*\.?$", re.IGNORECASE),
    re.compile(r"^continued\s+\w+(\s+\w+)?\s*\.?$", re.IGNORECASE),
    re.compile(r"^did some\s+", re.IGNORECASE),
    re.compile(r"^made progress on\s+\w+(\s+\w+)?\s*\.?$", re.IGNORECASE),
]

ACTION_VERBS = frozenset(
    {
        "created", "drafted", "sent", "uploaded", "reviewed", "approved", "fixed",
        "resolved", "migrated", "deployed", "designed", "built", "implemented",
        "completed", "delivered", "submitted", "merged", "tested", "configured",
        "organized", "published", "updated", "added", "removed", "refactored",
        "debugged", "integrated", "optimized",
    }
)  # fmt: skip

URL_PREFIXES = ("http://", "https://")


@dataclass
class SubmissionReview:
    """Blocking errors (each tied to the step that fixes it) and non-blocking warnings."""

    errors: list[tuple[EodStep, str]] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def first_error_step(self) -> EodStep | None:
        return self.errors[0][0] if self.errors else None


def _value(form: FormValues, key: str) -> str:
    return (form.get(key) or "").strip()


def _flag(form: FormValues, key: str) -> bool:
    return _value(form, key).lower() in ("true", "on", "yes", "1")


def parse_number(raw: str) -> float | None:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


def parse_carry_over(raw: str) -> int:
    """Map "new" to 0 and "carry_3" or "3" to 3, capped at day 5+."""
    raw = (raw or "").strip().lower()
    if not raw or raw == "new":
        return 0
    digits = raw.removeprefix("carry_")
    if not digits.isdigit():
        return 0
    return min(int(digits), MAX_CARRY_OVER_DAY)


def is_vague_outcome(text: str) -> bool:
    """
    True for outcomes that don't say what was produced.

    Matches the "worked on X" family of templates, or short text (under 10
    words) with no number and no action verb.
    """
    text = (text or "").strip()
    if not text:
        return True

    if any(pattern.search(text) for pattern in VAGUE_OUTCOME_PATTERNS):
        return True

    words = text.split()
    if len(words) >= SPECIFIC_OUTCOME_MIN_WORDS:
        return False
    if any(ch.isdigit() for ch in text):
        return False
    tokens = set(re.findall(r"[a-z]+", text.lower()))
    return not (tokens & ACTION_VERBS)


def validate_total_hours(form: FormValues) -> tuple[float | None, list[str]]:
    raw = _value(form, "total_hours")
    if not raw:
        return None, ["Total hours are required"]
    hours = parse_number(raw)
    if hours is None or hours <= 0 or hours > MAX_HOURS:
        return None, ["Total hours must be greater than 0 and at most 24"]
    return hours, []


def _all_or_nothing(values: list[str]) -> bool:
    filled = [bool(v) for v in values]
    return all(filled) or not any(filled)


def validate_task_form(form: FormValues, link_prefix: str) -> tuple[TaskEntry | None, list[str]]:
    errors: list[str] = []

    name = _value(form, "task_name")
    if not name:
        errors.append("Task name is required")

    hours_raw = _value(form, "task_hours")
    hours = parse_number(hours_raw)
    if not hours_raw:
        errors.append("Task hours are required")
    elif hours is None or hours <= 0 or hours > MAX_HOURS:
        errors.append("Task hours must be greater than 0 and at most 24")

    needs_tracker_task = _flag(form, "no_tracker_task")
    tracker_link = _value(form, "tracker_link") or None
    if needs_tracker_task:
        tracker_link = None
    elif not tracker_link:
        errors.append("Tracker link is required (or mark the task as needing creation)")
    elif not tracker_link.startswith(link_prefix):
        errors.append(f"Tracker link must start with {link_prefix}")

    status = None
    try:
        status = TaskStatus(_value(form, "task_status"))
    except ValueError:
        errors.append("Select a task status")

    outcome = _value(form, "outcome")
    if not outcome:
        errors.append("Outcome is required")
    elif is_vague_outcome(outcome):
        errors.append(
            "Outcome is too vague. Say what was produced or changed "
            "(e.g. 'Drafted 3 ad variants and sent for approval')"
        )

    deliverable_link = _value(form, "deliverable_link") or None
    if status in (TaskStatus.COMPLETED, TaskStatus.IN_REVIEW):
        if not deliverable_link:
            errors.append("Deliverable link is required for completed or in-review tasks")
        elif not deliverable_link.startswith(URL_PREFIXES):
            errors.append("Deliverable link must be a valid URL")

    progress_pct = None
    if status == TaskStatus.IN_PROGRESS:
        progress = parse_number(_value(form, "progress_pct"))
        if progress is None or not progress.is_integer() or not 1 <= progress <= 99:
            errors.append("Progress must be a whole number from 1 to 99%")
        else:
            progress_pct = int(progress)

    blocker_values = [_value(form, k) for k in ("blocker_what", "blocker_owner", "blocker_deadline")]
    if not _all_or_nothing(blocker_values):
        errors.append("Blocker needs what, owner and deadline (or leave all three empty)")

    issue_values = [_value(form, k) for k in ("issue_what", "issue_action")]
    if not _all_or_nothing(issue_values):
        errors.append("Issue needs both what happened and the action taken (or leave both empty)")

    if errors:
        return None, errors

    blocker = None
    if all(blocker_values):
        blocker = Blocker(what=blocker_values[0], owner=blocker_values[1], deadline=blocker_values[2])
    issue = Issue(what=issue_values[0], action=issue_values[1]) if all(issue_values) else None

    task = TaskEntry(
        name=name,
        hours=hours,
        carry_over_day=parse_carry_over(_value(form, "carry_over")),
        tracker_link=tracker_link,
        needs_tracker_task=needs_tracker_task,
        status=status,
        outcome=outcome,
        deliverable_link=deliverable_link if status != TaskStatus.IN_PROGRESS else None,
        progress_pct=progress_pct,
        blocker=blocker,
        issue=issue,
    )
    return task, []


def is_empty_task_form(form: FormValues) -> bool:
    keys = ("task_name", "task_hours", "tracker_link", "outcome", "deliverable_link")
    return not any(_value(form, key) for key in keys)


def validate_meetings_form(form: FormValues) -> tuple[MeetingInfo | None, list[str]]:
    errors: list[str] = []

    count_raw = _value(form, "meeting_count") or "0"
    time_raw = _value(form, "meeting_total_time") or "0"
    count = parse_number(count_raw)
    total_time = parse_number(time_raw)

    if count is None or count < 0 or not count.is_integer():
        return None, ["Meeting count must be a whole number"]
    if total_time is None or total_time < 0 or total_time > MAX_HOURS:
        return None, ["Meeting time must be a number of hours between 0 and 24"]

    count = int(count)
    meeting_list = _value(form, "meeting_list") or None
    note = _value(form, "high_meeting_note") or None

    if count > 0 and total_time <= 0:
        errors.append("Meeting time must be > 0 when count > 0")
    if count == 0 and total_time > 0:
        errors.append("Meeting count must be > 0 when meeting time is entered")
    if count > 0 and not meeting_list:
        errors.append("List the meetings you attended")
    if total_time > MEETING_NOTE_THRESHOLD_HOURS and not note:
        errors.append("Meeting time over 2h needs a short justification")

    if errors:
        return None, errors
    return (
        MeetingInfo(
            count=count, total_hours=total_time, meeting_list=meeting_list, high_meeting_note=note
        ),
        [],
    )


def validate_unplanned_form(form: FormValues) -> tuple[UnplannedInfo | None, list[str]]:
    """Empty form means no unplanned work; otherwise every field is required."""
    description = _value(form, "unplanned_desc")
    hours_raw = _value(form, "unplanned_hours")
    pulled_from = _value(form, "unplanned_pulled_from")

    if not (description or hours_raw or pulled_from):
        return None, []

    errors: list[str] = []
    if not description:
        errors.append("Unplanned work needs a description")
    hours = parse_number(hours_raw)
    if hours is None or hours <= 0 or hours > MAX_HOURS:
        errors.append("Unplanned hours must be greater than 0")
    if not pulled_from:
        errors.append("Say what the unplanned work pulled time from")

    if errors:
        return None, errors
    return UnplannedInfo(description=description, hours=hours, pulled_from=pulled_from), []


def validate_tomorrow_form(form: FormValues) -> tuple[list[Priority] | None, list[str]]:
    priorities: list[Priority] = []
    errors: list[str] = []

    for i in range(1, MAX_PRIORITIES + 1):
        name = _value(form, f"priority{i}_name")
        link = _value(form, f"priority{i}_link") or None
        if name:
            priorities.append(Priority(name=name, link=link))
        elif link:
            errors.append(f"Priority {i} has a link but no name")

    if not priorities and not errors:
        errors.append("Add at least one priority for tomorrow")

    if errors:
        return None, errors
    return priorities, []


def review_submission(draft: EodDraft) -> SubmissionReview:
    """Cross-step checks run when the user submits the final step."""
    review = SubmissionReview()

    if draft.total_hours is None:
        review.errors.append((EodStep.HEADER, "Total hours are missing"))
    if not draft.tasks:
        review.errors.append((EodStep.TASK, "Add at least one task"))
    if draft.meetings is None:
        review.errors.append((EodStep.MEETINGS, "The meetings step is incomplete"))
    if not draft.tomorrow:
        review.errors.append((EodStep.TOMORROW, "Add at least one priority for tomorrow"))

    if review.errors:
        return review

    accounted = draft.accounted_hours
    if abs(draft.total_hours - accounted) > HOURS_MISMATCH_TOLERANCE:
        review.warnings.append(
            f"Hours don't add up: total {draft.total_hours:g}h vs {accounted:g}h "
            "in tasks, meetings and unplanned work"
        )

    if draft.task_hours < LOW_TASK_HOURS_THRESHOLD:
        review.warnings.append(f"Only {draft.task_hours:g}h logged against tasks (under 6h)")

    for task in draft.tasks:
        if task.carry_over_day >= CARRY_OVER_REVIEW_DAY:
            day = "5+" if task.carry_over_day >= MAX_CARRY_OVER_DAY else str(task.carry_over_day)
            review.warnings.append(f"'{task.name}' is on carry-over day {day}, flagged for lead review")

    needs_creation = [task.name for task in draft.tasks if task.needs_tracker_task]
    if needs_creation:
        review.warnings.append("Tasks needing tracker task creation: " + ", ".join(needs_creation))

    return review
