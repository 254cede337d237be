# app/services/eod_form/summary.py
"""Canonical text summary of a submitted EOD draft and its flattened log fields."""

from typing import Any

from app.models.domain.eod_domain import MAX_CARRY_OVER_DAY, EodDraft, TaskEntry, TaskStatus

NEEDS_TRACKER_TASK = "[Needs tracker task creation]"


def format_hours(hours: float | None) -> str:
    """7.5 -> "7h 30m", 8 -> "8h"."""
    if not hours:
        return "0h"
    whole = int(hours)
    minutes = round((hours - whole) * 60)
    if minutes == 60:
        whole, minutes = whole + 1, 0
    return f"{whole}h" if minutes == 0 else f"{whole}h {minutes}m"


def _carry_over_label(task: TaskEntry) -> str:
    if task.carry_over_day == 0:
        return "New"
    day = "5+" if task.carry_over_day >= MAX_CARRY_OVER_DAY else str(task.carry_over_day)
    return f"Carry-over Day {day}"


def _status_label(task: TaskEntry) -> str:
    if task.status == TaskStatus.COMPLETED:
        return "Completed"
    if task.status == TaskStatus.IN_REVIEW:
        return "In Review"
    return f"In Progress ({task.progress_pct}%)"


def _short_status(task: TaskEntry) -> str:
    if task.status == TaskStatus.COMPLETED:
        return "Done"
    if task.status == TaskStatus.IN_REVIEW:
        return "Review"
    return f"{task.progress_pct}%"


def _priority_text(draft: EodDraft, separator: str) -> str:
    return separator.join(
        p.name + (f" ({p.link})" if p.link else "") for p in (draft.tomorrow or [])
    )


def format_eod_summary(draft: EodDraft) -> str:
    lines = [
        f"{draft.user_name or draft.user_id} | {draft.date_label or draft.log_date.isoformat()} "
        f"| Total Hours: {format_hours(draft.total_hours)}",
        "",
    ]

    for task in draft.tasks:
        link = NEEDS_TRACKER_TASK if task.needs_tracker_task else (task.tracker_link or "N/A")
        lines.append(
            f"Task: {task.name} | {task.hours:g}h | {_carry_over_label(task)} | {link}"
        )
        lines.append(task.outcome)
        if task.deliverable_link:
            lines.append(f"Deliverable: {task.deliverable_link}")
        lines.append(f"Status: {_status_label(task)}")
        if task.blocker:
            lines.append(
                f"Blocker: {task.blocker.what} > {task.blocker.owner} > {task.blocker.deadline}"
            )
        if task.issue:
            lines.append(f"Issue: {task.issue.what} > {task.issue.action}")
        lines.append("")

    meetings = draft.meetings
    meeting_line = f"Meetings: {meetings.count if meetings else 0} | "
    meeting_line += f"{meetings.total_hours if meetings else 0:g}h"
    if meetings and meetings.meeting_list:
        meeting_line += f" ({meetings.meeting_list})"
    lines.extend([meeting_line, ""])

    if draft.unplanned:
        lines.append(
            f"Unplanned: {draft.unplanned.description} | {draft.unplanned.hours:g}h "
            f"| {draft.unplanned.pulled_from}"
        )
        lines.append("")

    if draft.tomorrow:
        lines.append(f"Tomorrow: {_priority_text(draft, ' | ')}")

    return "\n".join(lines).rstrip("\n")


def flatten_report(draft: EodDraft, summary: str) -> dict[str, Any]:
    """Aggregate fields of the report row."""
    tasks_completed = "; ".join(
        f"{task.name} ({task.hours:g}h, {_short_status(task)})" for task in draft.tasks
    )
    blockers = "; ".join(
        f"{t.blocker.what} > {t.blocker.owner} > {t.blocker.deadline}"
        for t in draft.tasks
        if t.blocker
    )
    return {
        "tasks_completed": tasks_completed,
        "blockers": blockers or None,
        "tomorrow_priority": _priority_text(draft, "; ") or None,
        "hours_worked": draft.total_hours,
        "raw_response": summary,
    }
