# app/services/eod_form/cards.py
"""
Structured card payloads for each wizard step.

A card carries the step, the pre-filled field values, any error messages and
the actions the user can take. Rendering is left to the chat platform.
"""

from typing import Any

from app.models.domain.eod_domain import (
    MAX_CARRY_OVER_DAY,
    EodDraft,
    EodFormAction,
    EodStep,
    task_status_from_tracker,
)


def _card(
    step: EodStep,
    title: str,
    fields: dict[str, Any],
    actions: list[EodFormAction],
    errors: list[str] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    card = {
        "card_id": f"eod_{step.value}",
        "step": step.value,
        "title": title,
        "fields": fields,
        "actions": [action.value for action in actions],
        "errors": errors or [],
    }
    card.update(extra)
    return card


def header_card(draft: EodDraft, errors: list[str] | None = None) -> dict[str, Any]:
    fields = {"total_hours": "" if draft.total_hours is None else f"{draft.total_hours:g}"}
    return _card(
        EodStep.HEADER,
        f"End of day report: {draft.date_label}",
        fields,
        [EodFormAction.HEADER],
        errors,
    )


def task_prefill(draft: EodDraft, task_index: int) -> dict[str, Any]:
    """Saved values for an existing task, else the matching tracker task, else blank."""
    if task_index < len(draft.tasks):
        task = draft.tasks[task_index]
        return {
            "task_name": task.name,
            "task_hours": f"{task.hours:g}",
            "carry_over": f"carry_{task.carry_over_day}" if task.carry_over_day else "new",
            "tracker_link": task.tracker_link or "",
            "no_tracker_task": "true" if task.needs_tracker_task else "",
            "task_status": task.status.value,
            "outcome": task.outcome,
            "deliverable_link": task.deliverable_link or "",
            "progress_pct": "" if task.progress_pct is None else str(task.progress_pct),
            "blocker_what": task.blocker.what if task.blocker else "",
            "blocker_owner": task.blocker.owner if task.blocker else "",
            "blocker_deadline": task.blocker.deadline if task.blocker else "",
            "issue_what": task.issue.what if task.issue else "",
            "issue_action": task.issue.action if task.issue else "",
        }

    if task_index < len(draft.source_task_cache):
        source = draft.source_task_cache[task_index]
        carry = min(source.days_overdue, MAX_CARRY_OVER_DAY) if source.is_overdue else 0
        return {
            "task_name": source.name,
            "tracker_link": source.url or "",
            "task_status": task_status_from_tracker(source.status).value,
            "carry_over": f"carry_{carry}" if carry else "new",
        }

    return {}


def task_card(draft: EodDraft, task_index: int, errors: list[str] | None = None) -> dict[str, Any]:
    return _card(
        EodStep.TASK,
        f"Task {task_index + 1}",
        task_prefill(draft, task_index),
        [EodFormAction.TASK_NEXT, EodFormAction.TASK_DONE],
        errors,
        task_index=task_index,
        saved_tasks=len(draft.tasks),
    )


def meetings_card(draft: EodDraft, errors: list[str] | None = None) -> dict[str, Any]:
    meetings = draft.meetings
    fields = {
        "meeting_count": str(meetings.count) if meetings else "0",
        "meeting_total_time": f"{meetings.total_hours:g}" if meetings else "0",
        "meeting_list": (meetings.meeting_list or "") if meetings else "",
        "high_meeting_note": (meetings.high_meeting_note or "") if meetings else "",
    }
    return _card(
        EodStep.MEETINGS,
        "Meetings",
        fields,
        [EodFormAction.MEETINGS_TO_TOMORROW, EodFormAction.MEETINGS_TO_UNPLANNED],
        errors,
    )


def unplanned_card(draft: EodDraft, errors: list[str] | None = None) -> dict[str, Any]:
    unplanned = draft.unplanned
    fields = {
        "unplanned_desc": unplanned.description if unplanned else "",
        "unplanned_hours": f"{unplanned.hours:g}" if unplanned else "",
        "unplanned_pulled_from": unplanned.pulled_from if unplanned else "",
    }
    return _card(EodStep.UNPLANNED, "Unplanned work", fields, [EodFormAction.UNPLANNED], errors)


def tomorrow_card(draft: EodDraft, errors: list[str] | None = None) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for i, priority in enumerate(draft.tomorrow or [], start=1):
        fields[f"priority{i}_name"] = priority.name
        fields[f"priority{i}_link"] = priority.link or ""
    return _card(EodStep.TOMORROW, "Tomorrow's priorities", fields, [EodFormAction.TOMORROW], errors)


def warning_card(draft: EodDraft, warnings: list[str]) -> dict[str, Any]:
    return _card(
        EodStep.TOMORROW,
        "Please review before submitting",
        {},
        [EodFormAction.CONFIRM_SUBMIT, EodFormAction.TOMORROW],
        warnings=warnings,
    )


def card_for_step(draft: EodDraft, step: EodStep, errors: list[str] | None = None) -> dict[str, Any]:
    if step == EodStep.HEADER:
        return header_card(draft, errors)
    if step == EodStep.TASK:
        return task_card(draft, draft.current_task_index, errors)
    if step == EodStep.MEETINGS:
        return meetings_card(draft, errors)
    if step == EodStep.UNPLANNED:
        return unplanned_card(draft, errors)
    return tomorrow_card(draft, errors)
