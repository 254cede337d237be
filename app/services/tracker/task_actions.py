# app/services/tracker/task_actions.py
"""
Task action buttons on the status prompt.

Each due task gets Done / In progress / Tomorrow buttons. Tomorrow first asks
for a delay reason, then marks the task delayed with that reason code.
"""

from typing import Any

from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import ChatReply
from app.models.domain.tracker_domain import (
    DelayReason,
    TaskCardAction,
    TaskStatusAction,
    TrackerTask,
)
from app.services.tracker.task_tracker_client import TaskTrackerError, task_tracker_client

logger = get_logger(__name__)

MAX_TASK_CARDS = 10
STALE_CARD = "That task card is out of date. Please use the buttons on your latest prompt."

BUTTON_LABELS = {
    TaskCardAction.COMPLETE: "Done",
    TaskCardAction.IN_PROGRESS: "In progress",
    TaskCardAction.DELAY: "Tomorrow",
}

STATUS_BY_CARD_ACTION = {
    TaskCardAction.COMPLETE: TaskStatusAction.COMPLETE,
    TaskCardAction.IN_PROGRESS: TaskStatusAction.IN_PROGRESS,
    TaskCardAction.DELAY_REASON: TaskStatusAction.DELAYED,
}


def _button(action: TaskCardAction, label: str, **params: str) -> dict[str, Any]:
    return {"name": action.value, "label": label, "params": params}


def _due_label(task: TrackerTask) -> str:
    if task.is_overdue:
        return f"Overdue ({task.days_overdue}d)"
    if task.due_date:
        return f"Due {task.due_date:%a %b %d}"
    return "Due today"


def task_list_card(tasks: list[TrackerTask]) -> dict[str, Any] | None:
    """One row per due task with its status buttons, or None without tasks."""
    if not tasks:
        return None
    rows = []
    for task in tasks[:MAX_TASK_CARDS]:
        rows.append(
            {
                "task_id": task.id,
                "name": task.name,
                "subtitle": _due_label(task),
                "list_name": task.list_name,
                "actions": [
                    _button(action, label, task_id=task.id, task_name=task.name)
                    for action, label in BUTTON_LABELS.items()
                ],
            }
        )
    return {"card_id": "task_actions", "title": "Update your tasks", "tasks": rows}


def delay_reason_card(task_id: str, task_name: str) -> dict[str, Any]:
    return {
        "card_id": f"delay_reason_{task_id}",
        "title": "Moving to tomorrow",
        "subtitle": task_name,
        "actions": [
            _button(
                TaskCardAction.DELAY_REASON,
                reason.label,
                task_id=task_id,
                task_name=task_name,
                reason=reason.value,
            )
            for reason in DelayReason
        ],
    }


async def handle_task_action(
    user_id: str, action: TaskCardAction, params: dict[str, Any]
) -> ChatReply:
    task_id = str(params.get("task_id") or "")
    task_name = str(params.get("task_name") or "this task")
    if not task_id:
        return ChatReply(text=STALE_CARD)

    if action == TaskCardAction.DELAY:
        return ChatReply(
            text="Quick note: why is this moving?", card=delay_reason_card(task_id, task_name)
        )

    reason_code = None
    if action == TaskCardAction.DELAY_REASON:
        try:
            reason = DelayReason(params.get("reason"))
        except ValueError:
            return ChatReply(text=STALE_CARD)
        reason_code = reason.value
        done_text = f'Moved to tomorrow: "{task_name}"\nReason: {reason.label}'
    elif action == TaskCardAction.COMPLETE:
        done_text = f'Marked done: "{task_name}"'
    else:
        done_text = f'Updated to in progress: "{task_name}"'

    try:
        await task_tracker_client.update_task_status(
            task_id, STATUS_BY_CARD_ACTION[action], reason_code
        )
    except TaskTrackerError as e:
        logger.error(
            "Task action failed",
            user_id=user_id,
            task_id=task_id,
            action=action.value,
            error=str(e),
        )
        return ChatReply(text=f'Couldn\'t update "{task_name}" just now. Please try again.')

    logger.info(
        "Task action applied",
        user_id=user_id,
        task_id=task_id,
        action=action.value,
        reason_code=reason_code,
    )
    return ChatReply(text=done_text)
