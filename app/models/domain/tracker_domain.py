# app/models/domain/tracker_domain.py
"""
Task Tracker Domain Models
Normalized view of tracker tasks used for prompts and EOD pre-fill.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel

from app.models.domain.eod_domain import SourceTask, TaskStatus, task_status_from_tracker


class TaskPeriod(str, Enum):
    TODAY = "today"
    WEEK = "week"


class TaskStatusAction(str, Enum):
    COMPLETE = "complete"
    IN_PROGRESS = "in_progress"
    DELAYED = "delayed"


class TrackerTask(BaseModel):
    id: str
    name: str
    due_date: date | None = None
    is_overdue: bool = False
    days_overdue: int = 0
    status: str | None = None
    url: str | None = None
    list_name: str | None = None

    def form_status(self) -> TaskStatus:
        return task_status_from_tracker(self.status)

    def to_source_task(self) -> SourceTask:
        return SourceTask(
            id=self.id,
            name=self.name,
            url=self.url,
            status=self.status,
            list_name=self.list_name,
            is_overdue=self.is_overdue,
            days_overdue=self.days_overdue,
        )


class TaskCardAction(str, Enum):
    """Buttons on the status prompt's task list."""

    COMPLETE = "task_complete"
    IN_PROGRESS = "task_in_progress"
    DELAY = "task_delay"
    DELAY_REASON = "task_delay_reason"


class DelayReason(str, Enum):
    WAITING_INPUT = "WAITING_INPUT"
    NO_TIME = "NO_TIME"
    SCOPE_CHANGED = "SCOPE_CHANGED"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return DELAY_REASON_LABELS[self]


DELAY_REASON_LABELS = {
    DelayReason.WAITING_INPUT: "Waiting on input",
    DelayReason.NO_TIME: "No time today",
    DelayReason.SCOPE_CHANGED: "Scope changed",
    DelayReason.OTHER: "Other",
}
