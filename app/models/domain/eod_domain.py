# app/models/domain/eod_domain.py
"""
EOD Domain Models
Server-held draft of the structured end-of-day wizard and the entries it
collects step by step.
"""

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field

MAX_CARRY_OVER_DAY = 5  # "day 5+"


class EodStep(str, Enum):
    HEADER = "header"
    TASK = "task"
    MEETINGS = "meetings"
    UNPLANNED = "unplanned"
    TOMORROW = "tomorrow"

    @property
    def order(self) -> int:
        return list(EodStep).index(self)


class TaskStatus(str, Enum):
    COMPLETED = "completed"
    IN_REVIEW = "in_review"
    IN_PROGRESS = "in_progress"


def task_status_from_tracker(status: str | None) -> TaskStatus:
    """Map a tracker's free-form status onto the EOD task status."""
    status = (status or "").lower()
    if any(word in status for word in ("close", "done", "complete")):
        return TaskStatus.COMPLETED
    if "review" in status:
        return TaskStatus.IN_REVIEW
    return TaskStatus.IN_PROGRESS


class Blocker(BaseModel):
    what: str
    owner: str
    deadline: str


class Issue(BaseModel):
    what: str
    action: str


class TaskEntry(BaseModel):
    name: str
    hours: float = Field(..., gt=0, le=24)
    carry_over_day: int = Field(0, ge=0, le=MAX_CARRY_OVER_DAY)  # 0 = new today
    tracker_link: str | None = None
    needs_tracker_task: bool = False
    status: TaskStatus
    outcome: str
    deliverable_link: str | None = None
    progress_pct: int | None = Field(None, ge=1, le=99)
    blocker: Blocker | None = None
    issue: Issue | None = None


class MeetingInfo(BaseModel):
    count: int = 0
    total_hours: float = 0.0
    meeting_list: str | None = None
    high_meeting_note: str | None = None


class UnplannedInfo(BaseModel):
    description: str
    hours: float = Field(..., gt=0)
    pulled_from: str


class Priority(BaseModel):
    name: str
    link: str | None = None


class SourceTask(BaseModel):
    """Tracker task snapshot used to pre-fill task cards."""

    id: str
    name: str
    url: str | None = None
    status: str | None = None
    list_name: str | None = None
    is_overdue: bool = False
    days_overdue: int = 0


class EodDraft(BaseModel):
    user_id: str
    user_name: str = ""
    date_label: str = ""
    log_date: date
    step: EodStep = EodStep.HEADER
    total_hours: float | None = None
    tasks: list[TaskEntry] = Field(default_factory=list)
    current_task_index: int = 0
    meetings: MeetingInfo | None = None
    unplanned: UnplannedInfo | None = None
    tomorrow: list[Priority] | None = None
    source_task_cache: list[SourceTask] = Field(default_factory=list)

    @property
    def task_hours(self) -> float:
        return sum(task.hours for task in self.tasks)

    @property
    def accounted_hours(self) -> float:
        meeting_hours = self.meetings.total_hours if self.meetings else 0.0
        unplanned_hours = self.unplanned.hours if self.unplanned else 0.0
        return self.task_hours + meeting_hours + unplanned_hours


class EodFormAction(str, Enum):
    """Card buttons of the wizard."""

    HEADER = "eod_header"
    TASK_NEXT = "eod_task_next"
    TASK_DONE = "eod_task_done"
    MEETINGS_TO_TOMORROW = "eod_meetings_tomorrow"
    MEETINGS_TO_UNPLANNED = "eod_meetings_unplanned"
    UNPLANNED = "eod_unplanned"
    TOMORROW = "eod_tomorrow"
    CONFIRM_SUBMIT = "eod_confirm_submit"
