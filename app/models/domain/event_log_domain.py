# app/models/domain/event_log_domain.py
"""
Event Log Domain Models
Rows of the insert-only analytics log. A correction is a new row; readers
take the latest row per key.
"""

from datetime import UTC, date, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class LogEntry(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=_utcnow)
    log_date: date


class PromptLogEntry(LogEntry):
    user_id: str
    prompt_type: str
    message_text: str | None = None


class PromptResponseLogEntry(LogEntry):
    user_id: str
    prompt_type: str
    response_text: str | None = None


class CheckInLogEntry(LogEntry):
    user_id: str
    response_text: str | None = None
    is_late: bool = False


class ReportLogEntry(LogEntry):
    """One EOD report row; tasks/blockers/priorities are flattened for reporting."""

    user_id: str
    tasks_completed: str | None = None
    blockers: str | None = None
    tomorrow_priority: str | None = None
    hours_worked: float | None = None
    raw_response: str | None = None
    source: Literal["structured", "free_text", "hours_update"]
    details: dict[str, Any] | None = None


class MissedResponseLogEntry(LogEntry):
    user_id: str
    missed_type: str


class EscalationLogEntry(LogEntry):
    user_id: str
    escalation_type: str
    recipients: str | None = None


class SystemEventLogEntry(LogEntry):
    event_type: str
    status: str
    details: dict[str, Any] | None = None


class BotErrorLogEntry(LogEntry):
    function_name: str
    error_message: str | None = None
    details: dict[str, Any] | None = None
