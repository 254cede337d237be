# app/repositories/event_log_repository.py
"""
Insert-only event log over Postgres.

Rows are never updated. The current value for a key is the most recently
inserted row for that key, so a correction (e.g. an hours update) is just a
new row.
"""

import re
from typing import Any, Generic, TypeVar

from psycopg.types.json import Jsonb

from app.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_log_domain import (
    BotErrorLogEntry,
    CheckInLogEntry,
    EscalationLogEntry,
    LogEntry,
    MissedResponseLogEntry,
    PromptLogEntry,
    PromptResponseLogEntry,
    ReportLogEntry,
    SystemEventLogEntry,
)

logger = get_logger(__name__)

EntryT = TypeVar("EntryT", bound=LogEntry)

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name}")
    return name


class AppendOnlyLog(Generic[EntryT]):
    """One insert-only table with latest-per-key reads."""

    def __init__(self, table: str, entry_type: type[EntryT], key_columns: tuple[str, ...]):
        self.table = _check_identifier(table)
        self.entry_type = entry_type
        self.key_columns = tuple(_check_identifier(c) for c in key_columns)
        self.columns = tuple(_check_identifier(c) for c in entry_type.model_fields)

    def _row_params(self, entry: EntryT) -> tuple:
        values = entry.model_dump()
        params = []
        for column in self.columns:
            value = values[column]
            params.append(Jsonb(value) if isinstance(value, dict) else value)
        return tuple(params)

    @with_db_retry()
    async def append(self, entry: EntryT) -> EntryT:
        """Insert one row."""
        placeholders = ", ".join(["%s"] * len(self.columns))
        query = f"INSERT INTO {self.table} ({', '.join(self.columns)}) VALUES ({placeholders})"
        await execute_query(query, self._row_params(entry))

        logger.debug("Event log row appended", table=self.table, entry_id=str(entry.id))
        return entry

    def _where(self, filters: dict[str, Any]) -> tuple[str, tuple]:
        if not filters:
            return "", ()
        clauses = [f"{_check_identifier(column)} = %s" for column in filters]
        return " WHERE " + " AND ".join(clauses), tuple(filters.values())

    @with_db_retry()
    async def latest(self, **key: Any) -> EntryT | None:
        """Most recently inserted row matching the key, or None."""
        where, params = self._where(key)
        query = f"SELECT * FROM {self.table}{where} ORDER BY created_at DESC LIMIT 1"
        row = await fetch_one(query, params)
        return self.entry_type.model_validate(row) if row else None

    @with_db_retry()
    async def latest_per_key(self, **filters: Any) -> list[EntryT]:
        """Latest row for every distinct key among rows matching the filters."""
        where, params = self._where(filters)
        keys = ", ".join(self.key_columns)
        query = (
            f"SELECT DISTINCT ON ({keys}) * FROM {self.table}{where} "
            f"ORDER BY {keys}, created_at DESC"
        )
        rows = await fetch_all(query, params)
        return [self.entry_type.model_validate(row) for row in rows]


prompt_log = AppendOnlyLog("prompt_log", PromptLogEntry, ("user_id", "log_date", "prompt_type"))
prompt_response_log = AppendOnlyLog(
    "prompt_responses", PromptResponseLogEntry, ("user_id", "log_date", "prompt_type")
)
check_in_log = AppendOnlyLog("check_ins", CheckInLogEntry, ("user_id", "log_date"))
eod_report_log = AppendOnlyLog("eod_reports", ReportLogEntry, ("user_id", "log_date"))
missed_response_log = AppendOnlyLog(
    "missed_responses", MissedResponseLogEntry, ("user_id", "log_date", "missed_type")
)
escalation_log = AppendOnlyLog(
    "escalations", EscalationLogEntry, ("user_id", "log_date", "escalation_type")
)
system_event_log = AppendOnlyLog("system_events", SystemEventLogEntry, ("event_type",))
bot_error_log = AppendOnlyLog("bot_errors", BotErrorLogEntry, ("function_name",))
