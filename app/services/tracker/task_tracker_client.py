# app/services/tracker/task_tracker_client.py
"""
Task tracker (ClickUp-style REST API) client.

Lists a user's due tasks for the prompt and EOD pre-fill, and updates task
status. A 429 is retried once after a wait; every other failure surfaces as
TaskTrackerError.
"""

import asyncio
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.tracker_domain import TaskPeriod, TaskStatusAction, TrackerTask
from app.services.schedule.workday_calendar import local_now, org_timezone

logger = get_logger(__name__)

REQUEST_TIMEOUT = httpx.Timeout(20.0, connect=5.0)
RATE_LIMIT_STATUS = 429

STATUS_BY_ACTION = {
    TaskStatusAction.COMPLETE: "complete",
    TaskStatusAction.IN_PROGRESS: "in progress",
    TaskStatusAction.DELAYED: "in progress",
}


class TaskTrackerError(Exception):
    """Raised when the task tracker API call fails."""

    def __init__(self, message: str, status_code: int | None = None, recoverable: bool = True):
        super().__init__(message)
        self.status_code = status_code
        self.recoverable = recoverable


def _parse_due_date(raw_due: Any) -> date | None:
    """Tracker due dates are epoch milliseconds (as int or string)."""
    if raw_due in (None, ""):
        return None
    try:
        moment = datetime.fromtimestamp(int(raw_due) / 1000, tz=UTC)
    except (TypeError, ValueError):
        return None
    return moment.astimezone(org_timezone()).date()


def normalize_task(raw: dict[str, Any], today: date) -> TrackerTask:
    status = raw.get("status")
    if isinstance(status, dict):
        status = status.get("status")

    due = _parse_due_date(raw.get("due_date"))
    days_overdue = (today - due).days if due and due < today else 0
    list_info = raw.get("list") or {}

    return TrackerTask(
        id=str(raw["id"]),
        name=raw.get("name") or "(untitled task)",
        due_date=due,
        is_overdue=days_overdue > 0,
        days_overdue=days_overdue,
        status=status,
        url=raw.get("url"),
        list_name=list_info.get("name") if isinstance(list_info, dict) else None,
    )


def sort_tasks(tasks: list[TrackerTask]) -> list[TrackerTask]:
    """Overdue first (most days overdue first), then by due date, undated last."""
    return sorted(
        tasks,
        key=lambda t: (
            not t.is_overdue,
            -t.days_overdue,
            t.due_date is None,
            t.due_date or date.max,
        ),
    )


def period_end(today: date, period: TaskPeriod) -> date:
    if period == TaskPeriod.WEEK:
        return today + timedelta(days=6 - today.weekday())
    return today


class TaskTrackerClient:
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        rate_limit_wait_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url
        self._token = token
        self._rate_limit_wait_s = rate_limit_wait_s
        self._transport = transport

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.TASK_TRACKER_BASE_URL).rstrip("/")

    @property
    def rate_limit_wait_s(self) -> float:
        if self._rate_limit_wait_s is not None:
            return self._rate_limit_wait_s
        return settings.TASK_TRACKER_RATE_LIMIT_WAIT_SECONDS

    def _headers(self) -> dict[str, str]:
        token = self._token or settings.TASK_TRACKER_TOKEN
        if not token:
            raise TaskTrackerError("TASK_TRACKER_TOKEN not configured", recoverable=False)
        return {"Authorization": token, "Content-Type": "application/json"}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        headers = self._headers()

        async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT, transport=self._transport) as client:
            for attempt in (1, 2):
                try:
                    response = await client.request(
                        method, url, params=params, json=json, headers=headers
                    )
                except httpx.RequestError as e:
                    logger.error(
                        "Task tracker request failed",
                        path=path,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    raise TaskTrackerError(f"Network error calling task tracker: {e}") from e

                if response.status_code == RATE_LIMIT_STATUS and attempt == 1:
                    wait_s = self._retry_after(response)
                    logger.warning("Task tracker rate limited, retrying once", path=path, wait_s=wait_s)
                    await asyncio.sleep(wait_s)
                    continue

                if response.status_code >= 400:
                    logger.error(
                        "Task tracker returned error",
                        path=path,
                        status_code=response.status_code,
                        body_preview=response.text[:200],
                    )
                    raise TaskTrackerError(
                        f"Task tracker returned {response.status_code}",
                        status_code=response.status_code,
                        recoverable=response.status_code == RATE_LIMIT_STATUS
                        or response.status_code >= 500,
                    )

                return response.json() if response.content else {}

        raise TaskTrackerError("Task tracker request exhausted retries")

    def _retry_after(self, response: httpx.Response) -> float:
        header = response.headers.get("Retry-After")
        try:
            return min(float(header), self.rate_limit_wait_s) if header else self.rate_limit_wait_s
        except ValueError:
            return self.rate_limit_wait_s

    async def get_tasks_due(
        self,
        tracker_user_id: str,
        period: TaskPeriod = TaskPeriod.TODAY,
        today: date | None = None,
    ) -> list[TrackerTask]:
        """Open tasks assigned to the user and due by the end of the period (overdue included)."""
        today = today or local_now().date()
        end = datetime.combine(period_end(today, period), time.max, tzinfo=org_timezone())

        data = await self._request(
            "GET",
            f"/team/{settings.TASK_TRACKER_TEAM_ID}/task",
            params={
                "assignees[]": tracker_user_id,
                "due_date_lt": int(end.timestamp() * 1000),
                "include_closed": "false",
                "subtasks": "true",
            },
        )

        tasks = [normalize_task(raw, today) for raw in data.get("tasks", [])]
        logger.info(
            "Tracker tasks fetched",
            tracker_user_id=tracker_user_id,
            period=period.value,
            task_count=len(tasks),
            overdue_count=sum(1 for t in tasks if t.is_overdue),
        )
        return sort_tasks(tasks)

    async def update_task_status(
        self, task_id: str, action: TaskStatusAction, reason_code: str | None = None
    ) -> bool:
        await self._request("PUT", f"/task/{task_id}", json={"status": STATUS_BY_ACTION[action]})

        if action == TaskStatusAction.DELAYED and reason_code:
            await self._request(
                "POST",
                f"/task/{task_id}/comment",
                json={"comment_text": f"Delayed: {reason_code}", "notify_all": False},
            )

        logger.info(
            "Tracker task status updated",
            task_id=task_id,
            action=action.value,
            reason_code=reason_code,
        )
        return True


task_tracker_client = TaskTrackerClient()
