"""
Per-run metrics and error alerting shared by the scheduled jobs.
"""

from datetime import UTC, datetime

from app.config import settings
from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.event_log_domain import BotErrorLogEntry
from app.repositories.event_log_repository import bot_error_log
from app.services.messaging.chat_service import ChatServiceError, chat_service

logger = get_logger(__name__)


class JobMetrics:
    """Counters for one job run."""

    def __init__(self, job_name: str):
        self.job_name = job_name
        self.reset()

    def reset(self):
        """Reset all metrics for a new run."""
        self.start_time = datetime.now(UTC)
        self.users_considered = 0
        self.prompts_sent = 0
        self.deduplicated = 0
        self.skipped = 0
        self.failures = 0
        self.total_duration_seconds = 0.0
        self.errors: list[dict] = []

    def record_sent(self, user_id: str, kind: str):
        self.prompts_sent += 1
        logger.debug("Job action sent", user_id=user_id, kind=kind, job_run=self.job_name)

    def record_deduplicated(self, user_id: str, kind: str):
        self.deduplicated += 1
        logger.debug("Already handled today", user_id=user_id, kind=kind, job_run=self.job_name)

    def record_skipped(self, user_id: str, kind: str, reason: str):
        self.skipped += 1
        logger.debug(
            "Job action skipped", user_id=user_id, kind=kind, reason=reason, job_run=self.job_name
        )

    def record_failure(self, user_id: str, kind: str, error: Exception):
        self.failures += 1
        self.errors.append(
            {
                "user_id": user_id,
                "kind": kind,
                "error": str(error),
                "error_type": type(error).__name__,
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )
        logger.error(
            "Job action failed",
            user_id=user_id,
            kind=kind,
            error=str(error),
            error_type=type(error).__name__,
            job_run=self.job_name,
        )

    def finalize(self):
        self.total_duration_seconds = (datetime.now(UTC) - self.start_time).total_seconds()

    def to_dict(self) -> dict:
        """Convert metrics to dictionary for logging."""
        return {
            "job_run": self.job_name,
            "start_time": self.start_time.isoformat(),
            "total_duration_seconds": round(self.total_duration_seconds, 2),
            "users_considered": self.users_considered,
            "prompts_sent": self.prompts_sent,
            "deduplicated": self.deduplicated,
            "skipped": self.skipped,
            "failures": self.failures,
            "errors_count": len(self.errors),
        }


async def report_job_error(job_name: str, error: Exception, now: datetime | None = None) -> None:
    """
    Record a failed job run in the bot error log and alert the manager.

    Never raises: both sinks are best effort.
    """
    now = now or datetime.now(UTC)
    logger.error(
        "Job run failed", job_name=job_name, error=str(error), error_type=type(error).__name__
    )

    try:
        await bot_error_log.append(
            BotErrorLogEntry(
                created_at=now,
                log_date=now.date(),
                function_name=job_name,
                error_message=str(error),
                details={"error_type": type(error).__name__},
            )
        )
    except DatabaseError as e:
        logger.error("Failed to write bot error row", job_name=job_name, error=str(e))

    if not settings.MANAGER_USER_ID:
        return
    try:
        await chat_service.send_direct_message(
            settings.MANAGER_USER_ID, f"Check-in bot error in {job_name}: {error}"
        )
    except ChatServiceError as e:
        logger.error("Failed to alert manager about job error", job_name=job_name, error=str(e))
