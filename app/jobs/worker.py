"""
Generic job runner for host cron.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable, opens the database pool and Redis, runs one pass of the job and
closes them again.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable
from functools import wraps

from app.config import settings
from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.jobs.escalation_job import run_eod_escalations, run_status_escalations
from app.jobs.fixed_prompt_jobs import (
    run_eod_followups,
    run_eod_prompts,
    run_status_followups,
    run_status_prompts,
)
from app.jobs.job_metrics import report_job_error
from app.jobs.schedule_dispatcher_job import run_schedule_dispatcher
from app.services.infrastructure.redis_client import fast_redis

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]


def with_job_resources(job_name: str, job: Callable[[], Awaitable[dict]]) -> JobCoroutine:
    """Wrap a single-pass job with pool setup, teardown and error alerting."""

    @wraps(job)
    async def run() -> None:
        await db_pool.initialize()
        await fast_redis.initialize()
        try:
            await job()
        except Exception as e:
            await report_job_error(job_name, e)
            raise
        finally:
            await fast_redis.close()
            await db_pool.close()

    return run


JOB_REGISTRY: dict[str, JobCoroutine] = {
    name: with_job_resources(name, job)
    for name, job in {
        "schedule_dispatcher": run_schedule_dispatcher,
        "status_prompts": run_status_prompts,
        "status_followups": run_status_followups,
        "eod_prompts": run_eod_prompts,
        "eod_followups": run_eod_followups,
        "status_escalations": run_status_escalations,
        "eod_escalations": run_eod_escalations,
    }.items()
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "schedule_dispatcher").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested job once."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting job", job=name)
    await JOB_REGISTRY[name]()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
