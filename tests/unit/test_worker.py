from unittest.mock import AsyncMock

import pytest

from app.jobs import worker


@pytest.mark.asyncio
async def test_run_worker_runs_job(monkeypatch):
    called = {"ok": False}

    async def dummy_job():
        called["ok"] = True

    monkeypatch.setitem(worker.JOB_REGISTRY, "dummy", dummy_job)

    await worker.run_worker("dummy")

    assert called["ok"] is True


@pytest.mark.asyncio
async def test_run_worker_unknown_job():
    with pytest.raises(ValueError):
        await worker.run_worker("missing")


@pytest.fixture
def stub_resources(monkeypatch):
    calls = []
    for target, name in ((worker.db_pool, "db"), (worker.fast_redis, "redis")):
        monkeypatch.setattr(
            target, "initialize", AsyncMock(side_effect=lambda n=name: calls.append(f"{n}:init"))
        )
        monkeypatch.setattr(
            target, "close", AsyncMock(side_effect=lambda n=name: calls.append(f"{n}:close"))
        )
    return calls


@pytest.mark.asyncio
async def test_job_resources_opened_and_closed(stub_resources):
    job = AsyncMock(return_value={})

    await worker.with_job_resources("dummy", job)()

    job.assert_awaited_once()
    assert stub_resources == ["db:init", "redis:init", "redis:close", "db:close"]


@pytest.mark.asyncio
async def test_failed_job_is_reported_and_reraised(stub_resources, monkeypatch):
    report = AsyncMock()
    monkeypatch.setattr(worker, "report_job_error", report)
    error = RuntimeError("roster query failed")

    with pytest.raises(RuntimeError):
        await worker.with_job_resources("eod_prompts", AsyncMock(side_effect=error))()

    report.assert_awaited_once_with("eod_prompts", error)
    assert stub_resources[-2:] == ["redis:close", "db:close"]


def test_registry_lists_every_scheduled_job():
    assert set(worker.JOB_REGISTRY) == {
        "schedule_dispatcher",
        "status_prompts",
        "status_followups",
        "eod_prompts",
        "eod_followups",
        "status_escalations",
        "eod_escalations",
    }
