"""
Tests for the missed-response escalation jobs.
"""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from app.config import settings
from app.jobs import escalation_job as escalation_module
from app.jobs.escalation_job import EscalationJob
from app.models.domain.conversation_domain import MissedType
from app.models.domain.schedule_domain import Holiday, HolidayType
from app.services.messaging.chat_service import ChatServiceError
from tests.conftest import local_dt, make_member

TUESDAY = date(2026, 10, 20)


@pytest.fixture
def escalation_env(monkeypatch, fake_logs):
    env = {
        "members": [make_member("u1", "Ana Lopez")],
        "holidays": [],
        "dm": AsyncMock(return_value=True),
        "logs": fake_logs,
    }
    monkeypatch.setattr(
        escalation_module, "get_active_team_members", AsyncMock(side_effect=lambda: env["members"])
    )
    monkeypatch.setattr(
        escalation_module, "get_holidays_on", AsyncMock(side_effect=lambda _d: env["holidays"])
    )
    monkeypatch.setattr(
        escalation_module, "get_special_periods_covering", AsyncMock(return_value=[])
    )
    monkeypatch.setattr(escalation_module.chat_service, "send_direct_message", env["dm"])
    monkeypatch.setattr(settings, "ESCALATION_RECIPIENTS", "lead1,lead2")
    monkeypatch.setattr(settings, "MANAGER_USER_ID", "boss")
    return env


def _recipients(dm: AsyncMock) -> list[str]:
    return [call.args[0] for call in dm.await_args_list]


@pytest.mark.asyncio
async def test_missed_status_escalated_once(escalation_env):
    job = EscalationJob("status_escalations", MissedType.STATUS)

    first = await job.run_once(local_dt(2026, 10, 20, 9, 0))
    second = await job.run_once(local_dt(2026, 10, 20, 9, 30))

    logs = escalation_env["logs"]
    assert first["prompts_sent"] == 1
    assert second["deduplicated"] == 1
    assert len(logs.missed_response_log.rows) == 1
    assert logs.missed_response_log.rows[0].missed_type == "STATUS"
    assert logs.escalation_log.rows[0].recipients == "lead1,lead2"
    assert _recipients(escalation_env["dm"]) == ["u1", "lead1", "lead2"]
    assert [row.status for row in logs.system_event_log.rows] == ["ok", "ok"]


@pytest.mark.asyncio
async def test_no_escalation_while_followup_window_open(escalation_env):
    result = await EscalationJob("status_escalations", MissedType.STATUS).run_once(
        local_dt(2026, 10, 20, 8, 30)
    )

    assert result["skipped"] == 1
    escalation_env["dm"].assert_not_awaited()


@pytest.mark.asyncio
async def test_no_escalation_when_checked_in(escalation_env):
    escalation_env["logs"].check_in_log.rows.append(SimpleNamespace(user_id="u1", log_date=TUESDAY))

    result = await EscalationJob("status_escalations", MissedType.STATUS).run_once(
        local_dt(2026, 10, 20, 9, 0)
    )

    assert result["prompts_sent"] == 0
    assert escalation_env["logs"].missed_response_log.rows == []


@pytest.mark.asyncio
async def test_eod_escalation_checks_eod_reports(escalation_env):
    job = EscalationJob("eod_escalations", MissedType.EOD)
    escalation_env["logs"].check_in_log.rows.append(SimpleNamespace(user_id="u1", log_date=TUESDAY))

    result = await job.run_once(local_dt(2026, 10, 20, 17, 10))

    assert result["prompts_sent"] == 1
    assert escalation_env["logs"].escalation_log.rows[0].escalation_type == "EOD"


@pytest.mark.asyncio
async def test_recipient_failure_does_not_block_others(escalation_env):
    async def dm(user_id, text, card=None):
        if user_id == "lead1":
            raise ChatServiceError("no conversation", status_code=404)
        return True

    escalation_env["dm"].side_effect = dm

    result = await EscalationJob("status_escalations", MissedType.STATUS).run_once(
        local_dt(2026, 10, 20, 9, 0)
    )

    assert result["failures"] == 0
    assert _recipients(escalation_env["dm"]) == ["u1", "lead1", "lead2"]


@pytest.mark.asyncio
async def test_member_notice_failure_is_counted(escalation_env):
    escalation_env["members"] = [make_member("u1", "Ana Lopez"), make_member("u2", "Ben Ortiz")]

    async def dm(user_id, text, card=None):
        if user_id == "u1":
            raise ChatServiceError("no conversation", status_code=404)
        return True

    escalation_env["dm"].side_effect = dm

    result = await EscalationJob("status_escalations", MissedType.STATUS).run_once(
        local_dt(2026, 10, 20, 9, 0)
    )

    assert result["failures"] == 1
    assert result["prompts_sent"] == 1
    assert escalation_env["logs"].system_event_log.rows[-1].status == "partial"


@pytest.mark.asyncio
async def test_recipients_fall_back_to_manager(escalation_env, monkeypatch):
    monkeypatch.setattr(settings, "ESCALATION_RECIPIENTS", "")

    await EscalationJob("status_escalations", MissedType.STATUS).run_once(
        local_dt(2026, 10, 20, 9, 0)
    )

    assert _recipients(escalation_env["dm"]) == ["u1", "boss"]


@pytest.mark.asyncio
async def test_no_eod_escalation_on_afternoon_off(escalation_env):
    escalation_env["holidays"] = [
        Holiday(holiday_date=TUESDAY, name="Early close", holiday_type=HolidayType.HALF_PM)
    ]

    result = await EscalationJob("eod_escalations", MissedType.EOD).run_once(
        local_dt(2026, 10, 20, 17, 10)
    )

    assert result["skipped_reason"] == "not_workday"
    escalation_env["dm"].assert_not_awaited()


@pytest.mark.asyncio
async def test_untracked_members_are_ignored(escalation_env):
    escalation_env["members"] = [make_member("u1", "Ana Lopez", active=False)]

    result = await EscalationJob("status_escalations", MissedType.STATUS).run_once(
        local_dt(2026, 10, 20, 9, 0)
    )

    assert result["users_considered"] == 0
