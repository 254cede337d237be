"""
Tests for inbound message routing by conversation mode.
"""

from datetime import date, timedelta

import pytest

from app.db.helpers import DatabaseError
from app.models.domain.conversation_domain import ConversationMode, InboundMessage
from app.models.domain.event_log_domain import ReportLogEntry
from app.services.conversation import message_router
from app.services.conversation.state_service import set_conversation_mode
from app.services.messaging.prompt_messages import DEFAULT_ACK, HELP_TEXT, OUTSIDE_WORK_HOURS
from tests.conftest import local_dt, make_member

TUESDAY_MORNING = local_dt(2026, 10, 20, 8, 10)
TUESDAY_EVENING = local_dt(2026, 10, 20, 16, 50)


@pytest.fixture
def router_env(monkeypatch, fake_state, fake_logs, fake_redis):
    roster = {"u1": make_member("u1", "Ana Lopez")}
    env = {"workday": True}

    async def is_workday(on_date):
        return env["workday"]

    async def get_team_member(user_id):
        return roster.get(user_id)

    async def no_special_periods(on_date):
        return []

    monkeypatch.setattr(message_router, "is_workday", is_workday)
    monkeypatch.setattr(message_router, "get_team_member", get_team_member)
    monkeypatch.setattr(
        "app.services.schedule.work_schedule_service.get_special_periods_covering",
        no_special_periods,
    )
    monkeypatch.setattr("app.services.openai_service.settings.ENABLE_AI_EOD_PARSING", False)

    env.update(state=fake_state, logs=fake_logs, redis=fake_redis, roster=roster)
    return env


def _msg(text: str, sender: str = "u1") -> InboundMessage:
    return InboundMessage(
        sender_id=sender, sender_name="Ana Lopez", free_text=text, conversation_id="dm-1"
    )


@pytest.mark.asyncio
async def test_eod_reply_writes_one_report_and_returns_to_idle(router_env):
    await set_conversation_mode("u1", ConversationMode.AWAITING_EOD, TUESDAY_EVENING)

    reply = await message_router.handle_inbound_message(
        _msg("Shipped the pricing page\nBlockers: none\nWorked 7.5 hours"),
        TUESDAY_EVENING + timedelta(minutes=5),
    )

    rows = router_env["logs"].eod_report_log.rows
    assert len(rows) == 1
    assert rows[0].source == "free_text"
    assert rows[0].hours_worked == 7.5
    assert rows[0].blockers is None
    assert "u1" not in router_env["state"].states
    assert "7.5h" in reply.text


@pytest.mark.asyncio
async def test_eod_reply_without_hours_asks_for_a_number(router_env):
    await set_conversation_mode("u1", ConversationMode.AWAITING_EOD, TUESDAY_EVENING)

    reply = await message_router.handle_inbound_message(
        _msg("Finished the onboarding doc"), TUESDAY_EVENING
    )

    assert router_env["logs"].eod_report_log.rows[0].hours_worked is None
    assert "number" in reply.text


@pytest.mark.asyncio
async def test_bare_number_in_idle_appends_updated_row_without_state_change(router_env):
    original = ReportLogEntry(
        created_at=TUESDAY_EVENING,
        log_date=date(2026, 10, 20),
        user_id="u1",
        tasks_completed="Pricing page",
        hours_worked=8,
        source="structured",
    )
    await router_env["logs"].eod_report_log.append(original)

    reply = await message_router.handle_inbound_message(
        _msg("6.5"), TUESDAY_EVENING + timedelta(minutes=20)
    )

    rows = router_env["logs"].eod_report_log.rows
    assert len(rows) == 2
    assert rows[0].hours_worked == 8
    assert rows[1].hours_worked == 6.5
    assert rows[1].source == "hours_update"
    assert rows[1].tasks_completed == "Pricing page"
    assert rows[1].id != rows[0].id
    assert router_env["state"].states == {}
    assert "6.5" in reply.text


@pytest.mark.asyncio
async def test_bare_number_keeps_awaiting_status(router_env):
    await set_conversation_mode("u1", ConversationMode.AWAITING_STATUS, TUESDAY_MORNING)

    await message_router.handle_inbound_message(_msg("7"), TUESDAY_MORNING)

    assert router_env["state"].states["u1"].mode == ConversationMode.AWAITING_STATUS
    assert router_env["logs"].check_in_log.rows == []


@pytest.mark.asyncio
async def test_bare_number_without_report_asks_for_report(router_env):
    reply = await message_router.handle_inbound_message(_msg("6"), TUESDAY_EVENING)

    assert router_env["logs"].eod_report_log.rows == []
    assert "submit it first" in reply.text


@pytest.mark.asyncio
async def test_hours_above_a_day_are_rejected(router_env):
    reply = await message_router.handle_inbound_message(_msg("30"), TUESDAY_EVENING)

    assert router_env["logs"].eod_report_log.rows == []
    assert "0 to 24" in reply.text


@pytest.mark.asyncio
async def test_status_reply_on_time(router_env):
    await set_conversation_mode("u1", ConversationMode.AWAITING_STATUS, TUESDAY_MORNING)

    reply = await message_router.handle_inbound_message(
        _msg("Working on the Q4 deck"), local_dt(2026, 10, 20, 8, 15)
    )

    rows = router_env["logs"].check_in_log.rows
    assert len(rows) == 1
    assert rows[0].is_late is False
    assert router_env["logs"].prompt_response_log.rows[0].prompt_type == "STATUS"
    assert "u1" not in router_env["state"].states
    assert "late" not in reply.text


@pytest.mark.asyncio
async def test_status_reply_after_grace_is_late(router_env):
    await set_conversation_mode("u1", ConversationMode.AWAITING_STATUS, TUESDAY_MORNING)

    reply = await message_router.handle_inbound_message(
        _msg("Morning, on the deck"), local_dt(2026, 10, 20, 8, 16)
    )

    assert router_env["logs"].check_in_log.rows[0].is_late is True
    assert "late" in reply.text


@pytest.mark.asyncio
async def test_stale_awaiting_eod_is_treated_as_idle(router_env):
    await set_conversation_mode("u1", ConversationMode.AWAITING_EOD, TUESDAY_MORNING)

    reply = await message_router.handle_inbound_message(
        _msg("Random thought"), TUESDAY_MORNING + timedelta(hours=5)
    )

    assert reply.text == DEFAULT_ACK
    assert router_env["logs"].eod_report_log.rows == []


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["here", "I'm here", "im here", "Present!"])
async def test_greeting_in_idle_is_a_check_in(router_env, text):
    await message_router.handle_inbound_message(_msg(text), TUESDAY_MORNING)

    assert len(router_env["logs"].check_in_log.rows) == 1


@pytest.mark.asyncio
async def test_unknown_text_in_idle_gets_default_ack(router_env):
    reply = await message_router.handle_inbound_message(_msg("lunch?"), TUESDAY_MORNING)

    assert reply.text == DEFAULT_ACK
    assert router_env["logs"].check_in_log.rows == []


@pytest.mark.asyncio
async def test_commands_work_on_non_workdays(router_env):
    router_env["workday"] = False

    assert (await message_router.handle_inbound_message(_msg("ping"), TUESDAY_MORNING)).text == "pong"
    assert (await message_router.handle_inbound_message(_msg("help"), TUESDAY_MORNING)).text == HELP_TEXT
    assert "Ana" in (await message_router.handle_inbound_message(_msg("hi"), TUESDAY_MORNING)).text


@pytest.mark.asyncio
async def test_non_workday_messages_are_not_processed(router_env):
    router_env["workday"] = False
    await set_conversation_mode("u1", ConversationMode.AWAITING_STATUS, TUESDAY_MORNING)

    reply = await message_router.handle_inbound_message(_msg("here"), TUESDAY_MORNING)

    assert reply.text == OUTSIDE_WORK_HOURS
    assert router_env["logs"].check_in_log.rows == []
    assert router_env["state"].states["u1"].mode == ConversationMode.AWAITING_STATUS


@pytest.mark.asyncio
async def test_conversation_id_is_remembered(router_env):
    await message_router.handle_inbound_message(_msg("ping"), TUESDAY_MORNING)

    assert router_env["state"].handles == {"u1": "dm-1"}


@pytest.mark.asyncio
async def test_sender_not_on_roster(router_env):
    reply = await message_router.handle_inbound_message(_msg("here", sender="stranger"), TUESDAY_MORNING)

    assert reply.text == message_router.NOT_ON_ROSTER
    assert router_env["logs"].check_in_log.rows == []


@pytest.mark.asyncio
async def test_eod_command_opens_the_form(router_env):
    reply = await message_router.handle_inbound_message(_msg("eod"), TUESDAY_EVENING)

    assert reply.card["step"] == "header"
    assert "eod_draft:u1" in router_env["redis"].store


@pytest.mark.asyncio
async def test_state_store_outage_replies_instead_of_raising(router_env, monkeypatch):
    async def get_state(user_id):
        raise DatabaseError("Failed to fetch one record: connection refused")

    monkeypatch.setattr("app.services.conversation.state_service.get_state", get_state)

    reply = await message_router.handle_inbound_message(_msg("all good"), TUESDAY_MORNING)

    assert reply.text == message_router.SAVE_FAILED


@pytest.mark.asyncio
async def test_roster_outage_replies_instead_of_raising(router_env, monkeypatch):
    async def get_team_member(user_id):
        raise DatabaseError("Failed to fetch one record: connection refused")

    monkeypatch.setattr(message_router, "get_team_member", get_team_member)

    reply = await message_router.handle_inbound_message(_msg("all good"), TUESDAY_MORNING)

    assert reply.text == message_router.SAVE_FAILED


@pytest.mark.asyncio
async def test_unsaved_conversation_id_does_not_block_commands(router_env, monkeypatch):
    async def save_conversation_id(user_id, conversation_id):
        raise DatabaseError("Failed to execute query: connection refused")

    monkeypatch.setattr(message_router, "save_conversation_id", save_conversation_id)

    reply = await message_router.handle_inbound_message(_msg("help"), TUESDAY_MORNING)

    assert reply.text == HELP_TEXT
