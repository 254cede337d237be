# app/services/conversation/message_router.py
"""
Inbound direct-message routing.

Order of handling:
1. remember the DM conversation id
2. commands (help, ping, hi) in any state
3. non-workday guard
4. "eod" opens (or resumes) the structured EOD form
5. bare number = hours worked (never changes state)
6. conversation mode: AWAITING_STATUS / AWAITING_EOD consume the reply
7. greeting check-ins while IDLE
"""

from datetime import UTC, datetime

from app.db.helpers import DatabaseError
from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import ChatReply, ConversationMode, InboundMessage
from app.repositories.conversation_state_repository import save_conversation_id
from app.repositories.team_repository import get_team_member
from app.services.conversation.checkin_service import (
    ConversationServiceError,
    record_eod_text_reply,
    record_hours_update,
    record_status_reply,
)
from app.services.conversation.eod_text_parser import MAX_HOURS, parse_bare_hours
from app.services.conversation.state_service import (
    clear_conversation_mode,
    get_conversation_mode,
)
from app.services.eod_form.eod_form_service import eod_form_service
from app.services.messaging.prompt_messages import DEFAULT_ACK, HELP_TEXT, OUTSIDE_WORK_HOURS
from app.services.schedule.workday_calendar import is_workday, to_local

logger = get_logger(__name__)

GREETING_CHECKINS = {"here", "i'm here", "im here", "present"}
HELP_COMMANDS = {"help", "?"}
HELLO_COMMANDS = {"hi", "hello"}
EOD_COMMANDS = {"eod", "eod report"}

SAVE_FAILED = "Sorry, I couldn't save that just now. Please try again in a minute."
NOT_ON_ROSTER = "You're not on the check-in roster yet. Please ask your manager to add you."


def _command_reply(command: str, sender_name: str | None) -> ChatReply | None:
    if command in HELP_COMMANDS:
        return ChatReply(text=HELP_TEXT)
    if command == "ping":
        return ChatReply(text="pong")
    if command in HELLO_COMMANDS:
        name = (sender_name or "").split(" ")[0] or "there"
        return ChatReply(text=f"Hi {name}! Type 'help' to see what I can do.")
    return None


async def remember_conversation(user_id: str, conversation_id: str | None) -> None:
    if conversation_id:
        await save_conversation_id(user_id, conversation_id)


async def handle_inbound_message(message: InboundMessage, now: datetime | None = None) -> ChatReply:
    now = now or datetime.now(UTC)
    user_id = message.sender_id
    text = (message.free_text or "").strip()
    command = text.lower().strip(" !.")

    try:
        await remember_conversation(user_id, message.conversation_id)
    except DatabaseError as e:
        logger.warning("Could not store DM conversation", user_id=user_id, error=str(e))

    reply = _command_reply(command, message.sender_name)
    if reply:
        return reply

    try:
        return await _route_message(user_id, text, command, now)
    except (ConversationServiceError, DatabaseError) as e:
        logger.error("Inbound message not handled", user_id=user_id, error=str(e))
        return ChatReply(text=SAVE_FAILED)


async def _route_message(user_id: str, text: str, command: str, now: datetime) -> ChatReply:
    if not await is_workday(to_local(now).date()):
        logger.info("Message received outside work days", user_id=user_id)
        return ChatReply(text=OUTSIDE_WORK_HOURS)

    member = await get_team_member(user_id)
    if member is None:
        logger.warning("Message from user not on roster", user_id=user_id)
        return ChatReply(text=NOT_ON_ROSTER)

    if command in EOD_COMMANDS:
        return await eod_form_service.start(user_id, member.name, now)

    hours = parse_bare_hours(text)
    if hours is not None:
        return await _handle_hours(user_id, hours, now)

    mode = await get_conversation_mode(user_id, now)

    if mode == ConversationMode.AWAITING_STATUS:
        outcome = await record_status_reply(member, text, now)
        await clear_conversation_mode(user_id)
        if outcome.is_late:
            return ChatReply(text=f"Thanks {member.first_name}, check-in logged (late).")
        return ChatReply(text=f"Thanks {member.first_name}, check-in logged!")

    if mode == ConversationMode.AWAITING_EOD:
        parsed = await record_eod_text_reply(member, text, now)
        await clear_conversation_mode(user_id)
        if parsed.hours_worked is None:
            return ChatReply(
                text="EOD report saved. How many hours did you work today? "
                "Reply with just a number (e.g. 7.5)."
            )
        return ChatReply(text=f"EOD report saved ({parsed.hours_worked:g}h). Have a good evening!")

    if command in GREETING_CHECKINS:
        await record_status_reply(member, text, now)
        return ChatReply(text=f"Got it {member.first_name}, you're checked in.")

    return ChatReply(text=DEFAULT_ACK)


async def _handle_hours(user_id: str, hours: float, now: datetime) -> ChatReply:
    if hours > MAX_HOURS:
        return ChatReply(text=f"{hours:g} hours is more than a day. Please send a number from 0 to 24.")

    updated = await record_hours_update(user_id, hours, now)
    if updated is None:
        return ChatReply(
            text="I couldn't find today's EOD report. Please submit it first, then send your hours."
        )
    return ChatReply(text=f"Logged {hours:g} hours for today.")
