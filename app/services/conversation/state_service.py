# app/services/conversation/state_service.py
"""
Conversation mode per user.

One mode per user; setting a mode replaces the previous one. A record older
than STATE_TTL_HOURS reads as IDLE.
"""

from datetime import UTC, datetime, timedelta

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import ConversationMode
from app.repositories.conversation_state_repository import delete_state, get_state, upsert_state

logger = get_logger(__name__)


def state_ttl() -> timedelta:
    return timedelta(hours=settings.STATE_TTL_HOURS)


async def set_conversation_mode(
    user_id: str, mode: ConversationMode, now: datetime | None = None
) -> None:
    if mode == ConversationMode.IDLE:
        await clear_conversation_mode(user_id)
        return
    await upsert_state(user_id, mode, now or datetime.now(UTC))
    logger.info("Conversation mode set", user_id=user_id, mode=mode.value)


async def get_conversation_mode(user_id: str, now: datetime | None = None) -> ConversationMode:
    state = await get_state(user_id)
    if state is None:
        return ConversationMode.IDLE

    mode = state.effective_mode(now or datetime.now(UTC), state_ttl())
    if mode != state.mode:
        logger.info(
            "Conversation state expired",
            user_id=user_id,
            stale_mode=state.mode.value,
            set_at=state.set_at.isoformat(),
        )
    return mode


async def clear_conversation_mode(user_id: str) -> None:
    await delete_state(user_id)
    logger.debug("Conversation mode cleared", user_id=user_id)
