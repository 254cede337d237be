# app/services/messaging/prompt_correlation.py
"""
Last prompt sent to each user, kept in Redis for the day horizon.

Responses are attributed to it so adoption tracking can tell a reply to the
prompt from a reply to its follow-up.
"""

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import PromptType
from app.services import redis_store

logger = get_logger(__name__)

LAST_PROMPT_KEY_PREFIX = "last_prompt"


def last_prompt_key(user_id: str) -> str:
    return f"{LAST_PROMPT_KEY_PREFIX}:{user_id}"


async def remember_prompt(user_id: str, prompt_type: PromptType) -> None:
    saved = await redis_store.set_with_ttl(
        last_prompt_key(user_id), prompt_type.value, settings.LAST_PROMPT_TTL_SECONDS
    )
    if not saved:
        logger.warning("Could not store last prompt", user_id=user_id, prompt_type=prompt_type.value)


async def responded_prompt_type(user_id: str, default: PromptType) -> PromptType:
    """The last prompt of the same family as `default`, else `default`."""
    raw = await redis_store.get(last_prompt_key(user_id))
    try:
        last = PromptType(raw) if raw else None
    except ValueError:
        logger.warning("Ignoring unknown last prompt", user_id=user_id, value=raw)
        return default
    if last is None or last.is_eod != default.is_eod:
        return default
    return last
