# app/services/eod_form/draft_store.py
"""EOD drafts in Redis, one key per user, expiring after EOD_DRAFT_TTL_SECONDS."""

from pydantic import ValidationError

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.eod_domain import EodDraft
from app.services.redis_store import delete, get, set_with_ttl

logger = get_logger(__name__)

DRAFT_KEY_PREFIX = "eod_draft"


def draft_key(user_id: str) -> str:
    return f"{DRAFT_KEY_PREFIX}:{user_id}"


async def load_draft(user_id: str) -> EodDraft | None:
    """The user's draft, or None when missing, expired or unreadable."""
    raw = await get(draft_key(user_id))
    if not raw:
        return None
    try:
        return EodDraft.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(
            "Discarding unreadable EOD draft", user_id=user_id, error_count=e.error_count()
        )
        return None


async def save_draft(draft: EodDraft) -> bool:
    saved = await set_with_ttl(
        draft_key(draft.user_id), draft.model_dump_json(), settings.EOD_DRAFT_TTL_SECONDS
    )
    if not saved:
        logger.error("Failed to save EOD draft", user_id=draft.user_id, step=draft.step.value)
    return saved


async def clear_draft(user_id: str) -> None:
    await delete(draft_key(user_id))
