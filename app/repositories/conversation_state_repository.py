# app/repositories/conversation_state_repository.py
"""Durable per-user conversation state and DM conversation handles."""

from datetime import datetime

from app.db.helpers import execute_query, fetch_one, with_db_retry
from app.models.domain.conversation_domain import ConversationMode, UserConversationState


@with_db_retry()
async def get_state(user_id: str) -> UserConversationState | None:
    row = await fetch_one(
        "SELECT user_id, mode, set_at FROM conversation_states WHERE user_id = %s", (user_id,)
    )
    return UserConversationState.model_validate(row) if row else None


@with_db_retry()
async def upsert_state(user_id: str, mode: ConversationMode, set_at: datetime) -> None:
    await execute_query(
        """
        INSERT INTO conversation_states (user_id, mode, set_at)
        VALUES (%s, %s, %s)
        ON CONFLICT (user_id) DO UPDATE SET mode = EXCLUDED.mode, set_at = EXCLUDED.set_at
        """,
        (user_id, mode.value, set_at),
    )


@with_db_retry()
async def delete_state(user_id: str) -> None:
    await execute_query("DELETE FROM conversation_states WHERE user_id = %s", (user_id,))


@with_db_retry()
async def get_conversation_id(user_id: str) -> str | None:
    row = await fetch_one(
        "SELECT conversation_id FROM conversation_handles WHERE user_id = %s", (user_id,)
    )
    return row["conversation_id"] if row else None


@with_db_retry()
async def save_conversation_id(user_id: str, conversation_id: str) -> None:
    await execute_query(
        """
        INSERT INTO conversation_handles (user_id, conversation_id, updated_at)
        VALUES (%s, %s, now())
        ON CONFLICT (user_id) DO UPDATE
            SET conversation_id = EXCLUDED.conversation_id, updated_at = now()
        """,
        (user_id, conversation_id),
    )
