# app/services/messaging/chat_service.py
"""
Outbound messaging to the chat platform.

Messages are addressed to a conversation id; direct messages look up the
user's stored DM conversation first.
"""

from typing import Any

import httpx

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.domain.conversation_domain import OutboundMessage
from app.repositories.conversation_state_repository import get_conversation_id

logger = get_logger(__name__)

REQUEST_TIMEOUT = httpx.Timeout(15.0, connect=5.0)


class ChatServiceError(Exception):
    """Raised when a message cannot be delivered."""

    def __init__(
        self,
        message: str,
        conversation_id: str | None = None,
        status_code: int | None = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.conversation_id = conversation_id
        self.status_code = status_code
        self.recoverable = recoverable


class ChatService:
    """Thin client over the chat platform's message API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url
        self._token = token
        self._transport = transport

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.CHAT_API_BASE_URL).rstrip("/")

    def _headers(self) -> dict[str, str]:
        token = self._token or settings.CHAT_BOT_TOKEN
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def send_message(self, message: OutboundMessage) -> dict[str, Any]:
        """POST one message to a conversation."""
        url = f"{self.base_url}/conversations/{message.conversation_id}/messages"
        payload: dict[str, Any] = {"text": message.text}
        if message.card:
            payload["card"] = message.card

        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT, transport=self._transport
            ) as client:
                response = await client.post(url, json=payload, headers=self._headers())
        except httpx.RequestError as e:
            logger.error(
                "Chat message request failed",
                conversation_id=message.conversation_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ChatServiceError(
                f"Network error sending message: {e}", conversation_id=message.conversation_id
            ) from e

        if response.status_code >= 400:
            logger.error(
                "Chat message rejected",
                conversation_id=message.conversation_id,
                status_code=response.status_code,
                body_preview=response.text[:200],
            )
            raise ChatServiceError(
                f"Chat API returned {response.status_code}",
                conversation_id=message.conversation_id,
                status_code=response.status_code,
                recoverable=response.status_code >= 500,
            )

        logger.debug("Chat message sent", conversation_id=message.conversation_id)
        return response.json() if response.content else {}

    async def send_direct_message(
        self, user_id: str, text: str, card: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        conversation_id = await get_conversation_id(user_id)
        if not conversation_id:
            raise ChatServiceError(
                f"No DM conversation stored for user {user_id}", recoverable=False
            )
        return await self.send_message(
            OutboundMessage(conversation_id=conversation_id, text=text, card=card)
        )

    async def post_to_team_channel(self, text: str) -> bool:
        """Post to the configured team channel. Returns False when none is configured."""
        if not settings.TEAM_CHANNEL_ID:
            logger.info("Team channel not configured, skipping post")
            return False
        await self.send_message(OutboundMessage(conversation_id=settings.TEAM_CHANNEL_ID, text=text))
        return True


chat_service = ChatService()
