# app/models/api/chat_event_request.py
"""
Chat platform webhook payloads.
Used by the chat events route for input validation.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ChatEventType(str, Enum):
    MESSAGE = "MESSAGE"
    ADDED_TO_SPACE = "ADDED_TO_SPACE"
    CARD_CLICKED = "CARD_CLICKED"


class ChatUser(BaseModel):
    id: str = Field(..., min_length=1, description="Platform user id")
    name: str | None = Field(default=None, description="Display name")


class ChatMessageBody(BaseModel):
    text: str = Field(default="", description="Free text of the message")


class CardAction(BaseModel):
    """A button press on a wizard or task card, with the card's current field values."""

    name: str = Field(..., description="Action name, e.g. eod_header")
    params: dict[str, Any] = Field(default_factory=dict)
    form: dict[str, str] = Field(default_factory=dict)


class ChatEvent(BaseModel):
    type: ChatEventType
    user: ChatUser
    conversation_id: str | None = Field(default=None, description="DM conversation id")
    message: ChatMessageBody | None = None
    action: CardAction | None = None
