# app/models/domain/conversation_domain.py
"""
Conversation Domain Models
Per-user conversation mode with a pure expiry check, prompt types and the
inbound/outbound message shapes of the chat platform.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ConversationMode(str, Enum):
    IDLE = "IDLE"
    AWAITING_STATUS = "AWAITING_STATUS"
    AWAITING_EOD = "AWAITING_EOD"


class PromptType(str, Enum):
    STATUS = "STATUS"
    STATUS_FOLLOWUP = "STATUS_FOLLOWUP"
    EOD = "EOD"
    EOD_FOLLOWUP = "EOD_FOLLOWUP"

    @property
    def is_followup(self) -> bool:
        return self in (PromptType.STATUS_FOLLOWUP, PromptType.EOD_FOLLOWUP)

    @property
    def is_eod(self) -> bool:
        return self in (PromptType.EOD, PromptType.EOD_FOLLOWUP)


class MissedType(str, Enum):
    STATUS = "STATUS"
    EOD = "EOD"


class UserConversationState(BaseModel):
    """Tagged {mode, set_at} record. A record older than the TTL reads as IDLE."""

    user_id: str
    mode: ConversationMode
    set_at: datetime

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        return now - self.set_at > ttl

    def effective_mode(self, now: datetime, ttl: timedelta) -> ConversationMode:
        if self.is_expired(now, ttl):
            return ConversationMode.IDLE
        return self.mode


class InboundMessage(BaseModel):
    """A direct message delivered by the chat platform."""

    sender_id: str
    sender_name: str | None = None
    free_text: str = ""
    conversation_id: str | None = None


class ChatReply(BaseModel):
    """Outbound reply: text plus an optional structured card."""

    text: str
    card: dict[str, Any] | None = None


class OutboundMessage(BaseModel):
    conversation_id: str
    text: str
    card: dict[str, Any] | None = None


class CheckInOutcome(BaseModel):
    user_id: str
    log_date: date
    is_late: bool
    responded_at: datetime
    late_threshold: str = Field(..., description="HH:MM after which a reply counts as late")
