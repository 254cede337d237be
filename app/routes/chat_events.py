import hashlib
import hmac

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.models.api.chat_event_request import CardAction, ChatEvent, ChatEventType
from app.models.domain.conversation_domain import ChatReply, InboundMessage
from app.models.domain.eod_domain import EodFormAction
from app.models.domain.tracker_domain import TaskCardAction
from app.services.conversation.message_router import handle_inbound_message, remember_conversation
from app.services.eod_form.eod_form_service import eod_form_service
from app.services.tracker.task_actions import handle_task_action

router = APIRouter()
logger = get_logger(__name__)

SIGNATURE_HEADER = "x-chat-signature"
EOD_FORM_ACTIONS = {action.value for action in EodFormAction}
TASK_CARD_ACTIONS = {action.value for action in TaskCardAction}

WELCOME_TEXT = (
    "Hi! I'll send you a short check-in each morning and an end-of-day report "
    "at the end of your day. Type 'help' any time."
)


def verify_chat_hmac(raw: bytes, signature: str | None):
    secret = settings.CHAT_WEBHOOK_SECRET
    if not secret:
        raise HTTPException(status_code=401, detail="Webhook secret not configured")
    if not signature:
        raise HTTPException(status_code=401, detail="Missing signature")
    mac = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(mac, signature):
        raise HTTPException(status_code=401, detail="Invalid signature")


async def _handle_card_action(user_id: str, action: CardAction) -> ChatReply:
    if action.name in EOD_FORM_ACTIONS:
        return await eod_form_service.handle_action(
            user_id, EodFormAction(action.name), action.form, action.params
        )
    if action.name in TASK_CARD_ACTIONS:
        return await handle_task_action(user_id, TaskCardAction(action.name), action.params)
    raise HTTPException(status_code=422, detail=f"Unknown action: {action.name}")


@router.post("/chat/events")
async def chat_events(request: Request):
    raw = await request.body()
    verify_chat_hmac(raw, request.headers.get(SIGNATURE_HEADER))

    try:
        event = ChatEvent.model_validate_json(raw)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=e.errors(include_url=False)) from e

    logger.info("Chat event received", event_type=event.type.value, user_id=event.user.id)

    if event.type == ChatEventType.ADDED_TO_SPACE:
        await remember_conversation(event.user.id, event.conversation_id)
        reply = ChatReply(text=WELCOME_TEXT)

    elif event.type == ChatEventType.MESSAGE:
        reply = await handle_inbound_message(
            InboundMessage(
                sender_id=event.user.id,
                sender_name=event.user.name,
                free_text=event.message.text if event.message else "",
                conversation_id=event.conversation_id,
            )
        )

    else:
        if event.action is None:
            raise HTTPException(status_code=422, detail="Card action missing")
        reply = await _handle_card_action(event.user.id, event.action)

    return reply.model_dump(exclude_none=True)
