import hashlib
import hmac
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.models.domain.conversation_domain import ChatReply
from app.models.domain.eod_domain import EodFormAction
from app.models.domain.tracker_domain import TaskCardAction
from app.routes import chat_events


def _make_signature(secret: str, body: bytes) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


@pytest.fixture
def route_env(monkeypatch):
    app = FastAPI()
    app.include_router(chat_events.router)

    handle_message = AsyncMock(return_value=ChatReply(text="Got it, thanks!"))
    remember = AsyncMock()
    handle_action = AsyncMock(return_value=ChatReply(text="Saved.", card={"step": "task"}))
    monkeypatch.setattr("app.routes.chat_events.settings.CHAT_WEBHOOK_SECRET", "test-secret")
    monkeypatch.setattr(chat_events, "handle_inbound_message", handle_message)
    monkeypatch.setattr(chat_events, "remember_conversation", remember)
    monkeypatch.setattr(chat_events.eod_form_service, "handle_action", handle_action)
    handle_task = AsyncMock(return_value=ChatReply(text='Marked done: "Fix checkout"'))
    monkeypatch.setattr(chat_events, "handle_task_action", handle_task)

    return {
        "client": TestClient(app),
        "handle_message": handle_message,
        "remember": remember,
        "handle_action": handle_action,
        "handle_task": handle_task,
    }


def _post(client: TestClient, payload: dict, signature: str | None = "sign"):
    raw = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if signature == "sign":
        headers["x-chat-signature"] = _make_signature("test-secret", raw)
    elif signature is not None:
        headers["x-chat-signature"] = signature
    return client.post("/chat/events", content=raw, headers=headers)


MESSAGE = {
    "type": "MESSAGE",
    "user": {"id": "u1", "name": "Ana Lopez"},
    "conversation_id": "dm-1",
    "message": {"text": "Working on the pricing page"},
}


def test_valid_signature_routes_message(route_env):
    response = _post(route_env["client"], MESSAGE)

    assert response.status_code == 200
    assert response.json() == {"text": "Got it, thanks!"}
    inbound = route_env["handle_message"].await_args.args[0]
    assert inbound.sender_id == "u1"
    assert inbound.free_text == "Working on the pricing page"
    assert inbound.conversation_id == "dm-1"


def test_invalid_signature(route_env):
    response = _post(route_env["client"], MESSAGE, signature="bad")

    assert response.status_code == 401
    route_env["handle_message"].assert_not_awaited()


def test_missing_signature(route_env):
    response = _post(route_env["client"], MESSAGE, signature=None)

    assert response.status_code == 401


def test_secret_not_configured(route_env, monkeypatch):
    monkeypatch.setattr("app.routes.chat_events.settings.CHAT_WEBHOOK_SECRET", None)

    response = _post(route_env["client"], MESSAGE)

    assert response.status_code == 401


def test_malformed_event_rejected(route_env):
    response = _post(route_env["client"], {"type": "MESSAGE"})

    assert response.status_code == 422


def test_added_to_space_stores_conversation(route_env):
    response = _post(
        route_env["client"],
        {"type": "ADDED_TO_SPACE", "user": {"id": "u1"}, "conversation_id": "dm-7"},
    )

    assert response.status_code == 200
    assert "check-in" in response.json()["text"]
    route_env["remember"].assert_awaited_once_with("u1", "dm-7")


def test_card_action_dispatched_to_form(route_env):
    response = _post(
        route_env["client"],
        {
            "type": "CARD_CLICKED",
            "user": {"id": "u1"},
            "action": {
                "name": "eod_task_next",
                "params": {"task_index": 1},
                "form": {"task_name": "Landing page"},
            },
        },
    )

    assert response.status_code == 200
    assert response.json() == {"text": "Saved.", "card": {"step": "task"}}
    route_env["handle_action"].assert_awaited_once_with(
        "u1", EodFormAction.TASK_NEXT, {"task_name": "Landing page"}, {"task_index": 1}
    )


def test_task_card_action_dispatched_to_tracker(route_env):
    response = _post(
        route_env["client"],
        {
            "type": "CARD_CLICKED",
            "user": {"id": "u1"},
            "action": {
                "name": "task_complete",
                "params": {"task_id": "t1", "task_name": "Fix checkout"},
            },
        },
    )

    assert response.status_code == 200
    assert response.json() == {"text": 'Marked done: "Fix checkout"'}
    route_env["handle_task"].assert_awaited_once_with(
        "u1", TaskCardAction.COMPLETE, {"task_id": "t1", "task_name": "Fix checkout"}
    )
    route_env["handle_action"].assert_not_awaited()


def test_unknown_card_action_rejected(route_env):
    response = _post(
        route_env["client"],
        {"type": "CARD_CLICKED", "user": {"id": "u1"}, "action": {"name": "launch_rockets"}},
    )

    assert response.status_code == 422
    route_env["handle_action"].assert_not_awaited()
    route_env["handle_task"].assert_not_awaited()


def test_card_click_without_action_rejected(route_env):
    response = _post(route_env["client"], {"type": "CARD_CLICKED", "user": {"id": "u1"}})

    assert response.status_code == 422
