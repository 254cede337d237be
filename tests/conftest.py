from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from app.models.domain.conversation_domain import UserConversationState
from app.models.domain.schedule_domain import TeamMember

CHICAGO = ZoneInfo("America/Chicago")


def local_dt(year, month, day, hour, minute=0) -> datetime:
    """An aware UTC datetime for a wall-clock time in the organisation timezone."""
    return datetime(year, month, day, hour, minute, tzinfo=CHICAGO).astimezone(UTC)


def make_member(user_id: str = "u1", name: str = "Ana Lopez", **fields) -> TeamMember:
    return TeamMember(user_id=user_id, name=name, **fields)


class FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}

    async def set_with_ttl(self, key: str, value: str, ttl_s: int | None = None) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl_s
        return True

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def delete(self, key: str) -> bool:
        self.ttls.pop(key, None)
        return self.store.pop(key, None) is not None

    async def exists(self, key: str) -> bool:
        return key in self.store


class FakeEventLog:
    """In-memory stand-in for AppendOnlyLog: insertion order is recency."""

    def __init__(self, key_columns: tuple[str, ...] = ("user_id", "log_date")):
        self.key_columns = key_columns
        self.rows: list = []

    @staticmethod
    def _matches(row, filters: dict) -> bool:
        return all(getattr(row, column) == value for column, value in filters.items())

    async def append(self, entry):
        self.rows.append(entry)
        return entry

    async def latest(self, **key):
        for row in reversed(self.rows):
            if self._matches(row, key):
                return row
        return None

    async def latest_per_key(self, **filters):
        seen: dict[tuple, object] = {}
        for row in self.rows:
            if self._matches(row, filters):
                seen[tuple(getattr(row, c) for c in self.key_columns)] = row
        return list(seen.values())


# Every module that imports a log by name, so the fake is seen everywhere
LOG_CONSUMERS = {
    "prompt_log": ["app.services.prompt_service"],
    "check_in_log": [
        "app.services.conversation.checkin_service",
        "app.services.prompt_service",
    ],
    "eod_report_log": [
        "app.services.conversation.checkin_service",
        "app.services.prompt_service",
        "app.services.eod_form.eod_form_service",
    ],
    "prompt_response_log": [
        "app.services.conversation.checkin_service",
        "app.services.eod_form.eod_form_service",
    ],
    "missed_response_log": ["app.jobs.escalation_job"],
    "escalation_log": ["app.jobs.escalation_job"],
    "system_event_log": ["app.jobs.escalation_job"],
    "bot_error_log": ["app.jobs.job_metrics"],
}

REDIS_CONSUMERS = [
    "app.services.redis_store",
    "app.services.eod_form.draft_store",
]


class FakeLogs:
    def __init__(self):
        for name in LOG_CONSUMERS:
            setattr(self, name, FakeEventLog())


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()
    for module in REDIS_CONSUMERS:
        for name in ("get", "set_with_ttl", "delete", "exists"):
            monkeypatch.setattr(f"{module}.{name}", getattr(fake, name), raising=False)
    return fake


@pytest.fixture
def fake_logs(monkeypatch):
    logs = FakeLogs()
    for name, modules in LOG_CONSUMERS.items():
        for module in modules:
            monkeypatch.setattr(f"{module}.{name}", getattr(logs, name))
    return logs


@pytest.fixture
def member():
    return make_member()


class FakeStateStore:
    """Conversation states and DM handles keyed by user id."""

    def __init__(self):
        self.states: dict[str, UserConversationState] = {}
        self.handles: dict[str, str] = {}

    async def get_state(self, user_id):
        return self.states.get(user_id)

    async def upsert_state(self, user_id, mode, set_at):
        self.states[user_id] = UserConversationState(user_id=user_id, mode=mode, set_at=set_at)

    async def delete_state(self, user_id):
        self.states.pop(user_id, None)

    async def get_conversation_id(self, user_id):
        return self.handles.get(user_id)

    async def save_conversation_id(self, user_id, conversation_id):
        self.handles[user_id] = conversation_id


@pytest.fixture
def fake_state(monkeypatch):
    store = FakeStateStore()
    for name in ("get_state", "upsert_state", "delete_state"):
        monkeypatch.setattr(f"app.services.conversation.state_service.{name}", getattr(store, name))
    monkeypatch.setattr(
        "app.services.conversation.message_router.save_conversation_id", store.save_conversation_id
    )
    monkeypatch.setattr(
        "app.services.messaging.chat_service.get_conversation_id", store.get_conversation_id
    )
    return store
