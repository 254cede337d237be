"""
Postgres schema for the check-in bot.

Event log tables are insert-only: corrections are new rows and readers take
the most recent row per key (ordered by created_at).
"""

from app.db.helpers import execute_transaction
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

SCHEMA_STATEMENTS = [
    # Roster and calendar
    """
    CREATE TABLE IF NOT EXISTS team_members (
        user_id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        email TEXT,
        manager_id TEXT,
        tracker_user_id TEXT,
        active BOOLEAN NOT NULL DEFAULT TRUE,
        tracking_mode TEXT NOT NULL DEFAULT 'tracked',
        custom_start_time TEXT,
        custom_end_time TEXT,
        custom_start_time_2 TEXT,
        custom_end_time_2 TEXT,
        custom_hours_per_day NUMERIC,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS special_periods (
        id BIGSERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        start_date DATE NOT NULL,
        end_date DATE NOT NULL,
        weekday_start TEXT,
        weekday_end TEXT,
        weekday_start_2 TEXT,
        weekday_end_2 TEXT,
        friday_start TEXT,
        friday_end TEXT,
        friday_start_2 TEXT,
        friday_end_2 TEXT,
        hours_per_day NUMERIC
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS holidays (
        holiday_date DATE NOT NULL,
        name TEXT NOT NULL,
        holiday_type TEXT NOT NULL DEFAULT 'full',
        PRIMARY KEY (holiday_date, holiday_type)
    )
    """,
    # Durable conversation state
    """
    CREATE TABLE IF NOT EXISTS conversation_states (
        user_id TEXT PRIMARY KEY,
        mode TEXT NOT NULL,
        set_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS conversation_handles (
        user_id TEXT PRIMARY KEY,
        conversation_id TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    # Insert-only event log
    """
    CREATE TABLE IF NOT EXISTS prompt_log (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        log_date DATE NOT NULL,
        prompt_type TEXT NOT NULL,
        message_text TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS prompt_responses (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        log_date DATE NOT NULL,
        prompt_type TEXT NOT NULL,
        response_text TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS check_ins (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        log_date DATE NOT NULL,
        response_text TEXT,
        is_late BOOLEAN NOT NULL DEFAULT FALSE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS eod_reports (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        log_date DATE NOT NULL,
        tasks_completed TEXT,
        blockers TEXT,
        tomorrow_priority TEXT,
        hours_worked NUMERIC,
        raw_response TEXT,
        source TEXT NOT NULL,
        details JSONB
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS missed_responses (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        log_date DATE NOT NULL,
        missed_type TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS escalations (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        user_id TEXT NOT NULL,
        log_date DATE NOT NULL,
        escalation_type TEXT NOT NULL,
        recipients TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS system_events (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        log_date DATE NOT NULL,
        event_type TEXT NOT NULL,
        status TEXT NOT NULL,
        details JSONB
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS bot_errors (
        id UUID PRIMARY KEY,
        created_at TIMESTAMPTZ NOT NULL,
        log_date DATE NOT NULL,
        function_name TEXT NOT NULL,
        error_message TEXT,
        details JSONB
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_prompt_log_key ON prompt_log (user_id, log_date, prompt_type, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_prompt_responses_key ON prompt_responses (user_id, log_date, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_check_ins_key ON check_ins (user_id, log_date, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_eod_reports_key ON eod_reports (user_id, log_date, created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_missed_responses_key ON missed_responses (user_id, log_date, missed_type)",
]


async def ensure_schema() -> None:
    """Create any missing tables and indexes."""
    await execute_transaction([(statement, ()) for statement in SCHEMA_STATEMENTS])
    logger.info("Database schema ensured", statements=len(SCHEMA_STATEMENTS))
