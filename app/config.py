from pathlib import Path
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # Postgres (roster, calendar, event log, durable conversation state)
    DATABASE_URL: str = "postgresql://localhost:5432/checkin_bot"

    # Redis (EOD drafts, dispatch markers)
    REDIS_URL: str = "redis://localhost:6379/0"

    # Chat platform
    CHAT_API_BASE_URL: str = "https://chat.example.com/api"
    CHAT_BOT_TOKEN: str | None = None
    CHAT_WEBHOOK_SECRET: str | None = None
    TEAM_CHANNEL_ID: str | None = None
    MANAGER_USER_ID: str | None = None
    ESCALATION_RECIPIENTS: str = ""  # comma separated user ids

    # Task tracker
    TASK_TRACKER_BASE_URL: str = "https://api.clickup.com/api/v2"
    TASK_TRACKER_TOKEN: str | None = None
    TASK_TRACKER_TEAM_ID: str | None = None
    TASK_LINK_PREFIX: str = "https://app.clickup.com/t/"
    TASK_TRACKER_RATE_LIMIT_WAIT_SECONDS: float = 60.0

    # OpenAI (free-text EOD parsing)
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    OPENAI_TIMEOUT_SECONDS: int = 30
    ENABLE_AI_EOD_PARSING: bool = False

    # Organisation calendar
    ORG_TIMEZONE: str = "America/Chicago"
    DEFAULT_WORK_START: str = "08:00"
    DEFAULT_WORK_END: str = "17:00"
    DEFAULT_FRIDAY_START: str = "07:00"
    DEFAULT_FRIDAY_END: str = "11:00"
    DEFAULT_HOURS_PER_DAY: float = 8.0
    DEFAULT_FRIDAY_HOURS: float = 4.0

    # Conversation + dispatch timing
    STATE_TTL_HOURS: int = 4
    EOD_DRAFT_TTL_SECONDS: int = 21600  # 6 hours
    DISPATCH_DEDUP_TTL_SECONDS: int = 21600  # 6 hours
    LAST_PROMPT_TTL_SECONDS: int = 21600  # 6 hours
    LATE_GRACE_MINUTES: int = 15

    # =================================================================
    # DATABASE POOL SETTINGS
    # =================================================================
    DB_POOL_MIN_SIZE: int = 2
    DB_POOL_MAX_SIZE: int = 8
    DB_POOL_TIMEOUT: float = 30.0
    DB_POOL_MAX_IDLE: float = 600.0  # 10 minutes
    DB_POOL_MAX_LIFETIME: float = 3600.0  # 1 hour

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def escalation_recipients(self) -> list[str]:
        """Escalation recipients, falling back to the manager when none are listed."""
        recipients = [r.strip() for r in self.ESCALATION_RECIPIENTS.split(",") if r.strip()]
        if not recipients and self.MANAGER_USER_ID:
            recipients = [self.MANAGER_USER_ID]
        return recipients

    def database_host(self) -> str | None:
        """Host portion of DATABASE_URL, for logs that must not leak credentials."""
        try:
            return urlparse(self.DATABASE_URL).hostname
        except Exception:
            return None

    def get_db_pool_config(self) -> dict:
        """
        Get database pool configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "min_size": self.DB_POOL_MIN_SIZE,
            "max_size": self.DB_POOL_MAX_SIZE,
            "timeout": self.DB_POOL_TIMEOUT,
            "max_idle": self.DB_POOL_MAX_IDLE,
            "max_lifetime": self.DB_POOL_MAX_LIFETIME,
        }

        if self.environment == "development":
            config.update({"min_size": 1, "max_size": 4, "timeout": 15.0})

        return config


settings = Settings()
