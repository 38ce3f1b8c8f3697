# License Verification Bot — Configuration
import logging
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Discord
    DISCORD_TOKEN: str
    GUILD_ID: int

    # Channels
    LICENSE_CHECK_CHANNEL_ID: int = 0  # Where job summaries go

    # Shared database (MUST be the same DB as the compliance dashboard)
    DATABASE_URL: str = "sqlite:///compliance.db"

    # Batch verification schedule
    VERIFICATION_ENABLED: bool = True
    VERIFICATION_INTERVAL_HOURS: int = 720  # Default: monthly
    VERIFICATION_BATCH_SIZE: int = 100
    MAX_CONCURRENT_LOOKUPS: int = 3
    PROGRESS_FLUSH_EVERY: int = 50
    TASK_DUE_DAYS: int = 14

    # Automated lookups against state boards
    AUTO_LOOKUP_ENABLED: bool = True
    AUTOMATION_ESCALATION_THRESHOLD: int = 3  # Consecutive failures before a manual task
    LOOKUP_TIMEOUT_GRACE_SECONDS: int = 15

    # Headless browser
    BROWSER_HEADLESS: bool = True
    BROWSER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    )

    # Logging
    LOG_LEVEL: str = "INFO"


settings = Settings()
