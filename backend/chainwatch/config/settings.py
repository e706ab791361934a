"""
Application configuration using pydantic-settings with nested structure
"""
from datetime import time
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ============================================================================
# NESTED CONFIGURATION MODELS
# ============================================================================

# Get absolute path to .env file (backend directory)
_BASE_DIR = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _BASE_DIR / ".env"


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/117.0",
]


class APIConfig(BaseSettings):
    """HTTP API server configuration."""
    host: str = "127.0.0.1"
    port: int = 3000
    cors_origins: List[str] = ["*"]
    model_config = SettingsConfigDict(env_prefix="API__", extra="ignore")


class UpstreamConfig(BaseSettings):
    """NSE endpoint family and request settings."""
    base_url: str = "https://www.nseindia.com"
    landing_path: str = "/"
    content_path: str = "/option-chain"
    status_path: str = "/api/marketStatus"
    index_chain_path: str = "/api/option-chain-indices"
    equity_chain_path: str = "/api/option-chain-equities"
    request_timeout_seconds: float = 30.0
    verify_tls: bool = False
    user_agents: List[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    model_config = SettingsConfigDict(env_prefix="UPSTREAM__", extra="ignore")

    @field_validator("user_agents")
    @classmethod
    def _non_empty_pool(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("user_agents must contain at least one identity string")
        return value


class SessionConfig(BaseSettings):
    """Browser session acquisition settings."""
    ttl_seconds: float = 8 * 60
    step_delay_seconds: float = 2.0
    redirect_delay_seconds: float = 1.0
    acquire_attempts: int = 1
    acquire_backoff_seconds: float = 2.0
    store_path: str = "./data/nse_session.json"
    model_config = SettingsConfigDict(env_prefix="SESSION__", extra="ignore")


class HarvestConfig(BaseSettings):
    """Fetch, reduction and history settings."""
    instruments: List[str] = ["NIFTY", "TCS", "RELIANCE", "BAJFINANCE"]
    fetch_attempts: int = 3
    backoff_unit_seconds: float = 2.0
    post_session_delay_seconds: float = 2.0
    inter_instrument_delay_seconds: float = 3.0
    history_capacity: int = 100
    strikes_per_side: int = 10
    model_config = SettingsConfigDict(env_prefix="HARVEST__", extra="ignore")


class ScheduleConfig(BaseSettings):
    """Periodic cycles and trading window boundaries."""
    refresh_interval_seconds: float = 3 * 60
    renewal_interval_seconds: float = 7 * 60
    window_start: time = time(9, 15, 30)
    window_end: time = time(15, 35, 0)
    trading_weekdays: List[int] = [0, 1, 2, 3, 4]  # Monday=0
    timezone: str = "Asia/Kolkata"
    triggers_enabled: bool = True
    model_config = SettingsConfigDict(env_prefix="SCHEDULE__", extra="ignore")


class LoggerConfig(BaseSettings):
    """Logger configuration settings."""
    default_level: str = "INFO"
    console_level: str = "INFO"
    file_path: str = "./data/logs/chainwatch.log"
    rotation: str = "10 MB"
    retention: str = "14 days"
    filter_enabled: bool = True
    filter_max_history: int = 5
    filter_time_threshold_seconds: float = 1.0
    model_config = SettingsConfigDict(env_prefix="LOGGER__", extra="ignore")


# ============================================================================
# MAIN SETTINGS CLASS
# ============================================================================

class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Configuration is organized into nested sections.
    Use double underscore (__) in env vars to access nested configs.

    Example:
        LOGGER__DEFAULT_LEVEL=DEBUG
        SCHEDULE__REFRESH_INTERVAL_SECONDS=120
        HARVEST__INSTRUMENTS='["NIFTY","TCS"]'
    """

    # Application metadata
    APP_NAME: str = "Chainwatch Option Chain Service"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Nested configuration sections (constructed from environment)
    API: Optional[APIConfig] = None
    UPSTREAM: Optional[UpstreamConfig] = None
    SESSION: Optional[SessionConfig] = None
    HARVEST: Optional[HarvestConfig] = None
    SCHEDULE: Optional[ScheduleConfig] = None
    LOGGER: Optional[LoggerConfig] = None

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # Construct nested configs AFTER environment is loaded
        self.API = kwargs.get("API") or APIConfig()
        self.UPSTREAM = kwargs.get("UPSTREAM") or UpstreamConfig()
        self.SESSION = kwargs.get("SESSION") or SessionConfig()
        self.HARVEST = kwargs.get("HARVEST") or HarvestConfig()
        self.SCHEDULE = kwargs.get("SCHEDULE") or ScheduleConfig()
        self.LOGGER = kwargs.get("LOGGER") or LoggerConfig()

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_nested_delimiter="__",
        validate_default=True,
        env_prefix=""
    )


# Global settings instance
from dotenv import load_dotenv

# Load .env file into environment variables
if _ENV_FILE.exists():
    load_dotenv(str(_ENV_FILE), override=True)

settings = Settings()
