"""
IRVE Survey - Configuration
Environment-driven settings for the survey backend.
"""
import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parent.parent

DEFAULT_ADMIN_PASSWORD = "irve2024"
DEFAULT_DATABASE_URL = f"sqlite:///{BACKEND_DIR / 'data' / 'survey.db'}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using default {default}")
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass(frozen=True)
class RateLimitSettings:
    """Ceiling and window for one rate-limit tier."""
    max_requests: int
    window_seconds: int


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    admin_password: str = DEFAULT_ADMIN_PASSWORD
    bcrypt_rounds: int = 12

    retention_days: int = 730
    admin_token_ttl_minutes: int = 120
    token_sweep_interval_seconds: int = 300
    retention_sweep_interval_hours: int = 24
    background_jobs: bool = True

    api_rate_limit: RateLimitSettings = RateLimitSettings(100, 60)
    survey_rate_limit: RateLimitSettings = RateLimitSettings(5, 60 * 60)
    auth_rate_limit: RateLimitSettings = RateLimitSettings(5, 15 * 60)
    rgpd_rate_limit: RateLimitSettings = RateLimitSettings(3, 60 * 60)

    buildings: List[str] = field(default_factory=lambda: ["A", "B", "C", "D"])
    total_lots: int = 75
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @property
    def uses_default_admin_password(self) -> bool:
        return self.admin_password == DEFAULT_ADMIN_PASSWORD

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            admin_password=os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
            bcrypt_rounds=_env_int("BCRYPT_ROUNDS", 12),
            retention_days=_env_int("RETENTION_DAYS", 730),
            admin_token_ttl_minutes=_env_int("ADMIN_TOKEN_TTL_MINUTES", 120),
            token_sweep_interval_seconds=_env_int("TOKEN_SWEEP_INTERVAL_SECONDS", 300),
            retention_sweep_interval_hours=_env_int("RETENTION_SWEEP_INTERVAL_HOURS", 24),
            background_jobs=_env_bool("BACKGROUND_JOBS", True),
            api_rate_limit=RateLimitSettings(
                _env_int("RATE_LIMIT_API_MAX", 100),
                _env_int("RATE_LIMIT_API_WINDOW_SECONDS", 60),
            ),
            survey_rate_limit=RateLimitSettings(
                _env_int("RATE_LIMIT_SURVEY_MAX", 5),
                _env_int("RATE_LIMIT_SURVEY_WINDOW_SECONDS", 60 * 60),
            ),
            auth_rate_limit=RateLimitSettings(
                _env_int("RATE_LIMIT_AUTH_MAX", 5),
                _env_int("RATE_LIMIT_AUTH_WINDOW_SECONDS", 15 * 60),
            ),
            rgpd_rate_limit=RateLimitSettings(
                _env_int("RATE_LIMIT_RGPD_MAX", 3),
                _env_int("RATE_LIMIT_RGPD_WINDOW_SECONDS", 60 * 60),
            ),
            buildings=_env_list("BUILDINGS", "A,B,C,D"),
            total_lots=_env_int("TOTAL_LOTS", 75),
            cors_origins=_env_list("CORS_ORIGINS", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Process-wide settings, read once from the environment."""
    return Settings.from_env()
