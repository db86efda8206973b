import logging
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings, read from the environment and an optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Identity (Clerk-issued JWTs)
    CLERK_SECRET_KEY: Optional[str] = None  # HS256 shared secret; unset means RS256 via JWKS
    CLERK_ISSUER: Optional[str] = None
    CLERK_AUDIENCE: Optional[str] = None
    CLERK_JWKS_URL: Optional[str] = None

    # Storage; unset DATABASE_URL selects the in-memory store
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Progress engine
    PROGRESS_TIMEZONE: str = "UTC"  # weeks start Monday 00:00 in this zone
    PROGRESS_HISTORY_WEEKS: int = 4
    PROGRESS_RECENT_ACTIVITY_LIMIT: int = 10
    ACTIVITY_DATA_MAX_BYTES: int = 4096

    CORS_ALLOWED_ORIGINS: str = "http://localhost:3000"  # comma-separated

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]


settings = Settings()

# Keys a deployed service cannot do without
REQUIRED_KEYS = ("DATABASE_URL", "CLERK_SECRET_KEY")


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Report missing required keys: RuntimeError in strict mode, a warning otherwise.

    Only key names are reported, never values.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("career_momentum")
    if strict is None:
        strict = bool(getattr(cfg, "CONFIG_STRICT", False))

    missing = [key for key in REQUIRED_KEYS if not getattr(cfg, key, None)]
    if not missing:
        return True

    message = f"Missing required configuration: {', '.join(missing)}"
    if strict:
        raise RuntimeError(message)
    log.warning(message)
    return True
