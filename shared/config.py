"""Application configuration with startup validation.

All config is validated at import time via pydantic-settings.
Invalid values cause an immediate, clear error.
"""

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "CS_", "env_file": ".env"}

    # Result cache
    cache_ttl_seconds: float = 1.0

    # Intake window handed to the engine
    intake_window_hours: float = 24.0
    max_future_intake_hours: float = 24.0

    # Sleep fallback when no record exists for last night
    default_sleep_hours: float = 7.5

    # Timezone used to read "now" for circadian factors
    timezone: str = "UTC"

    # API
    api_version: str = "v1"

    # Logging
    log_json: bool = True

    @model_validator(mode="after")
    def validate_ranges(self) -> "Settings":
        """Fail fast at startup on out-of-range windows, TTL or timezone."""
        invalid = []
        if self.cache_ttl_seconds <= 0:
            invalid.append("CS_CACHE_TTL_SECONDS")
        if self.intake_window_hours <= 0:
            invalid.append("CS_INTAKE_WINDOW_HOURS")
        if self.max_future_intake_hours < 0:
            invalid.append("CS_MAX_FUTURE_INTAKE_HOURS")
        if not 0 < self.default_sleep_hours <= 24:
            invalid.append("CS_DEFAULT_SLEEP_HOURS")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            invalid.append("CS_TIMEZONE")
        if invalid:
            raise ValueError(f"Out-of-range configuration values: {', '.join(invalid)}")
        return self


settings = Settings()
