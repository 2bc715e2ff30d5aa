"""Engine configuration loaded from environment variables."""
import logging
from functools import lru_cache

from pydantic import Field, ValidationError, model_validator
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class EngineSettings(BaseSettings):
    """Outbreak engine settings loaded from environment."""

    # Analysis
    analysis_window_days: int = Field(7, ge=1)
    outbreak_threshold: int = Field(5, ge=1)
    alert_score_threshold: float = Field(0.6, ge=0.0, le=1.0)
    critical_score_threshold: float = Field(0.8, ge=0.0, le=1.0)

    # Scheduling
    sweep_interval_seconds: float = Field(3600.0, gt=0)
    max_concurrency: int = Field(0, ge=0)  # 0 = min(units, cpu * 4)
    history_size: int = Field(10, ge=1)

    # Collaborators
    store_url: str = "http://localhost:8080"
    sink_url: str = "http://localhost:8080"
    request_timeout: float = Field(30.0, gt=0)

    class Config:
        env_prefix = "OUTBREAK_"

    @model_validator(mode="after")
    def _check_threshold_order(self) -> "EngineSettings":
        if self.alert_score_threshold >= self.critical_score_threshold:
            raise ValueError(
                "alert_score_threshold must be below critical_score_threshold "
                f"({self.alert_score_threshold} >= {self.critical_score_threshold})"
            )
        return self


def load_settings(**overrides) -> EngineSettings:
    """Build and validate settings, raising ConfigurationError on bad values."""
    try:
        settings = EngineSettings(**overrides)
    except ValidationError as e:
        logger.error(f"[CONFIG] Invalid engine settings: {e}")
        raise ConfigurationError(
            "Invalid engine settings",
            errors=[err["msg"] for err in e.errors()],
        ) from e

    logger.info(
        f"[CONFIG] window={settings.analysis_window_days}d, "
        f"outbreak_threshold={settings.outbreak_threshold}, "
        f"alert>{settings.alert_score_threshold}, "
        f"critical>{settings.critical_score_threshold}"
    )
    return settings


@lru_cache
def get_settings() -> EngineSettings:
    return load_settings()
