"""
Centralized configuration with environment variable overrides.

Slot grid, lead time, hold duration and backend settings are all
configurable here. Nothing is hardcoded in scheduling or backend logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from slotbook.logging_context import SessionIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] [%(session_id)s] %(levelname)s: %(message)s"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_float(env_var: str, default: str) -> float:
    """Parse a float from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return float(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid float for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot grid, booking lead time and hold timer settings."""

    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "15")
    lead_time_hours: int = _safe_int("LEAD_TIME_HOURS", "24")
    hold_duration_seconds: int = _safe_int("HOLD_DURATION_SECONDS", "1800")
    tick_interval_seconds: float = _safe_float("TICK_INTERVAL_SECONDS", "1.0")
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")


@dataclass(frozen=True)
class BackendConfig:
    """Settings for the REST persistence backend."""

    api_base_url: str = os.getenv("API_BASE_URL", "http://localhost:8000/api")
    timeout_seconds: float = _safe_float("API_TIMEOUT_SECONDS", "10.0")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "slotbook")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    step = config.scheduling.slot_step_minutes
    if step < 1 or (24 * 60) % step != 0:
        raise ValueError(
            f"SLOT_STEP_MINUTES must divide a day evenly, got {step}"
        )
    if config.scheduling.lead_time_hours < 0:
        raise ValueError(
            f"LEAD_TIME_HOURS must be >= 0, got {config.scheduling.lead_time_hours}"
        )
    if config.scheduling.hold_duration_seconds < 1:
        raise ValueError(
            "HOLD_DURATION_SECONDS must be >= 1, "
            f"got {config.scheduling.hold_duration_seconds}"
        )
    if config.scheduling.tick_interval_seconds <= 0:
        raise ValueError(
            "TICK_INTERVAL_SECONDS must be > 0, "
            f"got {config.scheduling.tick_interval_seconds}"
        )
    if config.backend.timeout_seconds <= 0:
        raise ValueError(
            f"API_TIMEOUT_SECONDS must be > 0, got {config.backend.timeout_seconds}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    handler = logging.StreamHandler()
    handler.addFilter(SessionIdFilter())
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
