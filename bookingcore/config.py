"""
Centralized configuration with environment variable overrides.

Slot granularity, response deadlines, sweep cadence and booking policy
switches all live here. Nothing time-related is hardcoded in the
scheduling or task modules.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


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


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag from an env var (true/false, 1/0, yes/no, on/off)."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot discretization and booking-window settings."""

    slot_interval_minutes: int = _safe_int("SLOT_INTERVAL_MINUTES", "30")
    default_service_duration: int = _safe_int("DEFAULT_SERVICE_DURATION", "30")
    min_advance_minutes: int = _safe_int("MIN_ADVANCE_MINUTES", "60")


@dataclass(frozen=True)
class WorkflowConfig:
    """Deadlines and policy switches for the booking lifecycle."""

    reschedule_offset_minutes: int = _safe_int("RESCHEDULE_OFFSET_MINUTES", "30")
    response_window_minutes: int = _safe_int("RESPONSE_WINDOW_MINUTES", "30")
    auto_assign_grace_minutes: int = _safe_int("AUTO_ASSIGN_GRACE_MINUTES", "0")
    allow_shop_pending_self_confirm: bool = _safe_bool(
        "ALLOW_SHOP_PENDING_SELF_CONFIRM", "false"
    )


@dataclass(frozen=True)
class TaskConfig:
    """Background sweep cadence and auxiliary cache bounds."""

    sweep_interval_minutes: int = _safe_int("SWEEP_INTERVAL_MINUTES", "5")
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    permission_cache_ttl_seconds: float = _safe_float("PERMISSION_CACHE_TTL_SECONDS", "60")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    workflow: WorkflowConfig = field(default_factory=WorkflowConfig)
    tasks: TaskConfig = field(default_factory=TaskConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    service_name: str = os.getenv("SERVICE_NAME", "booking-core")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    interval = config.scheduling.slot_interval_minutes
    if interval < 1 or 1440 % interval != 0:
        raise ValueError(
            f"SLOT_INTERVAL_MINUTES must divide a day evenly, got {interval}"
        )
    if config.scheduling.default_service_duration < 5:
        raise ValueError(
            "DEFAULT_SERVICE_DURATION must be >= 5, "
            f"got {config.scheduling.default_service_duration}"
        )
    if config.scheduling.min_advance_minutes < 0:
        raise ValueError(
            f"MIN_ADVANCE_MINUTES must be >= 0, got {config.scheduling.min_advance_minutes}"
        )
    if config.workflow.reschedule_offset_minutes < 1:
        raise ValueError(
            "RESCHEDULE_OFFSET_MINUTES must be >= 1, "
            f"got {config.workflow.reschedule_offset_minutes}"
        )
    if config.workflow.reschedule_offset_minutes % max(interval, 1):
        raise ValueError(
            "RESCHEDULE_OFFSET_MINUTES must be a multiple of SLOT_INTERVAL_MINUTES, "
            f"got {config.workflow.reschedule_offset_minutes} with {interval}"
        )
    if config.workflow.response_window_minutes < 1:
        raise ValueError(
            "RESPONSE_WINDOW_MINUTES must be >= 1, "
            f"got {config.workflow.response_window_minutes}"
        )
    if config.workflow.auto_assign_grace_minutes < 0:
        raise ValueError(
            "AUTO_ASSIGN_GRACE_MINUTES must be >= 0, "
            f"got {config.workflow.auto_assign_grace_minutes}"
        )
    sweep = config.tasks.sweep_interval_minutes
    if sweep < 1 or 60 % sweep != 0:
        raise ValueError(
            f"SWEEP_INTERVAL_MINUTES must divide an hour evenly, got {sweep}"
        )
    if config.tasks.permission_cache_ttl_seconds < 0:
        raise ValueError(
            "PERMISSION_CACHE_TTL_SECONDS must be >= 0, "
            f"got {config.tasks.permission_cache_ttl_seconds}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
