"""
Centralized configuration with environment variable overrides.

Scheduling defaults, reminder windows, and notification channels are
configurable here. Per-professional availability documents copy these
defaults when they are first created.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_engine.logging_context import LOG_FORMAT, install_context_filter

load_dotenv()

logger = logging.getLogger(__name__)

WEEKDAYS = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class SchedulingConfig:
    """Defaults for new availability documents and slot generation."""

    buffer_minutes: int = _safe_int("DEFAULT_BUFFER_MINUTES", "30")
    advance_booking_days: int = _safe_int("DEFAULT_ADVANCE_BOOKING_DAYS", "60")
    min_notice_hours: int = _safe_int("DEFAULT_MIN_NOTICE_HOURS", "24")
    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    default_duration_minutes: int = _safe_int("DEFAULT_DURATION_MINUTES", "60")
    timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    working_days: str = os.getenv(
        "DEFAULT_WORKING_DAYS", "monday,tuesday,wednesday,thursday,friday"
    )
    working_hours: str = os.getenv("DEFAULT_WORKING_HOURS", "09:00-12:00,14:00-18:00")

    @property
    def working_day_names(self) -> tuple[str, ...]:
        return _split_csv(self.working_days)

    @property
    def working_hour_ranges(self) -> list[tuple[str, str]]:
        """Working hours as ``(start, end)`` pairs, e.g. ``[("09:00", "12:00")]``."""
        ranges = []
        for chunk in self.working_hours.split(","):
            chunk = chunk.strip()
            if not chunk:
                continue
            start, _, end = chunk.partition("-")
            ranges.append((start.strip(), end.strip()))
        return ranges


@dataclass(frozen=True)
class ReminderConfig:
    """Reminder sweep settings."""

    hours_ahead: int = _safe_int("REMINDER_HOURS_AHEAD", "24")


@dataclass(frozen=True)
class NotificationConfig:
    """Delivery channels attached to outgoing notifications."""

    channels: str = os.getenv("NOTIFICATION_CHANNELS", "push,in_app,whatsapp")

    @property
    def channel_list(self) -> list[str]:
        return list(_split_csv(self.channels))


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    reminders: ReminderConfig = field(default_factory=ReminderConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    # "module:callable" returning the StoreBackend used by batch commands.
    store_backend: str = os.getenv(
        "BOOKING_STORE_BACKEND", "booking_engine.stores.backend:in_memory_backend"
    )
    service_name: str = os.getenv("SERVICE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    sched = config.scheduling
    if sched.buffer_minutes < 0:
        raise ValueError(
            f"DEFAULT_BUFFER_MINUTES must be >= 0, got {sched.buffer_minutes}"
        )
    if sched.advance_booking_days < 1:
        raise ValueError(
            f"DEFAULT_ADVANCE_BOOKING_DAYS must be >= 1, got {sched.advance_booking_days}"
        )
    if sched.min_notice_hours < 0:
        raise ValueError(
            f"DEFAULT_MIN_NOTICE_HOURS must be >= 0, got {sched.min_notice_hours}"
        )
    if not 1 <= sched.slot_step_minutes <= 1440:
        raise ValueError(
            f"SLOT_STEP_MINUTES must be between 1 and 1440, got {sched.slot_step_minutes}"
        )
    if sched.default_duration_minutes < 1:
        raise ValueError(
            "DEFAULT_DURATION_MINUTES must be >= 1, "
            f"got {sched.default_duration_minutes}"
        )

    unknown_days = [d for d in sched.working_day_names if d not in WEEKDAYS]
    if unknown_days:
        raise ValueError(f"DEFAULT_WORKING_DAYS has unknown weekdays: {unknown_days}")

    for start, end in sched.working_hour_ranges:
        if not start or not end or start >= end:
            raise ValueError(
                f"DEFAULT_WORKING_HOURS has an invalid range: {start!r}-{end!r}"
            )

    if config.reminders.hours_ahead < 1:
        raise ValueError(
            f"REMINDER_HOURS_AHEAD must be >= 1, got {config.reminders.hours_ahead}"
        )
    if not config.notifications.channel_list:
        raise ValueError("NOTIFICATION_CHANNELS must name at least one channel")
    if ":" not in config.store_backend:
        raise ValueError(
            f"BOOKING_STORE_BACKEND must look like 'module:callable', got {config.store_backend!r}"
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
    for handler in logging.getLogger().handlers:
        install_context_filter(handler)
    logger.info("Configuration loaded for '%s'", config.service_name)
    return config


# Singleton instance
settings = load_config()
