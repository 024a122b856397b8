"""
ArenaGuard - Configuration Module
=================================

Centralized configuration management with environment variable validation.

DESIGN:
    A single dataclass loaded from environment variables once, at first use.
    Every numeric knob goes through the same clamp-and-warn parser so a bad
    value in a deployment never silently produces zero retries or a zero
    deadline.

    Key patterns:
    - Singleton pattern via get_config() ensures one Config instance
    - Validation happens once at load time, not on every access
    - reset_config() lets tests reload after changing the environment
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Service configuration loaded from environment variables.

    Attributes:
        data_dir: Directory holding the SQLite database.
        db_name: Database file name inside data_dir.
        warn_threshold: Warnings at which a participant becomes "warned".
        large_community_threshold: Mention fan-out that requires administrator.
        invite_ttl_hours: Default invitation lifetime.
        redeem_max_attempts: CAS attempts for one invitation redemption.
        write_max_attempts: CAS attempts for ticket, role and channel writes.
        code_max_attempts: Code generation attempts before giving up.
        operation_timeout: Default deadline (seconds) for repository operations.
        change_poll_interval: Poll interval (seconds) for change subscriptions.
        timezone: Timezone name for human-facing timestamps.
        alert_webhook_url: Optional webhook that receives error alerts.
    """

    # -------------------------------------------------------------------------
    # Storage
    # -------------------------------------------------------------------------

    data_dir: Path = Path("data")
    db_name: str = "arenaguard.db"

    # -------------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------------

    warn_threshold: int = 3
    large_community_threshold: int = 500
    invite_ttl_hours: int = 24

    # -------------------------------------------------------------------------
    # Concurrency
    # -------------------------------------------------------------------------

    redeem_max_attempts: int = 5
    write_max_attempts: int = 8
    code_max_attempts: int = 10
    operation_timeout: float = 10.0
    change_poll_interval: float = 0.25

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    timezone: str = "UTC"
    alert_webhook_url: Optional[str] = None

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


def _parse_int_with_default(
    value: Optional[str],
    default: int,
    name: str,
    min_val: Optional[int] = None,
    max_val: Optional[int] = None,
) -> int:
    """
    Parse optional integer with default and range validation.

    Args:
        value: String value from environment variable.
        default: Default value if not set or invalid.
        name: Variable name for warning messages.
        min_val: Minimum allowed value (inclusive).
        max_val: Maximum allowed value (inclusive).

    Returns:
        Parsed integer within valid range, or default.
    """
    from arenaguard.core.logger import logger

    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _parse_float_with_default(
    value: Optional[str],
    default: float,
    name: str,
    min_val: float,
) -> float:
    """Parse optional positive float, clamping to min_val."""
    from arenaguard.core.logger import logger

    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if parsed < min_val:
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    return parsed


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """Return the URL if it looks like http(s), else None with a warning."""
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from arenaguard.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


def _validate_timezone(value: Optional[str]) -> str:
    if not value:
        return "UTC"
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        raise ConfigValidationError(f"Unknown timezone for ARENAGUARD_TIMEZONE: {value}")
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object with all settings.

    Raises:
        ConfigValidationError: If a value cannot be used at all.
    """
    env = os.getenv

    return Config(
        data_dir=Path(env("ARENAGUARD_DATA_DIR") or "data"),
        db_name=env("ARENAGUARD_DB_NAME") or "arenaguard.db",
        warn_threshold=_parse_int_with_default(
            env("ARENAGUARD_WARN_THRESHOLD"), 3, "ARENAGUARD_WARN_THRESHOLD", min_val=1,
        ),
        large_community_threshold=_parse_int_with_default(
            env("ARENAGUARD_LARGE_COMMUNITY_THRESHOLD"), 500,
            "ARENAGUARD_LARGE_COMMUNITY_THRESHOLD", min_val=1,
        ),
        invite_ttl_hours=_parse_int_with_default(
            env("ARENAGUARD_INVITE_TTL_HOURS"), 24, "ARENAGUARD_INVITE_TTL_HOURS",
            min_val=1, max_val=8760,
        ),
        redeem_max_attempts=_parse_int_with_default(
            env("ARENAGUARD_REDEEM_MAX_ATTEMPTS"), 5, "ARENAGUARD_REDEEM_MAX_ATTEMPTS",
            min_val=1, max_val=50,
        ),
        write_max_attempts=_parse_int_with_default(
            env("ARENAGUARD_WRITE_MAX_ATTEMPTS"), 8, "ARENAGUARD_WRITE_MAX_ATTEMPTS",
            min_val=1, max_val=50,
        ),
        code_max_attempts=_parse_int_with_default(
            env("ARENAGUARD_CODE_MAX_ATTEMPTS"), 10, "ARENAGUARD_CODE_MAX_ATTEMPTS",
            min_val=1, max_val=100,
        ),
        operation_timeout=_parse_float_with_default(
            env("ARENAGUARD_OPERATION_TIMEOUT"), 10.0, "ARENAGUARD_OPERATION_TIMEOUT", 0.1,
        ),
        change_poll_interval=_parse_float_with_default(
            env("ARENAGUARD_CHANGE_POLL_INTERVAL"), 0.25, "ARENAGUARD_CHANGE_POLL_INTERVAL", 0.01,
        ),
        timezone=_validate_timezone(env("ARENAGUARD_TIMEZONE")),
        alert_webhook_url=_validate_url(
            env("ARENAGUARD_ALERT_WEBHOOK_URL"), "ARENAGUARD_ALERT_WEBHOOK_URL",
        ),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Drop the cached config so the next get_config() re-reads the environment."""
    global _config
    _config = None


def validate_and_log_config() -> None:
    """
    Validate configuration and log a summary at startup.

    Raises:
        ConfigValidationError: If configuration is invalid.
    """
    from arenaguard.core.logger import logger

    config = get_config()
    logger.set_webhook(config.alert_webhook_url)

    logger.tree("Configuration Validated", [
        ("Database", str(config.db_path)),
        ("Warn Threshold", str(config.warn_threshold)),
        ("Large Community", str(config.large_community_threshold)),
        ("Invite TTL", f"{config.invite_ttl_hours}h"),
        ("Redeem Attempts", str(config.redeem_max_attempts)),
        ("Timeout", f"{config.operation_timeout}s"),
        ("Webhook Alerts", "Enabled" if config.alert_webhook_url else "Disabled"),
    ], emoji="⚙️")


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "get_config",
    "load_config",
    "reset_config",
    "validate_and_log_config",
]
