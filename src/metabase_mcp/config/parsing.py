"""Parsing and normalization helpers for configuration values."""

import logging
from typing import Any, List

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _parse_name_list(value: Any) -> List[str]:
    """Parse a comma separated string or a list into stripped, non-empty names."""
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        return []
    return [item.strip() for item in items if item.strip()]


def _normalize_log_level(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in _VALID_LOG_LEVELS:
        logger.warning(
            "Invalid log level '%s'. Falling back to 'INFO'. Valid options: %s",
            value,
            ", ".join(sorted(_VALID_LOG_LEVELS)),
        )
        return "INFO"
    return normalized


def _parse_timeout(value: Any, default: float) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid request timeout '%s'. Falling back to %.1f seconds", value, default)
        return default
    if timeout <= 0:
        logger.warning("Request timeout must be positive, got %s. Falling back to %.1f seconds", value, default)
        return default
    return timeout
