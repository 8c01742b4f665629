"""Credential resolution.

Decides once, at startup, how the gateway authenticates against Metabase:
a static API key, or a username/password pair exchanged for a session token.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from metabase_mcp.core.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiKey:
    """Static API key sent as ``X-API-Key`` on every request."""

    key: str = field(repr=False)


@dataclass(frozen=True)
class BasicAuth:
    """Username/password pair exchanged for a session token on first use."""

    username: str
    password: str = field(repr=False)


Credential = Union[ApiKey, BasicAuth]


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def resolve_credential(config) -> Credential:
    """Pick the active credential from *config*.

    An API key takes precedence. Otherwise both username and password must be
    present.

    Raises:
        ConfigurationError: neither an API key nor a complete
            username/password pair is configured.
    """
    api_key = _clean(getattr(config, "api_key", None))
    if api_key:
        logger.info("Using Metabase API key for authentication")
        return ApiKey(api_key)

    username = _clean(getattr(config, "username", None))
    password = getattr(config, "password", None) or None
    if username and password:
        logger.info("Using Metabase username/password for authentication")
        return BasicAuth(username, password)

    if username or password:
        missing = "METABASE_PASSWORD" if username else "METABASE_USERNAME"
        raise ConfigurationError(
            f"Metabase authentication credentials incomplete: {missing} is not set"
        )
    raise ConfigurationError(
        "Metabase authentication credentials not provided. "
        "Set METABASE_API_KEY or METABASE_USERNAME and METABASE_PASSWORD"
    )
