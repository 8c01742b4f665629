"""Configuration package for metabase-mcp.

Sub-modules:
    parsing    – Boolean, name-list, log-level and timeout parsing helpers
    server     – ServerConfig dataclass, get_config/set_config globals
    loader     – ServerConfig loading/validation mixin (_ServerConfigLoader)
"""

from metabase_mcp.config.parsing import (  # noqa: F401
    _normalize_log_level,
    _parse_bool,
    _parse_name_list,
    _parse_timeout,
)
from metabase_mcp.config.server import (  # noqa: F401
    _PACKAGE_VERSION,
    DEFAULT_REQUEST_TIMEOUT,
    ServerConfig,
    get_config,
    set_config,
)
