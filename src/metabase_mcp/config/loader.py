"""ServerConfig loading and validation logic.

Provides ``_ServerConfigLoader``, a mixin class whose methods are inherited by
``ServerConfig`` (defined in ``server.py``).  Splitting loading/validation
logic into its own module keeps ``server.py`` focused on field definitions and
simple accessor methods.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, cast

from metabase_mcp.config.parsing import (
    _normalize_log_level,
    _parse_bool,
    _parse_name_list,
    _parse_timeout,
)
from metabase_mcp.core.errors import ConfigurationError

if TYPE_CHECKING:
    from metabase_mcp.config.server import ServerConfig

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "METABASE_MCP_CONFIG_FILE"


class _ServerConfigLoader:
    """Mixin providing config-loading methods for ``ServerConfig``.

    These methods are inherited by the ``ServerConfig`` dataclass defined in
    ``server.py``.  At runtime ``self`` is always a ``ServerConfig`` instance.
    """

    if TYPE_CHECKING:
        metabase_url: Optional[str]
        api_key: Optional[str]
        username: Optional[str]
        password: Optional[str]
        request_timeout: float
        log_level: str
        structured_logging: bool
        server_name: str
        server_version: str
        disabled_tools: List[str]

        def _add_startup_warning(self, warning: str) -> None: ...

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Explicit TOML file (argument or METABASE_MCP_CONFIG_FILE)
        3. Project TOML config (./metabase-mcp.toml)
        4. XDG config (~/.config/metabase-mcp/config.toml)
        5. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "metabase-mcp" / "config.toml"
            if xdg_config.exists():
                config._load_toml(xdg_config)
                logger.debug("Loaded XDG config from %s", xdg_config)

            project_config = Path("metabase-mcp.toml")
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug("Loaded project config from %s", project_config)

        config._load_env()
        return cast("ServerConfig", config)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning("Config file not found: %s", path)
            self._add_startup_warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error("Error loading config file %s: %s", path, e)
            self._add_startup_warning(f"Ignoring unreadable config file {path}: {e}")
            return

        self._apply_toml(data, source=str(path))

    def _apply_toml(self, data: dict[str, Any], *, source: str = "<toml>") -> None:
        """Apply an already-parsed TOML document."""
        if "metabase" in data:
            mb = data["metabase"]
            if "url" in mb:
                self.metabase_url = str(mb["url"])
            if "api_key" in mb:
                self.api_key = str(mb["api_key"])
            if "username" in mb:
                self.username = str(mb["username"])
            if "password" in mb:
                self.password = str(mb["password"])
            if "request_timeout" in mb:
                self.request_timeout = _parse_timeout(mb["request_timeout"], self.request_timeout)

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _normalize_log_level(str(log["level"]))
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "server" in data:
            srv = data["server"]
            if "name" in srv:
                self.server_name = str(srv["name"])

        if "tools" in data:
            tools_cfg = data["tools"]
            if "disabled" in tools_cfg:
                self.disabled_tools = _parse_name_list(tools_cfg["disabled"])
            elif "disabled_tools" in tools_cfg:
                self._add_startup_warning(
                    f"{source}: [tools].disabled_tools is deprecated, use [tools].disabled"
                )
                self.disabled_tools = _parse_name_list(tools_cfg["disabled_tools"])

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if url := os.environ.get("METABASE_URL"):
            self.metabase_url = url

        if api_key := os.environ.get("METABASE_API_KEY"):
            self.api_key = api_key

        if username := os.environ.get("METABASE_USERNAME"):
            self.username = username

        if password := os.environ.get("METABASE_PASSWORD"):
            self.password = password

        if timeout := os.environ.get("METABASE_REQUEST_TIMEOUT"):
            self.request_timeout = _parse_timeout(timeout, self.request_timeout)

        if level := os.environ.get("METABASE_MCP_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)

        if structured := os.environ.get("METABASE_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        if disabled := os.environ.get("METABASE_MCP_DISABLED_TOOLS"):
            self.disabled_tools = _parse_name_list(disabled)

    def validate(self) -> None:
        """Fail fast on configuration that cannot start a server.

        Credential completeness is checked by the credential resolver; this
        only covers settings every mode needs.
        """
        if not self.metabase_url or not self.metabase_url.strip():
            raise ConfigurationError(
                "Metabase URL not configured. Set METABASE_URL or [metabase].url"
            )
        if not self.metabase_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Metabase URL must start with http:// or https://, got '{self.metabase_url}'"
            )
