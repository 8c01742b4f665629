"""Command line entry point: ``metabase-mcp``."""

import json
import logging
import sys
from typing import Optional

import anyio
import click

from metabase_mcp.config import ServerConfig, _normalize_log_level, set_config
from metabase_mcp.core.errors import ConfigurationError
from metabase_mcp.server import create_gateway, run_stdio

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.command("metabase-mcp")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a TOML config file.",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.option(
    "--list-tools",
    is_flag=True,
    help="Print the tool catalog as JSON and exit.",
)
@click.version_option(package_name="metabase-mcp")
def main(config_file: Optional[str], log_level: Optional[str], list_tools: bool) -> None:
    """Serve the Metabase REST API as MCP tools over stdio."""
    config = ServerConfig.from_env(config_file)
    if log_level:
        config.log_level = _normalize_log_level(log_level)
    config.setup_logging()
    for warning in config.startup_warnings:
        logger.warning(warning)
    set_config(config)

    try:
        gateway = create_gateway(config)
    except ConfigurationError as exc:
        click.echo(f"Configuration error: {exc.message}", err=True)
        sys.exit(2)

    if list_tools:
        catalog = [descriptor.to_dict() for descriptor in gateway.dispatcher.list_descriptors()]
        anyio.run(gateway.aclose)
        click.echo(json.dumps(catalog, indent=2))
        return

    try:
        run_stdio(gateway)
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
