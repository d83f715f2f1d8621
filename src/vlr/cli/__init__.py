"""CLI module for Video Library Renditions."""

import logging
from pathlib import Path

import click

from vlr.cli.exit_codes import ExitCode
from vlr.cli.output import error_exit
from vlr.config import ConfigError, build_logging_config, get_config
from vlr.logging import configure_logging

logger = logging.getLogger(__name__)


def _configure_logging(
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from the config file merged with CLI options.

    Args:
        config_path: Config file, or None for the default location.
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.
    """
    try:
        config = get_config(config_path)
    except ConfigError as e:
        error_exit(str(e), ExitCode.CONFIG_ERROR)

    logging_config = build_logging_config(
        config.logging,
        level=log_level,
        file=log_file,
        format="json" if log_json else None,
    )
    configure_logging(logging_config)
    logger.debug(
        "VLR starting: log_level=%s, log_file=%s",
        logging_config.level,
        logging_config.file or "stderr",
    )


@click.group()
@click.version_option(package_name="video-library-renditions")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.vlr/config.toml or VLR_CONFIG_PATH).",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    config_path: Path | None,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Video Library Renditions - streaming renditions for a video library."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path

    _configure_logging(config_path, log_level, log_file, log_json)


# Defer import to avoid circular dependency
def _register_commands():
    from vlr.cli.render import plan_command, render_command

    main.add_command(render_command)
    main.add_command(plan_command)


_register_commands()
