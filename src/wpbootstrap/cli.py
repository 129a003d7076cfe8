import logging
import os

import click
from rich.logging import RichHandler

from . import __version__
from .application_agent import ApplicationBootstrapAgent
from .constants import (
    DEFAULT_DATA_DIR,
    DEFAULT_DOWNLOAD_URL,
    DEFAULT_MYSQL_SYSTEM_USER,
    DEFAULT_TRANSIENT_SOCKET,
    DEFAULT_WEB_LOG_DIR,
    DEFAULT_WEB_ROOT,
    DEFAULT_WEB_USER,
    DEFAULT_WP_CLI,
    EXTERNAL_MAX_ATTEMPTS,
    EXTERNAL_POLL_INTERVAL,
    SHUTDOWN_TIMEOUT,
    TRANSIENT_MAX_ATTEMPTS,
    TRANSIENT_POLL_INTERVAL,
)
from .core import console
from .database_agent import DatabaseBootstrapAgent
from .errors import BootstrapError
from .services.config_loader import ConfigLoader
from .services.validation import ValidationService

DEFAULT_CONFIG_PATH = "/etc/wpbootstrap.yml"
AGENT_CONTEXT = {"ignore_unknown_options": True, "allow_interspersed_args": False}


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
)


def _load_config(config):
    resolved_config = config
    if resolved_config is None and os.path.exists(DEFAULT_CONFIG_PATH):
        resolved_config = DEFAULT_CONFIG_PATH

    try:
        return ConfigLoader().load(resolved_config)
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc


def _configure_logging(verbose, log_file):
    logger = logging.getLogger("wpbootstrap")
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)


def common_options(func):
    func = click.option("--log-file", type=click.Path(), help="Also write logs to this file.")(func)
    func = click.option("--verbose", is_flag=True, default=None, help="Enable debug logging.")(func)
    func = click.option(
        "--config",
        required=False,
        type=click.Path(),
        envvar="WPBOOTSTRAP_CONFIG",
        help=f"YAML file with tool settings. Defaults to {DEFAULT_CONFIG_PATH} if present.",
    )(func)
    return func


def _apply_logging_options(config_values, verbose, log_file):
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    _configure_logging(verbose, log_file)


@click.group()
@click.version_option(__version__, prog_name="wpbootstrap")
def main():
    """First-run bootstrap agents for WordPress and MariaDB containers.

    Use as the container ENTRYPOINT; the trailing arguments are the server
    command that takes over once bootstrap is complete.
    """


@main.command("mysql", context_settings=AGENT_CONTEXT)
@common_options
@click.option(
    "--data-dir",
    required=False,
    help=f"Database data directory (default: {DEFAULT_DATA_DIR}).",
)
@click.option(
    "--socket",
    "socket_path",
    required=False,
    help=f"Socket for the temporary server (default: {DEFAULT_TRANSIENT_SOCKET}).",
)
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Readiness probes before giving up.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds between readiness probes.",
)
@click.option(
    "--shutdown-timeout",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds to wait for the temporary server to exit.",
)
@click.argument("server_command", nargs=-1, type=click.UNPROCESSED)
def mysql(
    config,
    verbose,
    log_file,
    data_dir,
    socket_path,
    max_attempts,
    poll_interval,
    shutdown_timeout,
    server_command,
):
    """Provision MariaDB on first start, then exec the database server."""
    config_values = _load_config(config)

    try:
        settings = ValidationService().load_database_settings(os.environ)
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    _apply_logging_options(config_values, verbose, log_file)

    agent = DatabaseBootstrapAgent(
        settings=settings,
        server_command=server_command,
        data_dir=_resolve_option(data_dir, config_values, "data_dir", default=DEFAULT_DATA_DIR),
        socket_path=_resolve_option(
            socket_path, config_values, "socket", default=DEFAULT_TRANSIENT_SOCKET
        ),
        system_user=_resolve_option(
            None, config_values, "mysql_system_user", default=DEFAULT_MYSQL_SYSTEM_USER
        ),
        max_attempts=int(
            _resolve_option(
                max_attempts, config_values, "max_attempts", default=TRANSIENT_MAX_ATTEMPTS
            )
        ),
        poll_interval=float(
            _resolve_option(
                poll_interval, config_values, "poll_interval", default=TRANSIENT_POLL_INTERVAL
            )
        ),
        shutdown_timeout=float(
            _resolve_option(
                shutdown_timeout, config_values, "shutdown_timeout", default=SHUTDOWN_TIMEOUT
            )
        ),
    )
    raise SystemExit(agent.run())


@main.command("wordpress", context_settings=AGENT_CONTEXT)
@common_options
@click.option(
    "--web-root",
    required=False,
    help=f"WordPress directory (default: {DEFAULT_WEB_ROOT}).",
)
@click.option("--web-user", required=False, help=f"Serving user (default: {DEFAULT_WEB_USER}).")
@click.option(
    "--max-attempts",
    type=click.IntRange(min=1),
    default=None,
    help="Database probes before giving up.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0),
    default=None,
    help="Seconds between database probes.",
)
@click.option(
    "--allow-insecure-http",
    is_flag=True,
    default=None,
    help="Allow an HTTP core download mirror (insecure).",
)
@click.argument("server_command", nargs=-1, type=click.UNPROCESSED)
def wordpress(
    config,
    verbose,
    log_file,
    web_root,
    web_user,
    max_attempts,
    poll_interval,
    allow_insecure_http,
    server_command,
):
    """Prepare WordPress on first start, then exec the web server."""
    config_values = _load_config(config)

    try:
        settings = ValidationService().load_wordpress_settings(os.environ)
    except BootstrapError as exc:
        raise click.ClickException(str(exc)) from exc

    _apply_logging_options(config_values, verbose, log_file)

    agent = ApplicationBootstrapAgent(
        settings=settings,
        server_command=server_command,
        web_root=_resolve_option(web_root, config_values, "web_root", default=DEFAULT_WEB_ROOT),
        web_user=_resolve_option(web_user, config_values, "web_user", default=DEFAULT_WEB_USER),
        log_dir=_resolve_option(None, config_values, "log_dir", default=DEFAULT_WEB_LOG_DIR),
        wp_cli=_resolve_option(None, config_values, "wp_cli", default=DEFAULT_WP_CLI),
        download_url=_resolve_option(
            None, config_values, "download_url", default=DEFAULT_DOWNLOAD_URL
        ),
        allow_insecure_http=bool(
            _resolve_option(
                allow_insecure_http, config_values, "allow_insecure_http", default=False
            )
        ),
        max_attempts=int(
            _resolve_option(
                max_attempts, config_values, "max_attempts", default=EXTERNAL_MAX_ATTEMPTS
            )
        ),
        poll_interval=float(
            _resolve_option(
                poll_interval, config_values, "poll_interval", default=EXTERNAL_POLL_INTERVAL
            )
        ),
    )
    raise SystemExit(agent.run())


if __name__ == "__main__":
    main()
