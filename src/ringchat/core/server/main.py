"""ringchat server entry point: ``python -m ringchat.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from ringchat.core.config.settings import Settings, get_settings
from ringchat.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Chatty at INFO: one line per HTTP request.
QUIET_LOGGERS = ("httpx", "httpcore")


class InsecureBindError(RuntimeError):
    """The configured host is reachable from other machines."""


def is_loopback_host(host: str) -> bool:
    if host.lower() == "localhost":
        return True
    try:
        return ip_address(host.strip("[]")).is_loopback
    except ValueError:
        return False


def check_bind_host(settings: Settings) -> None:
    """Refuse non-loopback binds unless explicitly allowed.

    Session cookies are the only credential guarding a user's Oura tokens.
    """
    if settings.app_allow_insecure_bind or is_loopback_host(settings.app_host):
        return
    raise InsecureBindError(
        f"Refusing to bind ringchat to non-loopback host {settings.app_host!r}. "
        "Set APP_ALLOW_INSECURE_BIND=true to override (unsafe)."
    )


def configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def run() -> None:
    """Start the ringchat server: MCP over Streamable HTTP plus the query and data routes."""
    settings = get_settings()
    configure_logging(settings.app_log_level)
    check_bind_host(settings)

    logger = logging.getLogger(__name__)
    logger.info(
        "Starting ringchat on http://%s:%d (data: %s, llm: %s)",
        settings.app_host,
        settings.app_port,
        settings.data_provider,
        settings.llm_provider,
    )

    mcp = create_app()
    mcp.run(transport="streamable-http", host=settings.app_host, port=settings.app_port)


if __name__ == "__main__":
    run()
