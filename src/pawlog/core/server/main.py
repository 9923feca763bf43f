"""Command-line entry point for the ``pawlog`` script.

Serves the MCP tools over Streamable HTTP. The tools have no
authentication of their own, so the server only listens on a loopback
address unless ``PAWLOG_ALLOW_INSECURE_BIND`` is set.
"""

from __future__ import annotations

import logging
from ipaddress import ip_address

from pawlog.core.config.settings import Settings, get_settings
from pawlog.core.server.app import create_app

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_LOOPBACK_NAMES = frozenset({"localhost", "localhost.localdomain"})


class InsecureBindError(RuntimeError):
    """The configured host would expose the tools beyond this machine."""


def _is_loopback_host(host: str) -> bool:
    if host.lower() in _LOOPBACK_NAMES:
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def _configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


def _check_bind(settings: Settings) -> None:
    if settings.pawlog_allow_insecure_bind or _is_loopback_host(settings.pawlog_host):
        return
    raise InsecureBindError(
        f"pawlog_host={settings.pawlog_host!r} is a non-loopback address and the "
        "tools have no auth layer. Set PAWLOG_ALLOW_INSECURE_BIND=true to bind anyway."
    )


def run() -> None:
    settings = get_settings()
    _configure_logging(settings.pawlog_log_level)
    _check_bind(settings)

    logging.getLogger(__name__).info(
        "pawlog listening on http://%s:%d", settings.pawlog_host, settings.pawlog_port
    )
    create_app().run(
        transport="streamable-http",
        host=settings.pawlog_host,
        port=settings.pawlog_port,
    )


if __name__ == "__main__":
    run()
