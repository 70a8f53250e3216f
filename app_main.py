"""Application entry point for the classroom coordinator."""

from __future__ import annotations

import socket

from classroom_app.config import settings
from classroom_app.constants.network_constants import WEBSOCKET_PATH
from classroom_app.server.api_server import run_api_server
from classroom_app.utils.logging_config import configure_logging


def _determine_socket_url(port: int) -> str:
    """Best-effort determination of the local IP for the client-facing URL."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"ws://{ip_address}:{port}{WEBSOCKET_PATH}"


def main() -> None:
    """Initialize logging and serve the classroom WebSocket until interrupted."""
    logger = configure_logging(settings.LOG_LEVEL)
    logger.info("Starting %s…", settings.APP_NAME)
    logger.info("Classroom socket available at %s", _determine_socket_url(settings.PORT))
    run_api_server(settings)


if __name__ == "__main__":
    main()
