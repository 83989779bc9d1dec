"""
Runs the OCR gateway with uvicorn: python -m ocr_gateway
"""
import socket
import sys

import uvicorn
from fastapi import FastAPI

from ocr_gateway.app import create_app
from ocr_gateway.settings import settings
from ocr_gateway.utils.utils import setup_logging

FALLBACK_HOST = "0.0.0.0"


def bind_socket(host: str, port: int) -> socket.socket:
    sock = socket.socket(socket.AF_INET6 if ":" in host else socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


def bind_listening_socket(host: str, port: int) -> socket.socket:
    """Binds the configured host, falling back to all interfaces; exits the process if both fail."""
    log = setup_logging(component_name="server", log_level=settings.LOG_LEVEL)
    try:
        return bind_socket(host, port)
    except OSError as bind_error:
        log.error(f"Failed to start server on {host}:{port}: {bind_error}")
        if host == FALLBACK_HOST:
            sys.exit(1)

    log.warning(f"Trying {FALLBACK_HOST}:{port}...")
    try:
        return bind_socket(FALLBACK_HOST, port)
    except OSError as bind_error:
        log.critical(f"Failed to start server on {FALLBACK_HOST}:{port}: {bind_error}")
        sys.exit(1)


def log_banner(host: str, port: int) -> None:
    log = setup_logging(component_name="server", log_level=settings.LOG_LEVEL)
    base_url = f"http://{host}:{port}"
    log.info(f"{settings.OCR_SERVICE_APP_NAME} {settings.OCR_SERVICE_VERSION} listening on {host}:{port}")
    log.info(f"  POST {base_url}/api/ocr         - Upload image for OCR (form field 'image')")
    log.info(f"  POST {base_url}/api/ocr/base64  - Submit base64 encoded image")
    log.info(f"  POST {base_url}/api/ocr/url     - Submit image URL for OCR")
    log.info(f"  GET  {base_url}/api/health      - Health check")
    log.info(f"  GET  {base_url}/api/version     - Version info")


def main(app: FastAPI | None = None) -> None:
    sock = bind_listening_socket(settings.OCR_SERVICE_HOST, settings.OCR_SERVICE_PORT)
    host, port = sock.getsockname()[:2]

    if app is None:
        # the engine is loaded only once the port is secured
        app = create_app()

    config = uvicorn.Config(app,
                            log_level=settings.LOG_LEVEL,
                            timeout_keep_alive=settings.OCR_SERVICE_READ_TIMEOUT)
    log_banner(host, port)
    uvicorn.Server(config).run(sockets=[sock])


if __name__ == "__main__":
    main()
