"""
Income Matrix API server

Run with:
    python -m app.main

Reads configuration from the environment / .env (see income_matrix.config),
builds the configured storage backend and serves the income API with uvicorn.
"""

import structlog
import uvicorn

from income_matrix.api import create_app
from income_matrix.audit import configure_logging
from income_matrix.config import get_settings, validate_all_settings
from income_matrix.orchestrator import create_service

logger = structlog.get_logger(__name__)


def build_app():
    settings = get_settings()
    app_settings = settings.app

    configure_logging(app_settings.log_level, json_output=not app_settings.debug_mode)

    if app_settings.storage_backend == "rest":
        # The server is the REST backend; pointing it at itself would loop
        raise SystemExit("STORAGE_BACKEND=rest is a client setting; use local or sheets for the server")

    logger.info(
        "income_api_starting",
        environment=app_settings.app_environment,
        storage_backend=app_settings.storage_backend,
        settings=validate_all_settings(),
    )
    return create_app(create_service(settings), settings=app_settings)


def main() -> None:
    app_settings = get_settings().app
    uvicorn.run(
        build_app(),
        host=app_settings.api_host,
        port=app_settings.api_port,
        log_level=app_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
