"""
Run the membership lookup API server.

Usage:
    python run_api.py
"""

import uvicorn

from membership.api import create_api_app
from membership.config import settings
from membership.utils.logging import get_logger, setup_logging


def main():
    """Run the API server."""
    setup_logging(settings.log_level)
    logger = get_logger("run_api")

    if not settings.is_moonclerk_configured:
        logger.warning("MOONCLERK_API_KEY not set, customer refreshes will fail")

    app = create_api_app()
    logger.info("Starting membership API", host=settings.api_host, port=settings.api_port)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
