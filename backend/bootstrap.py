"""
Statement Reconciliation - Startup

Configures logging and error tracking from settings and prepares the
database. Host applications call startup()/shutdown() around their own
lifecycle.

Run: python bootstrap.py   (creates the tables)
"""

import asyncio
import logging
from typing import Optional

from config import Settings, get_settings
from database import dispose_engine, init_db
from logging_config import setup_logging
from sentry_integration import init_sentry

logger = logging.getLogger(__name__)


def configure_observability(settings: Optional[Settings] = None) -> Settings:
    """Set up structured logging and Sentry; returns the settings used."""
    settings = settings or get_settings()

    setup_logging(
        level=settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        service_name=settings.SERVICE_NAME
    )

    if settings.SENTRY_DSN:
        init_sentry(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.1 if settings.is_production else 0.0,
        )

    return settings


async def startup(settings: Optional[Settings] = None):
    """Configure observability, validate configuration and create tables."""
    settings = configure_observability(settings)

    logger.info(f"Starting {settings.SERVICE_NAME} ({settings.ENVIRONMENT})")

    errors = settings.validate_production_config()
    for error in errors:
        logger.error(f"Configuration Error: {error}")
    if errors and settings.is_production:
        raise RuntimeError("Cannot start in production with invalid configuration")

    try:
        await init_db()
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def shutdown():
    logger.info("Shutting down statement reconciliation")
    await dispose_engine()


async def _create_tables():
    await startup()
    await shutdown()


if __name__ == "__main__":
    asyncio.run(_create_tables())
