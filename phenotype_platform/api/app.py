"""
FastAPI application factory.

``create_app()`` builds the fully configured application with:
- Lifespan: logging setup, environment validation, DB engine, rate
  limiter, health checker (all stored on ``app.state``)
- CORS middleware
- RFC 9457 error handlers
- Health endpoint at ``/health``, diagnostics under ``/api/debug``

Start with::

    uvicorn phenotype_platform.api.app:create_app --factory
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import aiohttp
from dotenv import load_dotenv
from fastapi import FastAPI

from phenotype_platform import __version__
from phenotype_platform.api.errors import register_error_handlers
from phenotype_platform.api.middleware.cors import configure_cors
from phenotype_platform.api.services.health_service import HealthChecker
from phenotype_platform.db.postgres import Database
from phenotype_platform.environment import check_environment_on_startup
from phenotype_platform.logging_config import setup_logging
from phenotype_platform.rate_limit import RateLimitService
from phenotype_platform.settings import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown hooks.

    Startup:
      1. Configure logging
      2. Validate environment (raises outside production)
      3. Initialize PostgreSQL async engine
      4. Build rate limiter and health checker

    Shutdown (also run when step 4 fails):
      1. Close HTTP session and Redis connection
      2. Dispose PostgreSQL engine connection pool
    """
    settings: Settings = app.state.settings

    # .env feeds os.environ too: environment validation reads the process env
    load_dotenv(override=False)

    # 1. Logging
    setup_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info("Phenotype API starting (env=%s)", settings.environment)

    # 2. Environment
    check_environment_on_startup(settings.is_production)

    # 3. Database
    database = Database(settings.database_url)
    database.init()

    # 4. Shared services
    http_session: Optional[aiohttp.ClientSession] = None
    rate_limiter: Optional[RateLimitService] = None
    try:
        http_session = aiohttp.ClientSession()
        rate_limiter = RateLimitService.from_settings(settings)

        app.state.database = database
        app.state.rate_limiter = rate_limiter
        app.state.health_checker = HealthChecker(
            database, settings, http_session=http_session
        )

        yield
    finally:
        logger.info("Phenotype API shutting down")
        if http_session is not None:
            await http_session.close()
        if rate_limiter is not None:
            await rate_limiter.close()
        await database.close()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the configured FastAPI application.

    This is the factory function for uvicorn::

        uvicorn phenotype_platform.api.app:create_app --factory

    Args:
        settings: Override configuration (tests). Defaults to the cached
            environment-derived settings.

    Returns:
        Fully configured FastAPI instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Phenotype Platform API",
        version=__version__,
        description=(
            "Backend for phenotype analysis and the EQ platform: health "
            "reporting, configuration diagnostics and rate limiting."
        ),
        lifespan=_lifespan,
    )
    app.state.settings = settings

    # Error handlers -- RFC 9457 Problem Details
    register_error_handlers(app)

    # CORS middleware
    configure_cors(app, settings)

    from phenotype_platform.api.routes.router import api_router

    app.include_router(api_router)

    return app
