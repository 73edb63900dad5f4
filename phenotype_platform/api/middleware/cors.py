"""
CORS middleware configuration.

Permissive in development (all origins), strict elsewhere (configured
allowlist from ``Settings.cors_origins``).
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from phenotype_platform.settings import Settings


def configure_cors(app: FastAPI, settings: Settings) -> None:
    """Add CORS middleware to the FastAPI application."""
    if settings.environment == "development":
        origins = ["*"]
    else:
        origins = settings.cors_origins

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Credentials (the session cookie) can't be combined with "*".
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
        expose_headers=["Retry-After"],
    )
