"""
FastAPI application entry point for the agency backend.
"""

from __future__ import annotations

from fastapi import FastAPI

from agency import admin_routes, public_routes
from agency.config import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title="Agency Backend (FastAPI)", version="0.1.0")
    app.include_router(admin_routes.session_router, prefix=settings.api_prefix)
    app.include_router(admin_routes.router, prefix=settings.api_prefix)
    app.include_router(public_routes.site_router, prefix=settings.api_prefix)
    app.include_router(public_routes.router, prefix=settings.api_prefix)
    return app


app = create_app()
