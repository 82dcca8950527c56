"""
POS Inventory API - Main Application.

FastAPI application with CORS enabled for the point-of-sale frontend.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.dependencies import build_services
from api.routers import alerts, dashboard, products, sales
from config.logger import setup_logging
from config.settings import Settings, load_settings
from domain.time import Clock, utc_now
from repositories.inventory_store import InventoryStore


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InventoryStore] = None,
    clock: Clock = utc_now,
) -> FastAPI:
    """
    Build the FastAPI application.

    settings defaults to the environment (.env included); store defaults to the
    backend selected by STORE_BACKEND.
    """

    settings = settings or load_settings()
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services = await build_services(settings, store=store, clock=clock)
        app.state.services = services
        try:
            yield
        finally:
            await services.store.close()

    app = FastAPI(
        title="POS Inventory API",
        description="REST API for registering sales, tracking stock and raising inventory alerts",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure CORS - Allow all origins for development
    # TODO: Restrict origins once the checkout frontend has a fixed host
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Health check endpoint.

        Returns the API status and version.
        """
        return {
            "status": "healthy",
            "version": __version__,
            "service": "pos-inventory-api",
            "store_backend": settings.store_backend,
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "POS Inventory API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(sales.router, prefix="/api/v1", tags=["Sales"])
    app.include_router(products.router, prefix="/api/v1", tags=["Products"])
    app.include_router(alerts.router, prefix="/api/v1", tags=["Alerts"])
    app.include_router(dashboard.router, prefix="/api/v1", tags=["Dashboard"])

    return app


app = create_app()
