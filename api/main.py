"""
EduLead CRM Dashboard API - Main Application.

FastAPI application serving the dashboard views over the remote CRM service.
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import __version__
from api.routers import dashboard, leads, session
from repositories.client import ApiConfig
from services.app_context import AppContext

logger = logging.getLogger(__name__)

ContextFactory = Callable[[], AppContext]


def _context_from_env() -> AppContext:
    return AppContext.create(ApiConfig.from_env())


def create_app(context_factory: Optional[ContextFactory] = None) -> FastAPI:
    """
    Build the dashboard application.

    Args:
        context_factory: Builds the AppContext at startup (default: from environment)
    """
    factory = context_factory or _context_from_env

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context = factory()
        app.state.context = context
        state = await context.init()
        logger.info("Dashboard started (%s)", state.value)
        try:
            yield
        finally:
            await context.close()

    app = FastAPI(
        title="EduLead CRM Dashboard API",
        description="Lead listing, filtering, assignment and annotation over the CRM service",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Configure CORS - Allow all origins for development
    # TODO: Restrict origins once the dashboard frontend has a fixed host
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

        Returns the API status, version and whether a session is open.
        """
        context: AppContext = app.state.context
        return {
            "status": "healthy",
            "version": __version__,
            "service": "edulead-crm-dashboard",
            "session": context.session.state.value,
            "live_updates": context.listener.running,
        }

    @app.get("/", tags=["Root"])
    def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "EduLead CRM Dashboard API",
            "version": __version__,
            "docs": "/docs",
            "health": "/health"
        }

    app.include_router(session.router, prefix="/api/v1", tags=["Session"])
    app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
    app.include_router(dashboard.router, prefix="/api/v1", tags=["Dashboard"])

    return app


app = create_app()
