"""
Hidden Gem Scanner - Main FastAPI Application

Local dashboard API for multi-agent hidden gem stock analysis.
"""

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
import logging

from .agents import (
    AgentClient,
    AnalysisService,
    HiddenGemOrchestrator,
    HttpAgentClient,
    UnconfiguredAgentClient,
)
from .agents.scanner import QuoteFetcher
from .agents.quotes import fetch_quotes
from .database.connection import BlobStorage, SqliteStorage
from .database.dao import AlertStore, SettingsStore
from .api import alerts, analysis, settings, tasks, watchlist

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Get project root directory
PROJECT_ROOT = Path(__file__).parent.parent
ENV_PATH = PROJECT_ROOT / ".env"


def build_agent_client() -> AgentClient:
    """Create the HTTP agent client, or a failing stand-in if it is not configured."""
    try:
        return HttpAgentClient()
    except ValueError as e:
        logger.warning(f"Agent client not configured: {e}")
        return UnconfiguredAgentClient(f"{e}. Please configure the agent endpoint in .env.")


def create_app(
    storage: Optional[BlobStorage] = None,
    client: Optional[AgentClient] = None,
    quote_fetcher: QuoteFetcher = fetch_quotes,
) -> FastAPI:
    """Build the dashboard application; storage and client can be injected."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup
        logger.info("Starting Hidden Gem Scanner...")
        load_dotenv(ENV_PATH)

        app_storage = storage
        if app_storage is None:
            app_storage = SqliteStorage()
            await app_storage.init()

        agent_client = client or build_agent_client()

        alert_store = AlertStore(app_storage)
        settings_store = SettingsStore(app_storage)
        await alert_store.load()
        await settings_store.load()

        app.state.storage = app_storage
        app.state.alerts = alert_store
        app.state.settings = settings_store
        app.state.service = AnalysisService(
            HiddenGemOrchestrator(agent_client),
            alert_store,
            settings_store,
            quote_fetcher=quote_fetcher,
        )
        logger.info("Stores loaded")

        yield

        # Shutdown
        logger.info("Shutting down Hidden Gem Scanner...")
        if client is None:
            await agent_client.aclose()

    app = FastAPI(
        title="Hidden Gem Scanner",
        description="Multi-agent hidden gem stock analysis dashboard",
        version="1.0.0",
        lifespan=lifespan
    )

    # Add CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:8000", "http://127.0.0.1:8000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ===========================================
    # Include API Routers
    # ===========================================

    app.include_router(analysis.router, prefix="/api", tags=["Analysis"])
    app.include_router(alerts.router, prefix="/api/alerts", tags=["Alerts"])
    app.include_router(watchlist.router, prefix="/api/watchlist", tags=["Watchlist"])
    app.include_router(settings.router, prefix="/api/settings", tags=["Settings"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["Background Tasks"])

    # ===========================================
    # Error Handlers
    # ===========================================

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: HTTPException):
        """Handle 404 errors."""
        detail = getattr(exc, "detail", None) or "Resource not found"
        return JSONResponse(
            status_code=404,
            content={"success": False, "message": detail}
        )

    @app.exception_handler(500)
    async def server_error_handler(request: Request, exc: Exception):
        """Handle 500 errors."""
        logger.error(f"Server error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"}
        )

    # ===========================================
    # Health Check
    # ===========================================

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "analyzing": request.app.state.service.busy,
            "alerts": len(request.app.state.alerts),
        }

    return app


app = create_app()
