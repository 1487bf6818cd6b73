"""
Reqline Runner - FastAPI Application Entry Point

Compose, validate and execute request lines against the reqline execution
API, and replay groups of them as persisted test suites.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import get_settings
from .database import init_db
from .dependencies import build_workspace
from .exceptions import register_exception_handlers
from .logging_config import setup_logging
from .routers import suites, execute, history, vault

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    settings = get_settings()
    setup_logging(settings.log_level)
    # Startup: Initialize database and shared services
    init_db()
    app.state.workspace = build_workspace(settings)
    logger.info("Reqline Runner started against %s", settings.api_url)
    yield


app = FastAPI(
    title="Reqline Runner",
    description="Execute request lines and replay them as test suites",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Configure CORS middleware
# Allow all origins for development; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "name": "Reqline Runner",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Register routers
app.include_router(suites.router)
app.include_router(execute.router)
app.include_router(history.router)
app.include_router(vault.router)
