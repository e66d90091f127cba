"""
FastAPI Application Entry Point

This module initializes the FastAPI application and configures:
- API routes
- Middleware (logging, CORS)
- Rate limit error handling
- Table creation on startup (development convenience)

Design Decisions:
- Clean separation: Routes, middleware, and app config are separate
- In production, schema changes go through Alembic and AUTO_CREATE_TABLES is off
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from streamhouse.api import endpoints
from streamhouse.core.rate_limit import limiter
from streamhouse.core.setting import settings
from streamhouse.db.session import engine, init_db
from streamhouse.middleware.logging import add_logging_middleware, configure_logging

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="StreamHouse Engagement Service",
    description="Engagement scoring, redirect tracking and TTL-gated feeds for creator houses",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

add_logging_middleware(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Health"])
async def root():
    """
    Root endpoint for health checks.
    
    Returns:
        Simple JSON response indicating service is running
    """
    return {
        "message": "StreamHouse Engagement Service",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness probe."""
    return {"status": "healthy"}


app.include_router(endpoints.router, tags=["StreamHouse"])


@app.on_event("startup")
async def startup_event():
    """Create tables on startup when enabled."""
    if settings.AUTO_CREATE_TABLES:
        await init_db()
    logger.info(f"StreamHouse started (env={settings.ENV_SETTING.value})")


@app.on_event("shutdown")
async def shutdown_event():
    """Release pooled connections."""
    await engine.dispose()
