"""SIMS Summary Submission Service — FastAPI application entry point.

Initializes the database engine on startup and registers API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sims.api import health, submissions, templates, validation
from sims.core import db_client
from sims.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database engine on startup, dispose it on shutdown."""
    logger.info("Starting SIMS summary submission backend...")

    try:
        db_client.init_engine()
    except Exception as e:
        logger.error(f"Failed to initialize database engine: {e}")

    logger.info("SIMS summary submission backend ready")
    yield

    logger.info("Shutting down SIMS summary submission backend...")
    db_client.close_engine()
    logger.info("SIMS summary submission backend stopped")


app = FastAPI(
    title="SIMS Summary Submission Service",
    version="0.1.0",
    description="Validates uploaded survey summary results against species-specific templates "
                "and tracks each submission through its lifecycle.",
    lifespan=lifespan,
)

# --- Top-level routes ---
app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(templates.router, prefix="/api", tags=["templates"])
app.include_router(validation.router, prefix="/api", tags=["validation"])

# --- Survey-scoped routes: /api/surveys/{survey_id}/summary/... ---
app.include_router(submissions.router, prefix="/api/surveys/{survey_id}/summary", tags=["submissions"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("sims.main:app", host=settings.backend_host, port=settings.backend_port)
