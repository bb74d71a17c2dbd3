"""Health check endpoint — verifies backend + database connection."""

from fastapi import APIRouter

from sims.core import db_client

router = APIRouter()


@router.get("/health")
async def health_check():
    """Check backend status and connectivity to PostgreSQL."""
    db_ok = db_client.check_connection()

    return {
        "status": "ok" if db_ok else "degraded",
        "services": {
            "postgres": "ok" if db_ok else "error",
        }
    }
