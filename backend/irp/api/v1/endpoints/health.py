from fastapi import APIRouter

from irp.core.config import settings
from irp.core.database import ping_db
from irp.core.logging_config import logger

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness plus a database ping"""
    database = "ok"
    try:
        await ping_db()
    except Exception as e:
        logger.warning(f"Health check database ping failed: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "app": settings.APP_NAME,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }
