import logging

from fastapi import APIRouter

import app.db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", summary="Service health check")
async def health_check():
    database = "connected"
    try:
        if app.db.db is None:
            database = "disconnected"
        else:
            await app.db.db.command("ping")
    except Exception as e:
        logger.warning(f"[HEALTH] Database unreachable: {e}")
        database = "disconnected"
    return {"status": "ok" if database == "connected" else "degraded", "database": database}
