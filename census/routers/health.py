"""Liveness and readiness of the census API.

``/health`` reports database reachability and the processing backlog;
``/ready`` only passes once every census table exists.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncSession

from census import __version__
from census.database import get_db
from census.models.database import Base
from census.services.blob_store import BlobStore

router = APIRouter()


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Check database health and count results awaiting processing."""
    pending = None
    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
        pending = (await BlobStore(db).stats())["unprocessed"]
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
        "unprocessed_results": pending,
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(db: AsyncSession = Depends(get_db)):
    """Check that the schema has been created, 503 until it is."""
    connection = await db.connection()
    existing = await connection.run_sync(
        lambda sync_conn: set(inspect(sync_conn).get_table_names())
    )
    missing = sorted(set(Base.metadata.tables) - existing)

    if missing:
        return JSONResponse(
            status_code=503, content={"ready": False, "missing_tables": missing}
        )
    return {"ready": True, "missing_tables": []}
