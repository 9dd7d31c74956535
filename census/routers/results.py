"""Raw results router: submission, raw reads and processing trigger."""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from census.auth import require_access
from census.config import Settings, get_settings
from census.database import get_db, get_session_factory
from census.exceptions import MalformedPayloadError, ResultNotFoundError
from census.models.schemas import ResultStats
from census.services.blob_store import BlobStore
from census.services.result_processor import run_processing_cycle

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", status_code=204, dependencies=[Depends(require_access)])
async def submit_result(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Store a compressed census submission for later processing."""
    payload = await request.body()

    if not payload:
        raise HTTPException(status_code=400, detail="Empty submission")
    if len(payload) > settings.max_payload_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"Submission exceeds {settings.max_payload_mb} MB",
        )

    await BlobStore(db).submit(payload)
    await db.commit()

    return Response(status_code=204)


@router.api_route(
    "/process", methods=["GET", "POST"], dependencies=[Depends(require_access)]
)
async def process_results(
    background_tasks: BackgroundTasks,
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    settings: Settings = Depends(get_settings),
):
    """Deduplicate and process all unprocessed results in the background."""
    background_tasks.add_task(
        run_processing_cycle, session_factory, settings.ingest_isolation_level
    )
    return {"status": "scheduled"}


@router.get("/stats", response_model=ResultStats)
async def get_result_stats(db: AsyncSession = Depends(get_db)):
    """Count stored results by processed state."""
    return ResultStats(**await BlobStore(db).stats())


@router.get("/{result_id}", dependencies=[Depends(require_access)])
async def get_result(result_id: int, db: AsyncSession = Depends(get_db)):
    """Return the decompressed JSON document of a result."""
    try:
        document = await BlobStore(db).fetch(result_id)
    except ResultNotFoundError:
        raise HTTPException(status_code=404, detail="Result not found")
    except MalformedPayloadError as e:
        logger.warning(f"Result {result_id} has a malformed payload: {e}")
        raise HTTPException(status_code=422, detail="Stored payload is not zlib-compressed")

    return Response(content=document, media_type="application/json")
