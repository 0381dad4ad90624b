# services/api/routers/sync.py
"""
Sheet synchronization endpoints.
"""
from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from typing import List, Optional
import logging

from models import SyncLogEntry
from models.converters import sync_log_from_storage
from routers.deps import Source, Storage, Sync
from schemas.sync import SyncRequest, SyncResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("", response_model=SyncResponse, response_model_exclude_none=True)
async def run_sync(job: Sync, source: Source, body: Optional[SyncRequest] = None):
    """
    Pull the source sheet into the mirror table.

    An empty body means {"sync_type": "manual"}. Always writes one
    sync_logs entry. A successful run drops the cached sheet view.
    Failures answer 500 with {"success": false, "error": "..."}.
    """
    sync_type = body.sync_type if body is not None else "manual"
    result = await job.run(sync_type)
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=result.to_response(),
        )
    source.invalidate()
    return SyncResponse(**result.to_response())


@router.get("/logs", response_model=List[SyncLogEntry])
async def list_sync_logs(request: Request, storage: Storage, limit: Optional[int] = Query(None, ge=1, le=100)):
    """Most recent sync attempts, newest first."""
    if limit is None:
        limit = request.app.state.settings.sync_log_limit
    try:
        return [sync_log_from_storage(r) for r in storage.list_sync_logs(limit=limit)]
    except Exception as e:
        logger.error(f"Error fetching sync logs: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch sync logs")
