"""API routes for SheetSync."""

from typing import Any, Optional

import httpx
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..errors import ConfigurationError, SheetSyncError, UnsupportedSourceError
from ..history import RunHistoryStore, RunRecord

router = APIRouter()


class SyncRequest(BaseModel):
    """Request to run a synchronization."""

    source: Optional[str] = None
    defaults: dict[str, str] = Field(default_factory=dict)


class SyncResponse(BaseModel):
    """Results of a synchronization."""

    results: list[dict[str, Any]]
    succeeded: int
    failed: int


async def _open_history() -> RunHistoryStore:
    from ..config import settings

    store = RunHistoryStore(settings.database_path)
    await store.initialize()
    return store


@router.get("/health")
async def health_check():
    """Health check endpoint with non-secret diagnostics."""
    from ..config import settings

    config = {
        "source_configured": bool(settings.source),
        "records_api_configured": bool(settings.records_base_url),
        "access_token_present": bool(settings.access_token),
        "refresh_token_present": bool(settings.refresh_token),
        "google_credentials_configured": settings.google_credentials_path.exists(),
        "history_enabled": settings.history_enabled,
    }
    return {"status": "ok", "service": "sheetsync", "config": config}


@router.post("/sync", response_model=SyncResponse)
async def sync(request: SyncRequest):
    """Run one synchronization and return a result per processed row."""
    from ..config import settings
    from ..sync import SyncStatus, run_sync

    try:
        results = await run_sync(settings, source=request.source, defaults=request.defaults)
    except (UnsupportedSourceError, ConfigurationError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (SheetSyncError, httpx.HTTPError, OSError) as e:
        raise HTTPException(status_code=502, detail=str(e))

    failed = sum(1 for r in results if r.status is SyncStatus.FAILURE)
    return SyncResponse(
        results=[r.to_output() for r in results],
        succeeded=len(results) - failed,
        failed=failed,
    )


@router.get("/runs", response_model=list[RunRecord])
async def list_runs(limit: int = 20):
    """List recent runs."""
    store = await _open_history()
    try:
        return await store.list_runs(limit)
    finally:
        await store.close()


@router.get("/runs/{run_id}", response_model=RunRecord)
async def get_run(run_id: str):
    """Get one run with its per-row results."""
    store = await _open_history()
    try:
        run = await store.get_run(run_id)
    finally:
        await store.close()
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return run
