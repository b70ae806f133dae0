"""LeadHub — Meta Sync Routes."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from leadhub import deps
from leadhub.connectors.meta.client import MetaClient
from leadhub.core.errors import MetaAPIError, SyncAlreadyRunning
from leadhub.core.logging import get_logger
from leadhub.sync import runner

logger = get_logger("api.meta")

router = APIRouter(prefix="/api/meta", tags=["Meta"])


def _already_running(e: SyncAlreadyRunning) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail={"message": "Sync already running", "progress": e.progress.model_dump(mode="json")},
    )


@router.get("/validate-token")
async def validate_token():
    """Check if the Meta access token is valid.

    Returns validity status, expiration, and granted scopes.
    """
    client = MetaClient()
    try:
        result = await client.validate_token()
        return {"status": "success", **result}
    except MetaAPIError as e:
        raise HTTPException(status_code=400, detail=f"Token validation failed: {str(e)}")
    finally:
        await client.close()


# ── Spend / Structure Sync ──


@router.post("/sync")
async def trigger_sync():
    """Start a full spend and structure sync in the background.

    Rejected with 409 and the live progress while a sync is running.
    """
    try:
        progress = runner.start_ingestion()
    except SyncAlreadyRunning as e:
        raise _already_running(e)
    return {"status": "started", "progress": progress}


@router.get("/sync/progress")
async def sync_progress():
    return {
        "status": "success",
        "ingestion": deps.ingestion_tracker.snapshot(),
        "leads": deps.lead_sync_tracker.snapshot(),
    }


# ── Lead Sync ──


@router.post("/sync/leads")
async def trigger_lead_sync():
    """Start a lead sync across every form in the background."""
    try:
        progress = runner.start_lead_sync()
    except SyncAlreadyRunning as e:
        raise _already_running(e)
    return {"status": "started", "progress": progress}


@router.get("/sync/forms")
async def available_forms():
    """Lead forms that report at least one lead, per page."""
    try:
        forms = await runner.list_lead_forms()
    except MetaAPIError as e:
        raise HTTPException(status_code=502, detail=f"Failed to list forms: {str(e)}")
    return {
        "status": "success",
        "forms": [
            {
                "form_id": f.form_id,
                "form_name": f.form_name,
                "leads_count": f.leads_count,
                "page_id": f.page_id,
                "page_name": f.page_name,
            }
            for f in forms
        ],
    }


@router.post("/sync/form")
async def sync_form(
    form_id: str = Query(..., description="Lead form id"),
    form_name: Optional[str] = Query(None),
):
    """Synchronously sync a single form."""
    try:
        counts = await runner.sync_single_form(form_id, form_name)
    except MetaAPIError as e:
        raise HTTPException(status_code=502, detail=f"Form sync failed: {str(e)}")
    return {
        "status": "success",
        "form_id": form_id,
        "total_fetched": counts.fetched,
        "total_inserted": counts.inserted,
        "total_skipped": counts.skipped,
    }
