"""LeadHub — Meta Webhook Routes."""

import json

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from leadhub import deps
from leadhub.config import settings
from leadhub.connectors.meta.endpoints import MetaEndpoints
from leadhub.core.logging import get_logger
from leadhub.store import Store
from leadhub.sync.leads import LeadSyncService
from leadhub.sync.webhook import (
    SIGNATURE_HEADER,
    iter_leadgen_events,
    verify_signature,
    verify_subscription,
)

logger = get_logger("api.webhook")

router = APIRouter(prefix="/api/webhook", tags=["Webhook"])


@router.get("", response_class=PlainTextResponse)
async def verify_webhook(
    mode: str = Query(None, alias="hub.mode"),
    verify_token: str = Query(None, alias="hub.verify_token"),
    challenge: str = Query(None, alias="hub.challenge"),
):
    """Subscription handshake: echo the challenge when the token matches."""
    echoed = verify_subscription(
        mode, verify_token, challenge, settings.meta_webhook_verify_token
    )
    if echoed is None:
        raise HTTPException(status_code=403, detail="Verification failed")
    return echoed


@router.post("")
async def handle_webhook(
    request: Request,
    store: Store = Depends(deps.get_store),
    endpoints: MetaEndpoints = Depends(deps.get_endpoints),
):
    """Receive leadgen events. The signature is checked before anything is written."""
    raw_body = await request.body()
    if not verify_signature(
        raw_body, request.headers.get(SIGNATURE_HEADER), settings.meta_app_secret
    ):
        logger.warning("Invalid webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(raw_body or b"{}")
    except ValueError:
        raise HTTPException(status_code=400, detail="Body is not valid JSON")

    service = LeadSyncService(
        endpoints, store, deps.lead_sync_tracker, deps.field_mapping_cache
    )
    processed = inserted = 0
    try:
        for event in iter_leadgen_events(payload):
            processed += 1
            if await service.ingest_webhook_lead(event):
                inserted += 1
    except Exception as e:
        logger.error(f"Error processing webhook: {e}")
        raise HTTPException(status_code=500, detail=f"Webhook processing failed: {str(e)}")

    if inserted:
        deps.hierarchy_cache.invalidate()
    return {"status": "success", "processed": processed, "inserted": inserted}
