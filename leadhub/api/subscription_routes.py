"""LeadHub — Webhook Subscription Routes."""

from fastapi import APIRouter, Depends

from leadhub import deps
from leadhub.connectors.meta.endpoints import MetaEndpoints
from leadhub.services.subscriptions import SubscriptionService
from leadhub.store import Store

router = APIRouter(prefix="/api/subscriptions", tags=["Subscriptions"])


def get_subscriptions(
    store: Store = Depends(deps.get_store),
    endpoints: MetaEndpoints = Depends(deps.get_endpoints),
) -> SubscriptionService:
    return SubscriptionService(endpoints, store)


@router.get("")
async def list_subscriptions(service: SubscriptionService = Depends(get_subscriptions)):
    return {"status": "success", "subscriptions": service.list()}


@router.post("/refresh")
async def refresh_subscriptions(service: SubscriptionService = Depends(get_subscriptions)):
    """Re-read each account's webhook subscription state from Meta."""
    return {"status": "success", "subscriptions": await service.refresh()}


@router.post("/auto-subscribe")
async def auto_subscribe(service: SubscriptionService = Depends(get_subscriptions)):
    return {"status": "success", **await service.auto_subscribe()}
