"""LeadHub — Campaign & Hierarchy Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from leadhub import deps
from leadhub.core.logging import get_logger
from leadhub.services.dashboard import DashboardService
from leadhub.services.hierarchy import HierarchyAggregator
from leadhub.store import Store

logger = get_logger("api.campaigns")

router = APIRouter(prefix="/api/campaigns", tags=["Campaigns"])


def get_aggregator(store: Store = Depends(deps.get_store)) -> HierarchyAggregator:
    return HierarchyAggregator(store, deps.hierarchy_cache, deps.countries_cache)


@router.get("")
async def list_campaigns(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    account_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    store: Store = Depends(deps.get_store),
):
    try:
        campaigns = DashboardService(store).list_campaigns(start_date, end_date, account_id, search)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "success", "count": len(campaigns), "campaigns": campaigns}


@router.get("/hierarchy")
async def get_hierarchy(
    account_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    country: Optional[str] = Query(None, description="Country code, e.g. TR"),
    level: Optional[str] = Query(None, description="campaign | adset | ad"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    aggregator: HierarchyAggregator = Depends(get_aggregator),
):
    """Campaign → ad set → ad tree with spend, leads and country tags."""
    try:
        tree = aggregator.get_hierarchy(account_id, search, country, level, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "success", "count": len(tree), "campaigns": tree}


@router.get("/countries")
async def available_countries(aggregator: HierarchyAggregator = Depends(get_aggregator)):
    return {"status": "success", "countries": aggregator.get_available_countries()}
