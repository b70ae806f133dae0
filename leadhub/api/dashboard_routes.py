"""LeadHub — Dashboard Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from leadhub import deps
from leadhub.services.dashboard import DashboardService
from leadhub.store import Store

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


def get_dashboard(store: Store = Depends(deps.get_store)) -> DashboardService:
    return DashboardService(store)


@router.get("/stats")
async def stats(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    account_id: Optional[str] = Query(None),
    objective: Optional[str] = Query(None),
    service: DashboardService = Depends(get_dashboard),
):
    try:
        result = service.stats(start_date, end_date, account_id, objective)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "success", "stats": result}


@router.get("/accounts")
async def accounts(service: DashboardService = Depends(get_dashboard)):
    return {"status": "success", "accounts": service.list_accounts()}


@router.get("/sync-logs")
async def sync_logs(
    limit: int = Query(50, ge=1, le=500),
    service: DashboardService = Depends(get_dashboard),
):
    """Most recent sync attempts first."""
    return {"status": "success", "logs": service.sync_logs(limit)}
