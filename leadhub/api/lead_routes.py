"""LeadHub — Lead Routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from leadhub import deps
from leadhub.services.leads import LeadService
from leadhub.store import Store

router = APIRouter(prefix="/api/leads", tags=["Leads"])


def get_lead_service(store: Store = Depends(deps.get_store)) -> LeadService:
    return LeadService(store, deps.field_mapping_cache)


@router.get("")
async def list_leads(
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    account_id: Optional[str] = Query(None),
    campaign_id: Optional[str] = Query(None),
    form_name: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    service: LeadService = Depends(get_lead_service),
):
    try:
        result = service.list_leads(
            start_date, end_date, account_id, campaign_id, form_name, search, page, limit
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"status": "success", **result}


@router.get("/{lead_pk}")
async def get_lead(lead_pk: int, service: LeadService = Depends(get_lead_service)):
    lead = service.get_lead(lead_pk)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return {"status": "success", "lead": lead}
