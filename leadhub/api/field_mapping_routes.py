"""LeadHub — Field Mapping Routes."""

from fastapi import APIRouter, Depends, HTTPException

from leadhub import deps
from leadhub.models.hierarchy_models import FieldMappingCreate, FieldMappingUpdate
from leadhub.services.field_mappings import FieldMappingConflict, FieldMappingService
from leadhub.store import Store

router = APIRouter(prefix="/api/field-mappings", tags=["Field Mappings"])


def get_mapping_service(store: Store = Depends(deps.get_store)) -> FieldMappingService:
    return FieldMappingService(store, deps.field_mapping_cache)


@router.get("")
async def list_mappings(service: FieldMappingService = Depends(get_mapping_service)):
    mappings = service.list()
    return {"status": "success", "count": len(mappings), "mappings": mappings}


@router.get("/unmapped")
async def unmapped_fields(service: FieldMappingService = Depends(get_mapping_service)):
    """Field names seen on leads that no mapping covers yet."""
    return {"status": "success", "fields": service.unmapped_fields()}


@router.get("/standard-fields")
async def standard_fields(service: FieldMappingService = Depends(get_mapping_service)):
    return {"status": "success", "fields": service.standard_fields()}


@router.get("/{mapping_id}")
async def get_mapping(mapping_id: int, service: FieldMappingService = Depends(get_mapping_service)):
    mapping = service.get(mapping_id)
    if mapping is None:
        raise HTTPException(status_code=404, detail="Field mapping not found")
    return {"status": "success", "mapping": mapping}


@router.post("", status_code=201)
async def create_mapping(
    body: FieldMappingCreate, service: FieldMappingService = Depends(get_mapping_service)
):
    try:
        mapping = service.create(body)
    except FieldMappingConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"status": "success", "mapping": mapping}


@router.put("/{mapping_id}")
async def update_mapping(
    mapping_id: int,
    body: FieldMappingUpdate,
    service: FieldMappingService = Depends(get_mapping_service),
):
    try:
        mapping = service.update(mapping_id, body)
    except FieldMappingConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    if mapping is None:
        raise HTTPException(status_code=404, detail="Field mapping not found")
    return {"status": "success", "mapping": mapping}


@router.post("/seed")
async def seed_mappings(service: FieldMappingService = Depends(get_mapping_service)):
    return {"status": "success", "seeded": service.seed_defaults()}


@router.post("/backfill")
async def backfill_mappings(service: FieldMappingService = Depends(get_mapping_service)):
    """Fill mapped names on stored field values that now resolve."""
    return {"status": "success", **service.backfill_mapped_fields()}
