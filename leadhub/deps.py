"""LeadHub — Shared Dependencies.

Process-wide run trackers and caches, plus FastAPI dependency factories.
Everything here lives for the life of the process; nothing is shared
across processes.
"""

from typing import AsyncIterator

from fastapi import Depends
from sqlmodel import Session

from leadhub.config import settings
from leadhub.connectors.meta.client import MetaClient
from leadhub.connectors.meta.endpoints import MetaEndpoints
from leadhub.core.cache import TTLCache
from leadhub.database import get_session
from leadhub.models.sync_models import IngestionProgress, LeadSyncProgress
from leadhub.services.field_mappings import FieldMappingCache
from leadhub.store import Store
from leadhub.sync.state import RunTracker

# ── Run trackers ──
ingestion_tracker: RunTracker[IngestionProgress] = RunTracker(IngestionProgress)
lead_sync_tracker: RunTracker[LeadSyncProgress] = RunTracker(LeadSyncProgress)

# ── Caches ──
field_mapping_cache = FieldMappingCache()
hierarchy_cache = TTLCache(settings.hierarchy_cache_ttl_seconds)
countries_cache = TTLCache(settings.countries_cache_ttl_seconds)


def get_store(session: Session = Depends(get_session)) -> Store:
    return Store(session)


async def get_endpoints() -> AsyncIterator[MetaEndpoints]:
    """Dependency: yields endpoints on a fresh client, closed afterwards."""
    client = MetaClient()
    try:
        yield MetaEndpoints(client)
    finally:
        await client.close()
