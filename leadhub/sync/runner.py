"""LeadHub — Sync Runners.

Entry points shared by the API, the scheduler and the CLI. Each run gets
its own Meta client and database session.
"""

import asyncio
from typing import Optional, Set

from leadhub import deps
from leadhub.connectors.meta.client import MetaClient
from leadhub.connectors.meta.endpoints import MetaEndpoints
from leadhub.core.logging import get_logger
from leadhub.database import new_session
from leadhub.models.sync_models import IngestionProgress, LeadSyncProgress
from leadhub.store import Store
from leadhub.sync.ingestion import IngestionOrchestrator
from leadhub.sync.leads import LeadForm, LeadSyncService, PageCounts

logger = get_logger("sync.runner")

_background: Set[asyncio.Task] = set()


def _on_done(task: asyncio.Task) -> None:
    _background.discard(task)
    if not task.cancelled() and task.exception() is not None:
        # Already logged and recorded in sync_logs by the run itself
        logger.info(f"Background run {task.get_name()} ended with an error")


def _spawn(coro, name: str) -> None:
    task = asyncio.create_task(coro, name=name)
    _background.add(task)
    task.add_done_callback(_on_done)


def _invalidate_read_caches() -> None:
    deps.hierarchy_cache.invalidate()
    deps.countries_cache.invalidate()


# ── Ingestion ──


async def run_ingestion(claimed: bool = False) -> IngestionProgress:
    client = MetaClient()
    try:
        with new_session() as session:
            orchestrator = IngestionOrchestrator(
                MetaEndpoints(client), Store(session), deps.ingestion_tracker
            )
            if claimed:
                return await orchestrator.execute()
            return await orchestrator.run()
    finally:
        await client.close()
        _invalidate_read_caches()


def start_ingestion() -> IngestionProgress:
    """Claim the ingestion run now and execute it in the background.

    Raises SyncAlreadyRunning while another run is in flight.
    """
    deps.ingestion_tracker.try_begin()
    _spawn(run_ingestion(claimed=True), "ingestion")
    return deps.ingestion_tracker.snapshot()


# ── Lead Sync ──


def _lead_sync_service(client: MetaClient, store: Store) -> LeadSyncService:
    return LeadSyncService(
        MetaEndpoints(client), store, deps.lead_sync_tracker, deps.field_mapping_cache
    )


async def run_lead_sync(claimed: bool = False) -> LeadSyncProgress:
    client = MetaClient()
    try:
        with new_session() as session:
            service = _lead_sync_service(client, Store(session))
            if claimed:
                return await service.execute()
            return await service.run()
    finally:
        await client.close()
        deps.hierarchy_cache.invalidate()


def start_lead_sync() -> LeadSyncProgress:
    deps.lead_sync_tracker.try_begin()
    _spawn(run_lead_sync(claimed=True), "lead_sync")
    return deps.lead_sync_tracker.snapshot()


async def list_lead_forms():
    client = MetaClient()
    try:
        with new_session() as session:
            return await _lead_sync_service(client, Store(session)).list_forms()
    finally:
        await client.close()


async def sync_single_form(
    form_id: str,
    form_name: Optional[str] = None,
    page_token: Optional[str] = None,
) -> PageCounts:
    """Sync one form by id. Without a page token the form is looked up first."""
    client = MetaClient()
    try:
        with new_session() as session:
            service = _lead_sync_service(client, Store(session))
            form = LeadForm(form_id=form_id, form_name=form_name or "Unknown", page_token=page_token)
            if not page_token:
                known = {f.form_id: f for f in await service.list_forms()}
                form = known.get(form_id, form)
            counts = await service.sync_form(form)
    finally:
        await client.close()
    deps.hierarchy_cache.invalidate()
    return counts
