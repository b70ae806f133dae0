"""LeadHub — Lead Sync.

Walks every lead form that reports leads, page by page:
  batch dedup on lead_id → insert unseen leads → insert one field row per
  submitted field, resolving canonical names through the mapping cache.

Webhook deliveries go through the same dedup/insert/resolve path for one
lead at a time.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from leadhub.connectors.meta.endpoints import MetaEndpoints
from leadhub.core.errors import MetaAPIError, MetaRateLimitError
from leadhub.core.logging import elapsed_ms, get_logger
from leadhub.core.retry import retry_store_write
from leadhub.models.lead_models import Lead, LeadFieldValue
from leadhub.models.sync_models import LeadSyncProgress, SyncLog
from leadhub.services.field_mappings import FieldMappingCache
from leadhub.store import Store, chunked
from leadhub.sync.state import RunTracker

logger = get_logger("sync.leads")


@dataclass
class LeadForm:
    form_id: str
    form_name: str
    leads_count: int = 0
    page_id: Optional[str] = None
    page_name: Optional[str] = None
    page_token: Optional[str] = None


@dataclass
class PageCounts:
    fetched: int = 0
    inserted: int = 0
    skipped: int = 0

    def add(self, other: "PageCounts") -> None:
        self.fetched += other.fetched
        self.inserted += other.inserted
        self.skipped += other.skipped


def parse_created_time(value: Any) -> datetime:
    """Meta sends ISO strings ("2024-05-01T10:00:00+0000") or unix seconds."""
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str) and value:
        if value.isdigit():
            return datetime.fromtimestamp(int(value), tz=timezone.utc)
        for fmt in ("%Y-%m-%dT%H:%M:%S%z", "%Y-%m-%dT%H:%M:%S.%f%z"):
            try:
                return datetime.strptime(value, fmt).astimezone(timezone.utc)
            except ValueError:
                continue
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            logger.warning(f"Unparseable lead created_time {value!r}, using now")
            return datetime.now(timezone.utc)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    return datetime.now(timezone.utc)


def _first_value(field: Dict[str, Any]) -> str:
    values = field.get("values") or []
    return str(values[0]) if values else ""


class LeadSyncService:
    def __init__(
        self,
        endpoints: MetaEndpoints,
        store: Store,
        tracker: RunTracker[LeadSyncProgress],
        mapping_cache: FieldMappingCache,
    ):
        self.endpoints = endpoints
        self.store = store
        self.tracker = tracker
        self.mapping_cache = mapping_cache

    @property
    def progress(self) -> LeadSyncProgress:
        return self.tracker.progress

    # ── Form Discovery ──

    async def list_forms(self) -> List[LeadForm]:
        """All lead forms across the token's pages that report at least one lead."""
        forms: List[LeadForm] = []
        pages = await self.endpoints.list_pages()
        logger.info(f"Found {len(pages)} pages")
        for page in pages:
            for form in await self.endpoints.list_lead_forms(page["id"], page.get("access_token")):
                leads_count = int(form.get("leads_count") or 0)
                if leads_count <= 0:
                    continue
                forms.append(
                    LeadForm(
                        form_id=form["id"],
                        form_name=form.get("name") or "Unknown",
                        leads_count=leads_count,
                        page_id=page["id"],
                        page_name=page.get("name"),
                        page_token=page.get("access_token"),
                    )
                )
        logger.info(f"Found {len(forms)} forms with leads")
        return forms

    # ── Full Run ──

    async def run(self) -> LeadSyncProgress:
        """Sync every form. Raises SyncAlreadyRunning if one is in flight."""
        self.tracker.try_begin()
        return await self.execute()

    async def execute(self) -> LeadSyncProgress:
        """Run the sync on a tracker the caller has already claimed."""
        started = time.monotonic()
        logger.info("🚀 Starting lead sync", extra={"run_type": "leads"})

        try:
            forms = await self.list_forms()
            self.progress.total_forms = len(forms)

            for form in forms:
                self.progress.current_page = form.page_name
                self.progress.current_form = form.form_name
                logger.info(
                    f"Processing form: {form.form_name} ({form.leads_count} leads)",
                    extra={"form_id": form.form_id},
                )
                try:
                    await self.sync_form(form)
                except MetaRateLimitError as e:
                    self.progress.errors += 1
                    logger.error(
                        f"Rate limit exhausted on form {form.form_name}, skipping: {e}",
                        extra={"form_id": form.form_id},
                    )
                self.progress.forms_processed += 1
                logger.info(
                    f"Progress: {self.progress.forms_processed}/{self.progress.total_forms} forms, "
                    f"{self.progress.total_inserted} leads inserted"
                )

            await self._write_log("success")
        except Exception as e:
            logger.error(f"Lead sync failed: {e}", exc_info=True, extra={"run_type": "leads"})
            self.tracker.fail(str(e))
            await self._write_failure_log("leads", e)
            raise

        self.tracker.complete()
        logger.info(
            f"✅ Lead sync completed: {self.progress.total_fetched} fetched, "
            f"{self.progress.total_inserted} inserted, {self.progress.total_skipped} duplicates",
            extra={
                "run_type": "leads",
                "duration_ms": elapsed_ms(started),
            },
        )
        return self.tracker.snapshot()

    async def _write_log(self, status: str, error: Optional[str] = None, run_type: str = "leads") -> None:
        row = {"type": run_type, "status": status, "error_message": error}
        await retry_store_write(self.store.insert, SyncLog, [row], description="sync log")

    async def _write_failure_log(self, run_type: str, error: Exception) -> None:
        try:
            await self._write_log("error", str(error), run_type=run_type)
        except Exception as log_error:
            logger.error(f"Could not record failed {run_type} sync in sync_logs: {log_error}")

    # ── Single Form ──

    async def sync_form(self, form: LeadForm) -> PageCounts:
        """Stream one form's leads, writing each page before fetching the next."""
        totals = PageCounts()
        page_number = 0
        async for leads in self.endpoints.iter_form_lead_pages(form.form_id, form.page_token):
            page_number += 1
            if not leads:
                continue
            counts = await self.ingest_page(leads, form)
            totals.add(counts)
            if self.tracker.is_running:
                self.progress.total_fetched += counts.fetched
                self.progress.total_inserted += counts.inserted
                self.progress.total_skipped += counts.skipped
            logger.info(
                f"Page {page_number}: fetched {counts.fetched}, inserted {counts.inserted} new leads",
                extra={"form_id": form.form_id},
            )
        logger.info(
            f"Form sync completed: {totals.fetched} fetched, {totals.inserted} inserted",
            extra={"form_id": form.form_id},
        )
        return totals

    def _lead_row(self, lead: Dict[str, Any], form: LeadForm, source: str) -> Dict[str, Any]:
        return {
            "lead_id": lead["id"],
            "form_id": lead.get("form_id") or form.form_id,
            "form_name": form.form_name or "Unknown",
            "page_id": form.page_id,
            "ad_id": lead.get("ad_id"),
            "ad_name": lead.get("ad_name"),
            "ad_set_id": lead.get("adset_id"),
            "ad_set_name": lead.get("adset_name"),
            "campaign_id": lead.get("campaign_id"),
            "ad_account_id": lead.get("ad_account_id"),
            "source": source,
            "created_at": parse_created_time(lead.get("created_time")),
        }

    async def ingest_page(
        self, leads: List[Dict[str, Any]], form: LeadForm, source: str = "sync"
    ) -> PageCounts:
        """Dedup one page against stored lead ids and write what is new."""
        by_id: Dict[str, Dict[str, Any]] = {}
        for lead in leads:
            if lead.get("id"):
                by_id.setdefault(str(lead["id"]), lead)

        existing = self.store.existing_values(Lead.lead_id, by_id.keys())
        new_leads = [lead for lead_id, lead in by_id.items() if lead_id not in existing]
        counts = PageCounts(fetched=len(leads), skipped=len(leads) - len(new_leads))
        if not new_leads:
            return counts

        inserted = await self._insert_leads([self._lead_row(l, form, source) for l in new_leads])
        counts.inserted = len(inserted)
        counts.skipped += len(new_leads) - len(inserted)

        field_rows = []
        for lead in inserted:
            for field in by_id[lead.lead_id].get("field_data") or []:
                field_name = field.get("name")
                if not field_name:
                    continue
                field_rows.append(
                    {
                        "lead_id": lead.id,
                        "field_name": field_name,
                        "mapped_field_name": self.mapping_cache.resolve(self.store, field_name),
                        "field_value": _first_value(field),
                    }
                )
        for chunk in chunked(field_rows, self.store.max_batch):
            await retry_store_write(
                self.store.insert, LeadFieldValue, chunk, description="lead field insert"
            )
        return counts

    async def _insert_leads(self, rows: List[Dict[str, Any]]) -> List[Lead]:
        """Bulk insert; a duplicate-key race falls back to row-by-row inserts."""
        inserted: List[Lead] = []
        for chunk in chunked(rows, self.store.max_batch):
            try:
                inserted.extend(
                    await retry_store_write(self.store.insert, Lead, chunk, description="lead insert")
                )
            except IntegrityError:
                logger.warning("Duplicate lead ids in batch, inserting one by one")
                for row in chunk:
                    try:
                        inserted.extend(self.store.insert(Lead, [row]))
                    except IntegrityError:
                        logger.info(f"Lead {row['lead_id']} already stored, skipping")
        return inserted

    # ── Webhook ──

    async def ingest_webhook_lead(self, event: Dict[str, Any]) -> bool:
        """Ingest one `leadgen` change. Returns False when the lead was already stored."""
        lead_id = str(event.get("leadgen_id") or "")
        if not lead_id:
            raise ValueError("leadgen event without leadgen_id")

        try:
            if self.store.existing_values(Lead.lead_id, [lead_id]):
                logger.info(f"Lead {lead_id} already exists, skipping")
                await self._write_log("success", run_type="webhook")
                return False

            full_lead: Dict[str, Any] = {}
            try:
                full_lead = await self.endpoints.get_lead(lead_id)
            except MetaAPIError as e:
                logger.warning(f"Could not fetch full lead {lead_id} from Meta API: {e}")

            lead = {
                "id": lead_id,
                "form_id": event.get("form_id"),
                "ad_id": event.get("ad_id") or full_lead.get("ad_id"),
                "ad_name": full_lead.get("ad_name"),
                "adset_id": event.get("adgroup_id") or full_lead.get("adset_id"),
                "adset_name": full_lead.get("adset_name"),
                "campaign_id": full_lead.get("campaign_id"),
                "ad_account_id": event.get("ad_account_id"),
                "created_time": event.get("created_time") or full_lead.get("created_time"),
                "field_data": full_lead.get("field_data") or [],
            }
            form = LeadForm(
                form_id=str(event.get("form_id") or ""),
                form_name="Unknown",
                page_id=event.get("page_id"),
            )
            counts = await self.ingest_page([lead], form, source="webhook")
        except Exception as e:
            logger.error(f"Error processing leadgen event {lead_id}: {e}", exc_info=True)
            await self._write_failure_log("webhook", e)
            raise

        await self._write_log("success", run_type="webhook")
        logger.info(f"Lead {lead_id} inserted via webhook")
        return counts.inserted > 0
