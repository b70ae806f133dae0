"""LeadHub — Command Line.

Examples:
  leadhub sync                      # spend + structure for every account
  leadhub sync-leads                # leads from every form
  leadhub sync-leads --list         # forms that have leads
  leadhub sync-leads --form 12345   # one form only
  leadhub seed-mappings             # load the multilingual field mappings
  leadhub backfill-mappings         # fill mapped names on stored fields
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from leadhub import deps
from leadhub.core.errors import SyncAlreadyRunning
from leadhub.core.logging import get_logger
from leadhub.database import init_db, new_session
from leadhub.services.field_mappings import FieldMappingService
from leadhub.store import Store
from leadhub.sync import runner

logger = get_logger("cli")


async def _sync() -> None:
    progress = await runner.run_ingestion()
    print(
        f"✅ Synced {progress.accounts_processed} accounts: "
        f"{progress.campaigns_upserted} campaigns, {progress.adsets_upserted} ad sets, "
        f"{progress.ads_upserted} ads, {progress.daily_rows_written} daily rows"
    )


async def _sync_leads(list_only: bool, form_id: Optional[str]) -> None:
    if list_only:
        forms = await runner.list_lead_forms()
        for form in forms:
            print(f"{form.form_id}\t{form.leads_count}\t{form.page_name}\t{form.form_name}")
        print(f"\n{len(forms)} forms with leads")
        return

    if form_id:
        counts = await runner.sync_single_form(form_id)
        print(f"✅ Form {form_id}: {counts.fetched} fetched, {counts.inserted} inserted")
        return

    progress = await runner.run_lead_sync()
    print(
        f"✅ {progress.forms_processed}/{progress.total_forms} forms: "
        f"{progress.total_fetched} fetched, {progress.total_inserted} inserted, "
        f"{progress.total_skipped} duplicates, {progress.errors} errors"
    )


def _mapping_service(session) -> FieldMappingService:
    return FieldMappingService(Store(session), deps.field_mapping_cache)


def _seed_mappings() -> None:
    with new_session() as session:
        seeded = _mapping_service(session).seed_defaults()
    print(f"✅ Seeded {seeded} field mappings")


def _backfill_mappings() -> None:
    with new_session() as session:
        result = _mapping_service(session).backfill_mapped_fields()
    print(f"✅ Backfilled {result['updated']} field names, {result['skipped']} without a mapping")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="leadhub",
        description="Meta lead-ads sync and maintenance commands",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("sync", help="Sync accounts, campaigns, ad sets, ads and insights")

    leads = commands.add_parser("sync-leads", help="Sync leads from lead forms")
    group = leads.add_mutually_exclusive_group()
    group.add_argument("--list", action="store_true", help="List forms that have leads and exit")
    group.add_argument("--form", metavar="FORM_ID", help="Sync a single form")

    commands.add_parser("seed-mappings", help="Upsert the default field mappings")
    commands.add_parser("backfill-mappings", help="Resolve mapped names on stored field values")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    init_db()

    try:
        if args.command == "sync":
            asyncio.run(_sync())
        elif args.command == "sync-leads":
            asyncio.run(_sync_leads(args.list, args.form))
        elif args.command == "seed-mappings":
            _seed_mappings()
        elif args.command == "backfill-mappings":
            _backfill_mappings()
    except SyncAlreadyRunning:
        logger.error("A sync is already running")
        return 1
    except Exception as e:
        logger.error(f"❌ {args.command} failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
