"""LeadHub — Field Mappings.

Raw lead-form labels ("E-Mail Address", "e_posta") resolve to canonical
fields ("email") through a normalized-name cache. Mappings are only ever
added or updated; every write reloads the cache in full.
"""

import re
from collections import Counter
from typing import Dict, List, Optional

from sqlalchemy import exc as sa_exc

from leadhub.core.errors import is_schema_missing_error
from leadhub.core.logging import get_logger
from leadhub.models.hierarchy_models import FieldMappingCreate, FieldMappingUpdate, UnmappedField
from leadhub.models.lead_models import FieldMapping, LeadFieldValue
from leadhub.services.seed_data import FIELD_MAPPING_SEED, STANDARD_FIELDS
from leadhub.store import Store, chunked

logger = get_logger("services.field_mappings")

_SEPARATORS = re.compile(r"[\s_\-]+")
_SINGLE_QUOTES = re.compile("[‘’`´]")
_DOUBLE_QUOTES = re.compile("[“”]")

UNMAPPED_SCAN_LIMIT = 10_000
SAMPLE_VALUES = 3


def normalize_field_name(name: str) -> str:
    """Lower-case, drop whitespace/underscore/hyphen runs, unify quotes."""
    normalized = _SEPARATORS.sub("", name.lower())
    normalized = _SINGLE_QUOTES.sub("'", normalized)
    return _DOUBLE_QUOTES.sub('"', normalized)


class FieldMappingConflict(ValueError):
    """Another mapping already owns this normalized field name."""


class FieldMappingCache:
    """Normalized raw name → canonical field, loaded on first use."""

    def __init__(self):
        self._mappings: Dict[str, str] = {}
        self._loaded = False

    @property
    def loaded(self) -> bool:
        return self._loaded

    def reload(self, store: Store) -> None:
        """Replace the cache with the current table contents."""
        try:
            rows = store.read_all(FieldMapping)
        except sa_exc.DBAPIError as e:
            if not is_schema_missing_error(e):
                raise
            store.session.rollback()
            logger.warning("field_mappings table does not exist yet, cache empty")
            rows = []
        self._mappings = {row.normalized_name: row.mapped_field for row in rows}
        self._loaded = True
        logger.info(f"Loaded {len(self._mappings)} field mappings into cache")

    def ensure_loaded(self, store: Store) -> None:
        if not self._loaded:
            self.reload(store)

    def resolve(self, store: Store, raw_name: str) -> Optional[str]:
        self.ensure_loaded(store)
        return self._mappings.get(normalize_field_name(raw_name))

    def invalidate(self) -> None:
        self._mappings = {}
        self._loaded = False

    def __len__(self) -> int:
        return len(self._mappings)


class FieldMappingService:
    def __init__(self, store: Store, cache: FieldMappingCache):
        self.store = store
        self.cache = cache

    # ── Reads ──

    def list(self) -> List[FieldMapping]:
        try:
            return self.store.read_all(FieldMapping, order_by=FieldMapping.mapped_field)
        except sa_exc.DBAPIError as e:
            if not is_schema_missing_error(e):
                raise
            self.store.session.rollback()
            logger.warning("field_mappings table does not exist yet")
            return []

    def get(self, mapping_id: int) -> Optional[FieldMapping]:
        return self.store.first(FieldMapping, FieldMapping.id == mapping_id)

    def standard_fields(self) -> List[str]:
        return list(STANDARD_FIELDS)

    def unmapped_fields(self) -> List[UnmappedField]:
        """Stored field names with no mapping, most frequent first."""
        self.cache.ensure_loaded(self.store)
        rows = self.store.read_all(LeadFieldValue, limit=UNMAPPED_SCAN_LIMIT)

        counts: Counter = Counter()
        samples: Dict[str, List[str]] = {}
        for row in rows:
            if self.cache.resolve(self.store, row.field_name):
                continue
            counts[row.field_name] += 1
            values = samples.setdefault(row.field_name, [])
            if len(values) < SAMPLE_VALUES and row.field_value not in values:
                values.append(row.field_value)

        return [
            UnmappedField(field_name=name, count=count, sample_values=samples[name])
            for name, count in counts.most_common()
        ]

    # ── Writes ──

    def _ensure_unique(self, normalized: str, exclude_id: Optional[int] = None) -> None:
        existing = self.store.first(FieldMapping, FieldMapping.normalized_name == normalized)
        if existing and existing.id != exclude_id:
            raise FieldMappingConflict(
                f"'{existing.raw_field_name}' already maps this field to '{existing.mapped_field}'"
            )

    def create(self, data: FieldMappingCreate) -> FieldMapping:
        normalized = normalize_field_name(data.raw_field_name)
        self._ensure_unique(normalized)
        row = data.model_dump()
        row["normalized_name"] = normalized
        (mapping,) = self.store.insert(FieldMapping, [row])
        self.cache.reload(self.store)
        logger.info(f"Created field mapping {data.raw_field_name} → {data.mapped_field}")
        return mapping

    def update(self, mapping_id: int, data: FieldMappingUpdate) -> Optional[FieldMapping]:
        if self.get(mapping_id) is None:
            return None
        values = data.model_dump(exclude_unset=True)
        if values.get("raw_field_name"):
            values["normalized_name"] = normalize_field_name(values["raw_field_name"])
            self._ensure_unique(values["normalized_name"], exclude_id=mapping_id)
        if values:
            self.store.update_where(FieldMapping, values, FieldMapping.id == mapping_id)
        self.cache.reload(self.store)
        self.store.session.expire_all()
        return self.get(mapping_id)

    def seed_defaults(self) -> int:
        """Upsert the multilingual seed table; safe to run repeatedly."""
        rows: Dict[str, dict] = {}
        for raw, mapped, language in FIELD_MAPPING_SEED:
            normalized = normalize_field_name(raw)
            rows.setdefault(
                normalized,
                {
                    "raw_field_name": raw,
                    "normalized_name": normalized,
                    "mapped_field": mapped,
                    "language": language,
                },
            )
        seeded = list(rows.values())
        for chunk in chunked(seeded, self.store.max_batch):
            self.store.upsert(FieldMapping, chunk, "normalized_name")
        self.cache.reload(self.store)
        logger.info(f"Seeded {len(seeded)} field mappings")
        return len(seeded)

    def backfill_mapped_fields(self) -> Dict[str, int]:
        """Fill `mapped_field_name` on stored values that now resolve."""
        self.cache.reload(self.store)
        pending = self.store.read_all(LeadFieldValue, LeadFieldValue.mapped_field_name.is_(None))
        field_names = sorted({row.field_name for row in pending})

        updated = skipped = 0
        for field_name in field_names:
            mapped = self.cache.resolve(self.store, field_name)
            if not mapped:
                skipped += 1
                continue
            self.store.update_where(
                LeadFieldValue,
                {"mapped_field_name": mapped},
                LeadFieldValue.field_name == field_name,
                LeadFieldValue.mapped_field_name.is_(None),
            )
            updated += 1
            logger.info(f"Backfilled {field_name} → {mapped}")

        return {"updated": updated, "skipped": skipped}
