"""LeadHub — Relational Store.

Thin capability layer over a SQLModel session: capped filtered reads,
range reads, batched membership checks, insert, upsert-with-conflict-key,
update and delete by filter. Single reads return at most `max_rows` rows and
single writes accept at most `max_batch` rows, so callers paginate and chunk.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Type, TypeVar

from sqlalchemy import delete, func, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import Session, SQLModel, select

from leadhub.config import settings
from leadhub.core.errors import StorePayloadTooLarge
from leadhub.core.logging import get_logger

logger = get_logger("store")

M = TypeVar("M", bound=SQLModel)


def chunked(rows: Sequence[Any], size: int) -> Iterable[Sequence[Any]]:
    """Yield consecutive slices of at most `size` items."""
    for i in range(0, len(rows), size):
        yield rows[i : i + size]


class Store:
    """Store operations bound to one session."""

    def __init__(
        self,
        session: Session,
        max_rows: int | None = None,
        max_batch: int | None = None,
    ):
        self.session = session
        self.max_rows = max_rows or settings.store_max_rows
        self.max_batch = max_batch or settings.store_max_batch

    # ── Reads ──

    def select(
        self,
        model: Type[M],
        *where: Any,
        order_by: Any = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[M]:
        """Filtered read, capped at `max_rows`."""
        capped = min(limit, self.max_rows) if limit else self.max_rows
        query = select(model).where(*where).offset(offset).limit(capped)
        # id breaks ties so OFFSET pages never overlap
        if order_by is None:
            query = query.order_by(model.id)
        else:
            query = query.order_by(order_by, model.id)
        return list(self.session.exec(query).all())

    def read_range(self, model: Type[M], start: int, end: int, *where: Any, order_by: Any = None) -> List[M]:
        """Rows `start`..`end` inclusive of a filtered read."""
        return self.select(
            model, *where, order_by=order_by, limit=end - start + 1, offset=start
        )

    def read_all(
        self, model: Type[M], *where: Any, order_by: Any = None, limit: Optional[int] = None
    ) -> List[M]:
        """Page through a filtered read until a short page comes back."""
        rows: List[M] = []
        start = 0
        while True:
            page = self.read_range(
                model, start, start + self.max_rows - 1, *where, order_by=order_by
            )
            rows.extend(page)
            if limit is not None and len(rows) >= limit:
                return rows[:limit]
            if len(page) < self.max_rows:
                return rows
            start += self.max_rows

    def read_column(self, column: Any, *where: Any) -> List[Any]:
        """Every value of one column, fetched `max_rows` at a time."""
        values: List[Any] = []
        start = 0
        order = column.class_.id
        while True:
            query = (
                select(column).where(*where).order_by(order).offset(start).limit(self.max_rows)
            )
            page = list(self.session.exec(query).all())
            values.extend(page)
            if len(page) < self.max_rows:
                return values
            start += self.max_rows

    def first(self, model: Type[M], *where: Any) -> Optional[M]:
        rows = self.select(model, *where, limit=1)
        return rows[0] if rows else None

    def count(self, model: Type[SQLModel], *where: Any) -> int:
        query = select(func.count()).select_from(model).where(*where)
        return int(self.session.exec(query).one())

    def sum(self, column: Any, *where: Any) -> float:
        query = select(func.coalesce(func.sum(column), 0)).where(*where)
        return float(self.session.exec(query).one() or 0)

    def existing_values(self, column: Any, values: Iterable[Any]) -> Set[Any]:
        """Subset of `values` already present in `column`."""
        values = list(dict.fromkeys(values))
        found: Set[Any] = set()
        for batch in chunked(values, self.max_rows):
            found.update(self.session.exec(select(column).where(column.in_(batch))).all())
        return found

    # ── Writes ──

    def _check_batch(self, rows: Sequence[Any]) -> None:
        if len(rows) > self.max_batch:
            raise StorePayloadTooLarge(
                f"{len(rows)} rows exceeds the store batch limit of {self.max_batch}"
            )

    def insert(self, model: Type[M], rows: Sequence[Dict[str, Any]]) -> List[M]:
        """Insert rows and return them with primary keys populated."""
        self._check_batch(rows)
        instances = [model(**row) for row in rows]
        try:
            self.session.add_all(instances)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        for instance in instances:
            self.session.refresh(instance)
        return instances

    def upsert(
        self,
        model: Type[SQLModel],
        rows: Sequence[Dict[str, Any]],
        conflict_key: str | Sequence[str],
    ) -> int:
        """Insert or overwrite rows keyed on `conflict_key`.

        Columns present in the row replace stored values; columns absent from
        the row keep whatever is stored.
        """
        self._check_batch(rows)
        if not rows:
            return 0
        keys = [conflict_key] if isinstance(conflict_key, str) else list(conflict_key)
        dialect = self.session.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        # Model defaults fill the INSERT side only; the UPDATE side stays limited
        # to the columns the caller supplied.
        values = [model(**row).model_dump(exclude={"id"}) for row in rows]
        stmt = insert(model.__table__).values(values)
        update_columns = [c for c in rows[0].keys() if c not in keys]
        if update_columns:
            stmt = stmt.on_conflict_do_update(
                index_elements=keys,
                set_={c: stmt.excluded[c] for c in update_columns},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=keys)
        try:
            self.session.exec(stmt)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return len(rows)

    def update_where(self, model: Type[SQLModel], values: Dict[str, Any], *where: Any) -> int:
        try:
            result = self.session.exec(update(model).where(*where).values(**values))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return result.rowcount or 0

    def delete_where(self, model: Type[SQLModel], *where: Any) -> int:
        try:
            result = self.session.exec(delete(model).where(*where))
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        return result.rowcount or 0
