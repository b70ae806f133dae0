"""Store write retry: transient errors back off, everything else fails fast."""

import pytest
from sqlalchemy import exc as sa_exc

from leadhub.core.errors import is_schema_missing_error, is_transient_store_error
from leadhub.core.retry import backoff_delay, retry_store_write
from leadhub.models.lead_models import FieldMapping
from leadhub.services.field_mappings import FieldMappingCache, FieldMappingService


def _timeout() -> sa_exc.OperationalError:
    return sa_exc.OperationalError(
        "UPDATE campaigns SET spend_usd=?", {}, Exception("canceling statement due to statement timeout")
    )


def _duplicate() -> sa_exc.IntegrityError:
    return sa_exc.IntegrityError(
        "INSERT INTO leads", {}, Exception("UNIQUE constraint failed: leads.lead_id")
    )


def _missing_table() -> sa_exc.OperationalError:
    return sa_exc.OperationalError("SELECT", {}, Exception("no such table: field_mappings"))


class Flaky:
    """Raises the queued errors in order, then returns 'ok'."""

    def __init__(self, *errors):
        self.errors = list(errors)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "ok"


class TestClassifiers:
    def test_timeout_is_transient(self):
        assert is_transient_store_error(_timeout())
        assert is_transient_store_error(ConnectionResetError())

    def test_constraint_violation_is_fatal(self):
        assert not is_transient_store_error(_duplicate())
        assert not is_transient_store_error(ValueError("bad row"))

    def test_missing_table_is_schema_missing_not_transient(self):
        assert is_schema_missing_error(_missing_table())
        assert not is_transient_store_error(_missing_table())
        assert not is_schema_missing_error(_timeout())


def test_backoff_is_capped():
    assert [backoff_delay(n) for n in range(1, 7)] == [0.5, 1, 2, 4, 8, 8]


class TestRetryStoreWrite:
    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self, sleeps):
        operation = Flaky(*(_timeout() for _ in range(4)))

        assert await retry_store_write(operation) == "ok"
        assert operation.calls == 5
        assert sleeps == [0.5, 1, 2, 4]

    @pytest.mark.asyncio
    async def test_gives_up_after_five_attempts(self, sleeps):
        operation = Flaky(*(_timeout() for _ in range(5)))

        with pytest.raises(sa_exc.OperationalError):
            await retry_store_write(operation)
        assert operation.calls == 5
        assert sleeps == [0.5, 1, 2, 4]

    @pytest.mark.asyncio
    async def test_fatal_error_raised_on_first_call(self, sleeps):
        operation = Flaky(_duplicate())

        with pytest.raises(sa_exc.IntegrityError):
            await retry_store_write(operation)
        assert operation.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_passes_arguments_through(self):
        def write(a, b, *, c):
            return a + b + c

        assert await retry_store_write(write, 1, 2, c=3, description="sum") == 6


class TestMissingMappingTable:
    @pytest.fixture
    def dropped(self, engine, store):
        FieldMapping.__table__.drop(engine)
        return store

    def test_cache_reload_degrades_to_empty(self, dropped):
        cache = FieldMappingCache()
        cache.reload(dropped)

        assert cache.loaded
        assert len(cache) == 0
        assert cache.resolve(dropped, "E-Mail") is None

    def test_listing_degrades_to_empty(self, dropped):
        assert FieldMappingService(dropped, FieldMappingCache()).list() == []
