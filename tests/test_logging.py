import json
import logging
import sys

from leadhub.core.logging import JSONFormatter, elapsed_ms, get_logger


def _record(**extra):
    record = logging.LogRecord("leadhub.sync.leads", logging.INFO, __file__, 1, "Synced %s forms", (3,), None)
    record.__dict__.update(extra)
    return record


def test_run_context_becomes_top_level_keys():
    line = json.loads(JSONFormatter().format(_record(form_id="f1", duration_ms=12, unrelated="x")))

    assert line["message"] == "Synced 3 forms"
    assert line["logger"] == "leadhub.sync.leads"
    assert line["form_id"] == "f1"
    assert line["duration_ms"] == 12
    assert "unrelated" not in line


def test_exception_included():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    assert "RuntimeError: boom" in json.loads(JSONFormatter().format(record))["exception"]


def test_loggers_share_the_package_handler():
    first = get_logger("sync.leads")
    second = get_logger("services.hierarchy")

    assert first.name == "leadhub.sync.leads"
    assert not first.handlers and not second.handlers
    assert len(logging.getLogger("leadhub").handlers) == 1


def test_elapsed_ms_from_monotonic_reading(monkeypatch):
    monkeypatch.setattr("leadhub.core.logging.time.monotonic", lambda: 10.5)
    assert elapsed_ms(10.0) == 500
