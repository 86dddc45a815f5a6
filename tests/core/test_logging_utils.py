"""Tests for structured JSON logging."""

from __future__ import annotations

import json
import logging

from neutab.core.logging_utils import EnhancedJsonFormatter, generate_correlation_id, setup_json_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="neutab.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="cloud_sync_push_failed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestEnhancedJsonFormatter:
    def test_groups_extra_fields(self):
        formatter = EnhancedJsonFormatter(include_location=False, include_process_info=False)

        payload = json.loads(
            formatter.format(
                _record(cid="abc123", action="push", duration_ms=12.5, error="HTTP 500")
            )
        )

        assert payload["message"] == "cloud_sync_push_failed"
        assert payload["level"] == "WARNING"
        assert payload["performance"] == {"duration_ms": 12.5}
        assert payload["sync"] == {"action": "push"}
        assert payload["extra"] == {"cid": "abc123", "error": "HTTP 500"}
        assert payload["correlation_id"] == "abc123"
        assert "module" not in payload

    def test_location_included_by_default(self):
        payload = json.loads(EnhancedJsonFormatter().format(_record()))

        assert payload["line"] == 10
        assert "process" in payload

    def test_unserializable_values_are_named(self):
        formatter = EnhancedJsonFormatter(include_location=False, include_process_info=False)

        class Opaque:
            def __init__(self):
                self.x = 1

        payload = json.loads(formatter.format(_record(thing=Opaque())))
        assert payload["extra"]["thing"] == "<Opaque>"


def test_stdlib_setup_installs_json_handler():
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        setup_json_logging("DEBUG", use_loguru=False)

        assert root.level == logging.DEBUG
        assert any(isinstance(h.formatter, EnhancedJsonFormatter) for h in root.handlers)
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_correlation_ids_are_short_and_unique():
    ids = {generate_correlation_id() for _ in range(50)}
    assert len(ids) == 50
    assert all(len(cid) == 12 for cid in ids)
