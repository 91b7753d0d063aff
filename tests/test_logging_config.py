"""Tests for structured logging: JSON records, request ids and extras."""

from __future__ import annotations

import json
import logging

from logging_config import JSONFormatter, RequestIdFilter


def make_record(message="Thử model %s", args=("gemini-2.5-flash",), **extra):
    record = logging.LogRecord("ai_resilience", logging.WARNING, __file__, 1, message, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_single_line_with_readable_unicode(self):
        line = JSONFormatter().format(make_record())
        assert "\n" not in line
        assert "Thử model gemini-2.5-flash" in line
        entry = json.loads(line)
        assert entry["level"] == "WARNING"
        assert entry["logger"] == "ai_resilience"

    def test_structured_extras_copied(self):
        entry = json.loads(JSONFormatter().format(
            make_record(model="gemini-2.5-flash", failures=2, request_id="abc"),
        ))
        assert entry["model"] == "gemini-2.5-flash"
        assert entry["failures"] == 2
        assert entry["request_id"] == "abc"

    def test_unlisted_attributes_ignored(self):
        entry = json.loads(JSONFormatter().format(make_record(secret="k")))
        assert "secret" not in entry


class TestRequestIdFilter:
    def test_outside_request_uses_dash(self):
        record = make_record()
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "-"

    def test_inside_request_uses_header_id(self, app):
        with app.test_request_context("/api/data", headers={"X-Request-ID": "req-42"}):
            app.preprocess_request()
            record = make_record()
            RequestIdFilter().filter(record)
        assert record.request_id == "req-42"

    def test_explicit_request_id_kept(self):
        record = make_record(request_id="given")
        RequestIdFilter().filter(record)
        assert record.request_id == "given"
