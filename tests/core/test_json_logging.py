"""JsonFormatter: event name, whitelisted context fields, key redaction."""
import json
import logging

from portrait_studio.core.logging import JsonFormatter


def _format(msg: str, **extra) -> dict:
    record = logging.LogRecord("portrait_studio.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(JsonFormatter().format(record))


class TestJsonFormatter:
    def test_context_fields_keep_their_names(self):
        line = _format("ledger_cas_conflict", user_id="user-1", attempt=2)
        assert line["event"] == "ledger_cas_conflict"
        assert line["attempt"] == 2
        assert "status" not in line

    def test_subscription_expiry_field(self):
        line = _format("subscription_activated", user_id="user-1", expires_at="2026-11-17T00:00:00+00:00")
        assert line["expires_at"] == "2026-11-17T00:00:00+00:00"
        assert "status" not in line

    def test_unknown_extra_is_dropped(self):
        assert "secret_thing" not in _format("event", secret_thing="x")

    def test_api_key_is_redacted(self):
        line = _format("HTTP Request: POST https://example.test/v1beta/models/m:generateContent?key=abc123")
        assert "abc123" not in line["event"]
        assert "[REDACTED]" in line["event"]
