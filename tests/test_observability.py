"""Logging setup and header redaction."""

import json
import logging

from core.observability import JSONFormatter, redact_headers, setup_logging


def test_redact_headers_masks_credentials():
    headers = {"Authorization": "Basic abc", "proxy-authorization": "Basic def", "aw-tenant-code": "TC"}
    assert redact_headers(headers) == {
        "Authorization": "***REDACTED***",
        "proxy-authorization": "***REDACTED***",
        "aw-tenant-code": "TC",
    }


def test_json_formatter_includes_request_fields():
    record = logging.LogRecord("awb", logging.WARNING, __file__, 1, "failover retry[%d]", (1,), None)
    record.tenant = "tenant-a"
    record.attempt = 1

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "failover retry[1]"
    assert payload["level"] == "WARNING"
    assert payload["tenant"] == "tenant-a"
    assert payload["attempt"] == 1
    assert "path" not in payload


def test_setup_logging_is_idempotent():
    root = logging.getLogger()
    level = root.level
    try:
        setup_logging("DEBUG", "json")
        setup_logging("DEBUG", "json")
        ours = [h for h in root.handlers if getattr(h, "_awb_handler", False)]
        assert len(ours) == 1
        assert isinstance(ours[0].formatter, JSONFormatter)
        assert root.level == logging.DEBUG
    finally:
        for handler in [h for h in root.handlers if getattr(h, "_awb_handler", False)]:
            root.removeHandler(handler)
        root.setLevel(level)
