import json
import logging

import pytest

from src.core.audit import AuditTrail, create_security_log, log_security_event, mask_ip_address, mask_user_id
from src.core.enums import AuditLevel
from src.core.logging import AUDIT_LOGGER_NAME


@pytest.mark.parametrize(
    ("raw", "masked"),
    [
        ("203.0.113.42", "203.0.xxx.xxx"),
        ("2001:db8:85a3:8d3:1319:8a2e:370:7348", "2001:db8:85a3:8d3:xxxx:xxxx:xxxx:xxxx"),
        ("unknown", "unknown"),
        ("not-an-ip", "masked"),
    ],
)
def test_mask_ip_address(raw, masked):
    assert mask_ip_address(raw) == masked
    assert mask_ip_address(masked) == masked


def test_mask_user_id():
    assert mask_user_id("abc") == "abc"
    assert mask_user_id("8f14e45f-ceea-467f-a0e6-4e0f2b3c1d2e") == "8f14e45f..."
    assert mask_user_id("8f14e45f...") == "8f14e45f..."
    assert mask_user_id("8f14e45f-ce...") == "8f14e45f..."
    assert mask_user_id(mask_user_id("0123456789abcdef")) == "01234567..."


def test_security_log_masks_identifiers():
    entry = create_security_log(
        "auth-rate-limit",
        "signin_success",
        "203.0.113.42",
        user_id="8f14e45f-ceea-467f-a0e6-4e0f2b3c1d2e",
        metadata={"attempts": 1},
    )

    assert entry.ip_address == "203.0.xxx.xxx"
    assert entry.user_id == "8f14e45f..."
    assert entry.level == AuditLevel.INFO
    assert entry.success


def test_log_security_event_emits_prefixed_json(caplog):
    entry = create_security_log("moderate-content", "content_blocked", "203.0.113.42", level=AuditLevel.WARN)

    with caplog.at_level(logging.DEBUG, logger=AUDIT_LOGGER_NAME):
        log_security_event(entry)

    record = caplog.records[-1]
    assert record.levelno == logging.WARNING
    assert record.getMessage().startswith("[SECURITY_AUDIT] ")
    payload = json.loads(record.getMessage().removeprefix("[SECURITY_AUDIT] "))
    assert payload["action"] == "content_blocked"
    assert payload["ip_address"] == "203.0.xxx.xxx"
    assert payload["level"] == "warn"


def test_audit_trail_records_duration(caplog):
    trail = AuditTrail("moderate-content", "198.51.100.7")

    with caplog.at_level(logging.DEBUG, logger=AUDIT_LOGGER_NAME):
        trail.emit("content_approved", metadata={"content_type": "comment"})

    payload = json.loads(caplog.records[-1].getMessage().removeprefix("[SECURITY_AUDIT] "))
    assert payload["function_name"] == "moderate-content"
    assert payload["duration_ms"] >= 0
    assert payload["metadata"] == {"content_type": "comment"}
