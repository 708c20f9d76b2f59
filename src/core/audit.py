"""Structured security audit logging.

Every decision point of the gateway emits one entry through ``log_security_event``. Client
and user identifiers are masked before they reach the log:

- IPv4 keeps the first two octets: ``203.0.113.42`` -> ``203.0.xxx.xxx``
- IPv6 keeps the first four groups: ``2001:db8:85a3:8d3:...`` -> ``2001:db8:85a3:8d3:xxxx:xxxx:xxxx:xxxx``
- user ids keep their first 8 characters followed by ``...``

Masking is idempotent, so already-masked values pass through unchanged.
"""

import json
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from src.core.enums import AuditLevel
from src.core.logging import AUDIT_LOGGER_NAME

audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

_LEVELS: dict[AuditLevel, int] = {
    AuditLevel.DEBUG: logging.DEBUG,
    AuditLevel.INFO: logging.INFO,
    AuditLevel.WARN: logging.WARNING,
    AuditLevel.ERROR: logging.ERROR,
}


class SecurityAuditEntry(BaseModel):
    timestamp: str
    level: AuditLevel = AuditLevel.INFO
    function_name: str
    action: str
    ip_address: str
    user_id: str | None = None
    success: bool = True
    duration_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


def mask_ip_address(ip: str) -> str:
    if ip == "unknown":
        return ip

    if "." in ip:
        parts = ip.split(".")
        if len(parts) == 4:
            return f"{parts[0]}.{parts[1]}.xxx.xxx"

    if ":" in ip:
        parts = ip.split(":")
        if len(parts) >= 4:
            return ":".join(parts[:4]) + ":xxxx:xxxx:xxxx:xxxx"

    return "masked"


def mask_user_id(user_id: str) -> str:
    # A masked id (8 characters + "...") maps to itself
    if len(user_id) <= 8:
        return user_id
    return f"{user_id[:8]}..."


def create_security_log(
    function_name: str,
    action: str,
    ip_address: str,
    *,
    level: AuditLevel = AuditLevel.INFO,
    user_id: str | None = None,
    success: bool = True,
    duration_ms: int | None = None,
    metadata: dict[str, Any] | None = None,
    error: str | None = None,
) -> SecurityAuditEntry:
    """Build an audit entry with masked identifiers."""
    return SecurityAuditEntry(
        timestamp=datetime.now(tz=UTC).isoformat(),
        level=level,
        function_name=function_name,
        action=action,
        ip_address=mask_ip_address(ip_address),
        user_id=mask_user_id(user_id) if user_id else None,
        success=success,
        duration_ms=duration_ms,
        metadata=metadata or {},
        error=error,
    )


def log_security_event(entry: SecurityAuditEntry) -> None:
    """Emit an audit entry. Never raises into the caller."""
    try:
        payload = json.dumps(entry.model_dump(mode="json", exclude_none=True), default=str)
        audit_logger.log(_LEVELS[entry.level], f"[SECURITY_AUDIT] {payload}")
    except Exception as e:
        audit_logger.debug(f"Failed to emit security audit entry: {e}")


def create_timer() -> Callable[[], int]:
    """Return a callable giving elapsed milliseconds since creation."""
    start = time.perf_counter()
    return lambda: round((time.perf_counter() - start) * 1000)


class AuditTrail:
    """Per-request audit helper bound to one function name, client and timer."""

    def __init__(self, function_name: str, ip_address: str):
        self.function_name = function_name
        self.ip_address = ip_address
        self.elapsed = create_timer()

    def emit(
        self,
        action: str,
        *,
        level: AuditLevel = AuditLevel.INFO,
        success: bool = True,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        try:
            entry = create_security_log(
                self.function_name,
                action,
                self.ip_address,
                level=level,
                user_id=user_id,
                success=success,
                duration_ms=self.elapsed(),
                metadata=metadata,
                error=error,
            )
        except Exception as e:
            audit_logger.debug(f"Failed to build security audit entry: {e}")
            return
        log_security_event(entry)
