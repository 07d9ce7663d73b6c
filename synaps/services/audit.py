"""Audit logging for API calls and security events.

Records are emitted on the ``synaps.audit`` logger; where they end up is a
logging configuration concern. Payloads are redacted before logging.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

audit_logger = logging.getLogger("synaps.audit")

SENSITIVE_FIELDS = (
    "password",
    "token",
    "secret",
    "apikey",
    "api_key",
    "authorization",
    "bio",
    "email",
    "phone",
    "address",
)
MAX_LOGGED_STRING = 500
REDACTED = "[REDACTED]"


def _is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(name in lowered for name in SENSITIVE_FIELDS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: REDACTED if _is_sensitive(str(key)) else _redact(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    if isinstance(value, str) and len(value) > MAX_LOGGED_STRING:
        return value[:MAX_LOGGED_STRING] + "... [TRUNCATED]"
    return value


def sanitize_log_data(data: Any) -> Any:
    """Return a redacted deep copy of a request or response payload."""
    if not data:
        return None
    return _redact(copy.deepcopy(data))


def log_api_call(
    user_id: str | None,
    endpoint: str,
    method: str,
    status_code: int,
    request_body: Any = None,
    response_body: Any = None,
    error_message: str | None = None,
) -> dict[str, Any]:
    """Record one API call and return the logged record."""
    record = {
        "user_id": user_id or "unknown",
        "endpoint": endpoint,
        "method": method,
        "status_code": status_code,
        "request_body": sanitize_log_data(request_body),
        "response_body": sanitize_log_data(response_body),
        "error_message": error_message,
    }
    level = logging.WARNING if status_code >= 400 else logging.INFO
    audit_logger.log(
        level,
        "[api] user=%s %s %s status=%d error=%s",
        record["user_id"],
        method,
        endpoint,
        status_code,
        error_message,
        extra={"audit": record},
    )
    return record


def audit_event(
    user_id: str | None,
    action: str,
    resource_type: str,
    status: str,
    *,
    resource_id: str | None = None,
    metadata: dict[str, Any] | None = None,
    error_message: str | None = None,
) -> dict[str, Any]:
    """Record a security-relevant event (profile view, auth failure, ...)."""
    record = {
        "user_id": user_id or "unknown",
        "action": action,
        "resource_type": resource_type,
        "resource_id": resource_id,
        "status": status,
        "metadata": sanitize_log_data(metadata),
        "error_message": error_message,
    }
    level = logging.INFO if status == "success" else logging.WARNING
    audit_logger.log(
        level,
        "[audit] user=%s action=%s resource=%s/%s status=%s",
        record["user_id"],
        action,
        resource_type,
        resource_id,
        status,
        extra={"audit": record},
    )
    return record
