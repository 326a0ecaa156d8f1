# ================================
# FILE: formgate/audit.py
# ================================
import json
import logging
import logging.handlers
from datetime import datetime, timezone
from typing import Any, Mapping

AUDIT_LOGGER = "formgate.audit"

RECEIVED = "received"
RATE_LIMITED = "rate-limited"
SPAM_DETECTED = "spam-detected"
VALIDATION_FAILED = "validation-failed"
PROCESSED = "processed"
EMAIL_SENT = "email-sent"
EMAIL_FAILED = "email-failed"
EMAIL_SKIPPED = "email-skipped"
INTERNAL_ERROR = "internal-error"
REQUEST_FAILED = "failed"

_ERROR_EVENTS = {EMAIL_FAILED, INTERNAL_ERROR}
_WARNING_EVENTS = {RATE_LIMITED, SPAM_DETECTED, VALIDATION_FAILED, REQUEST_FAILED}


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def redact_params(params: Mapping[str, Any]) -> dict[str, Any]:
    """Drop anything that looks like a password before it reaches a log."""
    return {k: v for k, v in (params or {}).items() if "password" not in str(k).lower()}


class AuditLog:
    """Append-only decision trail: one JSON object per line, one line per event."""

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(AUDIT_LOGGER)

    def event(self, status: str, submission_id: str | None, ip: str | None, **extra: Any) -> dict:
        record = {"timestamp": iso_now(), "submission_id": submission_id, "ip": ip, "status": status}
        if "params" in extra:
            extra["params"] = redact_params(extra["params"])
        record.update(extra)

        level = logging.INFO
        if status in _ERROR_EVENTS:
            level = logging.ERROR
        elif status in _WARNING_EVENTS:
            level = logging.WARNING
        self.logger.log(level, json.dumps(record, default=str, ensure_ascii=False))
        return record


def configure_audit_file(path: str, logger_name: str = AUDIT_LOGGER) -> logging.Handler:
    """Route the audit logger to a daily-rotated file of bare JSON lines."""
    handler = logging.handlers.TimedRotatingFileHandler(path, when="midnight", encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    logger.propagate = False
    return handler
