# ================================
# FILE: formgate/pipeline.py
# ================================
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from formgate import honeypot
from formgate.audit import (
    AuditLog,
    EMAIL_FAILED,
    EMAIL_SENT,
    EMAIL_SKIPPED,
    INTERNAL_ERROR,
    PROCESSED,
    RATE_LIMITED,
    RECEIVED,
    SPAM_DETECTED,
    VALIDATION_FAILED,
)
from formgate.content import build_contact_email
from formgate.email_io import DeliveryClient
from formgate.rate_limiter import RateCheckResult, RateLimiter
from formgate.sanitizer import sanitize_fields
from formgate.schemas import DeliveryFailed, DeliveryOutcome, EmailContent
from formgate.validation import ValidationResult, ValidationRules, is_valid_email, validate

log = logging.getLogger("uvicorn.error").getChild("pipeline")

ContentBuilder = Callable[[Mapping[str, str | None], str], EmailContent]


class SubmissionState(str, Enum):
    RECEIVED = "received"
    RATE_CHECKED = "rate_checked"
    HONEYPOT_CHECKED = "honeypot_checked"
    VALIDATED = "validated"
    ADMITTED = "admitted"
    DELIVERED = "delivered"
    DELIVERY_FAILED = "delivery_failed"
    DELIVERY_SKIPPED = "delivery_skipped"
    TRAPPED = "trapped"
    REJECTED = "rejected"
    LOGGED = "logged"


class RejectReason(str, Enum):
    RATE_LIMITED = "rate_limited"
    VALIDATION = "validation"
    INTERNAL_ERROR = "internal_error"


@dataclass
class EmailDefaults:
    from_email: str | None = None
    to_email: str | None = None
    reply_to: str | None = None
    subject_prefix: str = "[Contact Form]"


@dataclass
class SubmissionResult:
    submission_id: str
    client_id: str
    states: list[SubmissionState] = field(default_factory=list)
    reject_reason: RejectReason | None = None
    rate: RateCheckResult | None = None
    validation: ValidationResult | None = None
    honeypot_field: str | None = None
    delivery: DeliveryOutcome | None = None

    @property
    def state(self) -> SubmissionState:
        return self.states[-1]

    @property
    def admitted(self) -> bool:
        return SubmissionState.ADMITTED in self.states

    @property
    def trapped(self) -> bool:
        return SubmissionState.TRAPPED in self.states

    @property
    def rejected(self) -> bool:
        return self.reject_reason is not None

    @property
    def email_sent(self) -> bool:
        return self.delivery is not None and self.delivery.sent

    @property
    def email_error(self) -> str | None:
        if isinstance(self.delivery, DeliveryFailed):
            return self.delivery.message
        return None


def new_submission_id() -> str:
    return f"sub_{int(time.time())}_{uuid.uuid4().hex[:12]}"


class SubmissionPipeline:
    """Admission pipeline for one form submission at a time (thread-safe).

    Order: sanitize, rate check, honeypot, validation, atomic rate admit,
    content build, delivery. Rejections and delivery failures come back as
    values on ``SubmissionResult``; only unexpected faults are caught here and
    turned into ``RejectReason.INTERNAL_ERROR``.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        delivery: DeliveryClient | None = None,
        email: EmailDefaults | None = None,
        rules: ValidationRules | None = None,
        honeypot_fields: Sequence[str] | None = None,
        content_builder: ContentBuilder | None = None,
        audit: AuditLog | None = None,
    ):
        self.rate_limiter = rate_limiter
        self.delivery = delivery
        self.email = email or EmailDefaults()
        self.rules = rules or ValidationRules()
        self.honeypot_fields = tuple(honeypot_fields or honeypot.DEFAULT_HONEYPOT_FIELDS)
        self.content_builder = content_builder or self._default_content
        self.audit = audit or AuditLog()

    @property
    def delivery_configured(self) -> bool:
        return bool(self.delivery and self.email.from_email and self.email.to_email)

    def _default_content(self, fields: Mapping[str, str | None], submission_id: str) -> EmailContent:
        return build_contact_email(fields, submission_id, skip=set(self.honeypot_fields))

    def process(self, raw: Mapping[str, Any], client_id: str, user_agent: str | None = None) -> SubmissionResult:
        result = SubmissionResult(submission_id=new_submission_id(), client_id=client_id)
        try:
            self._run(result, raw, user_agent)
        except Exception as e:
            stage = result.states[-1].value if result.states else "none"
            log.exception("[pipeline] internal error id=%s stage=%s", result.submission_id, stage)
            result.reject_reason = RejectReason.INTERNAL_ERROR
            result.states.append(SubmissionState.REJECTED)
            try:
                self.audit.event(INTERNAL_ERROR, result.submission_id, client_id,
                                 stage=stage, error=type(e).__name__, message=str(e))
            except Exception:
                log.exception("[pipeline] audit write failed id=%s", result.submission_id)
        return result

    def _run(self, result: SubmissionResult, raw: Mapping[str, Any], user_agent: str | None) -> None:
        sid, ip = result.submission_id, result.client_id

        result.states.append(SubmissionState.RECEIVED)
        fields = sanitize_fields(raw)
        self.audit.event(RECEIVED, sid, ip, user_agent=user_agent, params=fields)

        rate = self.rate_limiter.check(ip)
        result.rate = rate
        result.states.append(SubmissionState.RATE_CHECKED)
        if not rate.allowed:
            self._reject_rate(result, rate)
            return

        trap = honeypot.check(fields, self.honeypot_fields)
        result.states.append(SubmissionState.HONEYPOT_CHECKED)
        if trap.trapped:
            result.honeypot_field = trap.field
            result.states.append(SubmissionState.TRAPPED)
            self.audit.event(SPAM_DETECTED, sid, ip, honeypot_field=trap.field, user_agent=user_agent)
            log.info("[pipeline] honeypot hit id=%s field=%s", sid, trap.field)
            result.states.append(SubmissionState.LOGGED)
            return

        validation = validate(fields, self.rules)
        result.validation = validation
        result.states.append(SubmissionState.VALIDATED)
        if not validation.valid:
            result.reject_reason = RejectReason.VALIDATION
            result.states.append(SubmissionState.REJECTED)
            self.audit.event(VALIDATION_FAILED, sid, ip, errors=validation.errors, warnings=validation.warnings)
            return

        # re-check and record atomically; a concurrent request may have taken the slot
        rate = self.rate_limiter.admit(ip)
        result.rate = rate
        if not rate.allowed:
            self._reject_rate(result, rate)
            return
        result.states.append(SubmissionState.ADMITTED)
        self.audit.event(PROCESSED, sid, ip, warnings=validation.warnings)

        if not self.delivery_configured:
            result.states.append(SubmissionState.DELIVERY_SKIPPED)
            self.audit.event(EMAIL_SKIPPED, sid, ip, reason="delivery not configured")
        else:
            self._deliver(result, fields)

        result.states.append(SubmissionState.LOGGED)

    def _reject_rate(self, result: SubmissionResult, rate: RateCheckResult) -> None:
        result.reject_reason = RejectReason.RATE_LIMITED
        result.states.append(SubmissionState.REJECTED)
        self.audit.event(
            RATE_LIMITED, result.submission_id, result.client_id,
            violations=[{"window": v.window, "count": v.count, "limit": v.limit} for v in rate.violations],
        )

    def _subject(self, fields: Mapping[str, str | None]) -> str:
        subject = fields.get("subject") or f"New message from {fields.get('name') or 'website visitor'}"
        prefix = self.email.subject_prefix
        return f"{prefix} {subject}" if prefix else subject

    def _deliver(self, result: SubmissionResult, fields: Mapping[str, str | None]) -> None:
        sid, ip = result.submission_id, result.client_id
        content = self.content_builder(fields, sid)

        # replies go to the visitor when the address is usable
        visitor = fields.get("email")
        reply_to = visitor if visitor and is_valid_email(visitor) else self.email.reply_to

        outcome = self.delivery.send(
            to=self.email.to_email,
            from_email=self.email.from_email,
            subject=self._subject(fields),
            html=content.html,
            text=content.text,
            reply_to=reply_to,
        )
        result.delivery = outcome
        if outcome.sent:
            result.states.append(SubmissionState.DELIVERED)
            self.audit.event(EMAIL_SENT, sid, ip, message_id=outcome.message_id)
        else:
            result.states.append(SubmissionState.DELIVERY_FAILED)
            self.audit.event(EMAIL_FAILED, sid, ip, error_kind=outcome.kind.value, message=outcome.message)
