# =============================
# FILE: formgate/config.py
# =============================
import os, json, logging
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from formgate.email_io import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECS
from formgate.honeypot import DEFAULT_HONEYPOT_FIELDS
from formgate.rate_limiter import DEFAULT_SWEEP_SECS, RateLimits
from formgate.validation import (
    DEFAULT_MAX_LENGTHS,
    DEFAULT_REQUIRED_FIELDS,
    DEFAULT_SPAM_PHRASES,
    ValidationRules,
)

log = logging.getLogger("uvicorn.error").getChild("config")

# Load .env from repo root (helpful locally)
root_env = Path(__file__).resolve().parent.parent / ".env"
if root_env.exists():
    load_dotenv(dotenv_path=root_env, override=False)

SERVICE_NAME = "formgate"
VERSION = "1.0.0"

_TRUE = {"1", "true", "yes", "on"}


class FormSettings(BaseModel):
    # --- Delivery ---
    resend_api_key: str | None = None
    resend_api_url: str = DEFAULT_API_URL
    resend_timeout_secs: float = Field(default=DEFAULT_TIMEOUT_SECS, gt=0)
    from_email: str | None = None
    to_email: str | None = None
    reply_to_email: str | None = None
    delivery_enabled: bool = True
    subject_prefix: str = "[Contact Form]"

    # --- Rate limiting ---
    rate_limit_per_minute: int = Field(default=5, ge=1)
    rate_limit_per_hour: int = Field(default=20, ge=1)
    rate_limit_per_day: int = Field(default=100, ge=1)
    rate_limit_sweep_secs: float = Field(default=DEFAULT_SWEEP_SECS, gt=0)

    # --- Validation / spam ---
    required_fields: list[str] = Field(default_factory=lambda: list(DEFAULT_REQUIRED_FIELDS))
    max_lengths: dict[str, int] = Field(default_factory=lambda: dict(DEFAULT_MAX_LENGTHS))
    honeypot_fields: list[str] = Field(default_factory=lambda: list(DEFAULT_HONEYPOT_FIELDS))
    spam_phrases: list[str] = Field(default_factory=lambda: list(DEFAULT_SPAM_PHRASES))

    # --- Server ---
    log_file: str | None = "form-submissions.log"
    host: str = "0.0.0.0"
    port: int = 4567
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    trust_proxy_headers: bool = False

    @property
    def delivery_configured(self) -> bool:
        return bool(self.delivery_enabled and self.resend_api_key and self.from_email and self.to_email)

    def rate_limits(self) -> RateLimits:
        return RateLimits(
            per_minute=self.rate_limit_per_minute,
            per_hour=self.rate_limit_per_hour,
            per_day=self.rate_limit_per_day,
        )

    def validation_rules(self) -> ValidationRules:
        return ValidationRules(
            required_fields=tuple(self.required_fields),
            max_lengths=dict(self.max_lengths),
            spam_phrases=tuple(self.spam_phrases),
        )


def _csv(value: str) -> list[str]:
    return [p.strip() for p in value.split(",") if p.strip()]


def _read_max_lengths(raw: str) -> dict[str, int]:
    try:
        data = json.loads(raw)
        overrides = {str(k).strip(): int(v) for k, v in data.items()}
        return {**DEFAULT_MAX_LENGTHS, **overrides}
    except (ValueError, TypeError, AttributeError) as e:
        raise ValueError(f"FORM_MAX_LENGTHS must be a JSON object of field -> int: {e}") from e


def settings_from_env(env: dict[str, str] | None = None) -> FormSettings:
    """Build settings from environment variables; unset keys keep defaults."""
    env = os.environ if env is None else env
    data: dict = {}

    simple = {
        "RESEND_API_KEY": "resend_api_key",
        "RESEND_API_URL": "resend_api_url",
        "RESEND_TIMEOUT_SECS": "resend_timeout_secs",
        "RESEND_FROM_EMAIL": "from_email",
        "RESEND_TO_EMAIL": "to_email",
        "RESEND_REPLY_TO": "reply_to_email",
        "EMAIL_SUBJECT_PREFIX": "subject_prefix",
        "RATE_LIMIT_PER_MINUTE": "rate_limit_per_minute",
        "RATE_LIMIT_PER_HOUR": "rate_limit_per_hour",
        "RATE_LIMIT_PER_DAY": "rate_limit_per_day",
        "RATE_LIMIT_SWEEP_SECS": "rate_limit_sweep_secs",
        "FORM_HOST": "host",
        "FORM_PORT": "port",
    }
    for var, key in simple.items():
        value = env.get(var)
        if value is not None and value.strip() != "":
            data[key] = value.strip()

    for var, key in (("FORM_REQUIRED_FIELDS", "required_fields"),
                     ("HONEYPOT_FIELDS", "honeypot_fields"),
                     ("SPAM_PHRASES", "spam_phrases"),
                     ("CORS_ORIGINS", "cors_origins")):
        if env.get(var, "").strip():
            data[key] = _csv(env[var])

    for var, key in (("EMAIL_DELIVERY_ENABLED", "delivery_enabled"),
                     ("TRUST_PROXY_HEADERS", "trust_proxy_headers")):
        if env.get(var, "").strip():
            data[key] = env[var].strip().lower() in _TRUE

    # an explicitly empty FORM_LOG_FILE turns the audit file off
    if "FORM_LOG_FILE" in env:
        data["log_file"] = env["FORM_LOG_FILE"].strip() or None

    if env.get("FORM_MAX_LENGTHS", "").strip():
        data["max_lengths"] = _read_max_lengths(env["FORM_MAX_LENGTHS"])

    try:
        return FormSettings(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid form server configuration: {e}") from e


# Cache to avoid re-reading the environment on every request
__SETTINGS_CACHE: FormSettings | None = None


def get_settings() -> FormSettings:
    global __SETTINGS_CACHE
    if __SETTINGS_CACHE is None:
        __SETTINGS_CACHE = settings_from_env()
        s = __SETTINGS_CACHE
        log.info("[config] delivery_configured=%s limits=%d/%d/%d honeypots=%d",
                 s.delivery_configured, s.rate_limit_per_minute, s.rate_limit_per_hour,
                 s.rate_limit_per_day, len(s.honeypot_fields))
        if s.delivery_enabled and not s.delivery_configured:
            log.warning("[config] delivery enabled but RESEND_API_KEY/RESEND_FROM_EMAIL/RESEND_TO_EMAIL incomplete; emails will be skipped")
    return __SETTINGS_CACHE


def refresh_settings() -> FormSettings:
    """Clear and reload cached settings."""
    global __SETTINGS_CACHE
    __SETTINGS_CACHE = None
    return get_settings()
