# ================================
# FILE: formgate/validation.py
# ================================
import re
from dataclasses import dataclass, field
from typing import Mapping, Sequence

DEFAULT_REQUIRED_FIELDS = ("name", "email", "message")
DEFAULT_MAX_LENGTHS = {"name": 100, "email": 255, "message": 5000, "subject": 200}
DEFAULT_SPAM_PHRASES = (
    "click here",
    "free money",
    "make money fast",
    "viagra",
    "casino",
    "lottery",
    "you have won",
    "act now",
    "limited time offer",
    "buy now",
)

MAX_LINKS = 3
SHOUTING_MIN_LENGTH = 50

_re_email = re.compile(
    r"^[A-Za-z0-9._+-]+"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\.)+"
    r"[A-Za-z]{2,}"
)
_re_link = re.compile(r"https?://", re.I)


@dataclass
class ValidationRules:
    required_fields: Sequence[str] = DEFAULT_REQUIRED_FIELDS
    max_lengths: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_MAX_LENGTHS))
    spam_phrases: Sequence[str] = DEFAULT_SPAM_PHRASES


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def _label(name: str) -> str:
    return name.replace("_", " ").capitalize()


def _present(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def is_valid_email(email: str) -> bool:
    if email.count("@") != 1:
        return False
    if ".." in email or email.startswith(".") or email.endswith("."):
        return False
    local = email.split("@", 1)[0]
    if local.startswith(".") or local.endswith("."):
        return False
    return bool(_re_email.fullmatch(email))


def spam_warnings(message: str | None, phrases: Sequence[str] = DEFAULT_SPAM_PHRASES) -> list[str]:
    """Content heuristics. Informational only, never a reason to reject."""
    if not message:
        return []
    warnings = []
    if len(_re_link.findall(message)) > MAX_LINKS:
        warnings.append("Message contains excessive links")
    if len(message) > SHOUTING_MIN_LENGTH and message.isupper():
        warnings.append("Message is written entirely in uppercase")
    lowered = message.lower()
    for phrase in phrases:
        if phrase.lower() in lowered:
            warnings.append(f"Message contains suspicious phrase: '{phrase}'")
            break
    return warnings


def validate(fields: Mapping[str, str | None], rules: ValidationRules | None = None) -> ValidationResult:
    """Apply required, format and length rules to sanitized fields.

    Every violation is collected; nothing short-circuits. Spam signals land in
    ``warnings`` and never affect ``valid``.
    """
    rules = rules or ValidationRules()
    result = ValidationResult()

    for name in rules.required_fields:
        if not _present(fields.get(name)):
            result.errors.append(f"{_label(name)} is required")

    email = fields.get("email")
    if _present(email) and not is_valid_email(email):
        result.errors.append("Email format is invalid")

    for name, limit in rules.max_lengths.items():
        value = fields.get(name)
        if value is not None and len(value) > limit:
            result.errors.append(f"{_label(name)} must be {limit} characters or less")

    result.warnings.extend(spam_warnings(fields.get("message"), rules.spam_phrases))
    return result
