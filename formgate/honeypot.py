# ================================
# FILE: formgate/honeypot.py
# ================================
from dataclasses import dataclass
from typing import Mapping, Sequence

DEFAULT_HONEYPOT_FIELDS = ("website", "url", "homepage", "hp_field", "bot_field", "spam_check")


@dataclass(frozen=True)
class HoneypotResult:
    trapped: bool
    field: str | None = None


def check(fields: Mapping[str, str | None], field_names: Sequence[str] | None = None) -> HoneypotResult:
    """First decoy field (in configured order) carrying a value trips the trap."""
    for name in field_names or DEFAULT_HONEYPOT_FIELDS:
        value = fields.get(name)
        if value is not None and str(value).strip():
            return HoneypotResult(trapped=True, field=name)
    return HoneypotResult(trapped=False)
