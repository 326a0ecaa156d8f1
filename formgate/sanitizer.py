# ================================
# FILE: formgate/sanitizer.py
# ================================
import re
import unicodedata
from typing import Any, Mapping

# tab, LF and CR survive
_re_ctrl = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def _clean_once(text: str) -> str:
    text = _re_ctrl.sub("", text.strip())
    return unicodedata.normalize("NFC", text).strip()


def sanitize(value: Any) -> str | None:
    """Trim, drop control characters and NFC-normalize a raw field value.
    None stays None. Repeats until stable so the result is a fixed point.
    """
    if value is None:
        return None
    text = str(value)
    for _ in range(4):
        cleaned = _clean_once(text)
        if cleaned == text:
            break
        text = cleaned
    return text


def sanitize_fields(fields: Mapping[str, Any]) -> dict[str, str | None]:
    return {str(k): sanitize(v) for k, v in (fields or {}).items()}
