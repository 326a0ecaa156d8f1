# ================================
# FILE: formgate/utils.py
# ================================
from fastapi import Request


def client_ip(request: Request, trust_proxy: bool = False) -> str:
    """Peer address, or the first X-Forwarded-For hop behind a trusted proxy."""
    if trust_proxy:
        fwd = request.headers.get("x-forwarded-for", "")
        first = fwd.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def is_form_content(content_type: str | None) -> bool:
    ct = (content_type or "").lower()
    return ct.startswith("application/x-www-form-urlencoded") or ct.startswith("multipart/form-data")
