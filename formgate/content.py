# ================================
# FILE: formgate/content.py
# ================================
from html import escape
from typing import Mapping

from formgate.schemas import EmailContent

# shown first, in this order; anything else follows alphabetically
_LEAD_FIELDS = ("name", "email", "subject", "message")


def _ordered(fields: Mapping[str, str | None], skip: set[str]) -> list[tuple[str, str]]:
    rows = [(k, fields[k]) for k in _LEAD_FIELDS if fields.get(k)]
    rows += [(k, v) for k, v in sorted(fields.items()) if k not in _LEAD_FIELDS and k not in skip and v]
    return rows


def build_contact_email(fields: Mapping[str, str | None], submission_id: str,
                        skip: set[str] | None = None) -> EmailContent:
    """Plain text + HTML rendering of a submission. One field per line."""
    rows = _ordered(fields, skip or set())

    plain_text = "New contact form submission\n\n"
    plain_text += "\n".join(f"{k.replace('_', ' ').title()}: {v}" for k, v in rows)
    plain_text += f"\n\nSubmission ID: {submission_id}\n"

    body = "".join(
        f'<p><strong>{escape(k.replace("_", " ").title())}:</strong><br>'
        f'{escape(v).replace(chr(10), "<br>")}</p>\n'
        for k, v in rows
    )
    html_content = f"""<!doctype html>
<html>
  <body style="font-family:Arial,Helvetica,sans-serif; line-height:1.4; color:#222; font-size:14px;">
    <p>New contact form submission</p>
{body}    <p style="color:#888; font-size:12px;">Submission ID: {escape(submission_id)}</p>
  </body>
</html>"""
    return EmailContent(html=html_content, text=plain_text)
