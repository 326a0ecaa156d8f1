# ================================
# FILE: formgate/email_io.py
# ================================
import json
import logging
from typing import Sequence

import httpx
from pydantic import ValidationError

from formgate.schemas import (
    DeliveryErrorKind,
    DeliveryFailed,
    DeliveryOutcome,
    DeliverySent,
    EmailSendRequest,
    EmailSendResponse,
    ProviderErrorBody,
)

DEFAULT_API_URL = "https://api.resend.com/emails"
DEFAULT_TIMEOUT_SECS = 10.0

log = logging.getLogger("uvicorn.error").getChild("email_io")


class _MalformedBody(Exception):
    pass


def _as_list(value: str | Sequence[str] | None) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return [value]
    return list(value)


def _parse(resp: httpx.Response, model):
    if not resp.content.strip():
        return model()
    try:
        return model.model_validate(resp.json())
    except (json.JSONDecodeError, ValueError, ValidationError) as e:
        raise _MalformedBody(str(e)) from e


def _error_message(resp: httpx.Response) -> str | None:
    """Best effort; used where the body only decorates the outcome."""
    try:
        return _parse(resp, ProviderErrorBody).message
    except _MalformedBody:
        return None


class DeliveryClient:
    """Sends one message through the provider's HTTPS JSON API.

    ``send`` never raises for provider or network trouble: every failure is
    mapped to a ``DeliveryFailed`` with a ``DeliveryErrorKind``. One attempt,
    no retries.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = DEFAULT_TIMEOUT_SECS,
        client: httpx.Client | None = None,
    ):
        if not api_key:
            raise ValueError("Missing delivery API key")
        self.api_url = api_url
        self.timeout = timeout
        self._api_key = api_key
        self._client = client

    def _post(self, payload: dict) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._client is not None:
            return self._client.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
        with httpx.Client(timeout=self.timeout) as client:
            return client.post(self.api_url, json=payload, headers=headers)

    def send(
        self,
        to: str | Sequence[str],
        from_email: str,
        subject: str,
        html: str | None = None,
        text: str | None = None,
        reply_to: str | Sequence[str] | None = None,
    ) -> DeliveryOutcome:
        if not html and not text:
            raise ValueError("send() needs an html or text body")

        req = EmailSendRequest(
            to=_as_list(to),
            from_=from_email,
            subject=subject,
            html=html or None,
            text=text or None,
            reply_to=_as_list(reply_to),
        )

        try:
            resp = self._post(req.payload())
        except httpx.TimeoutException as e:
            log.warning("[email] provider timeout after %.1fs: %s", self.timeout, e)
            return DeliveryFailed(DeliveryErrorKind.TIMEOUT, f"Request timed out after {self.timeout:g}s")
        except httpx.DecodingError as e:
            log.warning("[email] undecodable provider response: %s", e)
            return DeliveryFailed(DeliveryErrorKind.MALFORMED_RESPONSE, f"Malformed provider response: {e}")
        except httpx.TransportError as e:
            log.warning("[email] network error: %s", e)
            return DeliveryFailed(DeliveryErrorKind.NETWORK_ERROR, f"Network error: {e}")
        except httpx.RequestError as e:
            log.warning("[email] request error: %s", e)
            return DeliveryFailed(DeliveryErrorKind.NETWORK_ERROR, f"Network error: {e}")

        outcome = self.classify(resp)
        if isinstance(outcome, DeliverySent):
            log.info("[email] sent to %s status=%s msg_id=%s", req.to, resp.status_code, outcome.message_id)
        else:
            log.warning("[email] failed to=%s status=%s kind=%s msg=%s",
                        req.to, resp.status_code, outcome.kind.value, outcome.message)
        return outcome

    @staticmethod
    def classify(resp: httpx.Response) -> DeliveryOutcome:
        status = resp.status_code
        try:
            if status in (200, 201):
                return DeliverySent(message_id=_parse(resp, EmailSendResponse).id)
            if status == 400:
                body = _parse(resp, ProviderErrorBody)
                return DeliveryFailed(DeliveryErrorKind.BAD_REQUEST, body.message or "Bad request")
            if status == 422:
                body = _parse(resp, ProviderErrorBody)
                return DeliveryFailed(DeliveryErrorKind.VALIDATION_ERROR, body.message or "Validation error")
        except _MalformedBody as e:
            return DeliveryFailed(DeliveryErrorKind.MALFORMED_RESPONSE, f"Malformed provider response (HTTP {status}): {e}")

        if status == 401:
            return DeliveryFailed(DeliveryErrorKind.UNAUTHORIZED, _error_message(resp) or "Invalid or missing API key")
        if status == 429:
            return DeliveryFailed(DeliveryErrorKind.RATE_LIMITED, _error_message(resp) or "Provider rate limit exceeded")
        return DeliveryFailed(DeliveryErrorKind.PROVIDER_ERROR, f"HTTP {status}: {resp.text[:500]}")
