# conftest.py
import os

# Keep tests hermetic: no audit file, no real provider credentials.
os.environ["FORM_LOG_FILE"] = ""
for _var in ("RESEND_API_KEY", "RESEND_FROM_EMAIL", "RESEND_TO_EMAIL", "RESEND_REPLY_TO",
             "EMAIL_DELIVERY_ENABLED", "TRUST_PROXY_HEADERS"):
    os.environ.pop(_var, None)

import httpx
import pytest

from formgate.audit import AuditLog
from formgate.email_io import DeliveryClient
from formgate.pipeline import EmailDefaults, SubmissionPipeline
from formgate.rate_limiter import RateLimiter


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ProviderStub:
    """Records requests and answers with a canned response (or raises)."""

    def __init__(self, status_code: int = 200, json_body=None, text: str | None = None, exc: Exception | None = None):
        self.status_code = status_code
        self.json_body = {"id": "msg_test"} if json_body is None and text is None else json_body
        self.text = text
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        if self.text is not None:
            return httpx.Response(self.status_code, text=self.text)
        return httpx.Response(self.status_code, json=self.json_body)

    def client(self) -> DeliveryClient:
        return DeliveryClient(
            api_key="re_test_key",
            api_url="https://api.example.test/emails",
            client=httpx.Client(transport=httpx.MockTransport(self)),
        )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


@pytest.fixture
def provider():
    return ProviderStub()


@pytest.fixture
def make_pipeline(limiter):
    def _make(delivery=None, **kwargs):
        return SubmissionPipeline(
            rate_limiter=kwargs.pop("rate_limiter", limiter),
            delivery=delivery,
            email=EmailDefaults(
                from_email="forms@example.com",
                to_email="owner@example.com",
                reply_to="noreply@example.com",
            ),
            audit=AuditLog(),
            **kwargs,
        )
    return _make


@pytest.fixture
def valid_fields():
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "subject": "Hello",
        "message": "I would like to know more about your services.",
    }
