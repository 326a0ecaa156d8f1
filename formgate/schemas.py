# ================================
# FILE: formgate/schemas.py
# ================================
from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# --- provider wire format ---

class EmailSendRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    to: list[str]
    from_: str = Field(alias="from")
    subject: str
    html: str | None = None
    text: str | None = None
    reply_to: list[str] | None = None

    def payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class EmailSendResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None


class ProviderErrorBody(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str | None = None
    name: str | None = None


# --- delivery outcome ---

class DeliveryErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMITED = "rate_limited"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True)
class DeliverySent:
    message_id: str | None = None

    @property
    def sent(self) -> bool:
        return True


@dataclass(frozen=True)
class DeliveryFailed:
    kind: DeliveryErrorKind
    message: str

    @property
    def sent(self) -> bool:
        return False


DeliveryOutcome = DeliverySent | DeliveryFailed


@dataclass(frozen=True)
class EmailContent:
    html: str | None = None
    text: str | None = None
