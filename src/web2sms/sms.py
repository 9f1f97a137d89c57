from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from pydantic import BaseModel

# Length bounds of the tracking id the gateway returns for an accepted SMS
SMS_ID_MIN_LENGTH: Final[int] = 32
SMS_ID_MAX_LENGTH: Final[int] = 60

UNKNOWN_ERROR: Final[str] = "Unknown error !"


class OutboundSms(BaseModel):
    phone: str
    text: str


@dataclass(frozen=True)
class PlainMessage:
    message: str


@dataclass(frozen=True)
class RemoteFault:
    """A structured failure reported by the gateway (a SOAP fault)."""

    message: str
    code: str | None = None
    detail: str | None = None


DispatchError = PlainMessage | RemoteFault


@dataclass(frozen=True)
class DispatchResult:
    sms_id: str | None = None
    error: DispatchError | None = None
    # True when the message was rejected before any gateway call
    local: bool = False

    def __post_init__(self) -> None:
        if (self.sms_id is None) == (self.error is None):
            raise ValueError("DispatchResult needs exactly one of sms_id or error")

    @property
    def ok(self) -> bool:
        return self.sms_id is not None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error is not None else None

    @classmethod
    def success(cls, sms_id: str) -> DispatchResult:
        return cls(sms_id=sms_id)

    @classmethod
    def failure(cls, error: DispatchError | str, local: bool = False) -> DispatchResult:
        if isinstance(error, str):
            error = PlainMessage(error)
        return cls(error=error, local=local)


def is_sms_id(value: object) -> bool:
    return isinstance(value, str) and SMS_ID_MIN_LENGTH <= len(value) <= SMS_ID_MAX_LENGTH


def classify_response(value: object) -> DispatchResult:
    """
    Turn the raw return value of a send operation into a DispatchResult.

    The gateway answers an accepted SMS with its tracking id and a rejected
    one with an error text; anything that is not a string is unexpected.
    """
    if is_sms_id(value):
        return DispatchResult.success(value)  # type: ignore[arg-type]
    if isinstance(value, str) and value:
        return DispatchResult.failure(value)
    return DispatchResult.failure(UNKNOWN_ERROR)
