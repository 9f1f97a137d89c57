from __future__ import annotations

import logging
import re
from typing import Final

logger = logging.getLogger(__name__)

MAX_SMS_CHARS: Final[int] = 160
MAX_UNICODE_SMS_CHARS: Final[int] = 70

DIGITS_RE = re.compile(r"[0-9]+")

# (prefix, total length) pairs accepted by the gateway for Romanian mobiles
RECIPIENT_SHAPES: Final[tuple[tuple[str, int], ...]] = (
    ("07", 10),
    ("407", 11),
    ("7", 9),
)


class ValidationError(ValueError):
    """Raised when a message is rejected locally, before any remote call."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRecipient(ValidationError):
    pass


class InvalidBody(ValidationError):
    pass


def normalise_recipient(number: str) -> str:
    """Strip the leading '+' of an international number."""
    return number.lstrip("+")


def check_recipient(number: str) -> str:
    """
    Return the normalised recipient or raise InvalidRecipient.

    Accepted shapes: 07XXXXXXXX, 407XXXXXXXX and 7XXXXXXXX.
    """
    normalised = normalise_recipient(number)
    if DIGITS_RE.fullmatch(normalised) and any(
        normalised.startswith(prefix) and len(normalised) == length
        for prefix, length in RECIPIENT_SHAPES
    ):
        return normalised
    raise InvalidRecipient(f"Incorrect format for phone number: {normalised}")


def check_body(body: str, is_unicode: bool = False) -> str:
    """
    Return the body unchanged or raise InvalidBody.

    Unicode messages (diacritics allowed) are limited to 70 characters,
    plain ones to 160.
    """
    limit = MAX_UNICODE_SMS_CHARS if is_unicode else MAX_SMS_CHARS
    if len(body) > limit:
        raise InvalidBody("Maximum SMS length exceeded")
    if not body:
        raise InvalidBody("No message")
    return body


def validate_recipient(number: str) -> bool:
    try:
        check_recipient(number)
    except InvalidRecipient as exc:
        logger.debug("Rejected recipient: %s", exc.message)
        return False
    return True


def validate_body(body: str, is_unicode: bool = False) -> bool:
    try:
        check_body(body, is_unicode=is_unicode)
    except InvalidBody as exc:
        logger.debug("Rejected body: %s", exc.message)
        return False
    return True
