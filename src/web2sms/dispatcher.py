from __future__ import annotations

import logging
import numbers
from collections.abc import Callable
from datetime import datetime
from typing import Any, Final

from pydantic import BaseModel, ConfigDict

from .config import Settings, get_settings
from .sms import (
    UNKNOWN_ERROR,
    DispatchError,
    DispatchResult,
    PlainMessage,
    RemoteFault,
    classify_response,
)
from .transport import RemoteFaultError, Web2SmsService, get_service
from .validation import ValidationError, check_body, check_recipient

logger = logging.getLogger(__name__)

NO_SESSION: Final[str] = "No session opened"
SCHEDULE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

ScheduledDate = str | datetime | None


class DispatcherConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str = ""
    password: str = ""
    auth_key: str = ""
    sender: str = ""
    callback_url: str | None = None
    is_unicode: bool = False
    validity: int = 0


def format_scheduled_date(value: ScheduledDate) -> str | None:
    """Pass strings through; render datetimes in SQL DateTime format."""
    if isinstance(value, datetime):
        return value.strftime(SCHEDULE_FORMAT)
    return value or None


def _error_from_exception(exc: Exception) -> DispatchError:
    if isinstance(exc, RemoteFaultError):
        return RemoteFault(exc.message, code=exc.code, detail=exc.detail)
    return PlainMessage(str(exc) or UNKNOWN_ERROR)


class MessageDispatcher:
    """
    Sends SMS through the web2sms gateway.

    Every send_* method validates the recipient and body locally, calls the
    gateway and returns True when it answered with a tracking id. Failures
    never raise: the method returns False and the reason is available from
    `error` (and `fault` for SOAP faults). `last_result` holds the full
    DispatchResult of the latest call.
    """

    def __init__(
        self,
        service: Web2SmsService,
        username: str = "",
        password: str = "",
        auth_key: str = "",
        sender: str = "",
        callback_url: str | None = None,
        is_unicode: bool = False,
        validity: int = 0,
    ) -> None:
        self._service = service
        self.config = DispatcherConfig(
            username=username,
            password=password,
            auth_key=auth_key,
            sender=sender,
            callback_url=callback_url,
            is_unicode=is_unicode,
            validity=validity,
        )
        self._session_id: str | None = None
        self._last_sms_id: str | None = None
        self._error: str | None = None
        self._fault: RemoteFault | None = None
        self._last_result: DispatchResult | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings | None = None, service: Web2SmsService | None = None
    ) -> MessageDispatcher:
        settings = settings or get_settings()
        return cls(
            service if service is not None else get_service(),
            username=settings.username,
            password=settings.password,
            auth_key=settings.auth_key,
            sender=settings.sender,
            callback_url=settings.callback_url,
            is_unicode=settings.is_unicode,
            validity=settings.validity,
        )

    # --- Accessors ---

    @property
    def service(self) -> Web2SmsService:
        return self._service

    @property
    def last_sms_id(self) -> str | None:
        return self._last_sms_id

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def fault(self) -> RemoteFault | None:
        return self._fault

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def last_result(self) -> DispatchResult | None:
        return self._last_result

    def set_sender(self, sender: str) -> None:
        self.config = self.config.model_copy(update={"sender": sender})

    # --- Sending ---

    def send_sms(
        self,
        recipient: str,
        body: str,
        callback_url: str | None = None,
        scheduled_date: ScheduledDate = None,
        validity: float | None = None,
    ) -> bool:
        """Send using username + auth key."""
        callback = self._callback(callback_url)
        cfg = self.config
        return self._dispatch(
            "sendSmsAuthKey",
            recipient,
            body,
            cfg.is_unicode,
            lambda nr: self._service.send_sms_auth_key(
                cfg.username,
                cfg.auth_key,
                cfg.sender,
                nr,
                body,
                format_scheduled_date(scheduled_date),
                self._validity(validity),
                callback,
            ),
        )

    def send_simple_sms(
        self,
        recipient: str,
        body: str,
        callback_url: str | None = None,
        scheduled_date: ScheduledDate = None,
        is_unicode: bool | None = None,
    ) -> bool:
        """Send using username + password; `is_unicode` only applies to this call."""
        callback = self._callback(callback_url)
        unicode_flag = self.config.is_unicode if is_unicode is None else bool(is_unicode)
        cfg = self.config
        return self._dispatch(
            "sendSMS",
            recipient,
            body,
            unicode_flag,
            lambda nr: self._service.send_sms(
                cfg.username,
                cfg.password,
                cfg.sender,
                nr,
                body,
                unicode_flag,
                format_scheduled_date(scheduled_date),
                callback,
            ),
        )

    def send_session_sms(
        self,
        recipient: str,
        body: str,
        scheduled_date: ScheduledDate = None,
        validity: float | None = None,
    ) -> bool:
        """Send inside the session opened with open_session()."""
        session_id = self._session_id
        if not session_id:
            return self._reject(NO_SESSION)
        cfg = self.config
        return self._dispatch(
            "sendSession",
            recipient,
            body,
            cfg.is_unicode,
            lambda nr: self._service.send_session(
                session_id,
                nr,
                body,
                format_scheduled_date(scheduled_date),
                cfg.sender,
                self._validity(validity),
            ),
        )

    def send_wap_push(
        self,
        recipient: str,
        url: str,
        body: str,
        scheduled_date: ScheduledDate = None,
        validity: float | None = None,
    ) -> bool:
        cfg = self.config
        return self._dispatch(
            "sendWapPush",
            recipient,
            body,
            cfg.is_unicode,
            lambda nr: self._service.send_wap_push(
                nr,
                url,
                body,
                format_scheduled_date(scheduled_date),
                cfg.sender,
                self._validity(validity),
            ),
        )

    def send_session_wap_push(
        self,
        recipient: str,
        url: str,
        body: str,
        scheduled_date: ScheduledDate = None,
        validity: float | None = None,
    ) -> bool:
        session_id = self._session_id
        if not session_id:
            return self._reject(NO_SESSION)
        cfg = self.config
        return self._dispatch(
            "sendWapPush",
            recipient,
            body,
            cfg.is_unicode,
            lambda nr: self._service.send_session_wap_push(
                session_id,
                nr,
                url,
                body,
                format_scheduled_date(scheduled_date),
                cfg.sender,
                self._validity(validity),
            ),
        )

    # --- Session ---

    def open_session(self) -> bool:
        if self._session_id:
            return True
        try:
            result = self._service.open_session(self.config.username, self.config.password)
        except Exception as exc:
            self._record_error(_error_from_exception(exc))
            logger.warning("Could not open web2sms session: %s", self._error)
            return False
        if isinstance(result, str) and result:
            self._session_id = result
            logger.info("Opened web2sms session")
        else:
            # The gateway answered without a token; callers find out through
            # session_is_open().
            logger.warning("openSession returned no session token: %r", result)
        return True

    def session_is_open(self) -> bool:
        return bool(self._session_id)

    def close_session(self) -> MessageDispatcher:
        if not self._session_id:
            return self
        session_id, self._session_id = self._session_id, None
        try:
            self._service.close_session(session_id)
        except Exception as exc:
            self._record_error(_error_from_exception(exc))
            logger.warning("Error while closing web2sms session: %s", self._error)
        else:
            logger.info("Closed web2sms session")
        return self

    # --- Internals ---

    def _callback(self, callback_url: str | None) -> str | None:
        return callback_url or self.config.callback_url

    def _validity(self, validity: float | None) -> int:
        # Any positive number overrides the default, whole minutes are sent
        if isinstance(validity, numbers.Real) and not isinstance(validity, bool) and validity > 0:
            return int(validity)
        return self.config.validity

    def _dispatch(
        self,
        operation: str,
        recipient: str,
        body: str,
        is_unicode: bool,
        call: Callable[[str], Any],
    ) -> bool:
        try:
            number = check_recipient(recipient)
            check_body(body, is_unicode=is_unicode)
        except ValidationError as exc:
            return self._reject(exc.message)

        try:
            raw = call(number)
        except Exception as exc:
            result = DispatchResult.failure(_error_from_exception(exc))
        else:
            result = classify_response(raw)

        return self._finish(operation, number, result)

    def _reject(self, message: str) -> bool:
        logger.warning("SMS rejected before sending: %s", message)
        self._last_result = DispatchResult.failure(message, local=True)
        self._record_error(PlainMessage(message))
        return False

    def _finish(self, operation: str, recipient: str, result: DispatchResult) -> bool:
        self._last_result = result
        error = result.error
        if error is None:
            self._last_sms_id = result.sms_id
            logger.info("%s accepted for %s: %s", operation, recipient, result.sms_id)
            return True
        self._record_error(error)
        logger.warning("%s failed for %s: %s", operation, recipient, result.message)
        return False

    def _record_error(self, error: DispatchError) -> None:
        self._error = error.message
        self._fault = error if isinstance(error, RemoteFault) else None
