from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Protocol

import requests
from lxml import etree
from zeep import Client, Transport
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault

from .config import get_settings

logger = logging.getLogger(__name__)


class RemoteCallError(Exception):
    """The gateway could not be reached or did not answer properly."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RemoteFaultError(RemoteCallError):
    """The gateway answered with a SOAP fault."""

    def __init__(self, message: str, code: str | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.detail = detail


class Web2SmsService(Protocol):
    """
    The operations exposed by the web2sms gateway.

    Arguments are positional, in the order the gateway expects them. Every
    method returns the raw answer (usually a string) or raises
    RemoteCallError / RemoteFaultError.
    """

    def send_sms_auth_key(
        self,
        username: str,
        auth_key: str,
        sender: str,
        recipient: str,
        body: str,
        scheduled_date: str | None,
        validity: int,
        callback_url: str | None = None,
    ) -> Any: ...

    def send_sms(
        self,
        username: str,
        password: str,
        sender: str,
        recipient: str,
        body: str,
        is_unicode: bool,
        scheduled_date: str | None,
        callback_url: str | None = None,
    ) -> Any: ...

    def send_session(
        self,
        session_id: str,
        recipient: str,
        body: str,
        scheduled_date: str | None,
        sender: str,
        validity: int,
    ) -> Any: ...

    def open_session(self, username: str, password: str) -> Any: ...

    def close_session(self, session_id: str) -> Any: ...

    def send_wap_push(
        self,
        recipient: str,
        url: str,
        body: str,
        scheduled_date: str | None,
        sender: str,
        validity: int,
    ) -> Any: ...

    def send_session_wap_push(
        self,
        session_id: str,
        recipient: str,
        url: str,
        body: str,
        scheduled_date: str | None,
        sender: str,
        validity: int,
    ) -> Any: ...


def _fault_detail(fault: Fault) -> str | None:
    if fault.detail is None:
        return None
    return etree.tostring(fault.detail, encoding="unicode")


class ZeepWeb2SmsService:
    """Web2SmsService backed by the gateway's WSDL through zeep."""

    def __init__(self, wsdl_url: str, timeout: float | None = None) -> None:
        self.wsdl_url = wsdl_url
        self.timeout = timeout
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        # Loading the WSDL hits the network, so wait for the first call.
        if self._client is None:
            # timeout only bounds loading the WSDL; operation_timeout bounds the calls
            if self.timeout:
                transport = Transport(timeout=self.timeout, operation_timeout=self.timeout)
            else:
                transport = Transport()
            self._client = Client(self.wsdl_url, transport=transport)
        return self._client

    def _call(self, operation: str, *args: Any) -> Any:
        logger.debug("Calling %s", operation)
        try:
            return getattr(self.client.service, operation)(*args)
        except Fault as exc:
            raise RemoteFaultError(
                exc.message or "SOAP fault", code=exc.code, detail=_fault_detail(exc)
            ) from exc
        except (ZeepError, requests.RequestException) as exc:
            raise RemoteCallError(str(exc) or exc.__class__.__name__) from exc

    def send_sms_auth_key(
        self,
        username: str,
        auth_key: str,
        sender: str,
        recipient: str,
        body: str,
        scheduled_date: str | None,
        validity: int,
        callback_url: str | None = None,
    ) -> Any:
        args: tuple[Any, ...] = (username, auth_key, sender, recipient, body, scheduled_date, validity)
        if callback_url:
            args += (callback_url,)
        return self._call("sendSmsAuthKey", *args)

    def send_sms(
        self,
        username: str,
        password: str,
        sender: str,
        recipient: str,
        body: str,
        is_unicode: bool,
        scheduled_date: str | None,
        callback_url: str | None = None,
    ) -> Any:
        args: tuple[Any, ...] = (username, password, sender, recipient, body, is_unicode, scheduled_date)
        if callback_url:
            args += (callback_url,)
        return self._call("sendSMS", *args)

    def send_session(
        self,
        session_id: str,
        recipient: str,
        body: str,
        scheduled_date: str | None,
        sender: str,
        validity: int,
    ) -> Any:
        return self._call("sendSession", session_id, recipient, body, scheduled_date, sender, validity)

    def open_session(self, username: str, password: str) -> Any:
        return self._call("openSession", username, password)

    def close_session(self, session_id: str) -> Any:
        return self._call("closeSession", session_id)

    def send_wap_push(
        self,
        recipient: str,
        url: str,
        body: str,
        scheduled_date: str | None,
        sender: str,
        validity: int,
    ) -> Any:
        return self._call("sendWapPush", recipient, url, body, scheduled_date, sender, validity)

    def send_session_wap_push(
        self,
        session_id: str,
        recipient: str,
        url: str,
        body: str,
        scheduled_date: str | None,
        sender: str,
        validity: int,
    ) -> Any:
        return self._call(
            "sendWapPush", session_id, recipient, url, body, scheduled_date, sender, validity
        )


@lru_cache
def get_service() -> ZeepWeb2SmsService:
    settings = get_settings()
    return ZeepWeb2SmsService(settings.wsdl_url, timeout=settings.timeout)
