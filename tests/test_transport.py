from __future__ import annotations

from typing import Any

import pytest
import requests
from lxml import etree
from zeep.exceptions import Fault, TransportError

from web2sms.transport import RemoteCallError, RemoteFaultError, ZeepWeb2SmsService


class FakeOperations:
    """Stands in for zeep's client.service, recording operation calls."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.error: Exception | None = None

    def __getattr__(self, name: str) -> Any:
        def operation(*args: Any) -> str:
            self.calls.append((name, args))
            if self.error is not None:
                raise self.error
            return "answer"

        return operation


class FakeClient:
    def __init__(self) -> None:
        self.service = FakeOperations()


@pytest.fixture
def zeep_service() -> ZeepWeb2SmsService:
    service = ZeepWeb2SmsService("https://example.invalid/service.php?wsdl")
    service._client = FakeClient()  # type: ignore[assignment]
    return service


def _calls(service: ZeepWeb2SmsService) -> list[tuple[str, tuple[Any, ...]]]:
    return service.client.service.calls  # type: ignore[no-any-return]


def test_callback_is_omitted_when_absent(zeep_service: ZeepWeb2SmsService) -> None:
    zeep_service.send_sms_auth_key("u", "k", "s", "0712345678", "hi", None, 0)
    zeep_service.send_sms_auth_key("u", "k", "s", "0712345678", "hi", None, 0, "https://cb")

    assert _calls(zeep_service) == [
        ("sendSmsAuthKey", ("u", "k", "s", "0712345678", "hi", None, 0)),
        ("sendSmsAuthKey", ("u", "k", "s", "0712345678", "hi", None, 0, "https://cb")),
    ]


def test_simple_send_operation(zeep_service: ZeepWeb2SmsService) -> None:
    assert zeep_service.send_sms("u", "p", "s", "0712345678", "hi", True, None) == "answer"
    assert _calls(zeep_service) == [("sendSMS", ("u", "p", "s", "0712345678", "hi", True, None))]


def test_session_operations(zeep_service: ZeepWeb2SmsService) -> None:
    zeep_service.open_session("u", "p")
    zeep_service.send_session("tok", "0712345678", "hi", None, "s", 5)
    zeep_service.send_session_wap_push("tok", "0712345678", "http://x", "hi", None, "s", 5)
    zeep_service.send_wap_push("0712345678", "http://x", "hi", None, "s", 5)
    zeep_service.close_session("tok")

    assert [name for name, _ in _calls(zeep_service)] == [
        "openSession",
        "sendSession",
        "sendWapPush",
        "sendWapPush",
        "closeSession",
    ]
    assert _calls(zeep_service)[2][1][0] == "tok"


def test_fault_becomes_remote_fault_error(zeep_service: ZeepWeb2SmsService) -> None:
    detail = etree.fromstring("<detail><reason>bad key</reason></detail>")
    zeep_service.client.service.error = Fault("Invalid auth key", code="Client", detail=detail)

    with pytest.raises(RemoteFaultError) as excinfo:
        zeep_service.open_session("u", "p")

    assert excinfo.value.message == "Invalid auth key"
    assert excinfo.value.code == "Client"
    assert excinfo.value.detail is not None and "bad key" in excinfo.value.detail


@pytest.mark.parametrize(
    "error",
    [TransportError("Server returned HTTP status 500"), requests.ConnectionError("refused")],
)
def test_transport_errors_become_remote_call_error(
    zeep_service: ZeepWeb2SmsService, error: Exception
) -> None:
    zeep_service.client.service.error = error

    with pytest.raises(RemoteCallError) as excinfo:
        zeep_service.close_session("tok")
    assert not isinstance(excinfo.value, RemoteFaultError)


def test_client_is_created_lazily() -> None:
    service = ZeepWeb2SmsService("https://example.invalid/service.php?wsdl", timeout=3)
    assert service._client is None


class CapturingClient:
    def __init__(self, wsdl: str, transport: Any = None) -> None:
        self.wsdl = wsdl
        self.transport = transport


def test_timeout_bounds_operations_and_wsdl_load(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("web2sms.transport.Client", CapturingClient)
    service = ZeepWeb2SmsService("https://example.invalid/service.php?wsdl", timeout=2.5)

    client = service.client

    assert client.wsdl == "https://example.invalid/service.php?wsdl"
    assert client.transport.load_timeout == 2.5
    assert client.transport.operation_timeout == 2.5


def test_no_timeout_keeps_zeep_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("web2sms.transport.Client", CapturingClient)
    service = ZeepWeb2SmsService("https://example.invalid/service.php?wsdl")

    assert service.client.transport.operation_timeout is None
