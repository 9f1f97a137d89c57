from __future__ import annotations

from typing import Any

import pytest

from web2sms.dispatcher import MessageDispatcher

SMS_ID = "a1b2c3d4e5f60718293a4b5c6d7e8f90"  # 32 chars
SESSION_ID = "sess-0123456789"


class FakeService:
    """Fake gateway that records calls and returns canned answers."""

    def __init__(self, result: Any = SMS_ID, session: Any = SESSION_ID) -> None:
        self.result = result
        self.session = session
        self.error: Exception | None = None
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    def _answer(self, name: str, *args: Any) -> Any:
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error
        return self.result

    def send_sms_auth_key(self, *args: Any) -> Any:
        return self._answer("sendSmsAuthKey", *args)

    def send_sms(self, *args: Any) -> Any:
        return self._answer("sendSMS", *args)

    def send_session(self, *args: Any) -> Any:
        return self._answer("sendSession", *args)

    def send_wap_push(self, *args: Any) -> Any:
        return self._answer("sendWapPush", *args)

    def send_session_wap_push(self, *args: Any) -> Any:
        return self._answer("sendWapPush(session)", *args)

    def open_session(self, username: str, password: str) -> Any:
        self.calls.append(("openSession", (username, password)))
        if self.error is not None:
            raise self.error
        return self.session

    def close_session(self, session_id: str) -> Any:
        self.calls.append(("closeSession", (session_id,)))
        if self.error is not None:
            raise self.error
        return True

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def dispatcher(service: FakeService) -> MessageDispatcher:
    return MessageDispatcher(
        service,
        username="user",
        password="secret",
        auth_key="key",
        sender="1234",
        validity=60,
    )
