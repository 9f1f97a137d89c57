from __future__ import annotations

import threading
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Literal

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from .dispatcher import MessageDispatcher
from .sms import OutboundSms, RemoteFault

# Sync routes run in FastAPI's threadpool but share one dispatcher, whose
# outcome accessors are overwritten by every call. Each route holds this lock
# from the gateway call until its response has been built.
dispatch_lock = threading.Lock()


@lru_cache
def get_dispatcher() -> MessageDispatcher:
    return MessageDispatcher.from_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown: release a session opened through POST /sms/session, if any
    if get_dispatcher.cache_info().currsize:
        with dispatch_lock:
            get_dispatcher().close_session()


app = FastAPI(title="web2sms", version="0.1.0", lifespan=lifespan)


class SendRequest(OutboundSms):
    # "session" sends through the session opened with POST /sms/session
    mode: Literal["auth_key", "password", "session"] = "auth_key"
    callback_url: str | None = None
    scheduled_date: str | None = None
    validity: int | None = None
    is_unicode: bool | None = None


class WapPushRequest(OutboundSms):
    url: str
    scheduled_date: str | None = None
    validity: int | None = None
    session: bool = False


def _result_response(dispatcher: MessageDispatcher, ok: bool) -> JSONResponse:
    """
    Map the outcome of a send to HTTP:
    - 200 with the tracking id on success
    - 422 when the message was rejected before reaching the gateway
    - 502 when the gateway refused it or could not be reached

    Must be called while holding dispatch_lock.
    """
    if ok:
        return JSONResponse({"status": "ok", "sms_id": dispatcher.last_sms_id})

    result = dispatcher.last_result
    payload: dict[str, object] = {"status": "error", "error": dispatcher.error}
    if result is not None and isinstance(result.error, RemoteFault):
        payload["fault_code"] = result.error.code
    local = result is not None and result.local
    return JSONResponse(payload, status_code=422 if local else 502)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/sms/session")
def open_session(dispatcher: MessageDispatcher = Depends(get_dispatcher)) -> JSONResponse:
    """Open (or reuse) a gateway session for mode="session" sends."""
    with dispatch_lock:
        if not dispatcher.open_session():
            return JSONResponse({"status": "error", "error": dispatcher.error}, status_code=502)
        return JSONResponse({"status": "ok", "open": dispatcher.session_is_open()})


@app.delete("/sms/session")
def close_session(dispatcher: MessageDispatcher = Depends(get_dispatcher)) -> JSONResponse:
    with dispatch_lock:
        dispatcher.close_session()
        return JSONResponse({"status": "ok", "open": dispatcher.session_is_open()})


@app.post("/sms/send")
def send_sms(
    payload: SendRequest, dispatcher: MessageDispatcher = Depends(get_dispatcher)
) -> JSONResponse:
    """
    Send a text SMS.

    Accepts JSON:

      { "phone": "+40712345678", "text": "Salut", "mode": "auth_key" }
    """
    with dispatch_lock:
        if payload.mode == "password":
            ok = dispatcher.send_simple_sms(
                payload.phone,
                payload.text,
                callback_url=payload.callback_url,
                scheduled_date=payload.scheduled_date,
                is_unicode=payload.is_unicode,
            )
        elif payload.mode == "session":
            ok = dispatcher.send_session_sms(
                payload.phone,
                payload.text,
                scheduled_date=payload.scheduled_date,
                validity=payload.validity,
            )
        else:
            ok = dispatcher.send_sms(
                payload.phone,
                payload.text,
                callback_url=payload.callback_url,
                scheduled_date=payload.scheduled_date,
                validity=payload.validity,
            )
        return _result_response(dispatcher, ok)


@app.post("/sms/wap-push")
def send_wap_push(
    payload: WapPushRequest, dispatcher: MessageDispatcher = Depends(get_dispatcher)
) -> JSONResponse:
    send = dispatcher.send_session_wap_push if payload.session else dispatcher.send_wap_push
    with dispatch_lock:
        ok = send(
            payload.phone,
            payload.url,
            payload.text,
            scheduled_date=payload.scheduled_date,
            validity=payload.validity,
        )
        return _result_response(dispatcher, ok)
