from __future__ import annotations

import argparse
import logging
import sys

from .dispatcher import MessageDispatcher
from .validation import InvalidRecipient, check_recipient


def _send(dispatcher: MessageDispatcher, args: argparse.Namespace) -> bool:
    if args.session:
        if not dispatcher.open_session():
            return False
        try:
            return dispatcher.send_session_sms(
                args.phone, args.text, scheduled_date=args.at, validity=args.validity
            )
        finally:
            dispatcher.close_session()

    if args.simple:
        return dispatcher.send_simple_sms(
            args.phone,
            args.text,
            callback_url=args.callback,
            scheduled_date=args.at,
            is_unicode=True if args.unicode else None,
        )

    return dispatcher.send_sms(
        args.phone,
        args.text,
        callback_url=args.callback,
        scheduled_date=args.at,
        validity=args.validity,
    )


def _wap_push(dispatcher: MessageDispatcher, args: argparse.Namespace) -> bool:
    if args.session:
        if not dispatcher.open_session():
            return False
        try:
            return dispatcher.send_session_wap_push(
                args.phone, args.url, args.text, scheduled_date=args.at, validity=args.validity
            )
        finally:
            dispatcher.close_session()

    return dispatcher.send_wap_push(
        args.phone, args.url, args.text, scheduled_date=args.at, validity=args.validity
    )


def _check_number(args: argparse.Namespace) -> int:
    try:
        number = check_recipient(args.phone)
    except InvalidRecipient as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(f"ok: {number}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="web2sms",
        description="Send SMS through the web2sms.ro gateway (credentials from WEB2SMS_* env vars).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("phone", type=str)
    common.add_argument("--at", type=str, default=None, help="Schedule, 'YYYY-MM-DD HH:MM:SS'.")
    common.add_argument(
        "--validity", type=int, default=None, help="Minutes the gateway keeps trying."
    )
    common.add_argument(
        "--session", action="store_true", help="Send inside a session (username + password)."
    )

    send = sub.add_parser("send", parents=[common], help="Send a text SMS.")
    send.add_argument("text", type=str)
    send.add_argument("--callback", type=str, default=None, help="Delivery report URL.")
    send.add_argument(
        "--simple", action="store_true", help="Authenticate with password instead of auth key."
    )
    send.add_argument(
        "--unicode", action="store_true", help="Allow diacritics (max 70 characters)."
    )

    wap = sub.add_parser("wap-push", parents=[common], help="Send a WAP-push SMS.")
    wap.add_argument("url", type=str)
    wap.add_argument("text", type=str)

    check = sub.add_parser("check-number", help="Validate a phone number locally.")
    check.add_argument("phone", type=str)

    return parser


def run(argv: list[str] | None = None, dispatcher: MessageDispatcher | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "send":
        if args.session and (args.callback or args.simple or args.unicode):
            parser.error("--session cannot be combined with --callback, --simple or --unicode")
        if args.unicode and not args.simple:
            parser.error("--unicode requires --simple (auth-key sends use WEB2SMS_UNICODE)")
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.command == "check-number":
        return _check_number(args)

    dispatcher = dispatcher or MessageDispatcher.from_settings()
    if args.command == "send":
        ok = _send(dispatcher, args)
    else:
        ok = _wap_push(dispatcher, args)

    if ok:
        print(dispatcher.last_sms_id)
        return 0
    print(f"error: {dispatcher.error}", file=sys.stderr)
    return 1


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
