from __future__ import annotations

import argparse
import json
import sys
from typing import Any

from .config import get_settings
from .countries import REGISTRY
from .db import SessionLocal, init_db
from .encoding import count_segments, detect_encoding
from .errors import SmsError, ValidationError
from .logging_utils import configure_logging
from .messagemedia_client import build_http_client
from .phone import get_normalizer
from .pipeline import SmsRequestAssembler, resolve_sender
from .provider import MessageMediaProvider
from .trigger import WebhookStore, WebhookTrigger


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _provider() -> MessageMediaProvider:
    settings = get_settings()
    return MessageMediaProvider(build_http_client(settings), base_url=settings.messagemedia_base_url)


def cmd_normalize(args: argparse.Namespace) -> int:
    normalizer = get_normalizer(args.policy or get_settings().normalizer_policy)
    result = normalizer.normalize(args.number, args.country)
    if result.ok:
        _print_json({"ok": True, "value": result.value})
        return 0
    _print_json({"ok": False, "error": result.error, "code": result.code.value})
    return 1


def cmd_encoding(args: argparse.Namespace) -> int:
    chosen = detect_encoding(args.message, args.prefer)
    _print_json(
        {
            "encoding": chosen.value,
            "length": len(args.message),
            "segments": count_segments(args.message, chosen),
        }
    )
    return 0


def cmd_countries(args: argparse.Namespace) -> int:
    if args.query:
        entries = REGISTRY.search(args.query)
        _print_json(
            [
                {
                    "alpha2": e.alpha2,
                    "alpha3": e.alpha3,
                    "name": e.name,
                    "calling_code": e.calling_code,
                }
                for e in entries
            ]
        )
    else:
        _print_json(REGISTRY.all_entries())
    return 0


def cmd_send(args: argparse.Namespace) -> int:
    settings = get_settings()
    normalizer = get_normalizer(settings.normalizer_policy)
    country = args.country or settings.default_country
    selection = "custom" if args.from_custom is not None else "account"
    sender = resolve_sender(selection, args.from_, args.from_custom or "")

    if args.dry_run:
        # No credentials needed: nothing leaves the machine
        assembler = SmsRequestAssembler(None, normalizer=normalizer)
        output = assembler.send(
            args.to, args.message, from_=sender, encoding=args.encoding,
            default_country=country, dry_run=True,
        )
        _print_json(output.to_dict())
        return 0

    init_db()
    db = SessionLocal()
    try:
        assembler = SmsRequestAssembler(_provider(), normalizer=normalizer, db=db)
        output = assembler.send(
            args.to, args.message, from_=sender, encoding=args.encoding,
            default_country=country, return_raw=args.raw,
        )
    finally:
        db.close()
    _print_json(output.to_dict())
    return 0


def cmd_blacklist(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.file == "-":
        text = sys.stdin.read()
    else:
        try:
            with open(args.file, encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ValidationError(f"Cannot read {args.file}: {e.strerror or e}") from e

    assembler = SmsRequestAssembler(_provider(), normalizer=get_normalizer(settings.normalizer_policy))
    result = assembler.add_to_blacklist(text, default_country=args.country or settings.default_country)
    _print_json(result.to_dict())
    return 0


def cmd_webhook(args: argparse.Namespace) -> int:
    init_db()
    trigger = WebhookTrigger(_provider(), WebhookStore(SessionLocal))

    if args.action == "check":
        exists = trigger.check_exists()
        _print_json({"exists": exists})
        return 0 if exists else 1
    if args.action == "create":
        url = args.url or get_settings().public_webhook_url
        if not url:
            print("Error: --url is required when PUBLIC_WEBHOOK_URL is not set", file=sys.stderr)
            return 2
        record = trigger.ensure(url)
        _print_json({"state": record.state.value, "webhook_id": record.webhook_id, "webhook_url": record.webhook_url})
        return 0

    deleted = trigger.delete()
    _print_json({"deleted": deleted})
    return 0 if deleted else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mm-sms",
        description="Send SMS, manage the blacklist and the inbound webhook via MessageMedia.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("normalize", help="Normalize a phone number to E.164.")
    p.add_argument("number")
    p.add_argument("--country", help="Default country (ISO alpha-2) for national numbers.")
    p.add_argument("--policy", choices=["strict", "infer"], default=None)
    p.set_defaults(func=cmd_normalize)

    p = sub.add_parser("encoding", help="Show the encoding and segment count for a message.")
    p.add_argument("message")
    p.add_argument("--prefer", choices=["auto", "GSM7", "UCS-2"], default="auto")
    p.set_defaults(func=cmd_encoding)

    p = sub.add_parser("countries", help="List countries, or search by code or name.")
    p.add_argument("query", nargs="?", default="")
    p.set_defaults(func=cmd_countries)

    p = sub.add_parser("send", help="Send one SMS.")
    p.add_argument("--to", required=True)
    p.add_argument("--message", required=True)
    p.add_argument("--from", dest="from_", default="", help="Sender number; blank uses the account default.")
    p.add_argument("--from-custom", default=None, help="Custom sender number; must not be blank.")
    p.add_argument("--encoding", choices=["auto", "GSM7", "UCS-2"], default="auto")
    p.add_argument("--country", default=None)
    p.add_argument("--dry-run", action="store_true", help="Validate only; do not call MessageMedia.")
    p.add_argument("--raw", action="store_true", help="Include the provider response.")
    p.set_defaults(func=cmd_send)

    p = sub.add_parser("blacklist", help="Add numbers (one per line) to the blacklist.")
    p.add_argument("file", help="File with one number per line, or - for stdin.")
    p.add_argument("--country", default=None)
    p.set_defaults(func=cmd_blacklist)

    p = sub.add_parser("webhook", help="Manage the inbound SMS webhook registration.")
    p.add_argument("action", choices=["check", "create", "delete"])
    p.add_argument("--url", default=None)
    p.set_defaults(func=cmd_webhook)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(get_settings().log_level, stream=sys.stderr)

    try:
        return args.func(args)
    except SmsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
