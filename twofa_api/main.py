from __future__ import annotations

import argparse
import sys

import uvicorn

from .db import init_db
from .settings import load_app_settings


def _serve(args: argparse.Namespace) -> int:
    from .api_app import create_api_app

    cfg = load_app_settings()
    app = create_api_app()
    uvicorn.run(
        app,
        host=args.host or cfg.bind_host,
        port=args.port or cfg.bind_port,
        log_level="info",
    )
    return 0


def _issue_token(args: argparse.Namespace) -> int:
    from .security import issue_access_token

    print(issue_access_token(user_id=args.user_id, email=args.email))
    return 0


def _code(args: argparse.Namespace) -> int:
    from .base32 import Base32DecodeError
    from .totp import totp_now

    try:
        print(totp_now(secret=args.secret))
    except Base32DecodeError as e:
        print(f"invalid secret: {e}", file=sys.stderr)
        return 2
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="twofa_api")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("serve", help="run the HTTP API")
    p.add_argument("--host", default="")
    p.add_argument("--port", type=int, default=0)
    p.set_defaults(func=_serve)

    p = sub.add_parser("issue-token", help="print a bearer token for a user")
    p.add_argument("user_id")
    p.add_argument("email")
    p.set_defaults(func=_issue_token)

    p = sub.add_parser("code", help="print the current TOTP for a base32 secret")
    p.add_argument("secret")
    p.set_defaults(func=_code)

    return ap


def main(argv: list[str] | None = None) -> int:
    if sys.version_info < (3, 10):
        raise RuntimeError("twofa_api requires Python 3.10+")

    args = build_parser().parse_args(argv)
    init_db()
    return int(args.func(args))


if __name__ == "__main__":
    sys.exit(main())
