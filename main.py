#!/usr/bin/env python3
"""
Ride-hailing backend -- operator commands.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py purge-revoked

Environment variables:
  JWT_SECRET    Required signing key (at least 32 chars). Set DEBUG=true to
                run locally with an auto-generated key instead.
  DATABASE_URL  SQLAlchemy URL for riders, captains and revoked tokens.
"""

import argparse
import asyncio

from core.config import get_settings


def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


def _purge_revoked(args: argparse.Namespace) -> None:
    """Remove revocation entries whose tokens have expired, then exit."""
    from api.main import build_auth_service

    service = build_auth_service(get_settings())
    try:
        removed = asyncio.run(service.purge_revoked())
    finally:
        service.store.close()
        service.ledger.close()
    print(f"  Removed {removed} expired revocation entr{'y' if removed == 1 else 'ies'}.")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="ridehail",
        description="Ride-hailing identity backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  JWT_SECRET=... python main.py serve --port 8080
  python main.py purge-revoked
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    purge = sub.add_parser("purge-revoked", help="Delete revoked tokens that have already expired")
    purge.set_defaults(func=_purge_revoked)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
