#!/usr/bin/env python3
"""
Character Vault -- JWT-authenticated, role-gated character API.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py gen-secret

Environment variables:
  SECRET_KEY                 Token signing key (>= 32 chars). Required unless DEBUG=true.
  DEBUG                      "true" auto-generates SECRET_KEY for local development.
  BOOTSTRAP_ADMIN_EMAIL      With BOOTSTRAP_ADMIN_PASSWORD, creates an admin at startup.
  BOOTSTRAP_ADMIN_PASSWORD
"""

import argparse
import secrets


def _serve(args: argparse.Namespace) -> None:
    # Imported lazily so gen-secret works without a configured SECRET_KEY.
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)


def _gen_secret(args: argparse.Namespace) -> None:
    print(secrets.token_hex(32))


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="character-vault",
        description="In-memory character API with JWT auth and role-based access control.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  DEBUG=true python main.py serve --reload
  SECRET_KEY=$(python main.py gen-secret) python main.py serve --port 3000
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    gen = sub.add_parser("gen-secret", help="Print a random value suitable for SECRET_KEY")
    gen.set_defaults(func=_gen_secret)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
