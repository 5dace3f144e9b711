#!/usr/bin/env python3
"""
todoguard -- Credential and session lifecycle for a todo REST backend.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py create-user admin@example.com --role admin
  python main.py create-user alice@example.com --password 'correct horse'

create-user is how the first admin comes to exist: promoting a user over
HTTP already requires an admin.

Environment variables:
  SECRET_KEY    Required unless DEBUG=true. At least 32 characters.
  DATABASE_URL  Async SQLAlchemy URL (default: SQLite file next to this script).
"""

import argparse
import asyncio
import getpass
import sys

from auth.models import Role
from auth.store import UserStore
from core.config import get_settings
from core.errors import AppError
from core.storage import Storage


async def _create_user(email: str, password: str, role: Role) -> int:
    """Register one user (and set its role) directly against storage. Returns an exit code."""
    storage = Storage(get_settings().database_url)
    try:
        await storage.create_all()
        store = UserStore(storage)
        try:
            user = await store.register(email, password)
        except AppError as exc:
            print(f"  [!] {exc.message}")
            return 1
        if role is not Role.user:
            await store.set_role(user.id, role)
        print(f"  Created {role.value} {user.email} ({user.id})")
        return 0
    finally:
        await storage.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="todoguard",
        description="Credential and session lifecycle for a todo REST backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-user admin@example.com --role admin
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the API under uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")

    create = sub.add_parser("create-user", help="Create a user directly in the database")
    create.add_argument("email", help="Email address (stored trimmed and lower-cased)")
    create.add_argument(
        "--password",
        metavar="PASSWORD",
        help="Password (8-128 characters). Prompted for if omitted.",
    )
    create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.user.value,
        help="Role for the new account (default: user)",
    )
    args = parser.parse_args()

    if args.command == "serve":
        import uvicorn

        uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload, proxy_headers=True)

    elif args.command == "create-user":
        password = args.password or getpass.getpass("Password: ")
        sys.exit(asyncio.run(_create_user(args.email, password, Role(args.role))))

    else:
        parser.print_help()


if __name__ == "__main__":
    main()
