"""Operator tool for the bot-api database: instructions, channel allowlist, memory and health."""

from __future__ import annotations

import argparse
import sqlite3

from config.settings import load_endpoint_settings
from db.migrate import apply_sqlite_migrations
from db.migrate import list_schema_migrations_sync
from endpoint.store import ChannelValidationError
from endpoint.store import add_admin_sync
from endpoint.store import add_allowed_channel_sync
from endpoint.store import get_health_sync
from endpoint.store import get_instructions_sync
from endpoint.store import get_memory_sync
from endpoint.store import list_admins_sync
from endpoint.store import list_allowed_channels_sync
from endpoint.store import open_db
from endpoint.store import remove_allowed_channel_sync
from endpoint.store import reset_memory_sync
from endpoint.store import set_instructions_sync
from health.status import summarize_health


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="admin", description=__doc__)
    parser.add_argument("--db", default=None, help="sqlite path (default: BOT_API_DB_PATH or bot_api.db)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("instructions", help="show the current system instructions")
    p = sub.add_parser("set-instructions", help="replace the system instructions")
    p.add_argument("content")

    sub.add_parser("channels", help="list allowlisted channels (newest first)")
    p = sub.add_parser("add-channel", help="allowlist a channel")
    p.add_argument("channel_id")
    p.add_argument("--name", default=None)
    p = sub.add_parser("remove-channel", help="remove a channel from the allowlist")
    p.add_argument("channel_id")

    sub.add_parser("memory", help="show the rolling conversation summary")
    sub.add_parser("reset-memory", help="clear the rolling summary and message count")

    p = sub.add_parser("health", help="show the last health report and derived status")
    p.add_argument("--previous-errors", type=int, default=None)

    p = sub.add_parser("add-admin", help="register an admin email")
    p.add_argument("email")
    sub.add_parser("admins", help="list admin emails")
    sub.add_parser("migrations", help="list applied schema migrations (newest first)")
    return parser


def run_command(conn: sqlite3.Connection, args: argparse.Namespace) -> int:
    cmd = args.command

    if cmd == "instructions":
        print(get_instructions_sync(conn) or "(empty)")
        return 0

    if cmd == "set-instructions":
        set_instructions_sync(conn, args.content)
        print("Instructions saved.")
        return 0

    if cmd == "channels":
        rows = list_allowed_channels_sync(conn)
        if not rows:
            print("No channels allowlisted.")
        for row in rows:
            print(f"{row['channel_id']}  {row['channel_name'] or '-'}  added={row['created_at']}")
        return 0

    if cmd == "add-channel":
        try:
            row = add_allowed_channel_sync(conn, args.channel_id, args.name)
        except ChannelValidationError as e:
            print(f"Error: {e}")
            return 2
        print(f"Allowlisted {row['channel_id']}.")
        return 0

    if cmd == "remove-channel":
        if remove_allowed_channel_sync(conn, args.channel_id):
            print(f"Removed {args.channel_id}.")
            return 0
        print(f"Channel {args.channel_id} was not allowlisted.")
        return 1

    if cmd == "memory":
        memory = get_memory_sync(conn) or {"summary": "", "message_count": 0, "updated_at": None}
        print(f"messages={memory['message_count']} updated={memory.get('updated_at') or '-'}")
        print(memory["summary"] or "(empty)")
        return 0

    if cmd == "reset-memory":
        reset_memory_sync(conn)
        print("Memory reset.")
        return 0

    if cmd == "health":
        row = get_health_sync(conn)
        if row is None:
            print("No health data available yet.")
            return 1
        view = summarize_health(row, previous_errors=args.previous_errors)
        print(
            f"status={view['status']} heartbeat_age_s={view['heartbeat_age_seconds']} "
            f"errors={row['error_count']} ({view['error_trend']}) "
            f"cache={'fresh' if view['cache_fresh'] else 'stale'} "
            f"hits={row['cache_hits']} misses={row['cache_misses']} "
            f"confidence={view['confidence']}"
        )
        return 0

    if cmd == "add-admin":
        try:
            added = add_admin_sync(conn, args.email)
        except ValueError as e:
            print(f"Error: {e}")
            return 2
        print("Admin added." if added else "Admin already registered.")
        return 0

    if cmd == "admins":
        for email in list_admins_sync(conn):
            print(email)
        return 0

    if cmd == "migrations":
        for version, name, applied_at in list_schema_migrations_sync(conn):
            print(f"{version}  {name}  applied={applied_at}")
        return 0

    raise ValueError(f"unknown command: {cmd}")


def main(argv: list[str] | None = None, *, conn: sqlite3.Connection | None = None) -> int:
    args = build_parser().parse_args(argv)
    if conn is None:
        conn = open_db(args.db or load_endpoint_settings().db_path)
    apply_sqlite_migrations(conn)
    return run_command(conn, args)


if __name__ == "__main__":
    raise SystemExit(main())
