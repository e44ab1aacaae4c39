from __future__ import annotations

import sqlite3

from endpoint.store import seed_defaults_sync


def upgrade(conn: sqlite3.Connection) -> None:
    seed_defaults_sync(conn)
