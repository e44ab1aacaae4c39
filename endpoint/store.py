from __future__ import annotations

import math
import sqlite3
from datetime import datetime, timezone
from typing import Any

from config.defaults import CHANNEL_ID_RE
from config.defaults import DEFAULT_INSTRUCTIONS
from config.defaults import HEALTH_ROW_ID
from config.defaults import MEMORY_ROW_ID
from config.defaults import SUMMARY_MAX_CHARS


SQLITE_MAX_INT = 2**63 - 1


class ChannelValidationError(ValueError):
    pass


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def open_db(db_path: str) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path, check_same_thread=False)
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
    return conn


# =========================
# Coercion
# =========================
def coerce_summary(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value[-SUMMARY_MAX_CHARS:] if len(value) > SUMMARY_MAX_CHARS else value


def coerce_count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    return min(max(0, int(value)), SQLITE_MAX_INT)


def coerce_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def validate_channel_id(raw: Any) -> str:
    channel_id = str(raw or "").strip()
    if not CHANNEL_ID_RE.fullmatch(channel_id):
        raise ChannelValidationError("Channel ID must be a 17-20 digit Discord snowflake.")
    return channel_id


# =========================
# Seeds
# =========================
def seed_defaults_sync(conn: sqlite3.Connection) -> None:
    now = _utc_now_iso()
    cur = conn.cursor()
    cur.execute("SELECT COUNT(*) FROM system_instructions")
    if int(cur.fetchone()[0]) == 0:
        cur.execute(
            "INSERT INTO system_instructions (content, updated_at) VALUES (?, ?)",
            (DEFAULT_INSTRUCTIONS, now),
        )
    cur.execute(
        """
        INSERT OR IGNORE INTO conversation_memory (id, summary, message_count, updated_at)
        VALUES (?, '', 0, ?)
        """,
        (MEMORY_ROW_ID, now),
    )
    conn.commit()


# =========================
# Bot-facing reads/writes
# =========================
def get_instructions_sync(conn: sqlite3.Connection) -> str:
    row = conn.execute(
        "SELECT content FROM system_instructions ORDER BY updated_at DESC, id DESC LIMIT 1"
    ).fetchone()
    return str(row[0] or "") if row else ""


def list_allowed_channel_ids_sync(conn: sqlite3.Connection) -> list[str]:
    rows = conn.execute("SELECT channel_id FROM allowed_channels ORDER BY id").fetchall()
    return [str(r[0]) for r in rows]


def get_memory_sync(conn: sqlite3.Connection) -> dict | None:
    row = conn.execute(
        "SELECT summary, message_count, updated_at FROM conversation_memory WHERE id = ? LIMIT 1",
        (MEMORY_ROW_ID,),
    ).fetchone()
    if not row:
        return None
    return {"summary": row[0] or "", "message_count": int(row[1] or 0), "updated_at": row[2]}


def fetch_bot_config_sync(conn: sqlite3.Connection) -> dict:
    return {
        "instructions": get_instructions_sync(conn),
        "allowedChannels": list_allowed_channel_ids_sync(conn),
        "memory": get_memory_sync(conn) or {"summary": "", "message_count": 0},
    }


def upsert_memory_sync(conn: sqlite3.Connection, summary: Any, message_count: Any) -> dict:
    payload = {
        "summary": coerce_summary(summary),
        "message_count": coerce_count(message_count),
        "updated_at": _utc_now_iso(),
    }
    conn.execute(
        """
        INSERT INTO conversation_memory (id, summary, message_count, updated_at)
        VALUES (?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            summary=excluded.summary,
            message_count=excluded.message_count,
            updated_at=excluded.updated_at
        """,
        (MEMORY_ROW_ID, payload["summary"], payload["message_count"], payload["updated_at"]),
    )
    conn.commit()
    return payload


def upsert_health_sync(conn: sqlite3.Connection, body: dict) -> dict:
    now = _utc_now_iso()
    is_online = body.get("is_online")
    row = {
        "id": HEALTH_ROW_ID,
        "last_ping": coerce_optional_text(body.get("last_ping")),
        "last_message": coerce_optional_text(body.get("last_message")),
        "error_count": coerce_count(body.get("error_count")),
        "cache_age_seconds": coerce_count(body.get("cache_age_seconds")),
        "cache_hits": coerce_count(body.get("cache_hits")),
        "cache_misses": coerce_count(body.get("cache_misses")),
        "is_online": 1 if is_online is None else int(bool(is_online)),
        "last_seen": now,
        "updated_at": now,
    }
    conn.execute(
        """
        INSERT INTO bot_health (
            id, last_ping, last_message, error_count,
            cache_age_seconds, cache_hits, cache_misses,
            is_online, last_seen, updated_at
        ) VALUES (
            :id, :last_ping, :last_message, :error_count,
            :cache_age_seconds, :cache_hits, :cache_misses,
            :is_online, :last_seen, :updated_at
        )
        ON CONFLICT(id) DO UPDATE SET
            last_ping=excluded.last_ping,
            last_message=excluded.last_message,
            error_count=excluded.error_count,
            cache_age_seconds=excluded.cache_age_seconds,
            cache_hits=excluded.cache_hits,
            cache_misses=excluded.cache_misses,
            is_online=excluded.is_online,
            last_seen=excluded.last_seen,
            updated_at=excluded.updated_at
        """,
        row,
    )
    conn.commit()
    return row


def get_health_sync(conn: sqlite3.Connection) -> dict | None:
    cur = conn.execute(
        """
        SELECT last_ping, last_message, error_count, cache_age_seconds,
               cache_hits, cache_misses, is_online, last_seen, updated_at
        FROM bot_health
        WHERE id = ?
        LIMIT 1
        """,
        (HEALTH_ROW_ID,),
    )
    row = cur.fetchone()
    if not row:
        return None
    cols = [d[0] for d in cur.description]
    out = dict(zip(cols, row))
    out["is_online"] = bool(out["is_online"])
    return out


# =========================
# Admin operations
# =========================
def set_instructions_sync(conn: sqlite3.Connection, content: str) -> None:
    now = _utc_now_iso()
    text = str(content or "").strip()
    cur = conn.execute("SELECT id FROM system_instructions ORDER BY updated_at DESC, id DESC LIMIT 1")
    row = cur.fetchone()
    if row:
        conn.execute(
            "UPDATE system_instructions SET content = ?, updated_at = ? WHERE id = ?",
            (text, now, int(row[0])),
        )
    else:
        conn.execute("INSERT INTO system_instructions (content, updated_at) VALUES (?, ?)", (text, now))
    conn.commit()


def add_allowed_channel_sync(conn: sqlite3.Connection, channel_id: Any, channel_name: Any = None) -> dict:
    clean_id = validate_channel_id(channel_id)
    name = coerce_optional_text(channel_name)
    created_at = _utc_now_iso()
    try:
        cur = conn.execute(
            "INSERT INTO allowed_channels (channel_id, channel_name, created_at) VALUES (?, ?, ?)",
            (clean_id, name, created_at),
        )
    except sqlite3.IntegrityError as exc:
        raise ChannelValidationError(f"Channel {clean_id} is already allowlisted.") from exc
    conn.commit()
    return {"id": int(cur.lastrowid), "channel_id": clean_id, "channel_name": name, "created_at": created_at}


def remove_allowed_channel_sync(conn: sqlite3.Connection, channel_id: Any) -> bool:
    cur = conn.execute("DELETE FROM allowed_channels WHERE channel_id = ?", (str(channel_id or "").strip(),))
    conn.commit()
    return cur.rowcount > 0


def list_allowed_channels_sync(conn: sqlite3.Connection) -> list[dict]:
    rows = conn.execute(
        "SELECT id, channel_id, channel_name, created_at FROM allowed_channels ORDER BY created_at DESC, id DESC"
    ).fetchall()
    return [
        {"id": int(r[0]), "channel_id": str(r[1]), "channel_name": r[2], "created_at": r[3]}
        for r in rows
    ]


def reset_memory_sync(conn: sqlite3.Connection) -> dict:
    return upsert_memory_sync(conn, "", 0)


def add_admin_sync(conn: sqlite3.Connection, email: str) -> bool:
    clean = str(email or "").strip().lower()
    if not clean or "@" not in clean:
        raise ValueError("Admin email must look like an email address.")
    cur = conn.execute(
        "INSERT OR IGNORE INTO admins (email, created_at) VALUES (?, ?)",
        (clean, _utc_now_iso()),
    )
    conn.commit()
    return cur.rowcount > 0


def list_admins_sync(conn: sqlite3.Connection) -> list[str]:
    return [str(r[0]) for r in conn.execute("SELECT email FROM admins ORDER BY email").fetchall()]
