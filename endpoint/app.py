"""
HTTP endpoint the bot talks to for its configuration, memory and health rows.

A single handler dispatches on ``?action=``:

- ``GET config`` returns instructions, allowlisted channel ids and the memory row
- ``POST update-memory`` upserts the rolling summary
- ``POST health`` upserts the fixed health row

Anything else is a 400; unexpected failures are a generic 500 that does not
leak the underlying error.
"""

from __future__ import annotations

import asyncio
import json
import os
import sqlite3

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response

from config.settings import load_endpoint_settings
from db.migrate import apply_sqlite_migrations
from endpoint.store import fetch_bot_config_sync
from endpoint.store import open_db
from endpoint.store import upsert_health_sync
from endpoint.store import upsert_memory_sync

ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _ok(payload: dict | None = None) -> JSONResponse:
    body = {"success": True}
    if payload:
        body.update(payload)
    return JSONResponse(body)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


async def _read_json_object(request: Request) -> dict | None:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        return None
    return body if isinstance(body, dict) else {}


def create_app(db_path: str | None = None, *, conn: sqlite3.Connection | None = None) -> FastAPI:
    if conn is None:
        db_path = db_path or load_endpoint_settings().db_path
        conn = open_db(db_path)
        print(f"[DB] Using BOT_API_DB_PATH={db_path}")
    apply_sqlite_migrations(conn)

    db_lock = asyncio.Lock()
    app = FastAPI(title="bot-api")
    app.state.db_conn = conn
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
    )

    @app.api_route("/", methods=ALL_METHODS)
    @app.api_route("/bot-api", methods=ALL_METHODS)
    async def bot_api(request: Request):
        if request.method == "OPTIONS":
            return Response(status_code=200)

        action = request.query_params.get("action")
        try:
            if request.method == "GET" and action == "config":
                async with db_lock:
                    data = await asyncio.to_thread(fetch_bot_config_sync, conn)
                return _ok({"data": data})

            if request.method == "POST" and action == "update-memory":
                body = await _read_json_object(request)
                if body is None:
                    return _error(400, "Invalid JSON body")
                async with db_lock:
                    stored = await asyncio.to_thread(
                        upsert_memory_sync,
                        conn,
                        body.get("summary"),
                        body.get("message_count"),
                    )
                print(f"[API] memory updated message_count={stored['message_count']} chars={len(stored['summary'])}")
                return _ok()

            if request.method == "POST" and action == "health":
                body = await _read_json_object(request)
                if body is None:
                    return _error(400, "Invalid JSON body")
                async with db_lock:
                    await asyncio.to_thread(upsert_health_sync, conn, body)
                return _ok()

            return _error(400, "Invalid action")
        except Exception as e:
            print(f"[API] error method={request.method} action={action}: {e.__class__.__name__}: {e}")
            return _error(500, "Internal server error")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
