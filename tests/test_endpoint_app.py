from __future__ import annotations

import sqlite3
import unittest

try:
    from fastapi.testclient import TestClient

    from endpoint.app import create_app
except ModuleNotFoundError:
    TestClient = None
    create_app = None


def _conn() -> sqlite3.Connection:
    return sqlite3.connect(":memory:", check_same_thread=False)


@unittest.skipIf(create_app is None, "fastapi not installed")
class BotApiEndpointTests(unittest.TestCase):
    def setUp(self):
        self.conn = _conn()
        self.client = TestClient(create_app(conn=self.conn))

    def tearDown(self):
        self.client.close()

    def test_config_returns_seeded_defaults(self):
        resp = self.client.get("/", params={"action": "config"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["instructions"], "You are a helpful assistant.")
        self.assertEqual(body["data"]["allowedChannels"], [])
        self.assertEqual(body["data"]["memory"]["summary"], "")
        self.assertEqual(body["data"]["memory"]["message_count"], 0)

    def test_config_without_instruction_rows_returns_empty_string(self):
        self.conn.execute("DELETE FROM system_instructions")
        self.conn.commit()
        resp = self.client.get("/bot-api", params={"action": "config"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["data"]["instructions"], "")

    def test_config_lists_allowlisted_channels(self):
        self.conn.execute(
            "INSERT INTO allowed_channels (channel_id, channel_name, created_at) VALUES (?, ?, ?)",
            ("123456789012345678", "general", "2026-01-01T00:00:00+00:00"),
        )
        self.conn.commit()
        resp = self.client.get("/", params={"action": "config"})
        self.assertEqual(resp.json()["data"]["allowedChannels"], ["123456789012345678"])

    def test_update_memory_keeps_last_2000_chars(self):
        summary = "a" * 1000 + "b" * 2000
        resp = self.client.post("/", params={"action": "update-memory"}, json={"summary": summary, "message_count": 5})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"success": True})

        memory = self.client.get("/", params={"action": "config"}).json()["data"]["memory"]
        self.assertEqual(memory["summary"], "b" * 2000)
        self.assertEqual(memory["message_count"], 5)

    def test_update_memory_coerces_bad_fields(self):
        resp = self.client.post(
            "/",
            params={"action": "update-memory"},
            json={"summary": 123, "message_count": "lots"},
        )
        self.assertEqual(resp.status_code, 200)
        memory = self.client.get("/", params={"action": "config"}).json()["data"]["memory"]
        self.assertEqual(memory["summary"], "")
        self.assertEqual(memory["message_count"], 0)

    def test_update_memory_caps_oversized_count(self):
        resp = self.client.post(
            "/",
            params={"action": "update-memory"},
            json={"summary": "x", "message_count": 1e20},
        )
        self.assertEqual(resp.status_code, 200)
        memory = self.client.get("/", params={"action": "config"}).json()["data"]["memory"]
        self.assertEqual(memory["message_count"], 2**63 - 1)

    def test_health_caps_oversized_counts(self):
        resp = self.client.post(
            "/",
            params={"action": "health"},
            json={"error_count": 10**19, "cache_hits": 1e300},
        )
        self.assertEqual(resp.status_code, 200)
        row = self.conn.execute("SELECT error_count, cache_hits FROM bot_health").fetchone()
        self.assertEqual(row, (2**63 - 1, 2**63 - 1))

    def test_health_upsert_keeps_a_single_row(self):
        payload = {
            "last_ping": "2026-01-01T00:00:00+00:00",
            "last_message": None,
            "error_count": 2,
            "cache_age_seconds": 4,
            "cache_hits": 10,
            "cache_misses": 1,
            "is_online": True,
        }
        for _ in range(3):
            resp = self.client.post("/", params={"action": "health"}, json=payload)
            self.assertEqual(resp.status_code, 200)

        count = self.conn.execute("SELECT COUNT(*) FROM bot_health").fetchone()[0]
        self.assertEqual(count, 1)
        row = self.conn.execute("SELECT error_count, cache_hits, is_online, last_seen FROM bot_health").fetchone()
        self.assertEqual(row[0], 2)
        self.assertEqual(row[1], 10)
        self.assertEqual(row[2], 1)
        self.assertIsNotNone(row[3])

    def test_health_offline_report_flips_flag(self):
        self.client.post("/", params={"action": "health"}, json={"is_online": True})
        self.client.post("/", params={"action": "health"}, json={"is_online": False})
        row = self.conn.execute("SELECT is_online FROM bot_health").fetchone()
        self.assertEqual(row[0], 0)

    def test_unknown_action_is_400(self):
        resp = self.client.get("/", params={"action": "nope"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"success": False, "error": "Invalid action"})

    def test_wrong_method_is_400(self):
        self.assertEqual(self.client.post("/", params={"action": "config"}).status_code, 400)
        self.assertEqual(self.client.get("/", params={"action": "health"}).status_code, 400)
        self.assertEqual(self.client.put("/", params={"action": "update-memory"}).status_code, 400)

    def test_head_is_an_invalid_action(self):
        resp = self.client.head("/", params={"action": "config"})
        self.assertEqual(resp.status_code, 400)

    def test_missing_action_is_400(self):
        self.assertEqual(self.client.get("/").status_code, 400)

    def test_invalid_json_body_is_400(self):
        resp = self.client.post(
            "/",
            params={"action": "update-memory"},
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertFalse(resp.json()["success"])

    def test_options_preflight_allows_any_origin(self):
        resp = self.client.options(
            "/",
            headers={
                "Origin": "https://admin.example.test",
                "Access-Control-Request-Method": "POST",
            },
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers.get("access-control-allow-origin"), "*")

    def test_database_failure_is_generic_500(self):
        self.conn.close()
        resp = self.client.get("/", params={"action": "config"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"success": False, "error": "Internal server error"})


if __name__ == "__main__":
    unittest.main()
