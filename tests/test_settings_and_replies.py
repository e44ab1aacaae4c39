from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from config.settings import SettingsError
from config.settings import load_bot_settings
from config.settings import load_endpoint_settings
from controller.prompt_assembly import build_chat_messages
from controller.prompt_assembly import build_memory_context
from controller.replies import BotReplies
from controller.replies import default_replies_path
from controller.replies import load_bot_replies

REQUIRED = {"DISCORD_TOKEN": "token", "BOT_API_URL": "https://bot-api.example.test"}


class BotSettingsTests(unittest.TestCase):
    def test_required_values_missing(self):
        with self.assertRaises(SettingsError):
            load_bot_settings({})
        with self.assertRaises(SettingsError):
            load_bot_settings({"DISCORD_TOKEN": "token", "BOT_API_URL": "  "})

    def test_defaults(self):
        settings = load_bot_settings(dict(REQUIRED))
        self.assertIsNone(settings.ai_api_key)
        self.assertEqual(settings.ai_provider, "openai")
        self.assertEqual(settings.ai_model, "gpt-4o-mini")
        self.assertEqual(settings.cache_ttl_seconds, 30.0)
        self.assertEqual(settings.heartbeat_seconds, 60.0)
        self.assertEqual(settings.http_timeout_seconds, 10.0)
        self.assertEqual(settings.completion_timeout_seconds, 60.0)

    def test_gemini_gets_its_own_default_model(self):
        settings = load_bot_settings({**REQUIRED, "AI_PROVIDER": "Gemini", "AI_API_KEY": "k"})
        self.assertEqual(settings.ai_provider, "gemini")
        self.assertEqual(settings.ai_model, "gemini-2.0-flash")

    def test_unknown_provider_falls_back_to_openai(self):
        settings = load_bot_settings({**REQUIRED, "AI_PROVIDER": "llama"})
        self.assertEqual(settings.ai_provider, "openai")

    def test_numeric_overrides_and_bad_values(self):
        settings = load_bot_settings(
            {
                **REQUIRED,
                "BOT_CACHE_TTL_SECONDS": "5",
                "BOT_HEARTBEAT_SECONDS": "1",
                "BOT_HTTP_TIMEOUT_SECONDS": "abc",
                "AI_TIMEOUT_SECONDS": "15",
            }
        )
        self.assertEqual(settings.cache_ttl_seconds, 5.0)
        self.assertEqual(settings.heartbeat_seconds, 5.0)
        self.assertEqual(settings.http_timeout_seconds, 10.0)
        self.assertEqual(settings.completion_timeout_seconds, 15.0)

    def test_endpoint_db_path(self):
        self.assertEqual(load_endpoint_settings({}).db_path, "bot_api.db")
        self.assertEqual(load_endpoint_settings({"BOT_API_DB_PATH": "/tmp/x.db"}).db_path, "/tmp/x.db")


class BotRepliesTests(unittest.TestCase):
    def test_shipped_replies_load_cleanly(self):
        replies, warning = load_bot_replies(default_replies_path())
        self.assertIsNone(warning)
        self.assertEqual(replies, BotReplies())

    def test_missing_file_falls_back(self):
        replies, warning = load_bot_replies("/nonexistent/replies.yml")
        self.assertEqual(replies, BotReplies())
        self.assertIn("not found", warning)

    def test_partial_file_keeps_defaults_for_missing_keys(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "replies.yml"
            path.write_text("version: custom\ngreeting: Hey!\n", encoding="utf-8")
            replies, warning = load_bot_replies(path)
        self.assertIsNone(warning)
        self.assertEqual(replies.version, "custom")
        self.assertEqual(replies.greeting, "Hey!")
        self.assertEqual(replies.apology, BotReplies().apology)

    def test_non_mapping_file_falls_back(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "replies.yml"
            path.write_text("- just\n- a list\n", encoding="utf-8")
            replies, warning = load_bot_replies(path)
        self.assertEqual(replies, BotReplies())
        self.assertIn("Invalid replies format", warning)


class PromptAssemblyTests(unittest.TestCase):
    def test_memory_context(self):
        self.assertIsNone(build_memory_context(None))
        self.assertIsNone(build_memory_context("   "))
        self.assertEqual(build_memory_context("abc"), "Recent conversation memory:\nabc")
        self.assertEqual(build_memory_context("abcdef", max_chars=3), "Recent conversation memory:\ndef")

    def test_chat_messages_order(self):
        msgs = build_chat_messages(instructions="Be kind.", memory_context="[t] x", user_message="hi")
        self.assertEqual([m["role"] for m in msgs], ["system", "system", "user"])
        self.assertEqual(msgs[-1]["content"], "hi")


if __name__ == "__main__":
    unittest.main()
