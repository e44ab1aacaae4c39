from __future__ import annotations

import re

# Configuration cache
DEFAULT_INSTRUCTIONS = "You are a helpful assistant."
DEFAULT_CACHE_TTL_SECONDS = 30.0

# Health reporting
DEFAULT_HEARTBEAT_SECONDS = 60.0
SHUTDOWN_REPORT_TIMEOUT_SECONDS = 5.0
HEALTH_ROW_ID = "00000000-0000-0000-0000-000000000000"

# Outbound calls
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_COMPLETION_TIMEOUT_SECONDS = 60.0

# Completion providers
SUPPORTED_AI_PROVIDERS = {"openai", "gemini"}
DEFAULT_AI_PROVIDER = "openai"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_MAX_OUTPUT_TOKENS = 800

# Rolling summary
MEMORY_ROW_ID = "00000000-0000-0000-0000-000000000000"
SUMMARY_MAX_CHARS = 2000
SUMMARY_EXCERPT_CHARS = 150

# Discord
DISCORD_MAX_MESSAGE_LEN = 2000
TRUNCATION_MARKER = "…"
GREETING_TOKEN = "hello"
CHANNEL_ID_RE = re.compile(r"^[0-9]{17,20}$")
