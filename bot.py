import sys

import discord
from dotenv import load_dotenv

from config.defaults import SHUTDOWN_REPORT_TIMEOUT_SECONDS
from config.settings import SettingsError
from config.settings import load_bot_settings
from controller.replies import default_replies_path
from controller.replies import load_bot_replies
from endpoint_client.client import BotApiClient
from jobs.heartbeat import report_offline
from misc.bot_client import CopilotClient
from misc.runtime_wiring import wire_bot_runtime

# =========================
# ENV
# =========================
load_dotenv()

try:
    SETTINGS = load_bot_settings()
except SettingsError as e:
    print(f"[CFG] {e}")
    sys.exit(1)

print(
    f"[CFG] api_url_set=True ai_provider={SETTINGS.ai_provider} model={SETTINGS.ai_model} "
    f"ai_key_set={bool(SETTINGS.ai_api_key)} cache_ttl_s={SETTINGS.cache_ttl_seconds} "
    f"heartbeat_s={SETTINGS.heartbeat_seconds} http_timeout_s={SETTINGS.http_timeout_seconds}"
)

# =========================
# CANNED REPLIES
# =========================
REPLIES_PATH = SETTINGS.replies_path or default_replies_path()
REPLIES, REPLIES_WARNING = load_bot_replies(REPLIES_PATH)
print(f"[CFG] replies={REPLIES.version} path={REPLIES_PATH}")
if REPLIES_WARNING:
    print(f"[CFG] {REPLIES_WARNING}")

api = BotApiClient(SETTINGS.bot_api_url, timeout_seconds=SETTINGS.http_timeout_seconds)

# =========================
# DISCORD CLIENT
# =========================
intents = discord.Intents.default()
intents.message_content = True


async def on_shutdown() -> None:
    ok = await report_offline(
        health=runtime.health,
        cache=runtime.cache,
        api=api,
        timeout_seconds=SHUTDOWN_REPORT_TIMEOUT_SECONDS,
    )
    print(f"[Health] offline reported={ok}")
    await background.drain(timeout=SHUTDOWN_REPORT_TIMEOUT_SECONDS)
    await api.aclose()


bot = CopilotClient(intents=intents, on_shutdown=on_shutdown)

runtime, background = wire_bot_runtime(
    bot,
    settings=SETTINGS,
    api=api,
    replies=REPLIES,
)

bot.run(SETTINGS.discord_token)
