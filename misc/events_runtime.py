from __future__ import annotations

import asyncio

import discord
from misc.discord_gates import is_greeting
from misc.discord_gates import message_is_eligible
from misc.discord_gates import strip_bot_mentions
from misc.discord_gates import truncate_reply
from misc.runtime_deps import RuntimeBootDeps
from misc.runtime_deps import RuntimeDeps


async def _send_typing(message) -> None:
    try:
        await message.channel.typing()
    except Exception as e:
        print(f"[Discord] typing signal failed: {e}")


async def _send_apology(message, deps: RuntimeDeps) -> None:
    try:
        await message.reply(deps.replies.apology)
    except Exception as e:
        deps.health.errors.record("apology reply", e)


async def handle_message(message, *, bot_user, deps: RuntimeDeps) -> str:
    """Run one inbound message through the reply pipeline.

    Returns a short outcome label (``ignored``, ``greeting``, ``not_eligible``,
    ``empty``, ``replied`` or ``failed``). Never raises for failures on the
    reply path; those turn into the apology reply.
    """
    author = getattr(message, "author", None)
    if author is None or getattr(author, "bot", False):
        return "ignored"
    if bot_user is not None and int(getattr(author, "id", 0) or 0) == int(bot_user.id):
        return "ignored"

    deps.health.mark_message()

    if is_greeting(message.content):
        try:
            await message.reply(deps.replies.greeting)
        except Exception as e:
            deps.health.errors.record("greeting reply", e)
            return "failed"
        return "greeting"

    config = await deps.cache.get()

    if not message_is_eligible(message, bot_user, config):
        return "not_eligible"

    content = strip_bot_mentions(message.content, bot_user)
    if not content:
        return "empty"

    try:
        await _send_typing(message)

        memory_summary = config.memory.summary if config.memory else None
        reply = await deps.provider.complete(config.instructions, memory_summary, content)
        await message.reply(truncate_reply(reply))
    except asyncio.CancelledError:
        raise
    except Exception as e:
        deps.health.errors.record("reply", e)
        await _send_apology(message, deps)
        return "failed"

    try:
        await deps.memory_updater.record_turn(content)
    except Exception as e:
        deps.health.errors.record("memory append", e)
    return "replied"


def register_runtime_events(
    bot: discord.Client,
    *,
    deps: RuntimeDeps,
    boot: RuntimeBootDeps,
) -> None:
    @bot.event
    async def on_ready():
        deps.health.mark_ping()
        print(f"[Discord] online as {bot.user}")

        if not getattr(bot, "_heartbeat_task", None):
            bot._heartbeat_task = asyncio.create_task(boot.heartbeat_loop_func())
            print("[Health] heartbeat loop started")

    @bot.event
    async def on_message(message: discord.Message):
        await handle_message(message, bot_user=bot.user, deps=deps)
