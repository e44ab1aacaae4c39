from __future__ import annotations

from config.defaults import SUMMARY_MAX_CHARS


def build_memory_context(summary: str | None, *, max_chars: int = SUMMARY_MAX_CHARS) -> str | None:
    text = (summary or "").strip()
    if not text:
        return None
    return f"Recent conversation memory:\n{text[-max_chars:]}"


def build_chat_messages(
    *,
    instructions: str,
    memory_context: str | None,
    user_message: str,
) -> list[dict]:
    msgs = [{"role": "system", "content": instructions or ""}]
    context = build_memory_context(memory_context)
    if context:
        msgs.append({"role": "system", "content": context})
    msgs.append({"role": "user", "content": user_message or ""})
    return msgs
