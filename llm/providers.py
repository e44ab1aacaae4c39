from __future__ import annotations

import asyncio
from typing import Protocol

from config.defaults import DEFAULT_COMPLETION_TIMEOUT_SECONDS
from config.defaults import DEFAULT_MAX_OUTPUT_TOKENS
from controller.prompt_assembly import build_chat_messages
from controller.prompt_assembly import build_memory_context
from google import genai
from google.genai import types
from openai import OpenAI


class CompletionError(RuntimeError):
    pass


class CompletionProvider(Protocol):
    name: str

    async def complete(self, system_prompt: str, context: str | None, user_message: str) -> str:
        ...


class UnconfiguredProvider:
    """Stands in when no AI credential is set; never calls out."""

    name = "unconfigured"

    def __init__(self, message: str):
        self.message = message

    async def complete(self, system_prompt: str, context: str | None, user_message: str) -> str:
        return self.message


class OpenAIProvider:
    name = "openai"

    def __init__(
        self,
        client,
        *,
        model: str,
        max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout_seconds: float = DEFAULT_COMPLETION_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def complete(self, system_prompt: str, context: str | None, user_message: str) -> str:
        messages = build_chat_messages(
            instructions=system_prompt,
            memory_context=context,
            user_message=user_message,
        )
        try:
            resp = await asyncio.wait_for(
                asyncio.to_thread(
                    self.client.chat.completions.create,
                    model=self.model,
                    messages=messages,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise CompletionError(f"openai call timed out after {self.timeout_seconds}s") from exc

        try:
            text = resp.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise CompletionError("openai returned a malformed response") from exc
        text = (text or "").strip()
        if not text:
            raise CompletionError("openai returned empty output")
        return text


class GeminiProvider:
    name = "gemini"

    def __init__(
        self,
        client,
        *,
        model: str,
        max_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        timeout_seconds: float = DEFAULT_COMPLETION_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.timeout_seconds = timeout_seconds

    async def complete(self, system_prompt: str, context: str | None, user_message: str) -> str:
        system_parts = [system_prompt or ""]
        memory_context = build_memory_context(context)
        if memory_context:
            system_parts.append(memory_context)
        config = types.GenerateContentConfig(
            system_instruction="\n\n".join(p for p in system_parts if p),
            max_output_tokens=self.max_tokens,
        )
        try:
            resp = await asyncio.wait_for(
                asyncio.to_thread(
                    self.client.models.generate_content,
                    model=self.model,
                    contents=user_message,
                    config=config,
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise CompletionError(f"gemini call timed out after {self.timeout_seconds}s") from exc

        try:
            text = resp.text
        except (AttributeError, ValueError) as exc:
            raise CompletionError("gemini returned a malformed response") from exc
        text = (text or "").strip()
        if not text:
            raise CompletionError("gemini returned empty output")
        return text


def build_completion_provider(settings, *, not_configured_message: str) -> CompletionProvider:
    if not settings.ai_api_key:
        print("[AI] AI_API_KEY not set; replies will report that AI is not configured")
        return UnconfiguredProvider(not_configured_message)

    if settings.ai_provider == "gemini":
        client = genai.Client(api_key=settings.ai_api_key)
        provider: CompletionProvider = GeminiProvider(
            client,
            model=settings.ai_model,
            timeout_seconds=settings.completion_timeout_seconds,
        )
    else:
        client = OpenAI(api_key=settings.ai_api_key, timeout=settings.completion_timeout_seconds)
        provider = OpenAIProvider(
            client,
            model=settings.ai_model,
            timeout_seconds=settings.completion_timeout_seconds,
        )
    print(f"[AI] provider={provider.name} model={settings.ai_model}")
    return provider
