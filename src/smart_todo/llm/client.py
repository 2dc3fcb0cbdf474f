# src/smart_todo/llm/client.py

from __future__ import annotations

import logging
import time
from typing import Any

import httpx
import openai
from openai import AsyncOpenAI

from ..config import get_settings
from ..core.ports import ChatMessage

logger = logging.getLogger(__name__)

_BAD_MODEL_COOLDOWN_SECONDS = 3600.0


def _is_auth_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return True
    return exc.__class__.__name__ in {"UnauthorizedError"}


def _is_rate_limit_error(exc: Exception) -> bool:
    if isinstance(exc, openai.RateLimitError):
        return True
    return exc.__class__.__name__ in {"TooManyRequestsError"}


def _is_connection_error(exc: Exception) -> bool:
    if isinstance(exc, (openai.APIConnectionError, httpx.TimeoutException)):
        return True
    return exc.__class__.__name__ in {"Timeout", "ConnectTimeout", "ReadTimeout", "WriteTimeout"}


def _is_not_found_error(exc: Exception) -> bool:
    return isinstance(exc, openai.NotFoundError)


def friendly_llm_error_message(err: Exception) -> str:
    msg = str(err).strip() or "LLM error."
    if "LLM API key is not set" in msg:
        return "AI is not configured (missing API key). Set SMART_TODO_API_KEY in .env."
    if "LLM model list is empty" in msg:
        return "AI is not configured (no models). Set SMART_TODO_LLM_MODELS in .env."
    if "LLM base URL is not set" in msg:
        return "AI is not configured (missing base URL). Set SMART_TODO_BASE_URL in .env."
    return msg


def _response_format(json_schema: dict[str, Any] | None) -> dict[str, Any] | None:
    if json_schema is None:
        return None
    return {
        "type": "json_schema",
        "json_schema": {"name": "response", "schema": json_schema},
    }


class OpenAICompatLLMClient:
    """
    Async chat completion client for any OpenAI-compatible endpoint
    (Gemini's OpenAI endpoint by default).

    Behavior:
    - Tries models in the order from settings (SMART_TODO_LLM_MODELS).
    - 404 (model not available) -> cool the model down for an hour, try next.
    - Rate limit / network issues / empty output -> try next.
    - Auth issues -> fail fast (no retries across models).
    - Raises RuntimeError once every model failed.
    """

    def __init__(self, settings=None, *, client: AsyncOpenAI | None = None) -> None:
        if settings is None:
            settings = get_settings()

        api_key = getattr(settings, "api_key", None)
        base_url = str(getattr(settings, "base_url", "") or "")
        models = [m.strip() for m in (getattr(settings, "llm_models", None) or []) if m and m.strip()]

        if client is None:
            if not api_key or not str(api_key).strip():
                raise RuntimeError("LLM API key is not set. Set SMART_TODO_API_KEY in your .env.")
            if not base_url.strip():
                raise RuntimeError("LLM base URL is not set. Set SMART_TODO_BASE_URL in your .env.")

            connect_s = float(getattr(settings, "llm_connect_timeout", 5.0))
            read_s = float(getattr(settings, "llm_read_timeout", 60.0))
            # Automatic retries are disabled to allow quick fallback across models.
            client = AsyncOpenAI(
                base_url=base_url,
                api_key=str(api_key),
                timeout=httpx.Timeout(connect=connect_s, read=read_s, write=10.0, pool=connect_s),
                max_retries=0,
            )

        self._client = client
        self._models = models
        self._bad_models: dict[str, float] = {}  # model -> retry_at (monotonic)

    @property
    def models(self) -> list[str]:
        return list(self._models)

    async def complete(
        self,
        messages: list[ChatMessage],
        *,
        system_prompt: str | None = None,
        json_schema: dict[str, Any] | None = None,
    ) -> str:
        if not self._models:
            raise RuntimeError("LLM model list is empty. Set SMART_TODO_LLM_MODELS in your .env.")

        full_messages: list[ChatMessage] = list(messages)
        if system_prompt:
            full_messages.insert(0, {"role": "system", "content": system_prompt})

        response_format = _response_format(json_schema)
        last_error: Exception | None = None
        now = time.monotonic()

        for model in self._models:
            retry_at = self._bad_models.get(model)
            if retry_at is not None and retry_at > now:
                continue

            logger.info("LLM: trying model=%s (json=%s)", model, response_format is not None)
            t0 = time.monotonic()

            kwargs: dict[str, Any] = {"model": model, "messages": full_messages}
            if response_format is not None:
                kwargs["response_format"] = response_format

            try:
                resp = await self._client.chat.completions.create(**kwargs)
            except Exception as e:
                last_error = e

                if _is_auth_error(e):
                    raise RuntimeError(
                        "LLM authentication failed. Check your API key (SMART_TODO_API_KEY)."
                    ) from e

                if _is_not_found_error(e):
                    self._bad_models[model] = time.monotonic() + _BAD_MODEL_COOLDOWN_SECONDS
                    logger.info("LLM: model not available (404): %s", model)
                    continue

                if _is_rate_limit_error(e):
                    logger.info("LLM: rate-limited on model=%s, trying next", model)
                    continue

                if _is_connection_error(e):
                    logger.info("LLM: network/timeout error on model=%s, trying next", model)
                    continue

                logger.info("LLM: error on model=%s (%s), trying next", model, e.__class__.__name__)
                continue

            try:
                content = resp.choices[0].message.content
            except (AttributeError, IndexError):
                content = None

            if content:
                logger.debug("LLM: completed with model=%s (%.2fs)", model, time.monotonic() - t0)
                return content

            last_error = RuntimeError(f"Model returned no content: {model}")
            logger.info("LLM: empty response from model=%s, trying next", model)

        if last_error is not None:
            if _is_rate_limit_error(last_error):
                raise RuntimeError("LLM is rate-limited. Try again later.") from last_error
            if _is_connection_error(last_error):
                raise RuntimeError("LLM network/timeout error. Try again later or change models.") from last_error
            raise RuntimeError("All LLM models failed.") from last_error

        raise RuntimeError("All LLM models failed.")
