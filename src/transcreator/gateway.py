"""
Model call gateway: a single chat-completion call wrapped in retry/backoff.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from .config import AppConfig
from .errors import InputError, ModelRequestRejected, ModelUnavailable

logger = logging.getLogger("transcreator")

# Transient failures worth another attempt; other provider status errors are final
RETRYABLE_ERRORS = (
    APIConnectionError,
    RateLimitError,
    InternalServerError,
    httpx.TransportError,
    asyncio.TimeoutError,
)

SYSTEM_PROMPT = "You are part of a professional subtitle localization team. Follow the output format exactly."


def build_openai_client(config: AppConfig) -> AsyncOpenAI:
    """Create the process-wide OpenAI client from configuration."""
    if not config.openai_api_key:
        raise InputError("OPENAI_API_KEY is not set. Put it in .env or environment.")
    kwargs = {"api_key": config.openai_api_key}
    if config.openai_base_url:
        kwargs["base_url"] = config.openai_base_url
    return AsyncOpenAI(**kwargs)


class ModelGateway:
    """Invoke a text-generation model with bounded exponential backoff.

    The gateway holds only the client handle, so concurrent ``invoke`` calls
    are independent of each other.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        max_retries: int = 3,
        initial_backoff: float = 0.2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_retries < 1:
            raise ValueError("max_retries must be >= 1")
        self.client = client
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: AppConfig, client: Optional[AsyncOpenAI] = None) -> "ModelGateway":
        return cls(
            client or build_openai_client(config),
            max_retries=config.max_retries,
            initial_backoff=config.initial_backoff,
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay after failed ``attempt`` (counted from 1)."""
        return self.initial_backoff * (2 ** (attempt - 1))

    async def invoke(
        self,
        prompt: str,
        *,
        model_name: str,
        expect_structured: bool = False,
        temperature: float = 0.5,
    ) -> str:
        """Send ``prompt`` and return the raw response text.

        Raises:
            ValueError: if ``model_name`` is empty.
            ModelUnavailable: after ``max_retries`` failed attempts.
            ModelRequestRejected: on a non-transient provider status error.
        """
        if not model_name:
            raise ValueError("model_name is required")

        waited = 0.0
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._complete(prompt, model_name, expect_structured, temperature)
            except RETRYABLE_ERRORS as e:
                last_error = e
            except APIStatusError as e:
                logger.error(f"Model call to {model_name} rejected with status {e.status_code}: {e}")
                raise ModelRequestRejected(model_name, e) from e

            if attempt == self.max_retries:
                logger.error(
                    f"Model call to {model_name} failed on final attempt "
                    f"{attempt}/{self.max_retries} (waited {waited:.2f}s): {last_error}"
                )
                break

            delay = self.backoff_delay(attempt)
            logger.warning(
                f"Model call to {model_name} failed (attempt {attempt}/{self.max_retries}, "
                f"waited {waited:.2f}s): {last_error}. Retrying in {delay:.2f}s..."
            )
            await self._sleep(delay)
            waited += delay

        raise ModelUnavailable(model_name, self.max_retries, last_error) from last_error

    async def _complete(
        self, prompt: str, model_name: str, expect_structured: bool, temperature: float
    ) -> str:
        kwargs = {}
        if expect_structured:
            kwargs["response_format"] = {"type": "json_object"}
        response = await self.client.chat.completions.create(
            model=model_name,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=temperature,
            **kwargs,
        )
        return response.choices[0].message.content or ""
