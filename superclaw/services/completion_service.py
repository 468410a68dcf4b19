"""
Completion Service - OpenAI chat completion wrapper for agent replies

Provides:
- A single completion attempt per inbound message (no automatic retries)
- A hard timeout around the provider call
- Translation of provider failures into CompletionError kinds whose
  messages are safe to show end users
"""

import asyncio
import logging
from typing import Any, Optional

from openai import (
    AsyncOpenAI,
    APIError,
    APITimeoutError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)

from superclaw.config import settings
from superclaw.errors import CompletionError, CompletionErrorKind

logger = logging.getLogger(__name__)


class CompletionService:
    """
    Wraps the external language-model call.

    `client` is any object exposing the AsyncOpenAI
    `chat.completions.create(...)` coroutine; it defaults to a real client
    built from settings.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self._client = client
        self.model = model or settings.completion_model
        self.temperature = temperature if temperature is not None else settings.temperature
        self.max_tokens = max_tokens or settings.max_tokens
        self.timeout_seconds = timeout_seconds or settings.completion_timeout_seconds

    @property
    def client(self) -> Any:
        if self._client is None:
            if not settings.openai_api_key:
                raise CompletionError(
                    CompletionErrorKind.INVALID_CREDENTIALS,
                    "OPENAI_API_KEY is not configured",
                )
            # One provider attempt per message; the SDK retries twice by default
            self._client = AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)
        return self._client

    async def complete(self, system_prompt: str, user_text: str) -> str:
        """
        Generate one reply.

        Raises:
            CompletionError: with kind QUOTA_EXCEEDED, INVALID_CREDENTIALS,
                EMPTY_RESPONSE (including timeouts) or PROVIDER_ERROR.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_text},
        ]

        try:
            response = await asyncio.wait_for(
                self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout_seconds,
            )
        except CompletionError:
            raise
        except (asyncio.TimeoutError, APITimeoutError) as e:
            logger.warning(f"Completion timed out after {self.timeout_seconds}s")
            raise CompletionError(CompletionErrorKind.EMPTY_RESPONSE, f"timeout: {e}") from e
        except RateLimitError as e:
            logger.error(f"Completion provider quota/rate limit: {e}")
            raise CompletionError(CompletionErrorKind.QUOTA_EXCEEDED, str(e)) from e
        except (AuthenticationError, PermissionDeniedError) as e:
            logger.error(f"Completion provider rejected credentials: {e}")
            raise CompletionError(CompletionErrorKind.INVALID_CREDENTIALS, str(e)) from e
        except APIError as e:
            logger.error(f"Completion provider error: {e}")
            raise CompletionError(CompletionErrorKind.PROVIDER_ERROR, str(e)) from e
        except Exception as e:
            logger.exception(f"Unexpected completion failure: {e}")
            raise CompletionError(CompletionErrorKind.PROVIDER_ERROR, str(e)) from e

        content = ""
        if getattr(response, "choices", None):
            message = response.choices[0].message
            content = (getattr(message, "content", None) or "").strip()

        if not content:
            logger.warning(f"Completion provider returned no content (model={self.model})")
            raise CompletionError(CompletionErrorKind.EMPTY_RESPONSE, "empty content")

        return content


# Singleton instance
_completion_service: Optional[CompletionService] = None


def get_completion_service() -> CompletionService:
    """Get the completion service singleton."""
    global _completion_service
    if _completion_service is None:
        _completion_service = CompletionService()
    return _completion_service
