"""Structured-output reasoning capability.

The pipeline only depends on `ReasoningService.generate_structured`; the
default backend calls the OpenAI chat completions API with a JSON schema
response format and validates the reply with the requested pydantic model.
"""

import logging
import os
from functools import lru_cache
from typing import Protocol, TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

_default_model = os.environ.get("REASONING_MODEL", "gpt-4o-mini")
_default_timeout = float(os.environ.get("REASONING_TIMEOUT", "60.0"))  # seconds

M = TypeVar("M", bound=BaseModel)


class ReasoningError(Exception):
    """Raised when a reasoning call fails or returns a schema-violating result."""

    pass


class ReasoningUnavailableError(ReasoningError):
    """Raised when no reasoning backend is configured."""

    pass


class ReasoningService(Protocol):
    async def generate_structured(self, *, system: str, prompt: str, schema: type[M]) -> M:
        """Return an instance of `schema` or raise ReasoningError."""
        ...


class OpenAIReasoningService:
    """Reasoning backend on the OpenAI chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model or _default_model
        self.timeout = timeout if timeout is not None else _default_timeout
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def generate_structured(self, *, system: str, prompt: str, schema: type[M]) -> M:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema.__name__,
                        "schema": schema.model_json_schema(),
                    },
                },
                timeout=self.timeout,
            )
        except Exception as e:
            raise ReasoningError(f"{schema.__name__} request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise ReasoningError(f"{schema.__name__} response was empty")

        try:
            return schema.model_validate_json(content)
        except ValidationError as e:
            raise ReasoningError(
                f"{schema.__name__} response did not match schema: {e.error_count()} errors"
            ) from e


class UnavailableReasoningService:
    """Stand-in used when no API key is configured; every call fails."""

    def __init__(self, reason: str = "OPENAI_API_KEY is not set"):
        self.reason = reason

    async def generate_structured(self, *, system: str, prompt: str, schema: type[M]) -> M:
        raise ReasoningUnavailableError(self.reason)


@lru_cache(maxsize=1)
def get_reasoning_service() -> ReasoningService:
    """Process-wide reasoning service chosen from the environment."""
    api_key = os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        logger.warning("OPENAI_API_KEY is not set; reasoning passes will use fallbacks")
        return UnavailableReasoningService()
    return OpenAIReasoningService(api_key=api_key)
