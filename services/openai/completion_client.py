"""Completion client built on the OpenAI Responses API.

Sends an assembled context window to the completion service and returns
the generated reply text. The call is bounded by a timeout and is never
retried here; failures are raised as `UpstreamTimeout` or `UpstreamError`
and the caller decides what to do with them.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List

import openai
from openai import AsyncOpenAI

from models.errors import UpstreamError, UpstreamTimeout
from services.openai.response_parser import extract_text, extract_usage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionParams:
    """Fixed invocation settings for one completion call.

    Attributes:
        model: Model name passed to the Responses API.
        temperature: Controls reply variability.
        max_output_tokens: Caps reply length.
        timeout: Seconds to wait for the upstream response.
    """

    model: str = "gpt-4o-mini"
    temperature: float = 0.8
    max_output_tokens: int = 500
    timeout: float = 25.0


class CompletionClient:
    """Wrap an AsyncOpenAI client behind a `complete(turns, params)` call."""

    def __init__(self, client: AsyncOpenAI) -> None:
        if client is None:
            raise ValueError("OpenAI AsyncOpenAI client is required.")
        self.client = client

    async def complete(self, turns: List[Dict[str, str]], params: CompletionParams) -> str:
        """Return the reply text generated for `turns`.

        Args:
            turns: Ordered `{role, content}` dicts, system persona first.
            params: Model, sampling, length and timeout settings.

        Raises:
            UpstreamTimeout: If no response arrives within `params.timeout`.
            UpstreamError: On transport failures, non-success responses, or an
                empty reply.
        """
        start = time.time()
        try:
            response = await asyncio.wait_for(
                self._create_response(turns, params), timeout=params.timeout
            )
        except (asyncio.TimeoutError, openai.APITimeoutError) as exc:
            logger.warning("Completion request timed out after %.1fs", params.timeout)
            raise UpstreamTimeout(
                f"Completion service did not respond within {params.timeout}s"
            ) from exc
        except openai.APIStatusError as exc:
            logger.error("Completion service returned status %s: %s", exc.status_code, exc)
            raise UpstreamError(
                f"Completion service returned status {exc.status_code}", status_code=exc.status_code
            ) from exc
        except openai.APIError as exc:
            logger.error("Completion service request failed: %s", exc)
            raise UpstreamError(f"Completion service request failed: {exc}") from exc

        text = extract_text(response)
        if not text:
            logger.error("Completion response did not include any output text.")
            raise UpstreamError("Completion service returned no text")

        usage = extract_usage(response)
        logger.info(
            "Completion latency: %.3fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return text

    async def _create_response(self, turns: List[Dict[str, str]], params: CompletionParams) -> Any:
        """Send the request to the OpenAI Responses API."""
        return await self.client.responses.create(
            model=params.model,
            input=[
                {"type": "message", "role": turn["role"], "content": turn["content"]}
                for turn in turns
            ],
            temperature=params.temperature,
            max_output_tokens=params.max_output_tokens,
            timeout=params.timeout,
        )
