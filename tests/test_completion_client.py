"""Tests for CompletionClient and Responses API parsing.

The OpenAI client is replaced by a mock exposing `responses.create`.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock

import httpx
import openai
import pytest

from models.errors import UpstreamError, UpstreamTimeout
from services.openai.completion_client import CompletionClient, CompletionParams
from services.openai.response_parser import extract_text, extract_usage

TURNS = [
    {"role": "system", "content": "persona"},
    {"role": "assistant", "content": "earlier reply"},
    {"role": "user", "content": "Hello"},
]
PARAMS = CompletionParams(model="gpt-4o-mini", temperature=0.8, max_output_tokens=500, timeout=0.2)
REQUEST = httpx.Request("POST", "https://api.openai.com/v1/responses")


def _response(text="Hi there", input_tokens=12, output_tokens=4):
    return SimpleNamespace(
        output_text=text,
        output=[],
        usage=SimpleNamespace(input_tokens=input_tokens, output_tokens=output_tokens),
    )


def _mock_client(**create_kwargs):
    return SimpleNamespace(responses=SimpleNamespace(create=AsyncMock(**create_kwargs)))


def test_complete_returns_text_and_sends_params():
    """Test a successful call forwards turns and fixed settings."""
    client = _mock_client(return_value=_response("Hey! 👋"))

    text = asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))

    assert text == "Hey! 👋"
    kwargs = client.responses.create.call_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["temperature"] == 0.8
    assert kwargs["max_output_tokens"] == 500
    assert kwargs["timeout"] == 0.2
    assert [(m["role"], m["content"]) for m in kwargs["input"]] == [
        (t["role"], t["content"]) for t in TURNS
    ]


def test_slow_upstream_raises_timeout():
    """Test the caller-specified timeout is enforced."""

    async def slow(**_):
        await asyncio.sleep(5)

    client = _mock_client(side_effect=slow)

    with pytest.raises(UpstreamTimeout):
        asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))


def test_sdk_timeout_maps_to_upstream_timeout():
    """Test the SDK's own timeout error is translated."""
    client = _mock_client(side_effect=openai.APITimeoutError(request=REQUEST))

    with pytest.raises(UpstreamTimeout):
        asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))


def test_status_error_carries_status_code():
    """Test non-success responses keep the upstream status."""
    error = openai.APIStatusError(
        "rate limited", response=httpx.Response(429, request=REQUEST), body=None
    )
    client = _mock_client(side_effect=error)

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))

    assert exc_info.value.status_code == 429


def test_connection_error_maps_to_upstream_error():
    """Test transport failures raise UpstreamError without a status."""
    client = _mock_client(side_effect=openai.APIConnectionError(request=REQUEST))

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))

    assert exc_info.value.status_code is None


def test_empty_output_is_an_error():
    """Test a response without text is not treated as a reply."""
    client = _mock_client(return_value=_response(text=""))

    with pytest.raises(UpstreamError):
        asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))


def test_no_internal_retry():
    """Test a failure results in exactly one upstream call."""
    client = _mock_client(side_effect=openai.APIConnectionError(request=REQUEST))

    with pytest.raises(UpstreamError):
        asyncio.run(CompletionClient(client).complete(TURNS, PARAMS))

    assert client.responses.create.await_count == 1


def test_client_required():
    """Test construction without an OpenAI client fails fast."""
    with pytest.raises(ValueError):
        CompletionClient(None)


def test_extract_text_from_output_items():
    """Test text is assembled from message items when output_text is absent."""
    response = SimpleNamespace(
        output_text=None,
        output=[
            SimpleNamespace(type="reasoning", content=[]),
            SimpleNamespace(
                type="message",
                content=[
                    SimpleNamespace(type="output_text", text="Hello "),
                    {"type": "output_text", "text": "world"},
                ],
            ),
        ],
    )

    assert extract_text(response) == "Hello world"


def test_extract_usage_handles_missing_usage():
    """Test usage extraction tolerates responses without usage."""
    assert extract_usage(SimpleNamespace()) == {"input_tokens": None, "output_tokens": None}
    assert extract_usage(_response()) == {"input_tokens": 12, "output_tokens": 4}
