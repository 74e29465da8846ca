import httpx
import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock

from openai import OpenAIError

from src.core.exceptions import BackgroundRemovalError, CompletionError
from src.engines.wardrobe.providers import BackgroundRemovalClient, CompletionClient


# =============================================================================
# Background removal
# =============================================================================

def removebg_client(handler) -> BackgroundRemovalClient:
    return BackgroundRemovalClient(
        api_key="rb-key",
        api_url="https://api.remove.bg/v1.0/removebg",
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


@pytest.mark.asyncio
async def test_remove_background_returns_png_bytes():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["api_key"] = request.headers.get("X-Api-Key")
        seen["content_type"] = request.headers.get("content-type")
        seen["body"] = request.read()
        return httpx.Response(200, content=b"\x89PNG clean", headers={"content-type": "image/png"})

    client = removebg_client(handler)
    result = await client.remove_background("http://x/a.jpg")
    await client.aclose()

    assert result == b"\x89PNG clean"
    assert seen["api_key"] == "rb-key"
    assert seen["content_type"].startswith("multipart/form-data")
    assert b"http://x/a.jpg" in seen["body"]
    assert b'name="size"' in seen["body"]


@pytest.mark.asyncio
async def test_remove_background_error_carries_status_and_body():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(402, text='{"errors":[{"title":"Insufficient credits"}]}')

    client = removebg_client(handler)
    with pytest.raises(BackgroundRemovalError) as exc_info:
        await client.remove_background("http://x/a.jpg")
    await client.aclose()

    error = exc_info.value
    assert error.http_status == 402
    assert "Insufficient credits" in error.body
    assert error.message.startswith("Remove.bg error 402:")
    assert error.code == 500


@pytest.mark.asyncio
async def test_remove_background_transport_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = removebg_client(handler)
    with pytest.raises(BackgroundRemovalError) as exc_info:
        await client.remove_background("http://x/a.jpg")
    await client.aclose()

    error = exc_info.value
    assert error.http_status is None
    assert error.message.startswith("Remove.bg request failed:")
    assert "connection refused" in error.message
    assert "None" not in error.message


# =============================================================================
# Completion
# =============================================================================

def openai_stub(content=None, error=None):
    create = AsyncMock()
    if error:
        create.side_effect = error
    else:
        choices = [SimpleNamespace(message=SimpleNamespace(content=content))]
        create.return_value = SimpleNamespace(choices=choices)
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create))), create


@pytest.mark.asyncio
async def test_describe_image_sends_vision_message():
    stub, create = openai_stub(content='{"prendas": []}')
    client = CompletionClient(model="gpt-4o-mini", max_tokens=300, client=stub)

    raw = await client.describe_image("Devuelve JSON", "https://cdn.test/clean.png")

    assert raw == '{"prendas": []}'
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "gpt-4o-mini"
    assert kwargs["max_tokens"] == 300
    assert kwargs["temperature"] == 0.0
    content = kwargs["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": "Devuelve JSON"}
    assert content[1] == {"type": "image_url", "image_url": {"url": "https://cdn.test/clean.png"}}


@pytest.mark.asyncio
async def test_describe_image_empty_content_is_empty_string():
    stub, _ = openai_stub(content=None)
    client = CompletionClient(client=stub)

    assert await client.describe_image("p", "https://cdn.test/clean.png") == ""


@pytest.mark.asyncio
async def test_complete_returns_none_without_choices():
    create = AsyncMock(return_value=SimpleNamespace(choices=[]))
    stub = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
    client = CompletionClient(client=stub)

    assert await client.complete([{"role": "user", "content": "hola"}], temperature=0.7) is None


@pytest.mark.asyncio
async def test_provider_error_is_wrapped():
    stub, _ = openai_stub(error=OpenAIError("invalid api key"))
    client = CompletionClient(client=stub)

    with pytest.raises(CompletionError, match="invalid api key"):
        await client.complete([{"role": "user", "content": "hola"}], temperature=0.7)
