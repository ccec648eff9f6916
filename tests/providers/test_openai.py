from __future__ import annotations

import base64
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pictura_mcp.exceptions import ProviderError
from pictura_mcp.providers.openai import OPENAI_MODELS, openai
from pictura_mcp.schema import EditImageParams, GenerateImageParams
from pictura_mcp.shard.enums import AspectRatio


def _images_response(payload: bytes | None):
    items = [SimpleNamespace(b64_json=base64.b64encode(payload).decode())] if payload else []
    return SimpleNamespace(data=items)


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.images.generate = AsyncMock(return_value=_images_response(b"generated"))
    client.images.edit = AsyncMock(return_value=_images_response(b"edited"))
    with patch("pictura_mcp.providers.openai.AsyncOpenAI", return_value=client):
        yield client


def test_mini_model_cannot_edit():
    assert OPENAI_MODELS["gpt-image-1-mini"].capabilities.supports_edit is False
    assert openai("gpt-image-1.5").capabilities.supports_edit is True


@pytest.mark.asyncio
async def test_generate_maps_ratio_and_quality(mock_client):
    params = GenerateImageParams(prompt="a red fox", ratio="16:9", size="4K", negative_prompt="text")

    result = await openai.generate_image("gpt-image-1.5", params, {"api_key": "o-key"})

    kwargs = mock_client.images.generate.await_args.kwargs
    assert kwargs["size"] == "1536x1024"
    assert kwargs["quality"] == "high"
    assert "AVOID (must not appear):\ntext" in kwargs["prompt"]
    assert result.data == b"generated"
    assert (result.width, result.height) == (1536, 1024)
    assert result.ratio == AspectRatio.SIXTEEN_NINE
    mock_client.images.edit.assert_not_awaited()


@pytest.mark.asyncio
async def test_reference_routes_through_edit(mock_client):
    params = GenerateImageParams(prompt="a red fox", ratio="9:16", reference=b"ref")

    result = await openai.generate_image("gpt-image-1", params, {"api_key": "o-key"})

    kwargs = mock_client.images.edit.await_args.kwargs
    assert kwargs["image"] == ("reference.png", b"ref", "image/png")
    assert kwargs["size"] == "1024x1536"
    assert result.data == b"edited"


@pytest.mark.asyncio
async def test_restyle_sends_both_images(mock_client):
    params = EditImageParams(image=b"src", prompt="Apply style to image: noir", style=b"style", ratio="1:1")

    await openai.edit_image("gpt-image-1.5", params, {"api_key": "o-key"})

    kwargs = mock_client.images.edit.await_args.kwargs
    assert [name for name, _data, _mime in kwargs["image"]] == ["source.png", "style.png"]
    assert kwargs["prompt"].endswith("Apply the style from the reference image.")


@pytest.mark.asyncio
async def test_empty_response(mock_client):
    mock_client.images.generate = AsyncMock(return_value=_images_response(None))

    with pytest.raises(ProviderError, match="No image data"):
        await openai.generate_image("gpt-image-1", GenerateImageParams(prompt="x", ratio="1:1"), {"api_key": "o-key"})
