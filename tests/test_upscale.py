from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from pictura_mcp.exceptions import UpscaleProviderNotRegisteredError
from pictura_mcp.provider_spec import UpscaleProviderSpec, create_upscale_provider
from pictura_mcp.registry import ProviderRegistry, register_upscale_provider
from pictura_mcp.upscale import UpscaleOptions, upscale_image


def _upscaler(name: str, upscale: AsyncMock):
    return create_upscale_provider(UpscaleProviderSpec(name=name, models=["base"], max_scale=8, upscale=upscale))


@pytest.mark.asyncio
async def test_unregistered_upscale_provider():
    with pytest.raises(UpscaleProviderNotRegisteredError) as exc_info:
        await upscale_image(UpscaleOptions(image=b"img", provider="nowhere"))

    assert "Upscale provider not registered: nowhere" in str(exc_info.value)


@pytest.mark.asyncio
async def test_delegates_and_returns_unmodified(make_result):
    expected = make_result()
    upscale = AsyncMock(return_value=expected)
    register_upscale_provider(_upscaler("zoom", upscale))

    result = await upscale_image(UpscaleOptions(image=b"img", scale=2, model="base", provider="zoom", config={"api_key": "k"}))

    assert result is expected
    params, config = upscale.await_args.args
    assert params.image == b"img"
    assert params.scale == 2
    assert params.model == "base"
    assert config == {"api_key": "k"}


@pytest.mark.asyncio
async def test_default_scale_is_four(make_result):
    upscale = AsyncMock(return_value=make_result())
    register_upscale_provider(_upscaler("zoom", upscale))

    await upscale_image(UpscaleOptions(image=b"img", provider="zoom"))

    assert upscale.await_args.args[0].scale == 4
    assert upscale.await_args.args[0].model is None


@pytest.mark.asyncio
async def test_single_shot_no_retry():
    upscale = AsyncMock(side_effect=RuntimeError("503 service unavailable"))
    register_upscale_provider(_upscaler("zoom", upscale))

    with pytest.raises(RuntimeError, match="503"):
        await upscale_image(UpscaleOptions(image=b"img", provider="zoom"))

    assert upscale.await_count == 1


@pytest.mark.asyncio
async def test_explicit_registry(make_result):
    registry = ProviderRegistry("upscale")
    registry.register(_upscaler("local", AsyncMock(return_value=make_result())))

    result = await upscale_image(UpscaleOptions(image=b"img", provider="local"), registry=registry)

    assert result.data == b"png-bytes"


def test_scale_must_be_positive():
    with pytest.raises(ValidationError):
        UpscaleOptions(image=b"img", provider="zoom", scale=0)
