"""Replicate upscaling adapter (predictions API over httpx)."""

from __future__ import annotations

import asyncio
import base64
from typing import Any

import httpx
from loguru import logger

from ..exceptions import ProviderError
from ..provider_spec import ProviderConfig, UpscaleProvider, UpscaleProviderSpec, create_upscale_provider
from ..schema import ImageResult, UpscaleImageParams
from ..shard.enums import AspectRatio
from .common import http_error, require_api_key

PROVIDER_NAME = "replicate"
API_BASE = "https://api.replicate.com/v1"

DEFAULT_MODEL = "nightmareai/real-esrgan"

# Model -> name of its scale input.
SCALE_INPUT: dict[str, str] = {
    "nightmareai/real-esrgan": "scale",
    "philz1337x/clarity-upscaler": "scale_factor",
}
REPLICATE_MODELS: list[str] = list(SCALE_INPUT)

MAX_SCALE = 10
MAX_POLL_ATTEMPTS = 60
REQUEST_TIMEOUT_S = 120.0
_TERMINAL = frozenset({"succeeded", "failed", "canceled"})


def _data_uri(image: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(image).decode("ascii")


def _output_url(prediction: dict[str, Any]) -> str:
    output = prediction.get("output")
    if isinstance(output, list):
        output = output[0] if output else None
    if not isinstance(output, str) or not output:
        raise ProviderError("Replicate prediction returned no output", provider=PROVIDER_NAME)
    return output


async def _wait(client: httpx.AsyncClient, prediction: dict[str, Any], poll_interval_s: float) -> dict[str, Any]:
    polls = 0
    while prediction.get("status") not in _TERMINAL:
        if polls >= MAX_POLL_ATTEMPTS:
            raise ProviderError(f"Replicate prediction timed out after {MAX_POLL_ATTEMPTS} polling attempts", provider=PROVIDER_NAME)
        polls += 1
        await asyncio.sleep(poll_interval_s)
        response = await client.get(prediction["urls"]["get"])
        response.raise_for_status()
        prediction = response.json()

    if prediction.get("status") != "succeeded":
        raise ProviderError(f"Replicate prediction {prediction.get('status')}: {prediction.get('error') or 'Unknown error'}", provider=PROVIDER_NAME)
    return prediction


def make_replicate_provider(*, transport: httpx.AsyncBaseTransport | None = None, poll_interval_s: float = 1.0) -> UpscaleProvider:
    """Build the Replicate upscale provider; ``transport`` is for tests."""

    async def upscale(params: UpscaleImageParams, config: ProviderConfig) -> ImageResult:
        api_key = require_api_key(config, "Replicate")
        model = params.model or DEFAULT_MODEL
        scale = min(params.scale or 4, MAX_SCALE)
        payload = {"input": {"image": _data_uri(params.image), SCALE_INPUT.get(model, "scale"): scale}}
        headers = {"Authorization": f"Bearer {api_key}", "Prefer": "wait"}

        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_S, headers=headers, transport=transport) as client:
                response = await client.post(f"{API_BASE}/models/{model}/predictions", json=payload)
                response.raise_for_status()
                prediction = await _wait(client, response.json(), poll_interval_s)
                logger.info(f"Replicate prediction {prediction.get('id')} succeeded with {model}")

                download = await client.get(_output_url(prediction))
                download.raise_for_status()
        except httpx.HTTPError as e:
            raise http_error("Replicate", PROVIDER_NAME, e) from e

        # Output dimensions are not reported; callers fill them in from the source.
        return ImageResult(
            data=download.content,
            ratio=AspectRatio.ONE_ONE,
            width=0,
            height=0,
            provider=PROVIDER_NAME,
            model=model,
        )

    return create_upscale_provider(UpscaleProviderSpec(name=PROVIDER_NAME, models=list(REPLICATE_MODELS), max_scale=MAX_SCALE, upscale=upscale))


replicate = make_replicate_provider()


__all__ = ["REPLICATE_MODELS", "make_replicate_provider", "replicate"]
