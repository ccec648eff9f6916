"""Topaz Labs image upscaling adapter.

Every Topaz Image API enhancement is an async job: submit, poll the status
endpoint with growing delays, then download the output.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
from loguru import logger

from ..exceptions import ProviderError
from ..provider_spec import ProviderConfig, UpscaleProvider, UpscaleProviderSpec, create_upscale_provider, nearest_ratio
from ..schema import ImageResult, UpscaleImageParams
from .common import http_error, require_api_key

PROVIDER_NAME = "topaz"
API_BASE = "https://api.topazlabs.com/image/v1"

TOPAZ_MODELS: list[str] = [
    "Standard V2",
    "Standard MAX",
    "Recovery V2",
    "High Fidelity V2",
    "Redefine",
    "Low Resolution V2",
    "CGI",
]

# Config stores kebab-case model keys (``standard-max``); the API wants display names.
MODEL_ALIASES: dict[str, str] = {name.lower().replace(" ", "-"): name for name in TOPAZ_MODELS}

DEFAULT_MODEL = "Standard V2"
MAX_SCALE = 16
MAX_POLL_ATTEMPTS = 60
REQUEST_TIMEOUT_S = 120.0


def resolve_model(model: str | None) -> str:
    if not model:
        return DEFAULT_MODEL
    return MODEL_ALIASES.get(model.lower(), model)


def poll_delay(attempt: int, base_delay_s: float) -> float:
    """Delay before status check ``attempt`` (0-based): x1.5 per attempt, capped at 30s."""
    return min(base_delay_s * 1.5**attempt, 30.0)


async def _submit(client: httpx.AsyncClient, image: bytes, model: str) -> str:
    response = await client.post(
        f"{API_BASE}/enhance/async",
        files={"image": ("input.png", image, "image/png")},
        data={"model": model, "output_format": "png"},
    )
    response.raise_for_status()
    process_id = response.json().get("process_id")
    if not process_id:
        raise ProviderError("Topaz did not return a process id", provider=PROVIDER_NAME)
    return process_id


async def _poll(client: httpx.AsyncClient, process_id: str, base_delay_s: float) -> dict[str, Any]:
    for attempt in range(MAX_POLL_ATTEMPTS):
        await asyncio.sleep(poll_delay(attempt, base_delay_s))

        response = await client.get(f"{API_BASE}/enhance/async/{process_id}")
        response.raise_for_status()
        status = response.json()

        state = status.get("state")
        if state == "completed" and status.get("output_url"):
            return status
        if state == "failed":
            raise ProviderError(f"Topaz enhancement failed: {status.get('error') or 'Unknown error'}", provider=PROVIDER_NAME)
        logger.debug(f"Topaz job {process_id} state={state} (poll {attempt + 1}/{MAX_POLL_ATTEMPTS})")

    raise ProviderError(f"Topaz job timed out after {MAX_POLL_ATTEMPTS} polling attempts", provider=PROVIDER_NAME)


def make_topaz_provider(*, transport: httpx.AsyncBaseTransport | None = None, poll_base_delay_s: float = 2.0) -> UpscaleProvider:
    """Build the Topaz upscale provider; ``transport`` is for tests."""

    async def upscale(params: UpscaleImageParams, config: ProviderConfig) -> ImageResult:
        api_key = require_api_key(config, "Topaz")
        model = resolve_model(params.model or config.get("default_model"))

        try:
            async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT_S, headers={"X-API-Key": api_key}, transport=transport) as client:
                process_id = await _submit(client, params.image, model)
                logger.info(f"Submitted Topaz job {process_id} with model {model}")
                status = await _poll(client, process_id, poll_base_delay_s)

                download = await client.get(status["output_url"])
                download.raise_for_status()
        except httpx.HTTPError as e:
            raise http_error("Topaz", PROVIDER_NAME, e) from e

        width = int(status.get("output_width") or 0)
        height = int(status.get("output_height") or 0)
        return ImageResult(
            data=download.content,
            ratio=nearest_ratio(width, height),
            width=width,
            height=height,
            provider=PROVIDER_NAME,
            model=model,
        )

    return create_upscale_provider(UpscaleProviderSpec(name=PROVIDER_NAME, models=list(TOPAZ_MODELS), max_scale=MAX_SCALE, upscale=upscale))


topaz = make_topaz_provider()


__all__ = ["TOPAZ_MODELS", "MODEL_ALIASES", "resolve_model", "poll_delay", "make_topaz_provider", "topaz"]
