from __future__ import annotations

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from .exceptions import UpscaleProviderNotRegisteredError
from .provider_spec import UpscaleProvider
from .registry import ProviderRegistry, upscale_providers
from .schema import ImageResult, UpscaleImageParams
from .shard import constants as C


class UpscaleOptions(BaseModel):
    image: bytes = Field(repr=False)
    scale: float = Field(default=C.DEFAULT_UPSCALE_FACTOR, gt=0)
    model: str | None = None
    provider: str = Field(description="Registered upscale provider name (no fallback chain).")
    config: dict[str, Any] = Field(default_factory=dict)


async def upscale_image(options: UpscaleOptions, *, registry: ProviderRegistry[UpscaleProvider] | None = None) -> ImageResult:
    """Upscale an image with the named provider. Single shot: no retry, no fallback."""
    providers = registry if registry is not None else upscale_providers
    provider = providers.get(options.provider)
    if provider is None:
        raise UpscaleProviderNotRegisteredError(options.provider)

    params = UpscaleImageParams(image=options.image, scale=options.scale, model=options.model)
    logger.debug(f"Upscaling with {provider.name} (model={options.model}, scale={options.scale})")
    return await provider.upscale(params, options.config)


__all__ = ["UpscaleOptions", "upscale_image"]
