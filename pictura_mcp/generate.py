from __future__ import annotations

from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from .exceptions import AllProvidersFailedError, ProviderNotRegisteredError
from .provider_spec import ImageProvider
from .registry import ProviderRegistry, image_providers
from .schema import (
    GenerateImageParams,
    ImageResult,
    ModelSelector,
    ModelWithFallbacks,
    normalize_model_chain,
)
from .shard import constants as C
from .shard.enums import AspectRatio, ImageSize

# Receives a zero-argument coroutine factory and runs it, possibly several times.
AttemptWrapper = Callable[[Callable[[], Awaitable[ImageResult]]], Awaitable[ImageResult]]


class _GenerateOptionsBase(BaseModel):
    model: ModelWithFallbacks = Field(description="Model selector or ordered fallback chain.")
    prompt: str
    size: ImageSize = C.DEFAULT_IMAGE_SIZE
    reference: bytes | None = Field(default=None, repr=False, description="Optional reference image bytes.")
    negative_prompt: str | None = None
    config: dict[str, Any] = Field(default_factory=dict, description="Provider-specific config (credentials, defaults).")

    @field_validator("model")
    @classmethod
    def _non_empty_chain(cls, v: ModelWithFallbacks) -> ModelWithFallbacks:
        if isinstance(v, list) and not v:
            raise ValueError("model fallback chain must contain at least one selector")
        return v

    @property
    def model_chain(self) -> list[ModelSelector]:
        return normalize_model_chain(self.model)


class GenerateImageOptions(_GenerateOptionsBase):
    ratio: AspectRatio


class GenerateImagesOptions(_GenerateOptionsBase):
    ratios: list[AspectRatio] = Field(min_length=1)


async def generate_image(options: GenerateImageOptions, *, registry: ProviderRegistry[ImageProvider] | None = None) -> ImageResult:
    """Generate a single image using a model or fallback chain.

    Each selector is tried in order and the first success is returned. Failures
    (including unregistered providers) are collected; if every selector fails a
    single :class:`AllProvidersFailedError` is raised carrying all of them.
    No retries happen here; wrap calls in :func:`pictura_mcp.core.retry.with_retry`
    when needed.
    """
    providers = registry if registry is not None else image_providers
    errors: list[Exception] = []

    for selector in options.model_chain:
        try:
            provider = providers.get(selector.provider)
            if provider is None:
                raise ProviderNotRegisteredError(selector.provider)

            params = GenerateImageParams(
                prompt=options.prompt,
                ratio=options.ratio,
                size=options.size,
                reference=options.reference,
                negative_prompt=options.negative_prompt,
            )
            return await provider.generate_image(selector.model_id, params, options.config)
        except Exception as e:
            logger.warning(f"Generation with {selector.provider}/{selector.model_id} failed: {e}")
            errors.append(e)

    raise AllProvidersFailedError(errors)


async def generate_images(
    options: GenerateImagesOptions,
    *,
    registry: ProviderRegistry[ImageProvider] | None = None,
    attempt: AttemptWrapper | None = None,
) -> list[ImageResult]:
    """Generate one image per ratio, sequentially, in ratio order.

    Without a caller-supplied reference, the first generated image is passed
    as the reference for every later ratio to keep the set visually
    consistent. A caller-supplied reference is reused unchanged instead.
    Generation must stay sequential because later calls depend on the first
    result.

    ``attempt`` wraps each single-ratio call, typically with
    :func:`pictura_mcp.core.retry.with_retry`, so a failure on one ratio only
    repeats that ratio and keeps the images already produced.
    """
    reference = options.reference
    results: list[ImageResult] = []

    for ratio in options.ratios:
        single = GenerateImageOptions(
            model=options.model,
            prompt=options.prompt,
            ratio=ratio,
            size=options.size,
            reference=reference,
            negative_prompt=options.negative_prompt,
            config=options.config,
        )
        operation = partial(generate_image, single, registry=registry)
        result = await (attempt(operation) if attempt is not None else operation())
        results.append(result)

        if options.reference is None and len(results) == 1:
            reference = result.data

    return results


__all__ = [
    "GenerateImageOptions",
    "GenerateImagesOptions",
    "generate_image",
    "generate_images",
]
