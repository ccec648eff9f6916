"""OpenAI GPT Image adapter.

GPT Image models render three fixed sizes only; other ratios are mapped to
the nearest orientation. A reference image routes generation through the
edit endpoint.
"""

from __future__ import annotations

import base64
from typing import Any

from loguru import logger
from openai import AsyncOpenAI

from ..exceptions import ProviderError, UnknownModelError
from ..provider_spec import ImageProviderSpec, ProviderConfig, create_image_provider
from ..schema import (
    EditImageParams,
    GenerateImageParams,
    ImageResult,
    ModelCapabilities,
    ModelDefinition,
)
from ..shard.enums import AspectRatio, ImageSize
from ..utils.prompt import render_prompt
from .common import require_api_key

PROVIDER_NAME = "openai"

SQUARE = "1024x1024"
PORTRAIT = "1024x1536"
LANDSCAPE = "1536x1024"

RATIO_TO_SIZE: dict[AspectRatio, str] = {
    AspectRatio.ONE_ONE: SQUARE,
    AspectRatio.TWO_THREE: PORTRAIT,
    AspectRatio.THREE_TWO: LANDSCAPE,
    AspectRatio.THREE_FOUR: PORTRAIT,
    AspectRatio.FOUR_THREE: LANDSCAPE,
    AspectRatio.FOUR_FIVE: PORTRAIT,
    AspectRatio.FIVE_FOUR: LANDSCAPE,
    AspectRatio.NINE_SIXTEEN: PORTRAIT,
    AspectRatio.SIXTEEN_NINE: LANDSCAPE,
    AspectRatio.TWENTY_ONE_NINE: LANDSCAPE,
}

# Size tier -> GPT Image quality knob
SIZE_TO_QUALITY: dict[ImageSize, str] = {
    ImageSize.ONE_K: "low",
    ImageSize.TWO_K: "medium",
    ImageSize.FOUR_K: "high",
}

_NATIVE_RATIOS = [AspectRatio.ONE_ONE, AspectRatio.THREE_TWO, AspectRatio.TWO_THREE]


def _capabilities(max_resolution: ImageSize, *, full: bool) -> ModelCapabilities:
    return ModelCapabilities(
        max_resolution=max_resolution,
        supported_ratios=list(_NATIVE_RATIOS),
        supports_reference=full,
        supports_edit=full,
        supports_inpaint=full,
        supports_outpaint=False,
    )


OPENAI_MODELS: dict[str, ModelDefinition] = {
    "gpt-image-1.5": ModelDefinition(id="gpt-image-1.5", capabilities=_capabilities(ImageSize.TWO_K, full=True)),
    "gpt-image-1": ModelDefinition(id="gpt-image-1", capabilities=_capabilities(ImageSize.TWO_K, full=True)),
    "gpt-image-1-mini": ModelDefinition(id="gpt-image-1-mini", capabilities=_capabilities(ImageSize.ONE_K, full=False)),
}


def _definition(model_id: str) -> ModelDefinition:
    definition = OPENAI_MODELS.get(model_id)
    if definition is None:
        raise UnknownModelError(model_id, PROVIDER_NAME)
    return definition


def _dimensions(size: str) -> tuple[int, int]:
    width, height = size.split("x")
    return int(width), int(height)


def _decode_first(result: Any, what: str) -> bytes:
    items = getattr(result, "data", None) or []
    b64 = items[0].b64_json if items else None
    if not b64:
        raise ProviderError(f"No image data in the {what} response", provider=PROVIDER_NAME)
    return base64.b64decode(b64)


def _png(name: str, data: bytes) -> tuple[str, bytes, str]:
    return (name, data, "image/png")


async def generate_image(model_id: str, params: GenerateImageParams, config: ProviderConfig) -> ImageResult:
    api_key = require_api_key(config, "OpenAI")
    definition = _definition(model_id)
    size = RATIO_TO_SIZE.get(params.ratio, SQUARE)
    prompt = render_prompt(params.prompt, negative_prompt=params.negative_prompt, has_reference=params.reference is not None)
    client = AsyncOpenAI(api_key=api_key)

    logger.debug(f"OpenAI generate: model={definition.id} size={size} reference={params.reference is not None}")
    if params.reference is not None:
        result = await client.images.edit(
            model=definition.id,
            image=_png("reference.png", params.reference),
            prompt=prompt,
            n=1,
            size=size,
        )
        data = _decode_first(result, "reference")
    else:
        result = await client.images.generate(
            model=definition.id,
            prompt=prompt,
            n=1,
            size=size,
            quality=SIZE_TO_QUALITY[ImageSize(params.size)],
        )
        data = _decode_first(result, "generation")

    width, height = _dimensions(size)
    return ImageResult(data=data, ratio=params.ratio, width=width, height=height, provider=PROVIDER_NAME, model=definition.id)


async def edit_image(model_id: str, params: EditImageParams, config: ProviderConfig) -> ImageResult:
    api_key = require_api_key(config, "OpenAI")
    definition = _definition(model_id)
    ratio = params.ratio or AspectRatio.ONE_ONE
    size = RATIO_TO_SIZE.get(ratio, SQUARE)
    client = AsyncOpenAI(api_key=api_key)

    # The mask is a region description already folded into the prompt.
    prompt = params.prompt
    image: Any = _png("source.png", params.image)
    if params.style is not None:
        prompt = f"{prompt}. Apply the style from the reference image."
        image = [image, _png("style.png", params.style)]

    logger.debug(f"OpenAI edit: model={definition.id} size={size}")
    result = await client.images.edit(model=definition.id, image=image, prompt=prompt, n=1, size=size)
    data = _decode_first(result, "edit")

    width, height = _dimensions(size)
    return ImageResult(data=data, ratio=ratio, width=width, height=height, provider=PROVIDER_NAME, model=definition.id)


openai = create_image_provider(
    ImageProviderSpec(
        name=PROVIDER_NAME,
        models=OPENAI_MODELS,
        generate_image=generate_image,
        edit_image=edit_image,
    )
)


__all__ = ["OPENAI_MODELS", "RATIO_TO_SIZE", "openai", "generate_image", "edit_image"]
