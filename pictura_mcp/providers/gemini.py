"""Gemini image adapter (Gemini Developer API via ``google-genai``)."""

from __future__ import annotations

from typing import Any

from google import genai
from google.genai import types
from loguru import logger

from ..exceptions import ProviderError, UnknownModelError
from ..provider_spec import (
    ImageProviderSpec,
    ProviderConfig,
    clamp_size,
    create_image_provider,
    get_dimensions_for_ratio,
)
from ..schema import (
    EditImageParams,
    GenerateImageParams,
    ImageResult,
    ModelCapabilities,
    ModelDefinition,
)
from ..shard import constants as C
from ..shard.enums import AspectRatio, ImageSize
from ..utils.prompt import render_prompt
from .common import require_api_key

PROVIDER_NAME = "gemini"
PNG_MIME = "image/png"


def _capabilities(max_resolution: ImageSize) -> ModelCapabilities:
    return ModelCapabilities(
        max_resolution=max_resolution,
        supported_ratios=list(AspectRatio),
        supports_reference=True,
        supports_edit=True,
        supports_inpaint=True,
        supports_outpaint=True,
    )


GEMINI_MODELS: dict[str, ModelDefinition] = {
    "flash": ModelDefinition(id="gemini-2.5-flash-image", capabilities=_capabilities(ImageSize.ONE_K)),
    "pro": ModelDefinition(id="gemini-3-pro-image-preview", capabilities=_capabilities(ImageSize.FOUR_K)),
}

# Only these models accept an explicit output size tier.
_SIZED_MODELS = frozenset({"pro"})


def _definition(model_id: str) -> ModelDefinition:
    definition = GEMINI_MODELS.get(model_id)
    if definition is None:
        raise UnknownModelError(model_id, PROVIDER_NAME)
    return definition


def _content_config(model_id: str, ratio: AspectRatio | None, size: ImageSize | None) -> types.GenerateContentConfig:
    image_config = types.ImageConfig(
        aspect_ratio=str(ratio) if ratio else None,
        image_size=str(size) if size and model_id in _SIZED_MODELS else None,
    )
    return types.GenerateContentConfig(response_modalities=["IMAGE"], image_config=image_config)


def _first_image(resp: types.GenerateContentResponse) -> bytes | None:
    candidates = resp.candidates or []
    if not candidates or not candidates[0].content:
        return None
    for part in candidates[0].content.parts or []:
        inline = part.inline_data
        if inline is not None and inline.data:
            return inline.data
    return None


async def _request(api_key: str, model: str, contents: list[Any], config: types.GenerateContentConfig) -> bytes:
    client = genai.Client(api_key=api_key)
    resp = await client.aio.models.generate_content(model=model, contents=contents, config=config)

    data = _first_image(resp)
    if data is None:
        raise ProviderError("No image was returned by Gemini. Try a different prompt.", provider=PROVIDER_NAME)
    return data


async def generate_image(model_id: str, params: GenerateImageParams, config: ProviderConfig) -> ImageResult:
    api_key = require_api_key(config, "Gemini")
    definition = _definition(model_id)
    size = clamp_size(params.size, definition.capabilities.max_resolution)

    prompt = render_prompt(params.prompt, negative_prompt=params.negative_prompt, has_reference=params.reference is not None)
    contents: list[Any] = [prompt]
    if params.reference is not None:
        contents.append(types.Part.from_bytes(data=params.reference, mime_type=PNG_MIME))

    logger.debug(f"Gemini generate: model={definition.id} ratio={params.ratio} size={size}")
    data = await _request(api_key, definition.id, contents, _content_config(model_id, params.ratio, size))

    width, height = get_dimensions_for_ratio(params.ratio, size)
    return ImageResult(data=data, ratio=params.ratio, width=width, height=height, provider=PROVIDER_NAME, model=definition.id)


async def edit_image(model_id: str, params: EditImageParams, config: ProviderConfig) -> ImageResult:
    api_key = require_api_key(config, "Gemini")
    definition = _definition(model_id)

    contents: list[Any] = [params.prompt, types.Part.from_bytes(data=params.image, mime_type=PNG_MIME)]
    if params.style is not None:
        contents.append(types.Part.from_bytes(data=params.style, mime_type=PNG_MIME))

    logger.debug(f"Gemini edit: model={definition.id} ratio={params.ratio}")
    data = await _request(api_key, definition.id, contents, _content_config(model_id, params.ratio, None))

    ratio = params.ratio or AspectRatio.ONE_ONE
    size = clamp_size(C.DEFAULT_IMAGE_SIZE, definition.capabilities.max_resolution)
    width, height = get_dimensions_for_ratio(ratio, size)
    return ImageResult(data=data, ratio=ratio, width=width, height=height, provider=PROVIDER_NAME, model=definition.id)


gemini = create_image_provider(
    ImageProviderSpec(
        name=PROVIDER_NAME,
        models=GEMINI_MODELS,
        generate_image=generate_image,
        edit_image=edit_image,
    )
)


__all__ = ["GEMINI_MODELS", "gemini", "generate_image", "edit_image"]
