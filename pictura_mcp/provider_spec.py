"""Uniform provider interface over heterogeneous vendor adapters.

A vendor adapter is described by an :class:`ImageProviderSpec` (or an
:class:`UpscaleProviderSpec`) and wrapped by :func:`create_image_provider`
(or :func:`create_upscale_provider`) into the shape the orchestrators and the
registry work with.

Edit support is a typed optional field: ``ImageProvider.edit_image`` is
``None`` when the provider spec supplied no edit function, so callers detect the
capability with a ``None`` check instead of catching an exception.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import UnknownModelError
from .schema import (
    EditImageParams,
    GenerateImageParams,
    ImageResult,
    ModelDefinition,
    ModelSelector,
    UpscaleImageParams,
)
from .shard import constants as C
from .shard.enums import AspectRatio, ImageSize

ProviderConfig = Mapping[str, Any]

GenerateFn = Callable[[str, GenerateImageParams, ProviderConfig], Awaitable[ImageResult]]
EditFn = Callable[[str, EditImageParams, ProviderConfig], Awaitable[ImageResult]]
UpscaleFn = Callable[[UpscaleImageParams, ProviderConfig], Awaitable[ImageResult]]


# ---------------------------------------------------------------------------
# Ratio geometry
# ---------------------------------------------------------------------------


def _round_half_up(value: float) -> int:
    # round() uses banker's rounding; pixel math wants 438.5 -> 439
    return int(value + 0.5)


def get_dimensions_for_ratio(ratio: AspectRatio | str, size: ImageSize | str = C.DEFAULT_IMAGE_SIZE) -> tuple[int, int]:
    """Return ``(width, height)`` for a ratio at a size tier.

    The 2K tier is the base table; 1K halves it and 4K doubles it.
    """
    base_width, base_height = C.BASE_DIMENSIONS[AspectRatio(ratio)]
    multiplier = ImageSize(size).multiplier
    return _round_half_up(base_width * multiplier), _round_half_up(base_height * multiplier)


def clamp_size(size: ImageSize | str, max_resolution: ImageSize | str) -> ImageSize:
    """Return ``size`` lowered to ``max_resolution`` when it exceeds it."""
    size, max_resolution = ImageSize(size), ImageSize(max_resolution)
    return size if size.multiplier <= max_resolution.multiplier else max_resolution


def nearest_ratio(width: int, height: int) -> AspectRatio:
    """Pick the supported ratio closest to the given pixel dimensions."""
    if width <= 0 or height <= 0:
        return AspectRatio.ONE_ONE
    target = width / height
    return min(C.BASE_DIMENSIONS, key=lambda r: abs(C.BASE_DIMENSIONS[r][0] / C.BASE_DIMENSIONS[r][1] - target))


# ---------------------------------------------------------------------------
# Generation providers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ImageProviderSpec:
    """What a vendor adapter supplies: models plus generate and optional edit."""

    name: str
    models: Mapping[str, ModelDefinition]
    generate_image: GenerateFn
    edit_image: EditFn | None = None


@dataclass(frozen=True)
class ImageProvider:
    """Callable wrapper around an :class:`ImageProviderSpec`.

    ``provider("flash")`` returns the :class:`ModelSelector` for that alias.
    """

    spec: ImageProviderSpec
    edit_image: EditFn | None = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "edit_image", self.spec.edit_image)

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def models(self) -> Mapping[str, ModelDefinition]:
        return self.spec.models

    def __call__(self, model_id: str) -> ModelSelector:
        definition = self.spec.models.get(model_id)
        if definition is None:
            raise UnknownModelError(model_id, self.spec.name)
        return ModelSelector(provider=self.spec.name, model_id=model_id, capabilities=definition.capabilities)

    async def generate_image(self, model_id: str, params: GenerateImageParams, config: ProviderConfig) -> ImageResult:
        return await self.spec.generate_image(model_id, params, config)

    @property
    def supports_edit(self) -> bool:
        return self.edit_image is not None


def create_image_provider(spec: ImageProviderSpec) -> ImageProvider:
    """Wrap a vendor spec into the uniform provider shape."""
    return ImageProvider(spec=spec)


# ---------------------------------------------------------------------------
# Upscale providers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UpscaleProviderSpec:
    name: str
    models: list[str]
    max_scale: float
    upscale: UpscaleFn


@dataclass(frozen=True)
class UpscaleProvider:
    spec: UpscaleProviderSpec

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def models(self) -> list[str]:
        return list(self.spec.models)

    @property
    def max_scale(self) -> float:
        return self.spec.max_scale

    async def upscale(self, params: UpscaleImageParams, config: ProviderConfig) -> ImageResult:
        return await self.spec.upscale(params, config)


def create_upscale_provider(spec: UpscaleProviderSpec) -> UpscaleProvider:
    return UpscaleProvider(spec=spec)


__all__ = [
    "ProviderConfig",
    "GenerateFn",
    "EditFn",
    "UpscaleFn",
    "get_dimensions_for_ratio",
    "clamp_size",
    "nearest_ratio",
    "ImageProviderSpec",
    "ImageProvider",
    "create_image_provider",
    "UpscaleProviderSpec",
    "UpscaleProvider",
    "create_upscale_provider",
]
