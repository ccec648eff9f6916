from __future__ import annotations

from enum import StrEnum
from typing import Self


class AspectRatio(StrEnum):
    """Aspect ratios accepted by every generation entry point.

    The set is closed: anything else is rejected at the boundary by pydantic
    validation before it reaches a provider.
    """

    ONE_ONE = "1:1"
    TWO_THREE = "2:3"
    THREE_TWO = "3:2"
    THREE_FOUR = "3:4"
    FOUR_THREE = "4:3"
    FOUR_FIVE = "4:5"
    FIVE_FOUR = "5:4"
    NINE_SIXTEEN = "9:16"
    SIXTEEN_NINE = "16:9"
    TWENTY_ONE_NINE = "21:9"

    @classmethod
    def from_str(cls, value: str | None) -> Self | None:
        if not value:
            return None
        try:
            return cls(value.strip())
        except ValueError:
            return None


class ImageSize(StrEnum):
    """Resolution tier multiplying the per-ratio base dimensions."""

    ONE_K = "1K"
    TWO_K = "2K"
    FOUR_K = "4K"

    @property
    def multiplier(self) -> float:
        return _SIZE_MULTIPLIERS[self]


_SIZE_MULTIPLIERS: dict[ImageSize, float] = {
    ImageSize.ONE_K: 0.5,
    ImageSize.TWO_K: 1.0,
    ImageSize.FOUR_K: 2.0,
}


class GenerationProvider(StrEnum):
    """Provider names recognised by the generation config schema."""

    GEMINI = "gemini"
    OPENAI = "openai"


class UpscaleProvider(StrEnum):
    """Provider names recognised by the upscale config schema."""

    TOPAZ = "topaz"
    REPLICATE = "replicate"


class ProviderRole(StrEnum):
    GENERATION = "generation"
    UPSCALE = "upscale"


class Quality(StrEnum):
    DRAFT = "draft"
    PRO = "pro"


class ConsistencyMode(StrEnum):
    """How multi-ratio batches keep a consistent look."""

    GENERATE = "generate"
    REFERENCE = "reference"
    MULTITURN = "multiturn"


class ConfigScope(StrEnum):
    USER = "user"
    PROJECT = "project"


class ConfigSource(StrEnum):
    """Where the effective value of a configuration key came from."""

    USER = "user"
    PROJECT = "project"
    DEFAULT = "default"
    ENV = "env"


class ExtendDirection(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


class EditOperationKind(StrEnum):
    REFINE = "refine"
    INPAINT = "inpaint"
    OUTPAINT = "outpaint"
    RESTYLE = "restyle"


class PresetBundle(StrEnum):
    """Named ratio bundles for common publishing targets."""

    SOCIAL = "social"
    WEB = "web"
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"
    PRINT = "print"


class EnhanceStyle(StrEnum):
    PHOTO = "photo"
    ART = "art"
    COMMERCIAL = "commercial"
    AUTO = "auto"
    MINIMAL = "minimal"


__all__ = [
    "AspectRatio",
    "ImageSize",
    "GenerationProvider",
    "UpscaleProvider",
    "ProviderRole",
    "Quality",
    "ConsistencyMode",
    "ConfigScope",
    "ConfigSource",
    "ExtendDirection",
    "EditOperationKind",
    "PresetBundle",
    "EnhanceStyle",
]
