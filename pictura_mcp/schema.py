from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .shard.enums import AspectRatio, ExtendDirection, ImageSize

# ------------------------------ Capability schema --------------------------- #


class ModelCapabilities(BaseModel):
    """Capabilities declared once per concrete model at registration time."""

    model_config = ConfigDict(frozen=True)

    max_resolution: ImageSize = Field(description="Largest size tier the model can produce.")
    supported_ratios: list[AspectRatio] = Field(description="Aspect ratios the model renders natively.")
    supports_reference: bool = Field(description="Whether a reference image can steer generation.")
    supports_edit: bool = Field(description="Whether edit operations are supported.")
    supports_inpaint: bool = Field(description="Whether region-restricted edits are supported.")
    supports_outpaint: bool = Field(description="Whether the canvas can be extended.")


class ModelDefinition(BaseModel):
    """Maps a short model alias to the vendor's full model id."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Full vendor model id, e.g. 'gemini-2.5-flash-image'.")
    capabilities: ModelCapabilities


class ModelSelector(BaseModel):
    """Identifies one concrete model of one provider."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    provider: str = Field(description="Registered provider name.")
    model_id: str = Field(description="Model alias understood by the provider.")
    capabilities: ModelCapabilities


# A single selector, or a priority-ordered fallback chain (first success wins).
ModelWithFallbacks = ModelSelector | list[ModelSelector]


def normalize_model_chain(model: ModelWithFallbacks) -> list[ModelSelector]:
    """Return the fallback chain as a list; a single selector becomes a one-element chain."""
    if isinstance(model, ModelSelector):
        return [model]
    return list(model)


# ------------------------------- Image payloads ----------------------------- #


class ImageResult(BaseModel):
    """A produced image. Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False, description="Raw image bytes.")
    ratio: AspectRatio
    width: int
    height: int
    provider: str
    model: str
    path: str | None = Field(default=None, description="Filesystem path once persisted by the output sink.")
    timestamp: str | None = Field(default=None, description="Batch timestamp (YYYY-MM-DD-HHmmss) once persisted.")


# ------------------------------ Provider params ----------------------------- #


class GenerateImageParams(BaseModel):
    prompt: str
    ratio: AspectRatio
    size: ImageSize = ImageSize.TWO_K
    reference: bytes | None = Field(default=None, repr=False)
    negative_prompt: str | None = None


class EditImageParams(BaseModel):
    """Per-provider edit parameters.

    Only the field matching the edit operation is ever set: ``mask`` for
    inpaint, ``extend`` for outpaint, ``style`` for restyle. ``ratio`` is a
    hint about the source image and is independent of the operation.
    """

    image: bytes = Field(repr=False)
    prompt: str
    mask: str | None = None
    extend: ExtendDirection | None = None
    style: bytes | None = Field(default=None, repr=False)
    ratio: AspectRatio | None = Field(default=None, description="Aspect ratio of the source image, when known.")


class UpscaleImageParams(BaseModel):
    image: bytes = Field(repr=False)
    scale: float | None = None
    model: str | None = None


# ------------------------------- Output sink -------------------------------- #


class BatchImage(BaseModel):
    ratio: AspectRatio | str
    path: str


class BatchInfo(BaseModel):
    """A set of images sharing one prompt slug and one generation timestamp."""

    timestamp: str
    slug: str
    path: str
    images: list[BatchImage] = Field(default_factory=list)


# -------------------------- Public minimal tool output ----------------------- #


class ImageDescriptor(BaseModel):
    """Lightweight image metadata for structured tool outputs (no blobs)."""

    ratio: str
    width: int
    height: int
    file_path: str | None = Field(default=None, description="Absolute filesystem path where the image was saved.")


class PicturaToolStructured(BaseModel):
    """Public structured output for image tools without binary payloads."""

    ok: bool = Field(default=True, description="True on success.")
    provider: str | None = None
    model: str | None = None
    slug: str | None = None
    timestamp: str | None = None
    image_count: int = Field(default=0, description="Number of images produced.")
    images: list[ImageDescriptor] = Field(default_factory=list)
    meta: dict[str, Any] = Field(default_factory=dict, description="Runtime metadata (no image data).")


__all__ = [
    "ModelCapabilities",
    "ModelDefinition",
    "ModelSelector",
    "ModelWithFallbacks",
    "normalize_model_chain",
    "ImageResult",
    "GenerateImageParams",
    "EditImageParams",
    "UpscaleImageParams",
    "BatchImage",
    "BatchInfo",
    "ImageDescriptor",
    "PicturaToolStructured",
]
