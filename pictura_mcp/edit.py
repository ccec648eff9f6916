from __future__ import annotations

from typing import Annotated, Any, Literal

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from .exceptions import AllProvidersFailedError, EditNotSupportedError, ProviderNotRegisteredError
from .provider_spec import ImageProvider
from .registry import ProviderRegistry, image_providers
from .schema import (
    EditImageParams,
    ImageResult,
    ModelSelector,
    ModelWithFallbacks,
    normalize_model_chain,
)
from .shard.enums import AspectRatio, EditOperationKind, ExtendDirection

# ---------------------------------------------------------------------------
# Edit operations: one variant per kind, each carrying only its own fields
# ---------------------------------------------------------------------------


class RefineEdit(BaseModel):
    kind: Literal["refine"] = "refine"

    def compose_prompt(self, prompt: str) -> str:
        return prompt

    def build_params(self, image: bytes, prompt: str, ratio: AspectRatio | None = None) -> EditImageParams:
        return EditImageParams(image=image, prompt=self.compose_prompt(prompt), ratio=ratio)


class InpaintEdit(BaseModel):
    kind: Literal["inpaint"] = "inpaint"
    mask: str | None = Field(default=None, description="Region to modify, e.g. 'sky' or 'left third'.")

    def compose_prompt(self, prompt: str) -> str:
        if self.mask:
            return f"In the image, modify only the {self.mask}: {prompt}"
        return prompt

    def build_params(self, image: bytes, prompt: str, ratio: AspectRatio | None = None) -> EditImageParams:
        return EditImageParams(image=image, prompt=self.compose_prompt(prompt), ratio=ratio, mask=self.mask)


class OutpaintEdit(BaseModel):
    kind: Literal["outpaint"] = "outpaint"
    direction: ExtendDirection | None = None

    def compose_prompt(self, prompt: str) -> str:
        return f"Extend the image: {prompt}"

    def build_params(self, image: bytes, prompt: str, ratio: AspectRatio | None = None) -> EditImageParams:
        return EditImageParams(image=image, prompt=self.compose_prompt(prompt), ratio=ratio, extend=self.direction)


class RestyleEdit(BaseModel):
    kind: Literal["restyle"] = "restyle"
    style_ref: bytes | None = Field(default=None, repr=False, description="Style reference image bytes.")

    def compose_prompt(self, prompt: str) -> str:
        return f"Apply style to image: {prompt}"

    def build_params(self, image: bytes, prompt: str, ratio: AspectRatio | None = None) -> EditImageParams:
        return EditImageParams(image=image, prompt=self.compose_prompt(prompt), ratio=ratio, style=self.style_ref)


EditOperation = Annotated[RefineEdit | InpaintEdit | OutpaintEdit | RestyleEdit, Field(discriminator="kind")]

_OPERATIONS: dict[EditOperationKind, type[BaseModel]] = {
    EditOperationKind.REFINE: RefineEdit,
    EditOperationKind.INPAINT: InpaintEdit,
    EditOperationKind.OUTPAINT: OutpaintEdit,
    EditOperationKind.RESTYLE: RestyleEdit,
}


def build_edit_operation(
    kind: EditOperationKind | str = EditOperationKind.REFINE,
    *,
    mask: str | None = None,
    direction: ExtendDirection | str | None = None,
    style_ref: bytes | None = None,
) -> RefineEdit | InpaintEdit | OutpaintEdit | RestyleEdit:
    """Build the operation variant for ``kind``, keeping only the fields it uses."""
    kind = EditOperationKind(kind)
    if kind == EditOperationKind.INPAINT:
        return InpaintEdit(mask=mask)
    if kind == EditOperationKind.OUTPAINT:
        return OutpaintEdit(direction=direction)
    if kind == EditOperationKind.RESTYLE:
        return RestyleEdit(style_ref=style_ref)
    return RefineEdit()


class EditImageOptions(BaseModel):
    model: ModelWithFallbacks = Field(description="Model selector or ordered fallback chain.")
    image: bytes = Field(repr=False, description="Source image bytes.")
    prompt: str
    operation: EditOperation = Field(default_factory=RefineEdit)
    ratio: AspectRatio | None = Field(default=None, description="Aspect ratio of the source image, when known.")
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("operation", mode="before")
    @classmethod
    def _coerce_kind(cls, v: Any) -> Any:
        # A bare kind string selects the variant with no extra fields
        if isinstance(v, str):
            return _OPERATIONS[EditOperationKind(v)]()
        return v

    @field_validator("model")
    @classmethod
    def _non_empty_chain(cls, v: ModelWithFallbacks) -> ModelWithFallbacks:
        if isinstance(v, list) and not v:
            raise ValueError("model fallback chain must contain at least one selector")
        return v

    @property
    def model_chain(self) -> list[ModelSelector]:
        return normalize_model_chain(self.model)


async def edit_image(options: EditImageOptions, *, registry: ProviderRegistry[ImageProvider] | None = None) -> ImageResult:
    """Edit an image using a model or fallback chain.

    Providers without an edit function fail their attempt before any call is
    made. The composite prompt and parameters are derived from the operation
    variant, so fields of other operations never reach the provider.
    """
    providers = registry if registry is not None else image_providers
    params = options.operation.build_params(options.image, options.prompt, options.ratio)
    errors: list[Exception] = []

    for selector in options.model_chain:
        try:
            provider = providers.get(selector.provider)
            if provider is None:
                raise ProviderNotRegisteredError(selector.provider)
            if provider.edit_image is None:
                raise EditNotSupportedError(selector.provider)

            return await provider.edit_image(selector.model_id, params, options.config)
        except Exception as e:
            logger.warning(f"Edit ({options.operation.kind}) with {selector.provider}/{selector.model_id} failed: {e}")
            errors.append(e)

    raise AllProvidersFailedError(errors)


__all__ = [
    "RefineEdit",
    "InpaintEdit",
    "OutpaintEdit",
    "RestyleEdit",
    "EditOperation",
    "build_edit_operation",
    "EditImageOptions",
    "edit_image",
]
