from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from pictura_mcp.edit import (
    EditImageOptions,
    InpaintEdit,
    OutpaintEdit,
    RefineEdit,
    RestyleEdit,
    build_edit_operation,
    edit_image,
)
from pictura_mcp.exceptions import AllProvidersFailedError, EditNotSupportedError
from pictura_mcp.registry import register_provider
from pictura_mcp.shard.enums import AspectRatio, ExtendDirection


@pytest.mark.asyncio
async def test_provider_without_edit_fails_before_any_call(make_provider):
    generate = AsyncMock()
    provider = make_provider("painter", generate=generate)
    register_provider(provider)

    with pytest.raises(AllProvidersFailedError) as exc_info:
        await edit_image(EditImageOptions(model=provider("m1"), image=b"src", prompt="brighter"))

    assert "does not support edit" in str(exc_info.value)
    assert isinstance(exc_info.value.errors[0], EditNotSupportedError)
    generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_falls_back_past_non_editing_provider(make_provider, make_result):
    expected = make_result()
    plain = make_provider("plain")
    editor = make_provider("editor", edit=AsyncMock(return_value=expected))
    register_provider(plain)
    register_provider(editor)

    result = await edit_image(EditImageOptions(model=[plain("m1"), editor("m1")], image=b"src", prompt="p"))

    assert result is expected


@pytest.mark.asyncio
async def test_inpaint_composite_prompt_and_fields(make_provider, make_result):
    edit = AsyncMock(return_value=make_result())
    provider = make_provider("editor", edit=edit)
    register_provider(provider)

    options = EditImageOptions(
        model=provider("m1"),
        image=b"src",
        prompt="make it a sunset",
        operation=InpaintEdit(mask="sky"),
        ratio="16:9",
    )
    await edit_image(options)

    model_id, params, _config = edit.await_args.args
    assert model_id == "m1"
    assert params.prompt == "In the image, modify only the sky: make it a sunset"
    assert params.mask == "sky"
    assert params.extend is None
    assert params.style is None
    assert params.image == b"src"
    assert params.ratio == AspectRatio.SIXTEEN_NINE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("operation", "expected_prompt"),
    [
        (RefineEdit(), "add rim light"),
        (InpaintEdit(), "add rim light"),
        (OutpaintEdit(direction="left"), "Extend the image: add rim light"),
        (RestyleEdit(style_ref=b"style"), "Apply style to image: add rim light"),
    ],
)
async def test_composite_prompts(make_provider, make_result, operation, expected_prompt):
    edit = AsyncMock(return_value=make_result())
    provider = make_provider("editor", edit=edit)
    register_provider(provider)

    await edit_image(EditImageOptions(model=provider("m1"), image=b"src", prompt="add rim light", operation=operation))

    assert edit.await_args.args[1].prompt == expected_prompt


@pytest.mark.asyncio
async def test_only_operation_fields_reach_provider(make_provider, make_result):
    edit = AsyncMock(return_value=make_result())
    provider = make_provider("editor", edit=edit)
    register_provider(provider)

    await edit_image(EditImageOptions(model=provider("m1"), image=b"src", prompt="p", operation=OutpaintEdit(direction="top")))
    outpaint = edit.await_args.args[1]
    assert outpaint.extend == ExtendDirection.TOP
    assert outpaint.mask is None
    assert outpaint.style is None

    await edit_image(EditImageOptions(model=provider("m1"), image=b"src", prompt="p", operation=RestyleEdit(style_ref=b"ref")))
    restyle = edit.await_args.args[1]
    assert restyle.style == b"ref"
    assert restyle.mask is None
    assert restyle.extend is None


def test_build_edit_operation_drops_unrelated_fields():
    op = build_edit_operation("outpaint", mask="sky", direction="bottom", style_ref=b"x")

    assert isinstance(op, OutpaintEdit)
    assert op.direction == ExtendDirection.BOTTOM
    assert not hasattr(op, "mask")
    assert not hasattr(op, "style_ref")


def test_operation_accepts_kind_string(capabilities):
    from pictura_mcp.schema import ModelSelector

    selector = ModelSelector(provider="editor", model_id="m1", capabilities=capabilities)

    assert isinstance(EditImageOptions(model=selector, image=b"i", prompt="p", operation="restyle").operation, RestyleEdit)
    assert isinstance(EditImageOptions(model=selector, image=b"i", prompt="p", operation={"kind": "inpaint", "mask": "face"}).operation, InpaintEdit)
    with pytest.raises(ValueError):
        EditImageOptions(model=selector, image=b"i", prompt="p", operation="smudge")


def test_outpaint_rejects_unknown_direction():
    with pytest.raises(ValidationError):
        OutpaintEdit(direction="diagonal")
