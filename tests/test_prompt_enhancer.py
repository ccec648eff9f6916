from __future__ import annotations

import pytest

from pictura_mcp.core.prompt_enhancer import PromptEnhancer, detect_style
from pictura_mcp.shard.enums import EnhanceStyle


@pytest.mark.parametrize(
    ("prompt", "style"),
    [
        ("portrait of an old sailor", EnhanceStyle.PHOTO),
        ("anime girl under cherry blossoms", EnhanceStyle.ART),
        ("product shot of a wristwatch", EnhanceStyle.COMMERCIAL),
        ("a quiet harbor", EnhanceStyle.AUTO),
    ],
)
def test_detect_style(prompt, style):
    assert detect_style(prompt) == style


def test_minimal_leaves_prompt_alone():
    assert PromptEnhancer().enhance("a quiet harbor", EnhanceStyle.MINIMAL) == "a quiet harbor"


def test_explicit_style_appends_profile():
    enhanced = PromptEnhancer().enhance("a quiet harbor", "photo")

    assert enhanced.startswith("a quiet harbor, ")
    assert "85mm lens" in enhanced
    assert "golden hour" in enhanced


def test_auto_uses_detected_style():
    enhanced = PromptEnhancer().enhance("watercolor of a fox")

    assert "cel-shading" in enhanced


def test_auto_falls_back_to_generic():
    enhanced = PromptEnhancer().enhance("a quiet harbor", EnhanceStyle.AUTO)

    assert enhanced == "a quiet harbor, high quality, detailed, sharp focus, well composed, balanced lighting"
