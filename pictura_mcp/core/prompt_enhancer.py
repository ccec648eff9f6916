"""Keyword style detection and style-specific prompt enrichment."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..shard.enums import EnhanceStyle


@dataclass(frozen=True)
class StyleProfile:
    modifiers: tuple[str, ...] = field(default_factory=tuple)
    technical: tuple[str, ...] = field(default_factory=tuple)
    lighting: tuple[str, ...] = field(default_factory=tuple)

    def apply(self, prompt: str) -> str:
        parts = [prompt]
        for group in (self.modifiers, self.technical, self.lighting):
            if group:
                parts.append(", ".join(group))
        return ", ".join(parts)


STYLE_PROFILES: dict[EnhanceStyle, StyleProfile] = {
    EnhanceStyle.PHOTO: StyleProfile(
        modifiers=("realistic", "high detail", "photorealistic"),
        technical=("85mm lens", "shallow depth of field", "sharp focus"),
        lighting=("golden hour", "natural lighting", "soft shadows"),
    ),
    EnhanceStyle.ART: StyleProfile(
        modifiers=("stylized", "vibrant colors", "artistic interpretation"),
        technical=("cel-shading", "clean lines", "dynamic composition"),
        lighting=("dramatic lighting", "ambient glow", "color contrast"),
    ),
    EnhanceStyle.COMMERCIAL: StyleProfile(
        modifiers=("professional", "product photography", "studio quality"),
        technical=("high resolution", "clean background", "commercial grade"),
        lighting=("studio lighting", "soft box", "even illumination"),
    ),
}

# Used by auto mode when no keyword matches.
GENERIC_PROFILE = StyleProfile(
    modifiers=("high quality", "detailed"),
    technical=("sharp focus", "well composed"),
    lighting=("balanced lighting",),
)

# Checked in order; the first style with a matching keyword wins.
STYLE_KEYWORDS: dict[EnhanceStyle, tuple[str, ...]] = {
    EnhanceStyle.PHOTO: (
        "photo",
        "photograph",
        "realistic",
        "portrait",
        "snapshot",
        "camera",
        "lens",
        "photography",
        "photorealistic",
        "lifelike",
    ),
    EnhanceStyle.ART: (
        "cartoon",
        "anime",
        "illustration",
        "drawing",
        "painting",
        "sketch",
        "comic",
        "manga",
        "watercolor",
        "oil painting",
        "digital art",
        "concept art",
        "stylized",
        "artistic",
    ),
    EnhanceStyle.COMMERCIAL: (
        "product",
        "advertisement",
        "marketing",
        "studio",
        "commercial",
        "catalog",
        "e-commerce",
        "product shot",
        "packshot",
        "promotional",
    ),
}


def detect_style(prompt: str) -> EnhanceStyle:
    """Return the first style whose keywords occur in ``prompt``, else ``AUTO``."""
    lower = prompt.lower()
    for style, keywords in STYLE_KEYWORDS.items():
        if any(keyword in lower for keyword in keywords):
            return style
    return EnhanceStyle.AUTO


class PromptEnhancer:
    """Append style modifiers, technical settings and lighting to a prompt.

    ``minimal`` returns the prompt unchanged. ``auto`` detects the style from
    keywords and falls back to a generic quality profile.
    """

    def enhance(self, prompt: str, style: EnhanceStyle | str = EnhanceStyle.AUTO) -> str:
        style = EnhanceStyle(style)
        if style == EnhanceStyle.MINIMAL:
            return prompt

        if style == EnhanceStyle.AUTO:
            style = detect_style(prompt)
        profile = STYLE_PROFILES.get(style, GENERIC_PROFILE)
        return profile.apply(prompt)


__all__ = [
    "StyleProfile",
    "STYLE_PROFILES",
    "GENERIC_PROFILE",
    "STYLE_KEYWORDS",
    "detect_style",
    "PromptEnhancer",
]
