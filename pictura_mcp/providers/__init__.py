from __future__ import annotations

from ..registry import register_provider, register_upscale_provider
from . import gemini, openai, replicate, topaz


def register_builtin_providers() -> None:
    """Register every bundled adapter in the shared registries."""
    register_provider(gemini.gemini)
    register_provider(openai.openai)
    register_upscale_provider(topaz.topaz)
    register_upscale_provider(replicate.replicate)


__all__ = ["register_builtin_providers"]
