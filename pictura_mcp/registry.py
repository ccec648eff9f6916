"""Process-wide provider registries.

Two independent registries exist, one for generation/edit providers and one
for upscale providers. Orchestrators resolve providers by name through them
and accept an explicit ``registry=`` for isolation in tests.
"""

from __future__ import annotations

from typing import Generic, Protocol, TypeVar

from loguru import logger

from .provider_spec import ImageProvider, UpscaleProvider


class _Named(Protocol):
    @property
    def name(self) -> str: ...


P = TypeVar("P", bound=_Named)


class ProviderRegistry(Generic[P]):
    """Mutable mapping from provider name to adapter.

    Re-registering a name overwrites the previous adapter.
    """

    def __init__(self, kind: str = "image") -> None:
        self.kind = kind
        self._providers: dict[str, P] = {}

    def register(self, provider: P) -> None:
        if provider.name in self._providers:
            logger.debug(f"Replacing {self.kind} provider '{provider.name}'")
        self._providers[provider.name] = provider

    def get(self, name: str) -> P | None:
        return self._providers.get(name)

    def clear(self) -> None:
        self._providers.clear()

    def names(self) -> list[str]:
        return list(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)


image_providers: ProviderRegistry[ImageProvider] = ProviderRegistry("image")
upscale_providers: ProviderRegistry[UpscaleProvider] = ProviderRegistry("upscale")


def register_provider(provider: ImageProvider) -> None:
    """Register a generation provider, indexed by its name."""
    image_providers.register(provider)


def get_provider(name: str) -> ImageProvider | None:
    return image_providers.get(name)


def clear_provider_registry() -> None:
    """Remove every generation provider; used to isolate tests."""
    image_providers.clear()


def register_upscale_provider(provider: UpscaleProvider) -> None:
    upscale_providers.register(provider)


def get_upscale_provider(name: str) -> UpscaleProvider | None:
    return upscale_providers.get(name)


def clear_upscale_provider_registry() -> None:
    upscale_providers.clear()


__all__ = [
    "ProviderRegistry",
    "image_providers",
    "upscale_providers",
    "register_provider",
    "get_provider",
    "clear_provider_registry",
    "register_upscale_provider",
    "get_upscale_provider",
    "clear_upscale_provider_registry",
]
