from __future__ import annotations

from .shard import constants as C
from .utils.error_helpers import augment_with_setup_tip


class ImageGenerationError(Exception):
    """Base class for errors surfaced to MCP clients.

    ``user_message`` is what the tool layer shows; it carries remediation
    hints where the failure is something the user can fix.
    """

    code: str = C.ERROR_CODE_PROVIDER_ERROR

    @property
    def user_message(self) -> str:
        return augment_with_setup_tip(str(self))


# ============================================================================
# Registration errors
# ============================================================================


class ProviderRegistrationError(ImageGenerationError, LookupError):
    """A provider or model could not be resolved by name."""

    code = C.ERROR_CODE_PROVIDER_UNAVAILABLE


class ProviderNotRegisteredError(ProviderRegistrationError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Provider not registered: {provider}")


class UpscaleProviderNotRegisteredError(ProviderRegistrationError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Upscale provider not registered: {provider}")


class UnknownModelError(ProviderRegistrationError):
    def __init__(self, model: str, provider: str):
        self.model = model
        self.provider = provider
        super().__init__(f"Unknown model: {model} for provider {provider}")


# ============================================================================
# Capability errors
# ============================================================================


class CapabilityError(ImageGenerationError):
    code = C.ERROR_CODE_UNSUPPORTED_OPERATION


class EditNotSupportedError(CapabilityError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Provider {provider} does not support edit operations")


# ============================================================================
# Provider call errors
# ============================================================================


class ProviderError(ImageGenerationError):
    """A vendor call failed or returned no usable image."""

    def __init__(self, message: str, provider: str | None = None):
        self.provider = provider
        super().__init__(message)


class AllProvidersFailedError(ImageGenerationError):
    """Every member of a fallback chain failed.

    ``errors`` keeps one entry per attempt, in attempt order.
    """

    def __init__(self, errors: list[Exception]):
        self.errors = list(errors)
        super().__init__(f"All providers failed: {', '.join(str(e) for e in self.errors)}")


# ============================================================================
# Configuration errors
# ============================================================================


class ConfigurationError(ImageGenerationError):
    code = C.ERROR_CODE_CONFIGURATION


class ConfigNotLoadedError(ConfigurationError):
    def __init__(self, message: str = "Config not loaded"):
        super().__init__(message)


__all__ = [
    "ImageGenerationError",
    "ProviderRegistrationError",
    "ProviderNotRegisteredError",
    "UpscaleProviderNotRegisteredError",
    "UnknownModelError",
    "CapabilityError",
    "EditNotSupportedError",
    "ProviderError",
    "AllProvidersFailedError",
    "ConfigurationError",
    "ConfigNotLoadedError",
]
