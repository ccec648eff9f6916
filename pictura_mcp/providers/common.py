from __future__ import annotations

import httpx

from ..exceptions import ConfigurationError, ProviderError
from ..provider_spec import ProviderConfig


def require_api_key(config: ProviderConfig, label: str) -> str:
    """Return ``config["api_key"]`` or fail with a setup hint."""
    api_key = config.get("api_key")
    if not api_key:
        raise ConfigurationError(f"{label} API key is required")
    return str(api_key)


def http_error(label: str, provider: str, exc: httpx.HTTPError) -> ProviderError:
    """Translate an httpx failure into a :class:`ProviderError`.

    The status code stays in the message so the retry classifier can see it.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ProviderError(f"{label} request timed out", provider=provider)
    if isinstance(exc, httpx.HTTPStatusError):
        detail = exc.response.text or exc.response.reason_phrase
        return ProviderError(f"{label} API error ({exc.response.status_code}): {detail}", provider=provider)
    return ProviderError(f"{label} network error: {exc}", provider=provider)


__all__ = ["require_api_key", "http_error"]
