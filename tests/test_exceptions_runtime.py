from __future__ import annotations

import httpx
import pytest

from pictura_mcp.core.retry import RetryError
from pictura_mcp.exceptions import (
    AllProvidersFailedError,
    ConfigNotLoadedError,
    ConfigurationError,
    EditNotSupportedError,
    ImageGenerationError,
    ProviderError,
    ProviderNotRegisteredError,
    UnknownModelError,
)
from pictura_mcp.providers.common import http_error, require_api_key
from pictura_mcp.utils.error_helpers import augment_with_setup_tip, permission_fix_hint


def test_hierarchy():
    assert issubclass(ProviderNotRegisteredError, LookupError)
    assert issubclass(ConfigNotLoadedError, ConfigurationError)
    for exc in (ProviderError, AllProvidersFailedError, ConfigurationError, EditNotSupportedError, RetryError):
        assert issubclass(exc, ImageGenerationError)


def test_aggregate_message_keeps_order():
    err = AllProvidersFailedError([RuntimeError("first"), ProviderNotRegisteredError("ghost"), RuntimeError("third")])

    assert str(err) == "All providers failed: first, Provider not registered: ghost, third"
    assert len(err.errors) == 3


def test_setup_tip_for_credential_problems():
    message = require_api_key_error().user_message

    assert message.startswith("Gemini API key is required")
    assert "pictura_setup" in message
    assert "PICTURA_<PROVIDER>_API_KEY" in message


def test_no_tip_for_other_errors():
    assert ProviderError("Gemini returned no image").user_message == "Gemini returned no image"


def test_tip_added_once():
    once = augment_with_setup_tip("401 unauthorized")

    assert augment_with_setup_tip(once) == once


def test_unknown_model_message():
    assert str(UnknownModelError("ultra", "gemini")) == "Unknown model: ultra for provider gemini"


def test_permission_hint():
    assert permission_fix_hint("/home/me/config.json") == "Run: chmod 600 /home/me/config.json"


def test_http_error_translation():
    request = httpx.Request("POST", "https://api.example.test/v1/jobs")

    status = httpx.HTTPStatusError("boom", request=request, response=httpx.Response(503, text="overloaded", request=request))
    assert str(http_error("Topaz", "topaz", status)) == "Topaz API error (503): overloaded"

    timeout = httpx.ReadTimeout("slow", request=request)
    assert str(http_error("Topaz", "topaz", timeout)) == "Topaz request timed out"

    network = httpx.ConnectError("refused", request=request)
    translated = http_error("Replicate", "replicate", network)
    assert translated.provider == "replicate"
    assert "network error" in str(translated)


def require_api_key_error() -> ConfigurationError:
    with pytest.raises(ConfigurationError) as exc_info:
        require_api_key({"api_key": ""}, "Gemini")
    return exc_info.value
