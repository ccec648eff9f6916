from __future__ import annotations

import os
import sys

import pytest

# Add repository root to sys.path for `import pictura_mcp.*` in tests
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from pictura_mcp.provider_spec import ImageProviderSpec, create_image_provider  # noqa: E402
from pictura_mcp.registry import clear_provider_registry, clear_upscale_provider_registry  # noqa: E402
from pictura_mcp.schema import ImageResult, ModelCapabilities, ModelDefinition  # noqa: E402
from pictura_mcp.shard.enums import AspectRatio, ImageSize  # noqa: E402

API_KEY_VARS = [
    "PICTURA_GEMINI_API_KEY",
    "PICTURA_OPENAI_API_KEY",
    "PICTURA_TOPAZ_API_KEY",
    "PICTURA_REPLICATE_API_KEY",
]


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Start every test with empty registries and no provider keys in the env."""
    for var in API_KEY_VARS:
        monkeypatch.delenv(var, raising=False)
    clear_provider_registry()
    clear_upscale_provider_registry()
    yield
    clear_provider_registry()
    clear_upscale_provider_registry()


@pytest.fixture
def capabilities() -> ModelCapabilities:
    return ModelCapabilities(
        max_resolution=ImageSize.FOUR_K,
        supported_ratios=list(AspectRatio),
        supports_reference=True,
        supports_edit=True,
        supports_inpaint=True,
        supports_outpaint=True,
    )


@pytest.fixture
def make_result():
    def _make(ratio: AspectRatio | str = AspectRatio.ONE_ONE, data: bytes = b"png-bytes", provider: str = "mock", model: str = "m1") -> ImageResult:
        return ImageResult(data=data, ratio=ratio, width=1024, height=1024, provider=provider, model=model)

    return _make


@pytest.fixture
def make_provider(capabilities):
    """Build an ImageProvider around the given async callables."""

    def _make(name: str, generate=None, edit=None, models: tuple[str, ...] = ("m1", "m2")):
        async def _unused(*_args, **_kwargs):
            raise AssertionError(f"{name}.generate_image was not expected to be called")

        definitions = {m: ModelDefinition(id=f"{name}-{m}", capabilities=capabilities) for m in models}
        return create_image_provider(
            ImageProviderSpec(name=name, models=definitions, generate_image=generate or _unused, edit_image=edit)
        )

    return _make
