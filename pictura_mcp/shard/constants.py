"""Project constants shared by the orchestrators, config layer and tools.

Provider-specific model ids and native knobs belong in the individual
adapters under ``pictura_mcp.providers``; keep this module vendor-agnostic.
"""

from __future__ import annotations

from typing import Final

from .enums import AspectRatio, ImageSize, PresetBundle

# ----------------------------- Ratio geometry ------------------------------- #

# Canonical pixel dimensions at the 2K tier. Other tiers are derived by
# multiplying with ``ImageSize.multiplier`` and rounding.
BASE_DIMENSIONS: Final[dict[AspectRatio, tuple[int, int]]] = {
    AspectRatio.ONE_ONE: (2048, 2048),
    AspectRatio.TWO_THREE: (1365, 2048),
    AspectRatio.THREE_TWO: (2048, 1365),
    AspectRatio.THREE_FOUR: (1536, 2048),
    AspectRatio.FOUR_THREE: (2048, 1536),
    AspectRatio.FOUR_FIVE: (1638, 2048),
    AspectRatio.FIVE_FOUR: (2048, 1638),
    AspectRatio.NINE_SIXTEEN: (1152, 2048),
    AspectRatio.SIXTEEN_NINE: (2048, 1152),
    AspectRatio.TWENTY_ONE_NINE: (2048, 878),
}

DEFAULT_IMAGE_SIZE: Final[ImageSize] = ImageSize.TWO_K
DEFAULT_UPSCALE_FACTOR: Final[int] = 4

PRESET_BUNDLES: Final[dict[PresetBundle, tuple[AspectRatio, ...]]] = {
    PresetBundle.SOCIAL: (AspectRatio.ONE_ONE, AspectRatio.NINE_SIXTEEN, AspectRatio.SIXTEEN_NINE),
    PresetBundle.WEB: (AspectRatio.SIXTEEN_NINE, AspectRatio.FOUR_THREE, AspectRatio.ONE_ONE),
    PresetBundle.PORTRAIT: (AspectRatio.TWO_THREE, AspectRatio.THREE_FOUR, AspectRatio.FOUR_FIVE, AspectRatio.NINE_SIXTEEN),
    PresetBundle.LANDSCAPE: (AspectRatio.THREE_TWO, AspectRatio.FOUR_THREE, AspectRatio.SIXTEEN_NINE, AspectRatio.TWENTY_ONE_NINE),
    PresetBundle.PRINT: (AspectRatio.TWO_THREE, AspectRatio.THREE_FOUR, AspectRatio.FOUR_FIVE),
}

# ------------------------------ Config layout ------------------------------- #

CONFIG_RELATIVE_PATH: Final[str] = ".claude/plugins/maccing/pictura/config.json"
DEFAULT_OUTPUT_DIR: Final[str] = ".claude/plugins/maccing/pictura/output"
CONFIG_FILE_MODE: Final[int] = 0o600

# Env var overriding the stored ``api_key`` of each provider.
PROVIDER_API_KEY_ENV: Final[dict[str, str]] = {
    "gemini": "PICTURA_GEMINI_API_KEY",
    "openai": "PICTURA_OPENAI_API_KEY",
    "topaz": "PICTURA_TOPAZ_API_KEY",
    "replicate": "PICTURA_REPLICATE_API_KEY",
}

# ------------------------------ Output layout ------------------------------- #

IMAGE_EXTENSION: Final[str] = ".png"
TIMESTAMP_DIR_PATTERN: Final[str] = r"^\d{4}-\d{2}-\d{2}-\d{6}$"
DEFAULT_LIST_LIMIT: Final[int] = 10
BATCH_LOOKUP_LIMIT: Final[int] = 100
MAX_SLUG_LENGTH: Final[int] = 50
GALLERY_FILENAME: Final[str] = "gallery.html"

# ------------------------------ Retry defaults ------------------------------ #

RETRY_BASE_DELAY_MS: Final[int] = 2000
RETRY_MAX_DELAY_MS: Final[int] = 30000
RETRY_JITTER_MS: Final[int] = 3000

# General error codes surfaced to MCP clients
ERROR_CODE_PROVIDER_ERROR: Final[str] = "provider_error"
ERROR_CODE_PROVIDER_UNAVAILABLE: Final[str] = "provider_unavailable"
ERROR_CODE_UNSUPPORTED_OPERATION: Final[str] = "unsupported_operation"
ERROR_CODE_CONFIGURATION: Final[str] = "configuration_error"
