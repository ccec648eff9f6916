from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(env_nested_delimiter="__")

    pictura_project_root: str | None = Field(default=None, description="Project root for the project-scope config and output directory")
    log_level: str = Field(default="INFO", description="Minimum level for server logs written to stderr")

    @property
    def project_root(self) -> Path:
        """Resolve the project root, defaulting to the current working directory."""
        return Path(self.pictura_project_root) if self.pictura_project_root else Path.cwd()


class ApiKeyOverrides(BaseSettings):
    """Provider API keys taken from ``PICTURA_<PROVIDER>_API_KEY``.

    Not cached: construct a fresh instance to pick up runtime env changes.
    """

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(env_prefix="PICTURA_")

    gemini_api_key: str | None = Field(default=None, description="API key for Google Gemini")
    openai_api_key: str | None = Field(default=None, description="API key for OpenAI")
    topaz_api_key: str | None = Field(default=None, description="API key for Topaz Labs")
    replicate_api_key: str | None = Field(default=None, description="API key for Replicate")

    def for_provider(self, provider: str) -> str | None:
        """Return the override for ``provider``; empty values count as unset."""
        return getattr(self, f"{provider}_api_key", None) or None


@lru_cache
def get_settings() -> Settings:
    return Settings()
