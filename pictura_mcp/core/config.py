"""File-backed configuration: single-scope and layered user/project managers.

On disk the config is JSON with camelCase keys (``defaultRatio``, ``apiKey``).
In memory it is a :class:`PicturaConfig` with snake_case attributes, and the
provenance map of :class:`ScopedConfigManager` uses snake_case dotted paths
such as ``providers.generation.gemini.api_key``.
"""

from __future__ import annotations

import asyncio
import os
import stat
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..exceptions import ConfigNotLoadedError, ConfigurationError
from ..settings import ApiKeyOverrides
from ..shard import constants as C
from ..shard.enums import (
    AspectRatio,
    ConfigScope,
    ConfigSource,
    ConsistencyMode,
    GenerationProvider,
    ImageSize,
    ProviderRole,
    Quality,
    UpscaleProvider,
)
from ..utils.error_helpers import permission_fix_hint

# ============================================================================
# Schema
# ============================================================================


class _ConfigModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GeminiConfig(_ConfigModel):
    api_key: str
    default_model: Literal["flash", "pro"] = "pro"


class OpenAIConfig(_ConfigModel):
    api_key: str


class TopazConfig(_ConfigModel):
    api_key: str
    default_model: str = "standard-max"


class ReplicateConfig(_ConfigModel):
    api_key: str


class GenerationProviders(_ConfigModel):
    default: GenerationProvider = GenerationProvider.GEMINI
    gemini: GeminiConfig | None = None
    openai: OpenAIConfig | None = None


class UpscaleProviders(_ConfigModel):
    default: UpscaleProvider = UpscaleProvider.TOPAZ
    topaz: TopazConfig | None = None
    replicate: ReplicateConfig | None = None


class ProvidersConfig(_ConfigModel):
    generation: GenerationProviders = Field(default_factory=GenerationProviders)
    upscale: UpscaleProviders = Field(default_factory=UpscaleProviders)


class PicturaConfig(_ConfigModel):
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    default_ratio: AspectRatio = AspectRatio.SIXTEEN_NINE
    default_quality: Quality = Quality.PRO
    image_size: ImageSize = ImageSize.TWO_K
    default_consistency: ConsistencyMode = ConsistencyMode.GENERATE
    retry_attempts: int = Field(default=3, ge=1, le=10)
    output_dir: str = C.DEFAULT_OUTPUT_DIR


class ScopedConfig(BaseModel):
    """Merged config plus which layer last set each key."""

    config: PicturaConfig
    sources: dict[str, ConfigSource]


# Which provider group each known provider lives in.
PROVIDER_ROLES: dict[str, ProviderRole] = {
    "gemini": ProviderRole.GENERATION,
    "openai": ProviderRole.GENERATION,
    "topaz": ProviderRole.UPSCALE,
    "replicate": ProviderRole.UPSCALE,
}

ConfigInput = PicturaConfig | Mapping[str, Any]


def _validate(data: ConfigInput, *, origin: str) -> PicturaConfig:
    if isinstance(data, PicturaConfig):
        return data
    try:
        return PicturaConfig.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {origin}: {e}") from e


def _provider_config(config: PicturaConfig, role: ProviderRole | str, name: str) -> dict[str, Any]:
    group = getattr(config.providers, ProviderRole(role).value)
    entry = getattr(group, name, None)
    data = entry.model_dump() if isinstance(entry, BaseModel) else {}

    override = ApiKeyOverrides().for_provider(name)
    if override:
        data["api_key"] = override
    return data


# ============================================================================
# Single-scope manager
# ============================================================================


class ConfigManager:
    """Load and save one JSON config file, caching the parsed result.

    The cache is only refreshed by :meth:`save` or :meth:`clear_cache`; edits
    made to the file by other processes are not noticed until then.
    """

    def __init__(self, config_path: str | Path):
        self._path = Path(config_path)
        self._cached: PicturaConfig | None = None

    @property
    def config_path(self) -> Path:
        return self._path

    async def exists(self) -> bool:
        return await asyncio.to_thread(self._path.is_file)

    async def load(self) -> PicturaConfig:
        if self._cached is not None:
            return self._cached

        try:
            raw = await asyncio.to_thread(self._path.read_bytes)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config not found at {self._path}. Run the 'pictura_setup' tool first.") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read config at {self._path}: {e}") from e

        try:
            config = PicturaConfig.model_validate_json(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValidationError) as e:
            raise ConfigurationError(f"Invalid config in {self._path}: {e}") from e

        self._cached = config
        return config

    async def save(self, config: ConfigInput) -> PicturaConfig:
        """Validate ``config``, write it with mode 0600 and refresh the cache."""
        validated = _validate(config, origin=str(self._path))
        payload = validated.model_dump_json(by_alias=True, exclude_none=True, indent=2)
        await asyncio.to_thread(self._write, payload)
        self._cached = validated
        logger.debug(f"Saved config to {self._path}")
        return validated

    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(payload + "\n", encoding="utf-8")
        # Explicit chmod so the process umask cannot widen the mode
        os.chmod(self._path, C.CONFIG_FILE_MODE)

    def clear_cache(self) -> None:
        self._cached = None

    def get_provider_config(self, role: ProviderRole | str, name: str) -> dict[str, Any]:
        """Copy of one provider's settings; the env var wins for ``api_key``."""
        if self._cached is None:
            raise ConfigNotLoadedError()
        return _provider_config(self._cached, role, name)

    async def verify_permissions(self) -> bool:
        """Warn when the file is readable by anyone but its owner."""
        try:
            st = await asyncio.to_thread(self._path.stat)
        except OSError:
            return True

        mode = stat.S_IMODE(st.st_mode)
        if mode != C.CONFIG_FILE_MODE:
            logger.warning(
                f"Config file {self._path} has insecure permissions ({mode:o}), expected 600. "
                f"{permission_fix_hint(str(self._path))}"
            )
            return False
        return True


# ============================================================================
# Scoped manager
# ============================================================================


def _merge_layer(target: dict[str, Any], layer: dict[str, Any], sources: dict[str, ConfigSource], source: ConfigSource) -> None:
    for key, value in layer.items():
        if key != "providers" or not isinstance(value, dict):
            target[key] = value
            sources[key] = source
            continue

        providers = target.setdefault("providers", {})
        for role, group in value.items():
            current = dict(providers.get(role) or {})
            for name, entry in group.items():
                path = f"providers.{role}.{name}"
                if isinstance(entry, dict):
                    current[name] = {**(current.get(name) or {}), **entry}
                    for leaf in entry:
                        sources[f"{path}.{leaf}"] = source
                else:
                    current[name] = entry
                sources[path] = source
            providers[role] = current
            sources[f"providers.{role}"] = source
        sources["providers"] = source


def _apply_env_overrides(target: dict[str, Any], sources: dict[str, ConfigSource]) -> None:
    overrides = ApiKeyOverrides()
    for name, role in PROVIDER_ROLES.items():
        value = overrides.for_provider(name)
        if not value:
            continue
        group = target.setdefault("providers", {}).setdefault(role.value, {})
        group[name] = {**(group.get(name) or {}), "api_key": value}
        sources[f"providers.{role.value}.{name}.api_key"] = ConfigSource.ENV


class ScopedConfigManager:
    """Layer defaults, user config, project config and env overrides.

    * user scope: ``~/.claude/plugins/maccing/pictura/config.json``
    * project scope: ``<project_root>/.claude/plugins/maccing/pictura/config.json``

    A layer that exists but fails to load is skipped. ``output_dir`` always
    resolves to the project-relative default, whatever the layers say.
    """

    def __init__(self, project_root: str | Path | None = None, home: str | Path | None = None):
        self._root = Path(project_root) if project_root is not None else Path.cwd()
        home_dir = Path(home) if home is not None else Path.home()
        self._user = ConfigManager(home_dir / C.CONFIG_RELATIVE_PATH)
        self._project = ConfigManager(self._root / C.CONFIG_RELATIVE_PATH)
        self._cached: ScopedConfig | None = None

    @property
    def project_root(self) -> Path:
        return self._root

    @property
    def user_config_path(self) -> Path:
        return self._user.config_path

    @property
    def project_config_path(self) -> Path:
        return self._project.config_path

    def _manager(self, scope: ConfigScope | str) -> ConfigManager:
        return self._user if ConfigScope(scope) == ConfigScope.USER else self._project

    async def exists_any(self) -> bool:
        user_exists, project_exists = await asyncio.gather(self._user.exists(), self._project.exists())
        return user_exists or project_exists

    async def exists_in_scope(self, scope: ConfigScope | str) -> bool:
        return await self._manager(scope).exists()

    def config_path(self, scope: ConfigScope | str) -> Path:
        return self._manager(scope).config_path

    async def verify_permissions(self, scope: ConfigScope | str) -> bool:
        return await self._manager(scope).verify_permissions()

    async def load_scope(self, scope: ConfigScope | str) -> PicturaConfig | None:
        """Config stored in one scope only, or ``None`` when that file is absent."""
        manager = self._manager(scope)
        if not await manager.exists():
            return None
        return await manager.load()

    async def load_merged(self) -> ScopedConfig:
        if self._cached is not None:
            return self._cached

        merged = PicturaConfig().model_dump()
        sources: dict[str, ConfigSource] = {key: ConfigSource.DEFAULT for key in PicturaConfig.model_fields}

        for scope in (ConfigScope.USER, ConfigScope.PROJECT):
            manager = self._manager(scope)
            if not await manager.exists():
                continue
            try:
                layer = await manager.load()
            except ConfigurationError as e:
                logger.debug(f"Skipping {scope} config layer: {e}")
                continue
            _merge_layer(merged, layer.model_dump(exclude_unset=True), sources, ConfigSource(scope.value))

        _apply_env_overrides(merged, sources)

        config = _validate(merged, origin="merged config")
        config = config.model_copy(update={"output_dir": C.DEFAULT_OUTPUT_DIR})
        sources["output_dir"] = ConfigSource.DEFAULT

        self._cached = ScopedConfig(config=config, sources=sources)
        return self._cached

    async def save_to_scope(self, scope: ConfigScope | str, config: ConfigInput) -> PicturaConfig:
        saved = await self._manager(scope).save(config)
        self.clear_cache()
        return saved

    def get_provider_config(self, role: ProviderRole | str, name: str) -> dict[str, Any]:
        if self._cached is None:
            raise ConfigNotLoadedError("Config not loaded. Call load_merged() first.")
        return _provider_config(self._cached.config, role, name)

    def clear_cache(self) -> None:
        self._cached = None
        self._user.clear_cache()
        self._project.clear_cache()


__all__ = [
    "GeminiConfig",
    "OpenAIConfig",
    "TopazConfig",
    "ReplicateConfig",
    "GenerationProviders",
    "UpscaleProviders",
    "ProvidersConfig",
    "PicturaConfig",
    "ScopedConfig",
    "PROVIDER_ROLES",
    "ConfigManager",
    "ScopedConfigManager",
]
