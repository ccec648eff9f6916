
import argparse
import asyncio
import webbrowser
from functools import lru_cache, partial
from pathlib import Path
from typing import Annotated, Any, Literal, NoReturn

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.tools.tool import ToolResult
from loguru import logger
from pydantic import Field

from .core.config import PicturaConfig, ScopedConfigManager
from .core.output import OutputManager
from .core.prompt_enhancer import PromptEnhancer
from .core.retry import is_retryable_error, with_retry
from .edit import EditImageOptions, build_edit_operation, edit_image
from .exceptions import (
    AllProvidersFailedError,
    CapabilityError,
    ConfigurationError,
    EditNotSupportedError,
    ImageGenerationError,
    ProviderNotRegisteredError,
    ProviderRegistrationError,
    UpscaleProviderNotRegisteredError,
)
from .generate import GenerateImagesOptions, generate_images
from .providers import register_builtin_providers
from .registry import get_provider, get_upscale_provider
from .schema import BatchInfo, ImageDescriptor, ImageResult, ModelSelector, PicturaToolStructured
from .settings import get_settings
from .shard import constants as C
from .shard.enums import (
    AspectRatio,
    ConfigScope,
    EditOperationKind,
    EnhanceStyle,
    ExtendDirection,
    GenerationProvider,
    ImageSize,
    PresetBundle,
    ProviderRole,
    Quality,
    UpscaleProvider,
)
from .shard.instructions import SERVER_INSTRUCTIONS, TOOL_DESCRIPTIONS
from .upscale import UpscaleOptions, upscale_image
from .utils.gallery import filter_batches, write_gallery
from .utils.logging import configure_logging
from .utils.slug import generate_slug, generate_timestamp

app = FastMCP("pictura", instructions=SERVER_INSTRUCTIONS)

register_builtin_providers()

# (provider, quality) -> model aliases in fallback order
MODEL_CHAINS: dict[tuple[str, Quality], tuple[str, ...]] = {
    (GenerationProvider.GEMINI, Quality.DRAFT): ("flash",),
    (GenerationProvider.GEMINI, Quality.PRO): ("pro", "flash"),
    (GenerationProvider.OPENAI, Quality.DRAFT): ("gpt-image-1-mini",),
    (GenerationProvider.OPENAI, Quality.PRO): ("gpt-image-1.5", "gpt-image-1"),
}

# Failures that another attempt cannot fix.
_FATAL_ERRORS = (ConfigurationError, ProviderRegistrationError, CapabilityError)


def _handle_image_generation_error(e: Exception) -> NoReturn:
    """Convert an exception to a ToolError so FastMCP reports ``isError=True``."""
    if isinstance(e, ToolError):
        raise e
    if isinstance(e, ImageGenerationError):
        raise ToolError(e.user_message)

    logger.error(f"Unexpected error: {type(e).__name__}: {e}")
    raise ToolError("An unexpected error occurred. Please try again.")


@lru_cache
def get_config_manager() -> ScopedConfigManager:
    return ScopedConfigManager(get_settings().project_root)


def _output_manager(manager: ScopedConfigManager, config: PicturaConfig) -> OutputManager:
    return OutputManager(manager.project_root / config.output_dir)


def _should_retry(error: BaseException) -> bool:
    errors = error.errors if isinstance(error, AllProvidersFailedError) else [error]
    return any(not isinstance(e, _FATAL_ERRORS) and is_retryable_error(e) for e in errors)


def _log_retry(attempt: int, error: BaseException, delay_ms: int) -> None:
    logger.warning(f"Attempt {attempt} failed ({error}); retrying in {delay_ms / 1000:.1f}s")


async def _retrying(operation: Any, config: PicturaConfig) -> Any:
    return await with_retry(
        operation,
        max_attempts=config.retry_attempts,
        base_delay_ms=C.RETRY_BASE_DELAY_MS,
        max_delay_ms=C.RETRY_MAX_DELAY_MS,
        jitter_ms=C.RETRY_JITTER_MS,
        should_retry=_should_retry,
        on_retry=_log_retry,
    )


def _generation_chain(provider_name: str, quality: Quality, provider_config: dict[str, Any]) -> list[ModelSelector]:
    provider = get_provider(provider_name)
    if provider is None:
        raise ProviderNotRegisteredError(provider_name)

    aliases = MODEL_CHAINS[(GenerationProvider(provider_name), Quality(quality))]
    if provider_name == GenerationProvider.GEMINI and quality == Quality.PRO and provider_config.get("default_model") == "flash":
        aliases = ("flash",)
    return [provider(alias) for alias in aliases]


def _edit_chain(provider_name: str, provider_config: dict[str, Any]) -> list[ModelSelector]:
    chain = [s for s in _generation_chain(provider_name, Quality.PRO, provider_config) if s.capabilities.supports_edit]
    if not chain:
        raise EditNotSupportedError(provider_name)
    return chain


def _resolve_ratios(ratios: list[AspectRatio] | None, preset: PresetBundle | None, default: AspectRatio) -> list[AspectRatio]:
    if preset is not None:
        return list(C.PRESET_BUNDLES[PresetBundle(preset)])
    if ratios:
        # Keep first occurrence order
        return list(dict.fromkeys(ratios))
    return [default]


def _infer_operation(mask: str | None, extend: ExtendDirection | None, style_path: str | None) -> EditOperationKind:
    if style_path:
        return EditOperationKind.RESTYLE
    if extend:
        return EditOperationKind.OUTPAINT
    if mask:
        return EditOperationKind.INPAINT
    return EditOperationKind.REFINE


async def _read_bytes(path: str | Path) -> bytes:
    try:
        return await asyncio.to_thread(Path(path).read_bytes)
    except OSError as e:
        raise ToolError(f"Could not read image at {path}: {e}") from e


async def _find_batch(output: OutputManager, slug: str) -> BatchInfo:
    batch = await output.load_batch(slug)
    if batch is None:
        raise ToolError(f"No batch found for slug: {slug}. Use pictura_list to see available batches.")
    return batch


def _tool_result(
    headline: str,
    results: list[ImageResult],
    paths: list[Path],
    *,
    slug: str,
    timestamp: str,
    meta: dict[str, Any] | None = None,
) -> ToolResult:
    descriptors = [
        ImageDescriptor(ratio=str(r.ratio), width=r.width, height=r.height, file_path=str(p.resolve()))
        for r, p in zip(results, paths)
    ]
    lines = [headline, f"Slug: {slug}", f"Timestamp: {timestamp}"]
    lines += [f"- {d.ratio} ({d.width}x{d.height}): {d.file_path}" for d in descriptors]

    first = results[0] if results else None
    structured = PicturaToolStructured(
        provider=first.provider if first else None,
        model=first.model if first else None,
        slug=slug,
        timestamp=timestamp,
        image_count=len(descriptors),
        images=descriptors,
        meta=meta or {},
    )
    return ToolResult(content="\n".join(lines), structured_content=structured.model_dump())


def _mask_key(value: str) -> str:
    if len(value) <= 8:
        return "****"
    return f"{value[:4]}...{value[-4:]}"


def _masked_config(config: PicturaConfig) -> dict[str, Any]:
    data = config.model_dump(mode="json", exclude_none=True)
    for group in data["providers"].values():
        for entry in group.values():
            if isinstance(entry, dict) and entry.get("api_key"):
                entry["api_key"] = _mask_key(entry["api_key"])
    return data


@app.tool(
    name="pictura_generate",
    description=TOOL_DESCRIPTIONS["pictura_generate"],
    annotations={
        "title": "Generate Images",
        "readOnlyHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def pictura_generate(
    prompt: Annotated[str, Field(min_length=1, description="Text description of the desired image.")],
    ratios: Annotated[
        list[AspectRatio] | None,
        Field(description="Aspect ratios to render, e.g. ['16:9', '1:1']. Defaults to the configured ratio."),
    ] = None,
    preset: Annotated[
        PresetBundle | None,
        Field(description="Ratio bundle: 'social' | 'web' | 'portrait' | 'landscape' | 'print'. Overrides 'ratios'."),
    ] = None,
    quality: Annotated[Quality | None, Field(description="'draft' (fast model) or 'pro' (high fidelity).")] = None,
    size: Annotated[ImageSize | None, Field(description="Size tier: '1K' | '2K' | '4K'. Clamped to the model's maximum.")] = None,
    provider: Annotated[GenerationProvider | None, Field(description="Generation provider: 'gemini' | 'openai'.")] = None,
    negative_prompt: Annotated[str | None, Field(description="Things that must not appear in the image.")] = None,
    enhance: Annotated[bool, Field(description="Append style modifiers to the prompt before generating.")] = False,
    enhance_style: Annotated[
        EnhanceStyle,
        Field(description="Enhancement style: 'auto' | 'photo' | 'art' | 'commercial' | 'minimal'."),
    ] = EnhanceStyle.AUTO,
    ctx: Context | None = None,
) -> ToolResult:
    """Generate one image per ratio; later ratios use the first result as reference."""
    try:
        manager = get_config_manager()
        config = (await manager.load_merged()).config

        provider_name = provider or config.providers.generation.default
        provider_config = manager.get_provider_config(ProviderRole.GENERATION, provider_name)
        chain = _generation_chain(provider_name, quality or config.default_quality, provider_config)

        final_prompt = PromptEnhancer().enhance(prompt, enhance_style) if enhance else prompt
        options = GenerateImagesOptions(
            model=chain,
            prompt=final_prompt,
            ratios=_resolve_ratios(ratios, preset, config.default_ratio),
            size=size or config.image_size,
            negative_prompt=negative_prompt,
            config=provider_config,
        )
        results = await generate_images(options, attempt=partial(_retrying, config=config))

        slug, timestamp = generate_slug(prompt), generate_timestamp()
        paths = await _output_manager(manager, config).save_batch(results, slug, timestamp)

        meta = {"prompt": final_prompt, "enhanced": enhance}
        return _tool_result(f"Generated {len(results)} image(s).", results, paths, slug=slug, timestamp=timestamp, meta=meta)
    except Exception as e:
        _handle_image_generation_error(e)


@app.tool(
    name="pictura_list",
    description=TOOL_DESCRIPTIONS["pictura_list"],
    annotations={
        "title": "List Batches",
        "readOnlyHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def pictura_list(
    limit: Annotated[int, Field(ge=1, le=C.BATCH_LOOKUP_LIMIT, description="Maximum number of batches to return.")] = C.DEFAULT_LIST_LIMIT,
    slug_filter: Annotated[str | None, Field(description="Only batches whose slug contains this text.")] = None,
) -> ToolResult:
    """List saved batches, newest first."""
    try:
        manager = get_config_manager()
        config = (await manager.load_merged()).config
        output = _output_manager(manager, config)

        # Filtering happens after the scan, so scan wide when a filter is set
        batches = await output.list_batches(C.BATCH_LOOKUP_LIMIT if slug_filter else limit)
        batches = filter_batches(batches, slug_filter=slug_filter)[:limit]

        if not batches:
            text = "No image batches found."
        else:
            text = "\n".join(f"{b.timestamp}  {b.slug}  ({len(b.images)} image(s): {', '.join(str(i.ratio) for i in b.images)})" for b in batches)
        return ToolResult(content=text, structured_content={"batches": [b.model_dump(mode="json") for b in batches]})
    except Exception as e:
        _handle_image_generation_error(e)


@app.tool(
    name="pictura_edit",
    description=TOOL_DESCRIPTIONS["pictura_edit"],
    annotations={
        "title": "Edit Batch",
        "readOnlyHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def pictura_edit(
    slug: Annotated[str, Field(min_length=1, description="Slug of the batch to edit (see pictura_list).")],
    prompt: Annotated[str, Field(min_length=1, description="Instruction describing the edit.")],
    operation: Annotated[
        EditOperationKind | None,
        Field(description="'refine' | 'inpaint' | 'outpaint' | 'restyle'. Inferred from the other arguments when omitted."),
    ] = None,
    mask: Annotated[str | None, Field(description="Inpaint: the region to change, e.g. 'the sky'.")] = None,
    extend: Annotated[ExtendDirection | None, Field(description="Outpaint: 'top' | 'bottom' | 'left' | 'right'.")] = None,
    style_path: Annotated[str | None, Field(description="Restyle: path to a style reference image.")] = None,
    ratio: Annotated[AspectRatio | None, Field(description="Only edit the image with this ratio. Defaults to every image.")] = None,
    provider: Annotated[GenerationProvider | None, Field(description="Edit provider: 'gemini' | 'openai'.")] = None,
    ctx: Context | None = None,
) -> ToolResult:
    """Edit each image of a batch and save the results as a new batch."""
    try:
        manager = get_config_manager()
        config = (await manager.load_merged()).config
        output = _output_manager(manager, config)

        batch = await _find_batch(output, slug)
        targets = [img for img in batch.images if ratio is None or str(img.ratio) == ratio]
        if not targets:
            raise ToolError(f"Batch '{slug}' has no {ratio} image.")

        provider_name = provider or config.providers.generation.default
        provider_config = manager.get_provider_config(ProviderRole.GENERATION, provider_name)
        chain = _edit_chain(provider_name, provider_config)

        kind = operation or _infer_operation(mask, extend, style_path)
        style_ref = await _read_bytes(style_path) if style_path else None
        edit_op = build_edit_operation(kind, mask=mask, direction=extend, style_ref=style_ref)

        results: list[ImageResult] = []
        for image in targets:
            options = EditImageOptions(
                model=chain,
                image=await _read_bytes(image.path),
                prompt=prompt,
                operation=edit_op,
                ratio=AspectRatio.from_str(str(image.ratio)),
                config=provider_config,
            )
            results.append(await _retrying(partial(edit_image, options), config))

        new_slug, timestamp = f"{batch.slug}-edited", generate_timestamp()
        paths = await output.save_batch(results, new_slug, timestamp)

        meta = {"source_slug": batch.slug, "source_timestamp": batch.timestamp, "operation": str(kind)}
        return _tool_result(f"Edited {len(results)} image(s) ({kind}).", results, paths, slug=new_slug, timestamp=timestamp, meta=meta)
    except Exception as e:
        _handle_image_generation_error(e)


@app.tool(
    name="pictura_upscale",
    description=TOOL_DESCRIPTIONS["pictura_upscale"],
    annotations={
        "title": "Upscale Batch",
        "readOnlyHint": False,
        "idempotentHint": False,
        "openWorldHint": True,
    },
)
async def pictura_upscale(
    slug: Annotated[str, Field(min_length=1, description="Slug of the batch to upscale (see pictura_list).")],
    provider: Annotated[UpscaleProvider | None, Field(description="Upscale provider: 'topaz' | 'replicate'.")] = None,
    model: Annotated[str | None, Field(description="Provider model, e.g. 'standard-max' or 'nightmareai/real-esrgan'.")] = None,
    scale: Annotated[float, Field(gt=0, description="Scale factor; must not exceed the provider's maximum.")] = C.DEFAULT_UPSCALE_FACTOR,
    ratio: Annotated[AspectRatio | None, Field(description="Only upscale the image with this ratio.")] = None,
    ctx: Context | None = None,
) -> ToolResult:
    """Upscale each image of a batch and save the results as a new batch."""
    try:
        manager = get_config_manager()
        config = (await manager.load_merged()).config
        output = _output_manager(manager, config)

        provider_name = provider or config.providers.upscale.default
        upscaler = get_upscale_provider(provider_name)
        if upscaler is None:
            raise UpscaleProviderNotRegisteredError(provider_name)
        if scale > upscaler.max_scale:
            raise ToolError(f"Scale {scale:g} exceeds the {provider_name} maximum of {upscaler.max_scale:g}.")
        provider_config = manager.get_provider_config(ProviderRole.UPSCALE, provider_name)

        batch = await _find_batch(output, slug)
        targets = [img for img in batch.images if ratio is None or str(img.ratio) == ratio]
        if not targets:
            raise ToolError(f"Batch '{slug}' has no {ratio} image.")

        results: list[ImageResult] = []
        for image in targets:
            options = UpscaleOptions(
                image=await _read_bytes(image.path),
                scale=scale,
                model=model,
                provider=provider_name,
                config=provider_config,
            )
            result = await _retrying(partial(upscale_image, options), config)
            # Keep the source ratio so the file name matches the original image
            source_ratio = AspectRatio.from_str(str(image.ratio))
            if source_ratio is not None:
                result = result.model_copy(update={"ratio": source_ratio})
            results.append(result)

        new_slug, timestamp = f"{batch.slug}-upscaled", generate_timestamp()
        paths = await output.save_batch(results, new_slug, timestamp)

        meta = {"source_slug": batch.slug, "source_timestamp": batch.timestamp, "scale": scale}
        return _tool_result(f"Upscaled {len(results)} image(s) with {provider_name}.", results, paths, slug=new_slug, timestamp=timestamp, meta=meta)
    except Exception as e:
        _handle_image_generation_error(e)


@app.tool(
    name="pictura_gallery",
    description=TOOL_DESCRIPTIONS["pictura_gallery"],
    annotations={
        "title": "Image Gallery",
        "readOnlyHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def pictura_gallery(
    slug_filter: Annotated[str | None, Field(description="Only batches whose slug contains this text.")] = None,
    since: Annotated[str | None, Field(description="Only batches created on or after this date (YYYY-MM-DD).")] = None,
    open_browser: Annotated[bool, Field(description="Open the gallery in the default browser.")] = False,
) -> ToolResult:
    """Render recent batches into gallery.html under the output directory."""
    try:
        manager = get_config_manager()
        config = (await manager.load_merged()).config
        output = _output_manager(manager, config)

        batches = filter_batches(await output.list_batches(C.BATCH_LOOKUP_LIMIT), slug_filter=slug_filter, since=since)
        if not batches:
            return ToolResult(content="No batches found matching criteria.", structured_content={"ok": True, "batch_count": 0, "path": None})

        path = await write_gallery(batches, output.base_dir)
        if open_browser:
            await asyncio.to_thread(webbrowser.open, path.resolve().as_uri())

        image_count = sum(len(b.images) for b in batches)
        return ToolResult(
            content=f"Gallery with {len(batches)} batch(es), {image_count} image(s): {path}",
            structured_content={"ok": True, "batch_count": len(batches), "image_count": image_count, "path": str(path)},
        )
    except Exception as e:
        _handle_image_generation_error(e)


@app.tool(
    name="pictura_setup",
    description=TOOL_DESCRIPTIONS["pictura_setup"],
    annotations={
        "title": "Configure Pictura",
        "readOnlyHint": False,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def pictura_setup(
    scope: Annotated[ConfigScope, Field(description="Where to save: 'user' (all projects) or 'project'.")] = ConfigScope.USER,
    gemini_api_key: Annotated[str | None, Field(description="Gemini API key.")] = None,
    openai_api_key: Annotated[str | None, Field(description="OpenAI API key.")] = None,
    topaz_api_key: Annotated[str | None, Field(description="Topaz Labs API key.")] = None,
    replicate_api_key: Annotated[str | None, Field(description="Replicate API token.")] = None,
    generation_provider: Annotated[GenerationProvider | None, Field(description="Default generation provider.")] = None,
    upscale_provider: Annotated[UpscaleProvider | None, Field(description="Default upscale provider.")] = None,
    gemini_model: Annotated[Literal["flash", "pro"] | None, Field(description="Default Gemini model for 'pro' quality.")] = None,
    default_ratio: Annotated[AspectRatio | None, Field(description="Ratio used when none is given.")] = None,
    default_quality: Annotated[Quality | None, Field(description="Quality used when none is given.")] = None,
    image_size: Annotated[ImageSize | None, Field(description="Size tier used when none is given.")] = None,
    retry_attempts: Annotated[int | None, Field(ge=1, le=10, description="Attempts per provider call.")] = None,
) -> ToolResult:
    """Merge the given values into the scope's config file and save it with mode 0600."""
    try:
        manager = get_config_manager()
        try:
            existing = await manager.load_scope(scope)
        except ConfigurationError as e:
            logger.warning(f"Replacing unreadable {scope} config: {e}")
            existing = None
        data: dict[str, Any] = existing.model_dump(exclude_unset=True) if existing else {}

        providers = data.setdefault("providers", {})
        generation = providers.setdefault("generation", {})
        upscale = providers.setdefault("upscale", {})

        keys = {
            (generation, "gemini"): gemini_api_key,
            (generation, "openai"): openai_api_key,
            (upscale, "topaz"): topaz_api_key,
            (upscale, "replicate"): replicate_api_key,
        }
        for (group, name), key in keys.items():
            if key:
                group[name] = {**(group.get(name) or {}), "api_key": key}
        if gemini_model:
            generation["gemini"] = {**(generation.get("gemini") or {}), "default_model": gemini_model}
        if generation_provider:
            generation["default"] = generation_provider
        if upscale_provider:
            upscale["default"] = upscale_provider

        for field, value in {
            "default_ratio": default_ratio,
            "default_quality": default_quality,
            "image_size": image_size,
            "retry_attempts": retry_attempts,
        }.items():
            if value is not None:
                data[field] = value

        saved = await manager.save_to_scope(scope, data)
        path = manager.config_path(scope)
        secure = await manager.verify_permissions(scope)

        masked = _masked_config(saved)
        lines = [f"Saved {scope} config to {path}"]
        if not secure:
            lines.append(f"Warning: file permissions are too open. Run: chmod 600 {path}")
        return ToolResult(
            content="\n".join(lines),
            structured_content={"ok": True, "scope": str(scope), "path": str(path), "secure": secure, "config": masked},
        )
    except Exception as e:
        _handle_image_generation_error(e)


@app.tool(
    name="pictura_config",
    description=TOOL_DESCRIPTIONS["pictura_config"],
    annotations={
        "title": "Show Configuration",
        "readOnlyHint": True,
        "idempotentHint": True,
        "openWorldHint": False,
    },
)
async def pictura_config() -> ToolResult:
    """Effective configuration with the scope that set each value."""
    try:
        manager = get_config_manager()
        manager.clear_cache()
        scoped = await manager.load_merged()
        user_exists, project_exists = await asyncio.gather(
            manager.exists_in_scope(ConfigScope.USER), manager.exists_in_scope(ConfigScope.PROJECT)
        )

        masked = _masked_config(scoped.config)
        sources = {key: str(source) for key, source in sorted(scoped.sources.items())}
        lines = [
            f"User config: {manager.user_config_path} ({'found' if user_exists else 'missing'})",
            f"Project config: {manager.project_config_path} ({'found' if project_exists else 'missing'})",
            f"Generation provider: {masked['providers']['generation']['default']}",
            f"Upscale provider: {masked['providers']['upscale']['default']}",
            f"Default ratio: {masked['default_ratio']} | quality: {masked['default_quality']} | size: {masked['image_size']}",
        ]
        lines += [f"  {key} <- {source}" for key, source in sources.items()]
        return ToolResult(
            content="\n".join(lines),
            structured_content={
                "config": masked,
                "sources": sources,
                "user_config": {"path": str(manager.user_config_path), "exists": user_exists},
                "project_config": {"path": str(manager.project_config_path), "exists": project_exists},
            },
        )
    except Exception as e:
        _handle_image_generation_error(e)


def main() -> None:
    parser = argparse.ArgumentParser(description="Pictura MCP Server")
    # SSE is legacy but still accepted by FastMCP.
    parser.add_argument(
        "--transport",
        choices=["stdio", "http", "sse", "streamable-http"],
        help="Transport to use (stdio, sse, http, streamable-http). Default: stdio",
    )
    parser.add_argument("--host", help="Host to bind to")
    parser.add_argument("--port", type=int, help="Port to listen on")
    args = parser.parse_args()

    configure_logging(get_settings().log_level)

    transport = args.transport
    logger.info(f"Starting pictura MCP server with {transport or 'stdio'} transport")

    # stdio does not accept host/port
    if transport in {"http", "sse", "streamable-http"}:
        app.run(transport=transport, host=args.host, port=args.port)
    else:
        app.run()


if __name__ == "__main__":
    main()
