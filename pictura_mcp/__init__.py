"""
Pictura MCP Server

MCP server that generates, edits, upscales and catalogs images across
Gemini, OpenAI, Topaz and Replicate, saving every batch to local disk.
"""

__version__ = "0.1.0"

try:
    import importlib.metadata

    __version__ = importlib.metadata.version("pictura-mcp")
except (importlib.metadata.PackageNotFoundError, ImportError):
    pass

__all__ = ["__version__"]
