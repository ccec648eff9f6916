from __future__ import annotations

import re
from datetime import datetime

from ..shard import constants as C

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")


def generate_slug(prompt: str | None, max_length: int = C.MAX_SLUG_LENGTH) -> str:
    """Lowercase kebab-case slug for a prompt; ``"untitled"`` when nothing is left."""
    if not prompt or not prompt.strip():
        return "untitled"

    slug = _NON_SLUG_CHARS.sub("", prompt.lower())
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug).strip("-")
    slug = slug[:max_length].rstrip("-")
    return slug or "untitled"


def generate_timestamp(now: datetime | None = None) -> str:
    """Local time as ``YYYY-MM-DD-HHmmss``, the batch directory name."""
    return (now or datetime.now()).strftime("%Y-%m-%d-%H%M%S")


def ratio_to_filename(ratio: str) -> str:
    """``"16:9"`` -> ``"16x9"``."""
    return str(ratio).replace(":", "x", 1)


def filename_to_ratio(filename: str) -> str:
    """``"16x9.png"`` -> ``"16:9"``."""
    return filename.removesuffix(C.IMAGE_EXTENSION).replace("x", ":", 1)


__all__ = [
    "generate_slug",
    "generate_timestamp",
    "ratio_to_filename",
    "filename_to_ratio",
]
