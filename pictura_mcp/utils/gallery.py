from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

import jinja2

from ..schema import BatchInfo
from ..shard import constants as C

_GALLERY_TEMPLATE = jinja2.Environment(
    autoescape=True,
    trim_blocks=True,
    lstrip_blocks=True,
).from_string(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Pictura Gallery</title>
  <style>
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; background: #1a1a1a; color: #fff; padding: 2rem; }
    h1 { text-align: center; margin-bottom: 2rem; }
    .batch { background: #2a2a2a; border-radius: 12px; padding: 1.5rem; margin-bottom: 2rem; }
    .batch-header { display: flex; justify-content: space-between; align-items: center; margin-bottom: 1rem; padding-bottom: 0.5rem; border-bottom: 1px solid #444; }
    .batch-header h2 { font-size: 1.25rem; }
    .timestamp { color: #888; font-size: 0.875rem; font-family: monospace; }
    .images-grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(250px, 1fr)); gap: 1rem; }
    .image-card { position: relative; border-radius: 8px; overflow: hidden; background: #333; }
    .image-card img { width: 100%; height: auto; display: block; }
    .image-info { position: absolute; bottom: 0; left: 0; right: 0; background: rgba(0, 0, 0, 0.7); padding: 0.5rem; text-align: center; font-size: 0.875rem; color: #ccc; }
    .empty-state { text-align: center; padding: 4rem; color: #666; }
  </style>
</head>
<body>
  <h1>Pictura Gallery</h1>
{% for batch in batches %}
  <div class="batch">
    <div class="batch-header">
      <h2>{{ batch.slug }}</h2>
      <span class="timestamp">{{ batch.timestamp }}</span>
    </div>
    <div class="images-grid">
{% for image in batch.images %}
      <div class="image-card">
        <img src="{{ image.uri }}" alt="{{ batch.slug }} - {{ image.ratio }}" loading="lazy" />
        <div class="image-info">{{ image.ratio }}</div>
      </div>
{% endfor %}
    </div>
  </div>
{% else %}
  <div class="empty-state">No images found</div>
{% endfor %}
</body>
</html>
"""
)


def filter_batches(batches: Iterable[BatchInfo], *, slug_filter: str | None = None, since: str | None = None) -> list[BatchInfo]:
    """Keep batches whose slug contains ``slug_filter`` and whose date is on or after ``since`` (YYYY-MM-DD)."""
    needle = slug_filter.lower() if slug_filter else None
    since_key = since.replace("-", "") if since else None

    kept: list[BatchInfo] = []
    for batch in batches:
        if needle and needle not in batch.slug:
            continue
        if since_key and batch.timestamp[:10].replace("-", "") < since_key:
            continue
        kept.append(batch)
    return kept


def render_gallery_html(batches: Iterable[BatchInfo]) -> str:
    """Render batches as a standalone HTML page referencing images by ``file://`` URI."""
    view = [
        {
            "slug": batch.slug,
            "timestamp": batch.timestamp,
            "images": [{"ratio": str(img.ratio), "uri": Path(img.path).resolve().as_uri()} for img in batch.images],
        }
        for batch in batches
    ]
    return _GALLERY_TEMPLATE.render(batches=view)


async def write_gallery(batches: Iterable[BatchInfo], output_dir: str | Path) -> Path:
    """Write ``gallery.html`` into ``output_dir`` and return its path."""
    html = render_gallery_html(batches)
    path = Path(output_dir) / C.GALLERY_FILENAME

    def _write() -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(html, encoding="utf-8")

    await asyncio.to_thread(_write)
    return path


__all__ = ["filter_batches", "render_gallery_html", "write_gallery"]
