from __future__ import annotations

import pytest

from pictura_mcp.schema import BatchImage, BatchInfo
from pictura_mcp.utils.gallery import filter_batches, render_gallery_html, write_gallery


def _batch(slug: str, timestamp: str, tmp_path) -> BatchInfo:
    image = tmp_path / timestamp / slug / "1x1.png"
    return BatchInfo(timestamp=timestamp, slug=slug, path=str(image.parent), images=[BatchImage(ratio="1:1", path=str(image))])


def test_filter_by_slug_and_date(tmp_path):
    batches = [
        _batch("red-fox", "2026-03-05-100000", tmp_path),
        _batch("blue-whale", "2026-03-01-100000", tmp_path),
        _batch("red-panda", "2026-02-20-100000", tmp_path),
    ]

    assert [b.slug for b in filter_batches(batches, slug_filter="RED")] == ["red-fox", "red-panda"]
    assert [b.slug for b in filter_batches(batches, since="2026-03-01")] == ["red-fox", "blue-whale"]
    assert [b.slug for b in filter_batches(batches, slug_filter="red", since="2026-03-01")] == ["red-fox"]
    assert filter_batches(batches) == batches


def test_render_uses_file_uris_and_escapes(tmp_path):
    html = render_gallery_html([_batch("<script>", "2026-03-05-100000", tmp_path)])

    assert "file://" in html
    assert "<script>" not in html
    assert "&lt;script&gt;" in html


def test_render_empty():
    assert "No images found" in render_gallery_html([])


@pytest.mark.asyncio
async def test_write_gallery(tmp_path):
    path = await write_gallery([_batch("red-fox", "2026-03-05-100000", tmp_path)], tmp_path / "out")

    assert path == tmp_path / "out" / "gallery.html"
    assert "red-fox" in path.read_text(encoding="utf-8")
