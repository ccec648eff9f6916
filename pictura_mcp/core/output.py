"""On-disk image store.

Layout: ``<base_dir>/<YYYY-MM-DD-HHmmss>/<slug>/<W>x<H>.png`` where the file
stem is the aspect ratio with ``:`` replaced by ``x``.
"""

from __future__ import annotations

import asyncio
import re
import shutil
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from ..schema import BatchImage, BatchInfo, ImageResult
from ..shard import constants as C
from ..shard.enums import AspectRatio
from ..utils.slug import filename_to_ratio, ratio_to_filename

_TIMESTAMP_DIR = re.compile(C.TIMESTAMP_DIR_PATTERN)


class OutputManager:
    def __init__(self, base_dir: str | Path):
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def get_image_path(self, slug: str, timestamp: str, ratio: AspectRatio | str) -> Path:
        """Path an image with ``ratio`` would be saved to."""
        return self._base_dir / timestamp / slug / f"{ratio_to_filename(ratio)}{C.IMAGE_EXTENSION}"

    async def save_image(self, image: ImageResult, slug: str, timestamp: str) -> Path:
        path = self.get_image_path(slug, timestamp, image.ratio)
        await asyncio.to_thread(self._write_bytes, path, image.data)
        logger.debug(f"Saved {image.ratio} image to {path}")
        return path

    async def save_batch(self, images: Iterable[ImageResult], slug: str, timestamp: str) -> list[Path]:
        return [await self.save_image(image, slug, timestamp) for image in images]

    @staticmethod
    def _write_bytes(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def list_batches(self, limit: int = C.DEFAULT_LIST_LIMIT) -> list[BatchInfo]:
        """Batches newest first, at most ``limit``. Missing base dir yields ``[]``."""
        return await asyncio.to_thread(self._scan, limit)

    def _scan(self, limit: int) -> list[BatchInfo]:
        try:
            entries = [p.name for p in self._base_dir.iterdir()]
        except FileNotFoundError:
            return []

        batches: list[BatchInfo] = []
        for timestamp in sorted((e for e in entries if _TIMESTAMP_DIR.match(e)), reverse=True):
            timestamp_dir = self._base_dir / timestamp
            if not timestamp_dir.is_dir():
                continue

            for slug_dir in sorted(timestamp_dir.iterdir()):
                if len(batches) >= limit:
                    return batches
                if not slug_dir.is_dir():
                    continue

                images = [
                    BatchImage(ratio=AspectRatio.from_str(filename_to_ratio(f.name)) or filename_to_ratio(f.name), path=str(f))
                    for f in sorted(slug_dir.iterdir())
                    if f.name.endswith(C.IMAGE_EXTENSION)
                ]
                if images:
                    batches.append(BatchInfo(timestamp=timestamp, slug=slug_dir.name, path=str(slug_dir), images=images))

            if len(batches) >= limit:
                break
        return batches

    async def load_batch(self, slug: str) -> BatchInfo | None:
        """Most recent batch with ``slug`` among the newest lookup window."""
        for batch in await self.list_batches(C.BATCH_LOOKUP_LIMIT):
            if batch.slug == slug:
                return batch
        return None

    async def delete_batch(self, timestamp: str, slug: str) -> bool:
        return await asyncio.to_thread(self._delete, timestamp, slug)

    def _delete(self, timestamp: str, slug: str) -> bool:
        timestamp_dir = self._base_dir / timestamp
        batch_dir = timestamp_dir / slug
        if not batch_dir.is_dir():
            return False

        shutil.rmtree(batch_dir)
        if not any(timestamp_dir.iterdir()):
            timestamp_dir.rmdir()
        logger.info(f"Deleted batch {timestamp}/{slug}")
        return True


__all__ = ["OutputManager"]
