from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Sequence

from token_variants.domain import ImageEntry, SearchPath
from token_variants.domain.names import get_file_name, is_media
from token_variants.domain.repositories import ImageSource

logger = logging.getLogger(__name__)


class LocalImageSource(ImageSource):
    """
    Recursively lists media files under a directory. Relative search paths are
    resolved against ``data_root``; returned paths keep the configured form.
    """

    def __init__(self, data_root: Path | None = None):
        self.data_root = data_root

    def resolve(self, path_text: str) -> Path:
        candidate = Path(path_text)
        if candidate.is_absolute() or not self.data_root:
            return candidate
        return self.data_root / candidate

    async def list_images(self, path: SearchPath) -> Sequence[ImageEntry]:
        return await asyncio.to_thread(self._walk, path)

    def _walk(self, path: SearchPath) -> list[ImageEntry]:
        base = self.resolve(path.text)
        if not base.is_dir():
            logger.warning("Search path '%s' is not a directory, skipping", base)
            return []

        prefix = path.text.rstrip("/\\")
        entries: list[ImageEntry] = []
        for file in sorted(base.rglob("*")):
            if not file.is_file() or not is_media(file.name):
                continue
            relative = file.relative_to(base).as_posix()
            entries.append(
                ImageEntry(
                    path=f"{prefix}/{relative}" if prefix else relative,
                    name=get_file_name(file.name),
                    source="data",
                    types=path.types,
                )
            )
        logger.debug("Found %s files under '%s'", len(entries), base)
        return entries
