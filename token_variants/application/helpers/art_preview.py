from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional, Sequence

from PIL import Image, UnidentifiedImageError

from ...domain.names import is_video
from ...infrastructure.metrics import metrics
from .image_provider import ImageProvider

logger = logging.getLogger(__name__)


class ArtPreviewService:
    """
    Contact sheet for art selection: current portrait, current token and the
    candidate images side by side, all scaled to one height.
    """

    def __init__(
        self,
        *,
        image_provider: ImageProvider,
        height: int = 256,
        gap: int = 12,
        max_candidates: int = 8,
    ):
        self.height = height
        self.gap = gap
        self.max_candidates = max_candidates
        self._image_provider = image_provider

    async def build_preview(self, current: Sequence[str], candidates: Sequence[str]) -> BytesIO:
        """
        ``current`` images are drawn first and separated from the candidates by
        a wider gap. Empty paths are skipped; unreadable images become
        placeholders.
        """
        async with metrics.span_async("preview:build", source="media") as fields:
            current_images = [await self._load(path) for path in current if path]
            candidate_images = [
                await self._load(path) for path in list(candidates)[: self.max_candidates] if path
            ]
            fields["images"] = len(current_images) + len(candidate_images)
            return self._compose(current_images, candidate_images)

    def _compose(self, current: list[Image.Image], candidates: list[Image.Image]) -> BytesIO:
        tiles = current + candidates
        if not tiles:
            tiles = [self._placeholder_image()]
        separator = self.gap * 3 if current and candidates else 0
        total_width = sum(tile.width for tile in tiles) + self.gap * (len(tiles) - 1) + separator
        sheet = Image.new("RGB", (total_width, self.height), color=(20, 20, 20))

        offset = 0
        for index, tile in enumerate(tiles):
            if tile.mode == "RGBA":
                sheet.paste(tile, (offset, 0), tile)
            else:
                sheet.paste(tile, (offset, 0))
            offset += tile.width + self.gap
            if index == len(current) - 1 and candidates:
                offset += separator

        buffer = BytesIO()
        sheet.save(buffer, format="JPEG", quality=85)
        buffer.seek(0)
        return buffer

    async def close(self) -> None:
        await self._image_provider.close()

    async def _load(self, path: str) -> Image.Image:
        image = await self._open(path)
        if image is None:
            return self._placeholder_image()
        return self._resize_to_height(image)

    async def _open(self, path: str) -> Optional[Image.Image]:
        if is_video(path):
            return None
        data = await self._image_provider.fetch(path)
        if not data:
            return None
        try:
            image = Image.open(BytesIO(data))
            return image.convert("RGBA" if image.mode in ("RGBA", "LA", "P") else "RGB")
        except (UnidentifiedImageError, OSError):
            logger.debug("Cannot decode image '%s'", path)
            return None

    def _placeholder_image(self) -> Image.Image:
        return Image.new("RGB", (self.height, self.height), color=(240, 240, 240))

    def _resize_to_height(self, img: Image.Image) -> Image.Image:
        width, current_height = img.size
        if current_height == self.height:
            return img
        ratio = self.height / float(current_height)
        new_width = max(1, int(width * ratio))
        return img.resize((new_width, self.height), Image.LANCZOS)
