from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from ..repositories import TokenConfigRepository
from .objects import flatten_object, merge_object

logger = logging.getLogger(__name__)

# Image path fields stay under the control of the image being configured.
PROTECTED_FIELDS = frozenset({"img", "texture.src"})


class TokenConfigService:
    """
    Custom token settings remembered per image (source path + image name) and
    applied whenever that image is assigned to a token.
    """

    def __init__(self, repo: TokenConfigRepository):
        self._repo = repo

    async def get(self, img_src: str, img_name: str) -> Optional[dict[str, Any]]:
        return await self._repo.get(img_src, img_name)

    async def save(
        self,
        img_src: str,
        img_name: str,
        form_data: Mapping[str, Any] | None,
        selected: Iterable[str] | None = None,
    ) -> Optional[dict[str, Any]]:
        if form_data is None:
            await self.remove(img_src, img_name)
            return None

        flat = flatten_object(form_data)
        fields = set(flat) if selected is None else set(selected)
        config = {
            name: flat[name]
            for name in sorted(fields)
            if name in flat and name not in PROTECTED_FIELDS
        }
        if not config:
            await self.remove(img_src, img_name)
            return None

        await self._repo.save(img_src, img_name, config)
        logger.info("Saved token config for %s (%s): %s", img_name, img_src, ", ".join(config))
        return config

    async def remove(self, img_src: str, img_name: str) -> bool:
        removed = await self._repo.delete(img_src, img_name)
        if removed:
            logger.info("Removed token config for %s (%s)", img_name, img_src)
        return removed

    async def list_all(self) -> list[tuple[str, str, dict[str, Any]]]:
        return list(await self._repo.list_all())

    async def apply(self, token_data: Mapping[str, Any], img_src: str, img_name: str) -> dict[str, Any]:
        config = await self._repo.get(img_src, img_name)
        if not config:
            return dict(token_data)
        return merge_object(token_data, config)
