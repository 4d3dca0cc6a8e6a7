from __future__ import annotations

import asyncio
import logging
from typing import Callable, Sequence

from ..domain import ImageEntry, SearchPath, SearchPaths, SearchType, accepts
from ..domain.repositories import ImageCacheRepository, ImageSource
from ..infrastructure.metrics import metrics
from ..infrastructure.sources import ForgeImageSource, LocalImageSource, S3ImageSource
from .search_paths import SearchPathResolver

logger = logging.getLogger(__name__)


class ImageCatalogService:
    """
    All images reachable through the configured search paths.

    Paths flagged ``cache`` are scanned by ``cache_images`` and served from the
    SQLite cache; the others are scanned live on every listing.
    """

    def __init__(
        self,
        *,
        search_paths: SearchPaths,
        cache_repo: ImageCacheRepository,
        local_source: LocalImageSource,
        forge_source: ForgeImageSource | None = None,
        resolver: SearchPathResolver | None = None,
        s3_factory: Callable[[str], S3ImageSource] = S3ImageSource,
        auto_cache: bool = True,
    ):
        self._configured = search_paths
        self._resolved: SearchPaths | None = None
        self._cache_repo = cache_repo
        self._local = local_source
        self._forge = forge_source
        self._resolver = resolver
        self._s3_factory = s3_factory
        self._s3_sources: dict[str, S3ImageSource] = {}
        self._auto_cache = auto_cache
        self._resolve_lock = asyncio.Lock()

    async def search_paths(self) -> SearchPaths:
        async with self._resolve_lock:
            if self._resolved is None:
                if self._resolver:
                    self._resolved = await self._resolver.resolve(self._configured)
                else:
                    self._resolved = self._configured
        return self._resolved

    async def cache_images(self) -> int:
        async with metrics.span_async("catalog:cache", source="catalog") as fields:
            images = await self._scan(cached=True)
            count = await self._cache_repo.replace_all(_dedupe(images))
            fields["images"] = count
        logger.info("Cached %s images", count)
        return count

    async def list_images(self, search_type: SearchType = SearchType.BOTH) -> list[ImageEntry]:
        if self._auto_cache and await self._cache_repo.count() == 0:
            self._auto_cache = False
            await self.cache_images()
        cached = list(await self._cache_repo.list_all())
        live = await self._scan(cached=False)
        return [image for image in _dedupe(cached + live) if accepts(image.types, search_type)]

    async def _scan(self, *, cached: bool) -> list[ImageEntry]:
        targets = [
            (source, path)
            for source, path in self._sources(await self.search_paths())
            if path.cache == cached
        ]
        if not targets:
            return []
        listings = await asyncio.gather(*(source.list_images(path) for source, path in targets))
        images: list[ImageEntry] = []
        for listing in listings:
            images.extend(listing)
        return images

    def _sources(self, paths: SearchPaths) -> list[tuple[ImageSource, SearchPath]]:
        sources: list[tuple[ImageSource, SearchPath]] = [(self._local, path) for path in paths.data]
        for bucket, bucket_paths in paths.s3.items():
            source = self._s3_sources.get(bucket)
            if source is None:
                source = self._s3_sources[bucket] = self._s3_factory(bucket)
            sources.extend((source, path) for path in bucket_paths)
        if self._forge:
            for user in paths.forge.values():
                sources.extend((self._forge, path) for path in user.paths)
        return sources

    async def close(self) -> None:
        for source in self._s3_sources.values():
            await source.close()
        self._s3_sources.clear()


def _dedupe(images: Sequence[ImageEntry]) -> list[ImageEntry]:
    seen: dict[str, ImageEntry] = {}
    for image in images:
        seen.setdefault(image.path, image)
    return list(seen.values())
