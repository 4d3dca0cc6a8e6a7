from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from ..domain import AlgorithmSettings, MappingOptions, SearchType
from ..domain.mapping import CompendiumMapper
from ..domain.search import ImageSearchService
from ..domain.token_config import TokenConfigService
from ..infrastructure.metrics import metrics
from .catalog import ImageCatalogService
from .helpers.art_preview import ArtPreviewService
from .presenters import ReportPresenter

logger = logging.getLogger(__name__)


@dataclass
class TokenVariantsWorkflow:
    catalog: ImageCatalogService
    search_service: ImageSearchService
    token_configs: TokenConfigService
    preview: ArtPreviewService
    presenter: ReportPresenter
    mapper: CompendiumMapper | None = None

    async def cache(self) -> str:
        count = await self.catalog.cache_images()
        return f"Cached {count} images."

    async def search(
        self,
        name: str,
        *,
        search_type: SearchType = SearchType.BOTH,
        algorithm: AlgorithmSettings | None = None,
        ignore_keywords: bool = False,
    ) -> str:
        algorithm = algorithm or self.search_service.algorithm
        async with metrics.span_async("search", source="cli", extra={"type": search_type.value}) as fields:
            results = await self.search_service.search(
                name,
                search_type=search_type,
                ignore_keywords=ignore_keywords,
                algorithm=algorithm,
            )
            fields["matches"] = sum(len(found) for found in results.values())
        mode = "exact" if algorithm.exact else "fuzzy" if algorithm.fuzzy else "partial"
        return self.presenter.search_results(name, results, search_type=search_type.value, mode=mode)

    async def search_paths(self) -> str:
        return self.presenter.search_paths(await self.catalog.search_paths())

    async def map_compendium(self, overrides: dict[str, Any], *, preview_dir: Path | None = None) -> str:
        if not self.mapper:
            raise RuntimeError("No compendium file configured. Set COMPENDIUM_PATH")
        saved = await self.mapper.saved_options()
        base = saved.to_mapping() if saved else {}
        options = MappingOptions.from_mapping({**base, **overrides})
        if options.algorithm is None:
            options = replace(options, algorithm=self.search_service.algorithm)

        async with metrics.span_async("mapping", source="cli", extra={"compendium": options.compendium}) as fields:
            report = await self.mapper.submit(options)
            fields["applied"] = len(report.applied)
            fields["queued"] = len(report.art_select)

        if preview_dir and report.art_select:
            preview_dir.mkdir(parents=True, exist_ok=True)
            for index, entry in enumerate(report.art_select, start=1):
                candidates = [match.path for found in entry.matches.values() for match in found]
                current = [entry.request.image1, entry.request.image2]
                buffer = await self.preview.build_preview(current, candidates)
                target = preview_dir / f"{index:03d}-{entry.request.actor_id}.jpg"
                target.write_bytes(buffer.getvalue())
            logger.info("Wrote %s art selection previews to %s", len(report.art_select), preview_dir)
        return self.presenter.mapping_report(report)

    async def list_token_configs(self) -> str:
        return self.presenter.token_configs(await self.token_configs.list_all())

    async def save_token_config(self, img_src: str, img_name: str, fields: dict[str, Any]) -> str:
        saved = await self.token_configs.save(img_src, img_name, fields)
        if saved is None:
            return f"No fields to store; token config for {img_name} removed."
        return f"Stored {len(saved)} fields for {img_name}."

    async def remove_token_config(self, img_src: str, img_name: str) -> str:
        if await self.token_configs.remove(img_src, img_name):
            return f"Removed token config for {img_name}."
        return f"No token config stored for {img_name}."
