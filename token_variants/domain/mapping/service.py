from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from ..art_select import ArtSelectEntry, ArtSelectQueue, ArtSelectRequest, SelectionAction
from ..models import ActorRecord, AlgorithmSettings, MappingOptions, SearchType
from ..names import get_file_name, set_token_img
from ..repositories import CompendiumRepository, MapperOptionsRepository
from ..search import ImageSearchService
from ..token_config import TokenConfigService

logger = logging.getLogger(__name__)


class CompendiumError(ValueError):
    pass


class ImageCacher(Protocol):
    async def cache_images(self) -> int: ...


@dataclass(frozen=True)
class AppliedImage:
    actor_id: str
    actor_name: str
    target: str
    path: str


@dataclass
class MappingReport:
    compendium: str
    processed: int = 0
    applied: list[AppliedImage] = field(default_factory=list)
    art_select: list[ArtSelectEntry] = field(default_factory=list)
    skipped: bool = False


class CompendiumMapper:
    """
    Walks an actor compendium and assigns portrait/token art found by the
    image search, either automatically (first hit wins) or by queueing the
    actors for manual art selection.
    """

    def __init__(
        self,
        *,
        compendiums: CompendiumRepository,
        search: ImageSearchService,
        token_configs: TokenConfigService,
        queue: ArtSelectQueue,
        cacher: ImageCacher | None = None,
        options_repo: MapperOptionsRepository | None = None,
    ):
        self._compendiums = compendiums
        self._search = search
        self._token_configs = token_configs
        self._queue = queue
        self._cacher = cacher
        self._options_repo = options_repo

    async def saved_options(self) -> Optional[MappingOptions]:
        if not self._options_repo:
            return None
        return await self._options_repo.load()

    async def submit(self, options: MappingOptions) -> MappingReport:
        if self._options_repo:
            await self._options_repo.save(options)
        if not options.compendium:
            return MappingReport(compendium="", skipped=True)
        return await self.start_mapping(options)

    async def start_mapping(self, options: MappingOptions) -> MappingReport:
        report = MappingReport(compendium=options.compendium)
        if options.diff_images and options.ignore_token and options.ignore_portrait:
            report.skipped = True
            return report

        info = self._compendiums.get_info(options.compendium)
        if info.document != "Actor":
            raise CompendiumError(f"Compendium '{info.id}' does not hold actors")
        if info.locked:
            raise CompendiumError(f"Compendium '{info.id}' is locked")

        if options.cache and self._cacher:
            await self._cacher.cache_images()

        algorithm = options.algorithm or self._search.algorithm
        actors = list(self._compendiums.list_actors(options.compendium))
        logger.info(
            "Mapping %s actors of '%s' (auto_apply=%s, diff_images=%s, missing_only=%s)",
            len(actors),
            info.title,
            options.auto_apply,
            options.diff_images,
            options.missing_only,
        )

        if options.auto_apply:
            for actor in actors:
                await self._process_actor(actor, options, algorithm, report)
        else:
            await asyncio.gather(
                *(self._process_actor(actor, options, algorithm, report) for actor in actors)
            )

        report.art_select = await self.render_from_queue()
        return report

    async def render_from_queue(self) -> list[ArtSelectEntry]:
        entries: list[ArtSelectEntry] = []
        for request in self._queue.drain():
            algorithm = (request.algorithm or self._search.algorithm).for_art_select()
            matches = await self._search.search(
                request.search,
                search_type=request.search_type,
                ignore_keywords=request.ignore_keywords,
                algorithm=algorithm,
            )
            entries.append(ArtSelectEntry(request=request, matches=matches))
        return entries

    async def apply_selection(
        self,
        request: ArtSelectRequest,
        img_src: str,
        img_name: str | None = None,
    ) -> Optional[ArtSelectRequest]:
        """
        Apply an image picked for a queued request. Returns the follow-up
        request when the choice opens another selection.
        """
        actor = self._compendiums.get_actor(request.compendium, request.actor_id)
        if request.action == SelectionAction.TOKEN:
            await self.update_token_image(request.compendium, actor, img_src, img_name=img_name)
            return None
        if request.action == SelectionAction.PORTRAIT:
            await self.update_actor_image(request.compendium, actor, img_src)
            return None

        actor = await self.update_actor_image(request.compendium, actor, img_src)
        if request.action == SelectionAction.BOTH:
            await self.update_token_image(request.compendium, actor, img_src, img_name=img_name)
            return None
        return ArtSelectRequest(
            search=actor.token_name,
            search_type=SearchType.TOKEN,
            action=SelectionAction.TOKEN,
            compendium=request.compendium,
            actor_id=actor.id,
            image1=img_src,
            image2=request.image2,
            ignore_keywords=request.ignore_keywords,
            algorithm=request.algorithm,
        )

    async def update_actor_image(self, compendium: str, actor: ActorRecord, img_src: str) -> ActorRecord:
        return await self._compendiums.update_actor(compendium, actor.id, img=img_src)

    async def update_token_image(
        self,
        compendium: str,
        actor: ActorRecord,
        img_src: str,
        *,
        img_name: str | None = None,
        portrait: str | None = None,
    ) -> ActorRecord:
        img_name = img_name or get_file_name(img_src)
        token = set_token_img(self._compendiums.get_token_data(compendium, actor.id), img_src)
        token = await self._token_configs.apply(token, img_src, img_name)
        return await self._compendiums.update_actor(compendium, actor.id, img=portrait, token=token)

    async def _process_actor(
        self,
        actor: ActorRecord,
        options: MappingOptions,
        algorithm: AlgorithmSettings,
        report: MappingReport,
    ) -> None:
        report.processed += 1
        has_portrait = actor.has_portrait
        has_token = actor.has_token
        if options.sync_images and has_portrait != has_token:
            if has_portrait:
                actor = await self.update_token_image(options.compendium, actor, actor.img)
            else:
                actor = await self.update_actor_image(options.compendium, actor, actor.token_img)
            has_portrait = has_token = True

        include_portrait = not (options.missing_only and has_portrait) and not options.ignore_portrait
        include_token = not (options.missing_only and has_token) and not options.ignore_token
        if not (include_portrait or include_token):
            return

        image1 = actor.img if options.show_images else ""
        image2 = actor.token_img if options.show_images else ""
        ignore_keywords = not options.inc_keywords

        if options.auto_apply:
            await self._auto_apply(actor, image1, image2, ignore_keywords, options, algorithm, report)
        else:
            self._queue_art_select(actor, image1, image2, ignore_keywords, options, algorithm)

    async def _first_result(
        self,
        name: str,
        search_type: SearchType,
        ignore_keywords: bool,
        algorithm: AlgorithmSettings,
    ) -> str | None:
        results = await self._search.search(
            name,
            search_type=search_type,
            simple_results=True,
            ignore_keywords=ignore_keywords,
            algorithm=algorithm,
        )
        return results[0] if results else None

    async def _auto_apply(
        self,
        actor: ActorRecord,
        image1: str,
        image2: str,
        ignore_keywords: bool,
        options: MappingOptions,
        algorithm: AlgorithmSettings,
        report: MappingReport,
    ) -> None:
        portrait_found = options.ignore_portrait
        token_found = options.ignore_token

        if options.diff_images:
            if not options.ignore_portrait:
                found = await self._first_result(actor.name, SearchType.PORTRAIT, ignore_keywords, algorithm)
                if found:
                    portrait_found = True
                    actor = await self.update_actor_image(options.compendium, actor, found)
                    report.applied.append(AppliedImage(actor.id, actor.name, "portrait", found))

            if not options.ignore_token:
                found = await self._first_result(actor.token_name, SearchType.TOKEN, ignore_keywords, algorithm)
                if found:
                    token_found = True
                    actor = await self.update_token_image(options.compendium, actor, found)
                    report.applied.append(AppliedImage(actor.id, actor.name, "token", found))
        else:
            found = await self._first_result(actor.name, SearchType.BOTH, ignore_keywords, algorithm)
            if found:
                portrait_found = token_found = True
                actor = await self.update_token_image(options.compendium, actor, found, portrait=found)
                report.applied.append(AppliedImage(actor.id, actor.name, "both", found))

        if not (portrait_found and token_found) and options.auto_display_art_select:
            self._queue_art_select(actor, image1, image2, ignore_keywords, options, algorithm)

    def _queue_art_select(
        self,
        actor: ActorRecord,
        image1: str,
        image2: str,
        ignore_keywords: bool,
        options: MappingOptions,
        algorithm: AlgorithmSettings,
    ) -> None:
        def request(search_type: SearchType, action: SelectionAction, *, prevent_close: bool = False) -> ArtSelectRequest:
            return ArtSelectRequest(
                search=actor.name,
                search_type=search_type,
                action=action,
                compendium=options.compendium,
                actor_id=actor.id,
                image1=image1,
                image2=image2,
                ignore_keywords=ignore_keywords,
                algorithm=algorithm,
                prevent_close=prevent_close,
            )

        if not options.diff_images:
            self._queue.add(request(SearchType.BOTH, SelectionAction.BOTH))
        elif not options.ignore_portrait and not options.ignore_token:
            self._queue.add(
                request(SearchType.PORTRAIT, SelectionAction.PORTRAIT_THEN_TOKEN, prevent_close=True)
            )
        elif options.ignore_portrait:
            self._queue.add(request(SearchType.TOKEN, SelectionAction.TOKEN))
        elif options.ignore_token:
            self._queue.add(request(SearchType.PORTRAIT, SelectionAction.PORTRAIT))
