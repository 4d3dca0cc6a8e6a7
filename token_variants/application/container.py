from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..domain import ArtSelectQueue, parse_search_paths
from ..domain.mapping import CompendiumMapper
from ..domain.search import ImageSearchService
from ..domain.token_config import TokenConfigService
from ..infrastructure import TokenVariantsSettings, YamlCompendiumRepository, load_settings_from_yaml
from ..infrastructure.images import CachedImageProvider, ImageDownloader
from ..infrastructure.sources import ForgeAssetsClient, ForgeImageSource, LocalImageSource
from ..infrastructure.sqlite import (
    SQLiteDatabase,
    SQLiteForgePathsRepository,
    SQLiteImageCacheRepository,
    SQLiteMapperOptionsRepository,
    SQLiteTokenConfigRepository,
)
from .catalog import ImageCatalogService
from .helpers.art_preview import ArtPreviewService
from .helpers.image_provider import RoutingImageProvider
from .presenters import ReportPresenter
from .search_paths import SearchPathResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    db_path: str
    settings_path: str = "token-variants.yaml"
    compendium_path: str | None = None
    data_root: str | None = None
    forge_api_url: str = "https://forge-vtt.com/api"
    forge_api_keys: dict[str, str] = field(default_factory=dict)
    can_modify_settings: bool = True
    image_allowed_hosts: set[str] | None = None
    max_image_size_bytes: int = 5_000_000
    preview_cache_dir: str | None = None


class AppContainer:
    def __init__(
        self,
        *,
        config: AppConfig,
        settings: TokenVariantsSettings,
        catalog: ImageCatalogService,
        search_service: ImageSearchService,
        token_configs: TokenConfigService,
        mapper: CompendiumMapper | None,
        queue: ArtSelectQueue,
        preview_service: ArtPreviewService,
        presenter: ReportPresenter,
        database: SQLiteDatabase,
        forge_client: ForgeAssetsClient,
    ):
        self.config = config
        self.settings = settings
        self.catalog = catalog
        self.search_service = search_service
        self.token_configs = token_configs
        self.mapper = mapper
        self.queue = queue
        self.preview_service = preview_service
        self.presenter = presenter

        self._database = database
        self._forge_client = forge_client

    async def init_resources(self) -> None:
        await self._database.init()

    async def close(self) -> None:
        await self.catalog.close()
        await self._forge_client.close()
        await self.preview_service.close()


def load_settings(config: AppConfig) -> TokenVariantsSettings:
    if Path(config.settings_path).exists():
        return load_settings_from_yaml(config.settings_path)
    logger.warning("Settings file '%s' not found; no search paths configured", config.settings_path)
    return TokenVariantsSettings()


def create_container(config: AppConfig, settings: TokenVariantsSettings | None = None) -> AppContainer:
    settings = settings or load_settings(config)
    database = SQLiteDatabase(config.db_path)

    image_cache_repo = SQLiteImageCacheRepository(database)
    token_config_repo = SQLiteTokenConfigRepository(database)
    forge_paths_repo = SQLiteForgePathsRepository(database)
    options_repo = SQLiteMapperOptionsRepository(database)

    api_keys = {**settings.forge_api_keys, **config.forge_api_keys}
    search_paths = parse_search_paths(settings.search_paths, forge_api_keys=api_keys)

    data_root = Path(config.data_root) if config.data_root else None
    if data_root and not data_root.exists():
        logger.warning("Configured data root '%s' does not exist", data_root)

    forge_client = ForgeAssetsClient(api_url=config.forge_api_url)
    catalog = ImageCatalogService(
        search_paths=search_paths,
        cache_repo=image_cache_repo,
        local_source=LocalImageSource(data_root),
        forge_source=ForgeImageSource(forge_client, api_keys),
        resolver=SearchPathResolver(
            client=forge_client,
            forge_paths=forge_paths_repo,
            can_modify_settings=config.can_modify_settings,
        ),
    )
    search_service = ImageSearchService(
        catalog,
        algorithm=settings.algorithm,
        keyword_search=settings.keyword_search,
        excluded_keywords=settings.excluded_keywords,
    )
    token_configs = TokenConfigService(token_config_repo)
    queue = ArtSelectQueue()

    mapper = None
    if config.compendium_path:
        mapper = CompendiumMapper(
            compendiums=YamlCompendiumRepository(config.compendium_path),
            search=search_service,
            token_configs=token_configs,
            queue=queue,
            cacher=catalog,
            options_repo=options_repo,
        )

    image_provider = RoutingImageProvider(
        remote=CachedImageProvider(
            downloader=ImageDownloader(
                allowed_hosts=config.image_allowed_hosts,
                max_download_bytes=config.max_image_size_bytes,
            ),
            cache_dir=Path(config.preview_cache_dir) if config.preview_cache_dir else None,
        ),
        data_root=data_root,
    )

    return AppContainer(
        config=config,
        settings=settings,
        catalog=catalog,
        search_service=search_service,
        token_configs=token_configs,
        mapper=mapper,
        queue=queue,
        preview_service=ArtPreviewService(image_provider=image_provider),
        presenter=ReportPresenter(),
        database=database,
        forge_client=forge_client,
    )
