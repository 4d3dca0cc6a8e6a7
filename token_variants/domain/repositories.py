from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence

from .models import ActorRecord, CompendiumInfo, ImageEntry, MappingOptions, SearchPath


class ImageSource(Protocol):
    """
    Lists media files reachable through one search path.
    """

    async def list_images(self, path: SearchPath) -> Sequence[ImageEntry]: ...


class ImageCacheRepository(Protocol):
    async def replace_all(self, images: Sequence[ImageEntry]) -> int: ...

    async def list_all(self) -> Sequence[ImageEntry]: ...

    async def count(self) -> int: ...


class TokenConfigRepository(Protocol):
    async def get(self, img_src: str, img_name: str) -> Optional[dict[str, Any]]: ...

    async def save(self, img_src: str, img_name: str, config: dict[str, Any]) -> None: ...

    async def delete(self, img_src: str, img_name: str) -> bool: ...

    async def list_all(self) -> Sequence[tuple[str, str, dict[str, Any]]]: ...


class ForgePathsRepository(Protocol):
    async def list_paths(self) -> list[str]: ...

    async def save_paths(self, paths: Sequence[str]) -> None: ...


class MapperOptionsRepository(Protocol):
    async def load(self) -> Optional[MappingOptions]: ...

    async def save(self, options: MappingOptions) -> None: ...


class CompendiumRepository(Protocol):
    def get_info(self, compendium_id: str) -> CompendiumInfo: ...

    def list_packs(self) -> Sequence[CompendiumInfo]: ...

    def list_actors(self, compendium_id: str) -> Sequence[ActorRecord]: ...

    def get_actor(self, compendium_id: str, actor_id: str) -> ActorRecord: ...

    def get_token_data(self, compendium_id: str, actor_id: str) -> dict[str, Any]: ...

    async def update_actor(
        self,
        compendium_id: str,
        actor_id: str,
        *,
        img: str | None = None,
        token: dict[str, Any] | None = None,
    ) -> ActorRecord: ...
