from __future__ import annotations

import logging
from dataclasses import replace

from ..domain import ForgeUserPaths, SearchPath, SearchPaths, split_forge_path
from ..domain.repositories import ForgePathsRepository
from ..infrastructure.sources import ForgeAssetsClient

logger = logging.getLogger(__name__)


def _user_of(path_text: str) -> str | None:
    split = split_forge_path(path_text[:-2] if path_text.endswith("/*") else path_text)
    if not split:
        return None
    return split[0].rstrip("/").rsplit("/", 1)[-1]


class SearchPathResolver:
    """
    Expands configured Forge folders into every reachable sub-folder.

    Each folder found is recorded as ``<base><dir>/*`` and merged into the
    persisted Forge path list, which is written back only when the current
    user may modify settings.
    """

    def __init__(
        self,
        *,
        client: ForgeAssetsClient,
        forge_paths: ForgePathsRepository,
        can_modify_settings: bool = True,
    ):
        self._client = client
        self._forge_paths = forge_paths
        self._can_modify_settings = can_modify_settings

    async def resolve(self, paths: SearchPaths) -> SearchPaths:
        origins: dict[str, SearchPath] = {}
        for user in paths.forge.values():
            if not user.api_key:
                logger.warning("No Forge API key for user '%s'; its folders cannot be browsed", user.user_id)
                continue
            for path in user.paths:
                split = split_forge_path(path.text)
                if not split:
                    continue
                base, directory = split
                found: list[str] = []
                await self._walk(base, directory.strip("/"), user.api_key, found, set())
                for folder in found:
                    origins.setdefault(folder, replace(path, text=folder))

        persisted = await self._forge_paths.list_paths()
        merged = list(persisted)
        for folder in origins:
            if folder not in merged:
                merged.append(folder)
        if self._can_modify_settings and merged != persisted:
            await self._forge_paths.save_paths(merged)
            logger.info("Stored %s Forge folders (%s new)", len(merged), len(merged) - len(persisted))

        grouped: dict[str, list[SearchPath]] = {}
        for folder in merged:
            user_id = _user_of(folder)
            if user_id is None:
                continue
            grouped.setdefault(user_id, []).append(origins.get(folder) or SearchPath(text=folder))

        forge = {
            user_id: ForgeUserPaths(
                user_id=user_id,
                api_key=paths.forge[user_id].api_key if user_id in paths.forge else None,
                paths=tuple(folders),
            )
            for user_id, folders in grouped.items()
        }
        return SearchPaths(data=list(paths.data), s3=dict(paths.s3), forge=forge)

    async def _walk(self, base: str, directory: str, api_key: str, found: list[str], visited: set[str]) -> None:
        if directory in visited:
            return
        visited.add(directory)
        listing = await self._client.browse(directory, api_key=api_key)
        if listing is None:
            logger.debug("Forge folder '%s%s' is not reachable", base, directory)
            return
        found.append(f"{base}{directory}/*")
        if listing.target == ".":
            return
        for sub in listing.dirs:
            await self._walk(base, sub, api_key, found, visited)
