from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Sequence

import aiohttp

from token_variants.domain import ImageEntry, SearchPath, split_forge_path
from token_variants.domain.names import get_file_name, is_media
from token_variants.domain.repositories import ImageSource

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://forge-vtt.com/api"


@dataclass(frozen=True)
class ForgeListing:
    target: str
    files: tuple[str, ...]
    dirs: tuple[str, ...]


class ForgeAssetsClient:
    """
    Thin client for the Forge assets browse endpoint. Every call is made on
    behalf of one user and authorized with that user's API key.
    """

    def __init__(
        self,
        *,
        api_url: str = DEFAULT_API_URL,
        request_timeout: int = 15,
        session_timeout: int = 60,
    ):
        self.api_url = api_url.rstrip("/")
        self._request_timeout = request_timeout
        self._session_timeout = session_timeout
        self._session: aiohttp.ClientSession | None = None

    async def browse(self, directory: str, *, api_key: str | None) -> ForgeListing | None:
        if not api_key:
            return None
        session = self._get_session()
        headers = {"Authorization": f"Bearer {api_key}"}
        timeout = aiohttp.ClientTimeout(total=self._request_timeout)
        try:
            async with session.get(
                f"{self.api_url}/assets/browse",
                params={"path": directory.strip("/")},
                headers=headers,
                timeout=timeout,
            ) as resp:
                if resp.status != 200:
                    logger.debug("Forge browse of '%s' returned HTTP %s", directory, resp.status)
                    return None
                payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            logger.debug("Forge browse of '%s' failed: %s", directory, exc)
            return None
        if not isinstance(payload, dict) or payload.get("error"):
            return None
        return _listing_from_payload(directory, payload)

    def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._session_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


def _listing_from_payload(directory: str, payload: dict[str, Any]) -> ForgeListing:
    files: list[str] = []
    for item in payload.get("files") or []:
        if isinstance(item, dict):
            url = item.get("url") or item.get("key")
        else:
            url = item
        if url:
            files.append(str(url))
    dirs = [str(item).strip("/") for item in payload.get("dirs") or [] if item]
    return ForgeListing(
        target=str(payload.get("target") or directory),
        files=tuple(files),
        dirs=tuple(dirs),
    )


class ForgeImageSource(ImageSource):
    """
    Lists media files of one Forge folder. Folder paths look like
    ``https://assets.forge-vtt.com/<user>/<dir>/*``; the trailing ``/*``
    marks a folder discovered by the recursive walk.
    """

    def __init__(self, client: ForgeAssetsClient, api_keys: dict[str, str] | None = None):
        self._client = client
        self._api_keys = dict(api_keys or {})

    async def list_images(self, path: SearchPath) -> Sequence[ImageEntry]:
        text = path.text[:-2] if path.text.endswith("/*") else path.text
        split = split_forge_path(text)
        if not split:
            return []
        base, directory = split
        user_id = base.rstrip("/").rsplit("/", 1)[-1]
        listing = await self._client.browse(directory, api_key=self._api_keys.get(user_id))
        if listing is None:
            return []
        return [
            ImageEntry(
                path=url if url.startswith("http") else f"{base}{url.lstrip('/')}",
                name=get_file_name(url),
                source=f"forge:{user_id}",
                types=path.types,
            )
            for url in listing.files
            if is_media(url)
        ]
