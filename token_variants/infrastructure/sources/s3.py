from __future__ import annotations

import asyncio
import logging
import xml.etree.ElementTree as ET
from typing import Sequence
from urllib.parse import quote

import aiohttp

from token_variants.domain import ImageEntry, SearchPath
from token_variants.domain.names import get_file_name, is_media
from token_variants.domain.repositories import ImageSource

logger = logging.getLogger(__name__)

S3_NAMESPACE = "{http://s3.amazonaws.com/doc/2006-03-01/}"
DEFAULT_ENDPOINT = "https://{bucket}.s3.amazonaws.com"


def parse_list_objects(payload: bytes | str) -> tuple[list[str], str | None]:
    """
    Keys and the continuation token of one ListObjectsV2 response page.
    """
    root = ET.fromstring(payload)
    namespace = S3_NAMESPACE if root.tag.startswith(S3_NAMESPACE) else ""
    keys = [
        node.text
        for node in root.iter(f"{namespace}Key")
        if node.text
    ]
    truncated = (root.findtext(f"{namespace}IsTruncated") or "").strip().lower() == "true"
    token = root.findtext(f"{namespace}NextContinuationToken") if truncated else None
    return keys, token or None


class S3ImageSource(ImageSource):
    """
    Lists media files of one public bucket by key prefix.
    """

    def __init__(
        self,
        bucket: str,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        request_timeout: int = 15,
        session_timeout: int = 60,
        max_pages: int = 100,
    ):
        self.bucket = bucket
        self.base_url = endpoint.format(bucket=bucket).rstrip("/")
        self.max_pages = max_pages
        self._request_timeout = request_timeout
        self._session_timeout = session_timeout
        self._session: aiohttp.ClientSession | None = None

    def object_url(self, key: str) -> str:
        return f"{self.base_url}/{quote(key)}"

    async def list_images(self, path: SearchPath) -> Sequence[ImageEntry]:
        prefix = path.text.strip("/")
        keys = await self._list_keys(f"{prefix}/" if prefix else "")
        entries = [
            ImageEntry(
                path=self.object_url(key),
                name=get_file_name(key),
                source=f"s3:{self.bucket}",
                types=path.types,
            )
            for key in keys
            if is_media(key)
        ]
        logger.debug("Found %s files in s3:%s:%s", len(entries), self.bucket, prefix)
        return entries

    async def _list_keys(self, prefix: str) -> list[str]:
        session = self._get_session()
        keys: list[str] = []
        token: str | None = None
        for _ in range(self.max_pages):
            params = {"list-type": "2", "prefix": prefix}
            if token:
                params["continuation-token"] = token
            timeout = aiohttp.ClientTimeout(total=self._request_timeout)
            try:
                async with session.get(self.base_url + "/", params=params, timeout=timeout) as resp:
                    if resp.status != 200:
                        logger.warning("S3 listing of '%s' failed with HTTP %s", self.bucket, resp.status)
                        break
                    payload = await resp.read()
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                logger.warning("S3 listing of '%s' failed: %s", self.bucket, exc)
                break
            try:
                page, token = parse_list_objects(payload)
            except ET.ParseError as exc:
                logger.warning("Unreadable S3 listing for '%s': %s", self.bucket, exc)
                break
            keys.extend(page)
            if not token:
                break
        return keys

    def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._session_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
