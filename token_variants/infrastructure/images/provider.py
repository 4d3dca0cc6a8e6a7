from __future__ import annotations

import asyncio
import hashlib
import logging
import tempfile
import time
from pathlib import Path
from urllib.parse import urlparse

import aiohttp

from ...application.helpers.image_provider import ImageProvider
from ...domain.names import get_file_name_with_ext, is_image

logger = logging.getLogger(__name__)


class ImageDownloader:
    """
    Fetches remote art (S3 objects, Forge assets) for previews.

    ``allowed_hosts`` entries match the host itself and its subdomains, so
    ``forge-vtt.com`` admits ``assets.forge-vtt.com``.
    """

    def __init__(
        self,
        *,
        allowed_hosts: set[str] | None = None,
        max_download_bytes: int = 5_000_000,
        request_timeout: int = 10,
        session_timeout: int = 15,
    ):
        self.allowed_hosts = {host.strip().lower().lstrip(".") for host in allowed_hosts} if allowed_hosts else None
        self.max_download_bytes = max_download_bytes
        self._request_timeout = request_timeout
        self._session_timeout = session_timeout
        self._session: aiohttp.ClientSession | None = None

    def is_allowed_url(self, url: str) -> bool:
        if not url:
            return False
        parsed = urlparse(url)
        host = (parsed.hostname or "").lower()
        if parsed.scheme not in {"http", "https"} or not host:
            return False
        if self.allowed_hosts is None:
            return True
        return any(host == allowed or host.endswith(f".{allowed}") for allowed in self.allowed_hosts)

    async def fetch(self, url: str) -> bytes | None:
        if not self.is_allowed_url(url):
            logger.debug("Refusing to download '%s'", url)
            return None
        timeout = aiohttp.ClientTimeout(total=self._request_timeout)
        try:
            async with self._get_session().get(url, timeout=timeout) as resp:
                if resp.status != 200:
                    logger.debug("Download of '%s' returned HTTP %s", url, resp.status)
                    return None
                if resp.content_type and not resp.content_type.startswith("image/"):
                    logger.debug("Download of '%s' is %s, not an image", url, resp.content_type)
                    return None
                if resp.content_length and resp.content_length > self.max_download_bytes:
                    logger.debug("Download of '%s' announces %s bytes", url, resp.content_length)
                    return None
                buffer = bytearray()
                async for chunk in resp.content.iter_chunked(64 * 1024):
                    buffer.extend(chunk)
                    if len(buffer) > self.max_download_bytes:
                        logger.debug("Download of '%s' exceeds %s bytes", url, self.max_download_bytes)
                        return None
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.debug("Download of '%s' failed: %s", url, exc)
            return None
        return bytes(buffer)

    def _get_session(self) -> aiohttp.ClientSession:
        if not self._session or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._session_timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


class CachedImageProvider(ImageProvider):
    """
    Remote image bytes kept on disk for ``ttl_seconds``. Files are named by
    URL digest plus the image extension; the oldest are pruned once more than
    ``max_entries`` are stored.
    """

    def __init__(
        self,
        *,
        downloader: ImageDownloader,
        cache_dir: Path | None = None,
        ttl_seconds: int = 24 * 60 * 60,
        max_entries: int = 500,
    ):
        self._downloader = downloader
        self._cache_dir = cache_dir or Path(tempfile.gettempdir()) / "token_variants_image_cache"
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self._ttl = ttl_seconds
        self._max_entries = max_entries

    async def fetch(self, url: str) -> bytes | None:
        if not url:
            return None
        path = self.cache_path(url)
        cached = await asyncio.to_thread(self._read_fresh, path)
        if cached is not None:
            return cached

        data = await self._downloader.fetch(url)
        if data:
            await asyncio.to_thread(self._store, path, data)
        return data

    def cache_path(self, url: str) -> Path:
        digest = hashlib.sha1(url.encode("utf-8")).hexdigest()
        name = get_file_name_with_ext(urlparse(url).path)
        suffix = name.rsplit(".", 1)[-1].lower() if is_image(name) else "img"
        return self._cache_dir / f"{digest}.{suffix}"

    def _read_fresh(self, path: Path) -> bytes | None:
        try:
            age = time.time() - path.stat().st_mtime
            if age < self._ttl:
                return path.read_bytes()
        except OSError:
            return None
        path.unlink(missing_ok=True)
        return None

    def _store(self, path: Path, data: bytes) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as exc:
            logger.warning("Could not cache image at %s: %s", path, exc)
            tmp_path.unlink(missing_ok=True)
            return
        self._prune()

    def _prune(self) -> None:
        entries = [entry for entry in self._cache_dir.iterdir() if entry.is_file() and not entry.name.endswith(".tmp")]
        if len(entries) <= self._max_entries:
            return
        entries.sort(key=lambda entry: entry.stat().st_mtime)
        for entry in entries[: len(entries) - self._max_entries]:
            entry.unlink(missing_ok=True)

    async def close(self) -> None:
        await self._downloader.close()
