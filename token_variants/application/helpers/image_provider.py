from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol


class ImageProvider(Protocol):
    async def fetch(self, url: str) -> bytes | None: ...

    async def close(self) -> None: ...


class RoutingImageProvider:
    """
    Serves ``http(s)`` URLs through the remote provider and anything else from
    disk, relative paths resolved against ``data_root``.
    """

    def __init__(self, *, remote: ImageProvider, data_root: Path | None = None):
        self._remote = remote
        self._data_root = data_root

    async def fetch(self, url: str) -> bytes | None:
        if not url:
            return None
        if url.startswith(("http://", "https://")):
            return await self._remote.fetch(url)
        return await asyncio.to_thread(self._read_local, url)

    def _read_local(self, path_text: str) -> bytes | None:
        path = Path(path_text)
        if not path.is_absolute() and self._data_root:
            path = self._data_root / path
        try:
            return path.read_bytes()
        except OSError:
            return None

    async def close(self) -> None:
        await self._remote.close()
