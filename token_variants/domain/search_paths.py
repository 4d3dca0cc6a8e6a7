from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Iterator, Mapping

from .models import ALL_IMAGE_TYPES, ForgeUserPaths, SearchPath, SearchPaths, SearchType

logger = logging.getLogger(__name__)

BUCKET_PATTERN = re.compile(r"s3:(.*):(.*)")
FORGE_PATTERN = re.compile(r"(.*assets\.forge-vtt\.com/(\w+)/)(.*)")


def _flatten(entries: Iterable[Any]) -> Iterator[Any]:
    for entry in entries:
        if isinstance(entry, (list, tuple)):
            yield from _flatten(entry)
        else:
            yield entry


def _parse_types(raw: Any) -> frozenset[SearchType]:
    if raw is None:
        return ALL_IMAGE_TYPES
    if isinstance(raw, str):
        raw = [raw]
    types: set[SearchType] = set()
    for value in raw:
        kind = SearchType.parse(value)
        if kind == SearchType.BOTH:
            types.update(ALL_IMAGE_TYPES)
        else:
            types.add(kind)
    return frozenset(types)


def to_search_path(entry: Any) -> SearchPath | None:
    if isinstance(entry, SearchPath):
        return entry if entry.text.strip() else None
    if isinstance(entry, Mapping):
        text = str(entry.get("text") or "").strip()
        if not text:
            return None
        cache = entry.get("cache", True)
        if not isinstance(cache, bool):
            raise ValueError(f"cache must be true or false, got {cache!r}")
        return SearchPath(
            text=text,
            cache=cache,
            types=_parse_types(entry.get("types")),
        )
    text = str(entry or "").strip()
    if not text:
        return None
    return SearchPath(text=text)


def parse_search_paths(
    entries: Iterable[Any],
    *,
    forge_api_keys: Mapping[str, str] | None = None,
) -> SearchPaths:
    """
    Sort configured path specifications into local paths, S3 buckets and
    Forge user folders.

    Recognized forms:
      - ``s3:<bucket>:<path>``
      - ``https://assets.forge-vtt.com/<user>/<dir>``
      - anything else is a local path
    """
    api_keys = dict(forge_api_keys or {})
    result = SearchPaths()
    forge_paths: dict[str, list[SearchPath]] = {}

    for entry in _flatten(entries):
        path = to_search_path(entry)
        if path is None:
            continue
        text = path.text

        if text.startswith("s3:"):
            match = BUCKET_PATTERN.match(text)
            bucket = match.group(1) if match else ""
            if not bucket:
                logger.warning("Skipping S3 search path without a bucket: %s", text)
                continue
            result.s3.setdefault(bucket, []).append(
                SearchPath(text=match.group(2), cache=path.cache, types=path.types)
            )
            continue

        match = FORGE_PATTERN.match(text)
        if match and match.group(3):
            forge_paths.setdefault(match.group(2), []).append(path)
        elif match:
            logger.warning(
                "Unsupported Forge asset folder '%s': cannot point to the root, must target a directory within it",
                text,
            )
        else:
            result.data.append(path)

    for user_id, paths in forge_paths.items():
        result.forge[user_id] = ForgeUserPaths(
            user_id=user_id,
            api_key=api_keys.get(user_id),
            paths=tuple(paths),
        )
    return result


def split_forge_path(text: str) -> tuple[str, str] | None:
    """
    "https://assets.forge-vtt.com/abc/tokens/goblins" -> ("https://assets.forge-vtt.com/abc/", "tokens/goblins")
    """
    match = FORGE_PATTERN.match(text)
    if not match or not match.group(3):
        return None
    return match.group(1), match.group(3)
