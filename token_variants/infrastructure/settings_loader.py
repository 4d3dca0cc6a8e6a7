from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ..domain.models import AlgorithmSettings
from ..domain.names import parse_keywords
from ..domain.search_paths import to_search_path


@dataclass(frozen=True)
class TokenVariantsSettings:
    search_paths: list[Any] = field(default_factory=list)
    excluded_keywords: tuple[str, ...] = ()
    keyword_search: bool = False
    algorithm: AlgorithmSettings = field(default_factory=AlgorithmSettings)
    forge_api_keys: dict[str, str] = field(default_factory=dict)


def _excluded_keywords(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return tuple(parse_keywords(raw))
    if isinstance(raw, list):
        words: list[str] = []
        for item in raw:
            words.extend(parse_keywords(str(item)))
        return tuple(words)
    raise RuntimeError("excluded_keywords must be a string or a list")


def load_settings_from_yaml(path: str) -> TokenVariantsSettings:
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"settings file not found: {path}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise RuntimeError("Invalid settings format")

    search_paths = data.get("search_paths") or []
    if not isinstance(search_paths, list):
        raise RuntimeError("search_paths must be a list")
    for entry in search_paths:
        _check_search_path_entry(entry)

    algorithm = data.get("algorithm") or {}
    if not isinstance(algorithm, dict):
        raise RuntimeError("algorithm must be a mapping")
    threshold = float(algorithm.get("fuzzy_threshold", AlgorithmSettings.fuzzy_threshold))
    if not 0.0 <= threshold <= 1.0:
        raise RuntimeError(f"fuzzy_threshold must be between 0 and 1, got {threshold}")

    api_keys = data.get("forge_api_keys") or {}
    if not isinstance(api_keys, dict):
        raise RuntimeError("forge_api_keys must be a mapping of user id to API key")

    return TokenVariantsSettings(
        search_paths=[entry for entry in search_paths if _has_text(entry)],
        excluded_keywords=_excluded_keywords(data.get("excluded_keywords")),
        keyword_search=bool(data.get("keyword_search", False)),
        algorithm=AlgorithmSettings.from_mapping(algorithm),
        forge_api_keys={str(user).strip(): str(key).strip() for user, key in api_keys.items() if key},
    )


def _check_search_path_entry(entry: Any) -> None:
    if isinstance(entry, str):
        return
    if isinstance(entry, list):
        for item in entry:
            _check_search_path_entry(item)
        return
    if not isinstance(entry, dict) or "text" not in entry:
        raise RuntimeError(f"Invalid search path entry: {entry}")
    if not isinstance(entry.get("cache", True), bool):
        raise RuntimeError(f"cache must be true or false for search path '{entry['text']}'")


def _has_text(entry: Any) -> bool:
    if isinstance(entry, list):
        return any(_has_text(item) for item in entry)
    return to_search_path(entry) is not None
