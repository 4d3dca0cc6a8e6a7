from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional

DEFAULT_TOKEN = "icons/svg/mystery-man.svg"


class SearchType(Enum):
    PORTRAIT = "portrait"
    TOKEN = "token"
    BOTH = "both"

    @classmethod
    def parse(cls, value: "str | SearchType") -> "SearchType":
        if isinstance(value, SearchType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown search type: {value}") from None


ALL_IMAGE_TYPES = frozenset({SearchType.PORTRAIT, SearchType.TOKEN})


def accepts(types: frozenset[SearchType], search_type: SearchType) -> bool:
    if search_type == SearchType.BOTH:
        return bool(types)
    return search_type in types


@dataclass(frozen=True)
class SearchPath:
    text: str
    cache: bool = True
    types: frozenset[SearchType] = ALL_IMAGE_TYPES


@dataclass(frozen=True)
class ForgeUserPaths:
    user_id: str
    api_key: str | None
    paths: tuple[SearchPath, ...]


@dataclass
class SearchPaths:
    data: list[SearchPath] = field(default_factory=list)
    s3: dict[str, list[SearchPath]] = field(default_factory=dict)
    forge: dict[str, ForgeUserPaths] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (self.data or self.s3 or self.forge)


@dataclass(frozen=True)
class ImageEntry:
    path: str
    name: str
    source: str
    types: frozenset[SearchType] = ALL_IMAGE_TYPES


@dataclass(frozen=True)
class ImageMatch:
    path: str
    name: str
    score: float = 1.0


@dataclass(frozen=True)
class AlgorithmSettings:
    exact: bool = False
    fuzzy: bool = True
    fuzzy_limit: int = 50
    fuzzy_threshold: float = 0.3
    fuzzy_art_select: bool = True

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "AlgorithmSettings":
        if not data:
            return cls()
        defaults = cls()
        return cls(
            exact=bool(data.get("exact", defaults.exact)),
            fuzzy=bool(data.get("fuzzy", defaults.fuzzy)),
            fuzzy_limit=int(data.get("fuzzy_limit", defaults.fuzzy_limit)),
            fuzzy_threshold=float(data.get("fuzzy_threshold", defaults.fuzzy_threshold)),
            fuzzy_art_select=bool(data.get("fuzzy_art_select", defaults.fuzzy_art_select)),
        )

    def to_mapping(self) -> dict[str, Any]:
        return {
            "exact": self.exact,
            "fuzzy": self.fuzzy,
            "fuzzy_limit": self.fuzzy_limit,
            "fuzzy_threshold": self.fuzzy_threshold,
            "fuzzy_art_select": self.fuzzy_art_select,
        }

    def for_art_select(self) -> "AlgorithmSettings":
        if self.fuzzy_art_select:
            return self
        return replace(self, fuzzy=False)


@dataclass(frozen=True)
class ActorRecord:
    id: str
    name: str
    img: str
    token_name: str
    token_img: str

    @property
    def has_portrait(self) -> bool:
        return bool(self.img) and self.img != DEFAULT_TOKEN

    @property
    def has_token(self) -> bool:
        return bool(self.token_img) and self.token_img != DEFAULT_TOKEN


@dataclass(frozen=True)
class CompendiumInfo:
    id: str
    title: str
    document: str
    locked: bool


@dataclass(frozen=True)
class MappingOptions:
    compendium: str
    missing_only: bool = False
    diff_images: bool = False
    ignore_portrait: bool = False
    ignore_token: bool = False
    show_images: bool = True
    inc_keywords: bool = False
    auto_apply: bool = False
    auto_display_art_select: bool = True
    sync_images: bool = False
    cache: bool = False
    algorithm: Optional[AlgorithmSettings] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "MappingOptions":
        compendium = str(data.get("compendium") or "").strip()
        flags = {
            name: bool(data[name])
            for name in (
                "missing_only",
                "diff_images",
                "ignore_portrait",
                "ignore_token",
                "show_images",
                "inc_keywords",
                "auto_apply",
                "auto_display_art_select",
                "sync_images",
                "cache",
            )
            if name in data
        }
        algorithm = data.get("algorithm")
        return cls(
            compendium=compendium,
            algorithm=AlgorithmSettings.from_mapping(algorithm) if algorithm else None,
            **flags,
        )

    def to_mapping(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "compendium": self.compendium,
            "missing_only": self.missing_only,
            "diff_images": self.diff_images,
            "ignore_portrait": self.ignore_portrait,
            "ignore_token": self.ignore_token,
            "show_images": self.show_images,
            "inc_keywords": self.inc_keywords,
            "auto_apply": self.auto_apply,
            "auto_display_art_select": self.auto_display_art_select,
            "sync_images": self.sync_images,
            "cache": self.cache,
        }
        if self.algorithm:
            payload["algorithm"] = self.algorithm.to_mapping()
        return payload
