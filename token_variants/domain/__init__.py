from .models import (
    ALL_IMAGE_TYPES,
    DEFAULT_TOKEN,
    ActorRecord,
    AlgorithmSettings,
    CompendiumInfo,
    ForgeUserPaths,
    ImageEntry,
    ImageMatch,
    MappingOptions,
    SearchPath,
    SearchPaths,
    SearchType,
    accepts,
)
from .similarity import levenshtein, similarity
from .search_paths import parse_search_paths, split_forge_path
from .art_select import ArtSelectEntry, ArtSelectQueue, ArtSelectRequest, SelectionAction
from .repositories import (
    CompendiumRepository,
    ForgePathsRepository,
    ImageCacheRepository,
    ImageSource,
    MapperOptionsRepository,
    TokenConfigRepository,
)

__all__ = [
    "ALL_IMAGE_TYPES",
    "DEFAULT_TOKEN",
    "ActorRecord",
    "AlgorithmSettings",
    "CompendiumInfo",
    "ForgeUserPaths",
    "ImageEntry",
    "ImageMatch",
    "MappingOptions",
    "SearchPath",
    "SearchPaths",
    "SearchType",
    "accepts",
    "levenshtein",
    "similarity",
    "parse_search_paths",
    "split_forge_path",
    "ArtSelectEntry",
    "ArtSelectQueue",
    "ArtSelectRequest",
    "SelectionAction",
    "CompendiumRepository",
    "ForgePathsRepository",
    "ImageCacheRepository",
    "ImageSource",
    "MapperOptionsRepository",
    "TokenConfigRepository",
]
