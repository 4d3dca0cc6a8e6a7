from __future__ import annotations

import logging
from typing import Iterable, Protocol, Sequence

from ..models import AlgorithmSettings, ImageEntry, ImageMatch, SearchType
from ..names import parse_keywords, simplify_token_name
from ..similarity import similarity

logger = logging.getLogger(__name__)


class ImageCatalog(Protocol):
    async def list_images(self, search_type: SearchType) -> Sequence[ImageEntry]: ...


class ImageSearchService:
    """
    Finds images whose file names resemble an actor or token name.

    Names and file names are compared in simplified form (word characters only,
    lowercase). Depending on the algorithm settings a file matches when its
    name equals a search term (exact), contains it (default), or is similar
    enough by normalized Levenshtein score (fuzzy).
    """

    def __init__(
        self,
        catalog: ImageCatalog,
        *,
        algorithm: AlgorithmSettings | None = None,
        keyword_search: bool = False,
        excluded_keywords: Iterable[str] = (),
    ):
        self._catalog = catalog
        self.algorithm = algorithm or AlgorithmSettings()
        self.keyword_search = keyword_search
        self.excluded_keywords = {simplify_token_name(word) for word in excluded_keywords if word}

    def search_terms(self, name: str, *, ignore_keywords: bool = False) -> list[str]:
        terms: list[str] = []
        simplified = simplify_token_name(name or "")
        if simplified:
            terms.append(simplified)
        if self.keyword_search and not ignore_keywords:
            for keyword in parse_keywords(name or ""):
                if keyword in self.excluded_keywords or keyword in terms:
                    continue
                terms.append(keyword)
        return terms

    async def search(
        self,
        name: str,
        *,
        search_type: SearchType = SearchType.BOTH,
        simple_results: bool = False,
        ignore_keywords: bool = False,
        algorithm: AlgorithmSettings | None = None,
    ) -> list[str] | dict[str, list[ImageMatch]]:
        algorithm = algorithm or self.algorithm
        terms = self.search_terms(name, ignore_keywords=ignore_keywords)
        if not terms:
            return [] if simple_results else {}

        images = await self._catalog.list_images(search_type)
        results = {term: self.match(term, images, algorithm) for term in terms}
        logger.debug(
            "Search '%s' (%s): %s",
            name,
            search_type.value,
            ", ".join(f"{term}={len(found)}" for term, found in results.items()),
        )

        if not simple_results:
            return results
        seen: set[str] = set()
        paths: list[str] = []
        for matches in results.values():
            for found in matches:
                if found.path not in seen:
                    seen.add(found.path)
                    paths.append(found.path)
        return paths

    @staticmethod
    def match(term: str, images: Sequence[ImageEntry], algorithm: AlgorithmSettings) -> list[ImageMatch]:
        fuzzy = algorithm.fuzzy and not algorithm.exact
        matches: list[ImageMatch] = []
        for image in images:
            simplified = simplify_token_name(image.name)
            if not simplified:
                continue
            if algorithm.exact:
                if simplified == term:
                    matches.append(ImageMatch(path=image.path, name=image.name))
            elif fuzzy:
                score = similarity(term, simplified)
                if score >= algorithm.fuzzy_threshold:
                    matches.append(ImageMatch(path=image.path, name=image.name, score=score))
            elif term in simplified:
                matches.append(ImageMatch(path=image.path, name=image.name))

        if fuzzy:
            matches.sort(key=lambda found: (-found.score, found.path))
            return matches[: max(algorithm.fuzzy_limit, 0)]
        matches.sort(key=lambda found: found.path)
        return matches
