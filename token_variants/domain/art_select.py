from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from .models import AlgorithmSettings, ImageMatch, SearchType


class SelectionAction(Enum):
    """What picking an image for a queued request does."""

    PORTRAIT = "portrait"
    TOKEN = "token"
    BOTH = "both"
    PORTRAIT_THEN_TOKEN = "portrait_then_token"


@dataclass(frozen=True)
class ArtSelectRequest:
    search: str
    search_type: SearchType
    action: SelectionAction
    compendium: str
    actor_id: str
    image1: str = ""
    image2: str = ""
    ignore_keywords: bool = False
    algorithm: Optional[AlgorithmSettings] = None
    prevent_close: bool = False


@dataclass(frozen=True)
class ArtSelectEntry:
    request: ArtSelectRequest
    matches: dict[str, list[ImageMatch]] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(len(found) for found in self.matches.values())


class ArtSelectQueue:
    def __init__(self):
        self._pending: deque[ArtSelectRequest] = deque()

    def add(self, request: ArtSelectRequest) -> None:
        self._pending.append(request)

    def drain(self) -> list[ArtSelectRequest]:
        drained = list(self._pending)
        self._pending.clear()
        return drained

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[ArtSelectRequest]:
        return iter(list(self._pending))
