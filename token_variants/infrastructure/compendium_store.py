from __future__ import annotations

import asyncio
import copy
import logging
from pathlib import Path
from typing import Any, Sequence

import yaml

from ..domain.mapping import CompendiumError
from ..domain.models import ActorRecord, CompendiumInfo
from ..domain.repositories import CompendiumRepository
from .mappers import actor_from_document

logger = logging.getLogger(__name__)


def load_packs_from_yaml(path: str) -> list[dict[str, Any]]:
    p = Path(path)
    if not p.exists():
        raise RuntimeError(f"compendium file not found: {path}")

    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict) or "packs" not in data:
        raise RuntimeError("Invalid compendium file format")

    packs = data["packs"]
    if not isinstance(packs, list):
        raise RuntimeError("packs must be a list")

    normalized = []
    for pack in packs:
        pack_id = str((pack or {}).get("id") or "").strip()
        if not pack_id:
            raise RuntimeError(f"Invalid pack entry: {pack}")
        actors = pack.get("actors") or []
        if not isinstance(actors, list):
            raise RuntimeError(f"actors of pack '{pack_id}' must be a list")
        for actor in actors:
            if not isinstance(actor, dict) or not actor.get("_id") or not actor.get("name"):
                raise RuntimeError(f"Invalid actor entry in pack '{pack_id}': {actor}")
        normalized.append({
            "id": pack_id,
            "title": str(pack.get("title") or pack_id).strip(),
            "document": str(pack.get("document") or "Actor").strip(),
            "locked": bool(pack.get("locked", False)),
            "actors": actors,
        })
    return normalized


class YamlCompendiumRepository(CompendiumRepository):
    """
    Actor compendiums kept in one YAML file. Updates are written back to the
    file immediately.
    """

    def __init__(self, path: str):
        self.path = path
        self._packs = {pack["id"]: pack for pack in load_packs_from_yaml(path)}
        self._lock = asyncio.Lock()

    def list_packs(self) -> Sequence[CompendiumInfo]:
        return [self._info(pack) for pack in self._packs.values()]

    def get_info(self, compendium_id: str) -> CompendiumInfo:
        return self._info(self._pack(compendium_id))

    def list_actors(self, compendium_id: str) -> Sequence[ActorRecord]:
        return [actor_from_document(doc) for doc in self._pack(compendium_id)["actors"]]

    def get_actor(self, compendium_id: str, actor_id: str) -> ActorRecord:
        return actor_from_document(self._document(compendium_id, actor_id))

    def get_token_data(self, compendium_id: str, actor_id: str) -> dict[str, Any]:
        document = self._document(compendium_id, actor_id)
        return copy.deepcopy(document.get(self._token_key(document)) or {})

    async def update_actor(
        self,
        compendium_id: str,
        actor_id: str,
        *,
        img: str | None = None,
        token: dict[str, Any] | None = None,
    ) -> ActorRecord:
        async with self._lock:
            document = self._document(compendium_id, actor_id)
            if img is not None:
                document["img"] = img
            if token is not None:
                document[self._token_key(document)] = token
            await asyncio.to_thread(self._write)
        logger.debug("Updated actor %s in '%s'", actor_id, compendium_id)
        return actor_from_document(document)

    @staticmethod
    def _token_key(document: dict[str, Any]) -> str:
        return "prototypeToken" if "prototypeToken" in document else "token"

    @staticmethod
    def _info(pack: dict[str, Any]) -> CompendiumInfo:
        return CompendiumInfo(
            id=pack["id"],
            title=pack["title"],
            document=pack["document"],
            locked=pack["locked"],
        )

    def _pack(self, compendium_id: str) -> dict[str, Any]:
        pack = self._packs.get(compendium_id)
        if not pack:
            raise CompendiumError(f"Compendium not found: {compendium_id}")
        return pack

    def _document(self, compendium_id: str, actor_id: str) -> dict[str, Any]:
        for document in self._pack(compendium_id)["actors"]:
            if str(document["_id"]) == actor_id:
                return document
        raise CompendiumError(f"Actor '{actor_id}' not found in compendium '{compendium_id}'")

    def _write(self) -> None:
        target = Path(self.path)
        tmp_path = target.with_suffix(target.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(
                {"packs": list(self._packs.values())},
                f,
                allow_unicode=True,
                sort_keys=False,
            )
        tmp_path.replace(target)
