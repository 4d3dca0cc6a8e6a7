from __future__ import annotations

import json
from typing import Any, Mapping

from ..domain.models import (
    ALL_IMAGE_TYPES,
    ActorRecord,
    ImageEntry,
    MappingOptions,
    SearchType,
)
from ..domain.names import get_token_img


def _coerce(mapping: Mapping[str, Any], key: str, default: Any = None) -> Any:
    value = mapping.get(key, default)
    return value if value is not None else default


def serialize_types(types: frozenset[SearchType]) -> str:
    return ",".join(sorted(kind.value for kind in types))


def parse_types(raw: str | None) -> frozenset[SearchType]:
    if raw is None:
        return ALL_IMAGE_TYPES
    return frozenset(SearchType(part) for part in raw.split(",") if part)


def image_entry_from_row(row: Mapping[str, Any]) -> ImageEntry:
    return ImageEntry(
        path=str(row["path"]),
        name=str(_coerce(row, "name", "")),
        source=str(_coerce(row, "source", "data")),
        types=parse_types(row.get("types")),
    )


def token_config_from_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return json.loads(_coerce(row, "config", "{}") or "{}")


def serialize_token_config(config: Mapping[str, Any]) -> str:
    return json.dumps(dict(config), sort_keys=True, ensure_ascii=False)


def mapping_options_from_row(row: Mapping[str, Any]) -> MappingOptions:
    return MappingOptions.from_mapping(json.loads(_coerce(row, "options", "{}") or "{}"))


def serialize_mapping_options(options: MappingOptions) -> str:
    return json.dumps(options.to_mapping(), sort_keys=True)


def actor_from_document(document: Mapping[str, Any]) -> ActorRecord:
    token = document.get("prototypeToken") or document.get("token") or {}
    name = str(_coerce(document, "name", "")).strip()
    return ActorRecord(
        id=str(document["_id"]),
        name=name,
        img=str(_coerce(document, "img", "") or ""),
        token_name=str(_coerce(token, "name", "") or name).strip(),
        token_img=get_token_img(token),
    )
