from __future__ import annotations

import re
from typing import Any, Mapping
from urllib.parse import unquote

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "svg", "webp"})
VIDEO_EXTENSIONS = frozenset({"webm", "mp4", "m4v"})

_NON_WORD = re.compile(r"\W")


def get_file_name_with_ext(path: str) -> str:
    return unquote(path).split("\\")[-1].split("/")[-1]


def get_file_name(path: str) -> str:
    return get_file_name_with_ext(path).split(".")[0]


def simplify_token_name(name: str) -> str:
    """
    "Goblin (Boss)-2" -> "goblinboss2"
    """
    return _NON_WORD.sub("", name).lower()


def parse_keywords(text: str) -> list[str]:
    words = (simplify_token_name(word) for word in _NON_WORD.split(text or ""))
    return [word for word in words if word]


def _extension(path: str) -> str:
    return path.split(".")[-1].lower()


def is_image(path: str) -> bool:
    return _extension(path) in IMAGE_EXTENSIONS


def is_video(path: str) -> bool:
    return _extension(path) in VIDEO_EXTENSIONS


def is_media(path: str) -> bool:
    return is_image(path) or is_video(path)


def get_token_img(token: Mapping[str, Any] | None) -> str:
    """
    Token image from either data layout: flat ``img`` or nested ``texture.src``.
    """
    if not token:
        return ""
    texture = token.get("texture")
    if isinstance(texture, Mapping) and texture.get("src"):
        return str(texture["src"])
    return str(token.get("img") or "")


def set_token_img(token: Mapping[str, Any], img: str) -> dict[str, Any]:
    updated = dict(token)
    texture = updated.get("texture")
    if isinstance(texture, Mapping):
        updated["texture"] = {**texture, "src": img}
    else:
        updated["img"] = img
    return updated
