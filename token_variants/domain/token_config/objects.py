from __future__ import annotations

import copy
from typing import Any, Mapping


def expand_object(flat: Mapping[str, Any]) -> dict[str, Any]:
    """
    {"light.dim": 10} -> {"light": {"dim": 10}}
    """
    expanded: dict[str, Any] = {}
    for key, value in flat.items():
        target = expanded
        parts = key.split(".")
        for part in parts[:-1]:
            nested = target.get(part)
            if not isinstance(nested, dict):
                nested = {}
                target[part] = nested
            target = nested
        if isinstance(value, Mapping):
            value = expand_object(value)
        target[parts[-1]] = value
    return expanded


def flatten_object(obj: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in obj.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping) and value:
            flat.update(flatten_object(value, f"{name}."))
        else:
            flat[name] = value
    return flat


def merge_object(original: Mapping[str, Any], other: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursive merge returning a new dict; dotted keys of ``other`` are expanded
    first and values of ``other`` win.
    """
    merged = copy.deepcopy(dict(original))
    for key, value in expand_object(other).items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_object(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _kind(value: Any) -> str:
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _difference(v0: Any, v1: Any, *, inner: bool) -> tuple[bool, Any]:
    t0, t1 = _kind(v0), _kind(v1)
    if t0 != t1:
        if v0 is None and v1 == "":
            return False, v1
        return True, v1
    if t0 == "array":
        return list(v0) != list(v1), v1
    if t0 == "object":
        if (not v0) != (not v1):
            return True, v1
        nested = diff_object(v0, v1, inner=inner)
        return bool(nested), nested
    return v0 != v1, v1


def diff_object(original: Mapping[str, Any], other: Mapping[str, Any], *, inner: bool = False) -> dict[str, Any]:
    """
    Keys of ``other`` whose values differ from ``original``.

    A missing or ``None`` value in ``original`` counts as equal to an empty
    string in ``other``. With ``inner=True`` keys absent from ``original`` are
    ignored.
    """
    diff: dict[str, Any] = {}
    for key, value in other.items():
        if inner and key not in original:
            continue
        is_different, difference = _difference(original.get(key), value, inner=inner)
        if is_different:
            diff[key] = difference
    return diff
