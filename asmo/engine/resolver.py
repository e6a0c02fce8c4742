"""Path queries over a snapshot rendered as a plain JSON tree.

Grammar, one ``/``-separated segment at a time:

- empty path                 -> whole tree
- ``key``                    -> descend into an object key
- ``name``                   -> descend into the array element with that ``name``
- ``a,b,c`` (last segment)   -> object of the fields that exist
- ``*`` / ``all``            -> apply the rest of the path to every array element

A last segment that names a single object key is wrapped as ``{key: value}``.
Wildcard results (except a trailing wildcard) are tagged with each
element's ``name``. Anything else is not found.
"""

from __future__ import annotations

import struct
from typing import Any

from asmo.models.stats import SystemStats

WILDCARDS = frozenset({"*", "all"})
NAME_KEY = "name"

_MISSING: Any = object()


class PathNotFoundError(LookupError):
    def __init__(self, path: str) -> None:
        super().__init__(f"nothing at path {path!r}")
        self.path = path


# ── tree construction ───────────────────────────────────


def _f32(value: float) -> float:
    return struct.unpack("f", struct.pack("f", value))[0]


def to_f32(value: float) -> float:
    """Round ``value`` to single precision, keeping its shortest decimal form.

    ``34.400002`` becomes ``34.4`` rather than ``34.400001525878906``.
    """
    try:
        single = _f32(value)
    except OverflowError:
        return value
    for digits in range(1, 10):
        candidate = float(f"{single:.{digits}g}")
        if _f32(candidate) == single:
            return candidate
    return single


def normalize_floats(node: Any) -> Any:
    if isinstance(node, float):
        return to_f32(node)
    if isinstance(node, dict):
        return {k: normalize_floats(v) for k, v in node.items()}
    if isinstance(node, list):
        return [normalize_floats(v) for v in node]
    return node


def to_tree(snapshot: SystemStats) -> dict[str, Any]:
    """Render a snapshot as a fresh dict/list/scalar tree with f32 floats."""
    return normalize_floats(snapshot.model_dump(mode="json"))


# ── navigation ──────────────────────────────────────────


def _child(node: Any, key: str) -> Any:
    if isinstance(node, dict):
        return node.get(key, _MISSING)
    if isinstance(node, list):
        for item in node:
            if isinstance(item, dict) and item.get(NAME_KEY) == key:
                return item
    return _MISSING


def navigate(node: Any, segments: list[str]) -> Any:
    """Follow ``segments`` literally; returns the raw value or ``_MISSING``."""
    for segment in segments:
        node = _child(node, segment)
        if node is _MISSING:
            break
    return node


def _project(node: Any, raw: str) -> Any:
    result = {}
    for field in (f.strip() for f in raw.split(",")):
        if not field:
            continue
        value = _child(node, field)
        if value is not _MISSING:
            result[field] = value
    return result or _MISSING


def _tag(value: Any, item: Any) -> Any:
    if not isinstance(value, dict) or not isinstance(item, dict) or NAME_KEY not in item:
        return value
    return {NAME_KEY: item[NAME_KEY], **value}


def _resolve(node: Any, segments: list[str]) -> Any:
    if not segments:
        return node

    current, rest = segments[0], segments[1:]
    is_last = not rest

    if is_last and "," in current:
        return _project(node, current)

    if current in WILDCARDS:
        if not isinstance(node, list):
            return _MISSING
        results = []
        for item in node:
            if is_last:
                results.append(item)
                continue
            resolved = _resolve(item, rest)
            if resolved is not _MISSING:
                results.append(_tag(resolved, item))
        return results or _MISSING

    child = _child(node, current)
    if child is _MISSING:
        return _MISSING
    if not is_last:
        return _resolve(child, rest)
    if isinstance(node, dict):
        return {current: child}
    return child


def split_path(path: str) -> list[str]:
    return [segment for segment in path.split("/") if segment]


def resolve(tree: Any, path: str) -> Any:
    """Resolve ``path`` against ``tree``; raises PathNotFoundError on a miss."""
    result = _resolve(tree, split_path(path))
    if result is _MISSING:
        raise PathNotFoundError(path)
    return result


# ── endpoint enumeration ────────────────────────────────


def _addressable(segment: Any) -> bool:
    return (
        isinstance(segment, str)
        and segment != ""
        and "/" not in segment
        and "," not in segment
        and segment not in WILDCARDS
    )


def enumerate_endpoints(node: Any, prefix: str = "") -> list[str]:
    """List every literal path the resolver can answer, in tree order.

    Array elements are listed by name followed by their fields; the
    ``name`` field itself is skipped since it is already the path segment.
    """
    paths: list[str] = []
    if not isinstance(node, dict):
        return paths

    for key, child in node.items():
        if not _addressable(key):
            continue
        path = f"{prefix}/{key}"
        paths.append(path)

        if isinstance(child, dict):
            paths.extend(enumerate_endpoints(child, path))
        elif isinstance(child, list):
            seen: set[str] = set()
            for item in child:
                if not isinstance(item, dict):
                    continue
                name = item.get(NAME_KEY)
                # Only the first element with a given name is reachable.
                if not _addressable(name) or name in seen:
                    continue
                seen.add(name)
                item_path = f"{path}/{name}"
                paths.append(item_path)
                fields = {k: v for k, v in item.items() if k != NAME_KEY}
                paths.extend(enumerate_endpoints(fields, item_path))

    return paths
