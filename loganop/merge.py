"""Deep merge of configuration data where set values override."""

from __future__ import annotations

import copy
from collections.abc import Mapping, MutableMapping
from typing import Any


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, list, tuple, dict, Mapping)):
        return len(value) == 0
    return False


def _is_named_list(items: Any) -> bool:
    return isinstance(items, list) and all(
        isinstance(item, Mapping) and "name" in item for item in items
    )


def _merge_named(current: list, incoming: list) -> list:
    merged = copy.deepcopy(current)
    positions = {item["name"]: index for index, item in enumerate(merged)}
    for item in incoming:
        name = item["name"]
        if name in positions:
            merged[positions[name]] = copy.deepcopy(item)
        else:
            positions[name] = len(merged)
            merged.append(copy.deepcopy(item))
    return merged


def merge_override(dst: MutableMapping, src: Mapping) -> MutableMapping:
    """Merge ``src`` into ``dst`` in place and return ``dst``.

    Every non-empty value of ``src`` wins over ``dst``. Nested mappings are
    merged key by key; lists of named entries are merged by name, keeping the
    order of ``dst`` and appending new names; other lists are replaced.
    Booleans always count as set.
    """
    if not isinstance(dst, MutableMapping):
        raise TypeError("merge destination must be a mutable mapping")
    if not isinstance(src, Mapping):
        raise TypeError("merge source must be a mapping")

    for key, value in src.items():
        if _is_empty(value):
            continue
        current = dst.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, Mapping):
            merge_override(current, value)
        elif _is_named_list(current) and _is_named_list(value):
            dst[key] = _merge_named(current, value)
        else:
            dst[key] = copy.deepcopy(value)
    return dst