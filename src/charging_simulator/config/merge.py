from __future__ import annotations

import copy
from typing import Any, Mapping, MutableMapping


def deep_merge_dicts(base: MutableMapping[str, Any], override: Mapping[str, Any]) -> None:
    """Merge `override` into `base` in place, recursing into nested mappings."""
    for k, v in override.items():
        if isinstance(v, Mapping) and isinstance(base.get(k), Mapping):
            deep_merge_dicts(base[k], v)  # type: ignore[arg-type]
            continue
        base[k] = copy.deepcopy(v)


def shallow_merge_dicts(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    merged.update(copy.deepcopy(dict(override)))
    return merged
