from collections.abc import Mapping
from typing import Any


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, (str, bytes, list, tuple, set, frozenset, Mapping)) and len(value) == 0


def prune(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``mapping`` without ``None`` or empty values.

    Nested mappings are pruned first, so a mapping that only held empty
    values is itself removed. ``False`` and ``0`` are kept.
    """
    pruned: dict[str, Any] = {}
    for key, value in mapping.items():
        if isinstance(value, Mapping):
            value = prune(value)
        if not _is_blank(value):
            pruned[key] = value
    return pruned
