# utils/sort_keys.py
from typing import Any

# Standard Kubernetes manifest order
_PRIORITY = ["apiVersion", "kind", "metadata", "spec", "status"]


def _key_rank(key: str):
    if key in _PRIORITY:
        return (0, _PRIORITY.index(key), "")
    return (1, 0, key)


def sort_keys(obj: Any) -> Any:
    """Recursively reorders dict keys: manifest keys first, the rest alphabetical."""
    if isinstance(obj, list):
        return [sort_keys(item) for item in obj]
    if not isinstance(obj, dict):
        return obj
    return {k: sort_keys(obj[k]) for k in sorted(obj, key=_key_rank)}
