"""
Cache Key Resolver

The pack id is a pure function of (vehicle_family, workspace_type). Each
component is normalized to lower-case snake_case and the two are joined
with a double underscore, which a normalized component can never contain.
"""

import re
from typing import Tuple, Union

from overlay_packs.models.enums import WorkspaceType

KEY_SEPARATOR = "__"

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def normalize_component(value: Union[str, WorkspaceType]) -> str:
    """
    Normalize one key component.

    Lower-cases, collapses every run of non-alphanumeric characters to a
    single underscore and strips leading/trailing underscores.

    Raises:
        ValueError: If nothing alphanumeric remains.
    """
    if isinstance(value, WorkspaceType):
        value = value.value
    normalized = _NON_ALNUM_RE.sub("_", str(value).strip().lower()).strip("_")
    if not normalized:
        raise ValueError(f"Cannot build a cache key component from {value!r}")
    return normalized


def cache_key(vehicle_family: str, workspace_type: Union[str, WorkspaceType]) -> str:
    """
    Build the cache key / pack id for a family and workspace.

    Example:
        cache_key("Toyota Camry Family", "engine-front")
        -> "toyota_camry_family__engine_front"
    """
    return (
        f"{normalize_component(vehicle_family)}"
        f"{KEY_SEPARATOR}"
        f"{normalize_component(workspace_type)}"
    )


def parse_cache_key(key: str) -> Tuple[str, str]:
    """
    Split a cache key back into (vehicle_family, workspace_type).

    Inverse of cache_key() for already-normalized components.

    Raises:
        ValueError: If the key is not of the form "<family>__<workspace>".
    """
    family, sep, workspace = key.partition(KEY_SEPARATOR)
    if not sep or not family or not workspace or KEY_SEPARATOR in workspace:
        raise ValueError(f"Malformed cache key: {key!r}")
    return family, workspace
