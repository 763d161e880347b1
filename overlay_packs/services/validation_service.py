"""
Geometry Validator

Strict bounds checking for every polygon and polyline of an overlay pack.
A single out-of-range coordinate rejects the whole pack; nothing is clamped.
"""

import math
from typing import Dict, Iterable, List, Mapping

from overlay_packs.core.exceptions import ValidationError
from overlay_packs.models.overlay import (
    AccessPath,
    NormalizedCoordinate,
    OverlayLayer,
    OverlayPack,
    OverlayPart,
)

MIN_POLYGON_POINTS = 3
MIN_POLYLINE_POINTS = 2


def _coordinate_violations(
    label: str,
    points: Iterable[NormalizedCoordinate],
) -> List[str]:
    violations = []
    for index, point in enumerate(points):
        for axis, value in (("x", point.x), ("y", point.y)):
            if math.isnan(value) or not 0.0 <= value <= 1.0:
                violations.append(f"{label}[{index}].{axis}={value} outside [0, 1]")
    return violations


def polygon_violations(label: str, polygon: List[NormalizedCoordinate]) -> List[str]:
    """List every problem with one polygon (empty when valid)."""
    violations = []
    if len(polygon) < MIN_POLYGON_POINTS:
        violations.append(
            f"{label} has {len(polygon)} points, needs at least {MIN_POLYGON_POINTS}"
        )
    violations.extend(_coordinate_violations(label, polygon))
    return violations


def polyline_violations(label: str, polyline: List[NormalizedCoordinate]) -> List[str]:
    """List every problem with one polyline (empty when valid)."""
    violations = []
    if len(polyline) < MIN_POLYLINE_POINTS:
        violations.append(
            f"{label} has {len(polyline)} points, needs at least {MIN_POLYLINE_POINTS}"
        )
    violations.extend(_coordinate_violations(label, polyline))
    return violations


def parts_violations(parts: Mapping[str, OverlayPart]) -> List[str]:
    violations = []
    for name, part in parts.items():
        violations.extend(polygon_violations(f"parts.{name}.polygon", part.polygon))
    return violations


def access_path_violations(paths: Mapping[str, AccessPath]) -> List[str]:
    violations = []
    for name, path in paths.items():
        violations.extend(polyline_violations(f"access_paths.{name}.polyline", path.polyline))
    return violations


def layer_violations(layers: Mapping[str, OverlayLayer]) -> List[str]:
    violations = []
    for name, layer in layers.items():
        violations.extend(polygon_violations(f"layers.{name}.polygon", layer.polygon))
        if not 0.0 <= layer.opacity_cutaway <= 1.0:
            violations.append(
                f"layers.{name}.opacity_cutaway={layer.opacity_cutaway} outside [0, 1]"
            )
    return violations


def validate_parts(parts: Dict[str, OverlayPart]) -> None:
    """
    Validate a parts map on its own.

    Raises:
        ValidationError: Listing every violation found.
    """
    violations = parts_violations(parts)
    if violations:
        raise ValidationError("Invalid part geometry", violations=violations)


def validate_pack(pack: OverlayPack) -> OverlayPack:
    """
    Validate every coordinate of a candidate pack.

    Args:
        pack: Assembled pack about to be cached and returned

    Returns:
        The same pack, unchanged.

    Raises:
        ValidationError: If any polygon or polyline coordinate lies outside
            [0, 1], a polygon has fewer than three points, or the pack has
            no parts.
    """
    violations: List[str] = []
    if not pack.parts:
        violations.append("pack has no parts")
    violations.extend(parts_violations(pack.parts))
    if pack.access_paths:
        violations.extend(access_path_violations(pack.access_paths))
    if pack.layers:
        violations.extend(layer_violations(pack.layers))

    if violations:
        raise ValidationError(
            f"Overlay pack {pack.id} failed geometry validation",
            violations=violations,
            details={"pack_id": pack.id},
        )
    return pack
