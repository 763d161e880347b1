"""
Geometry Synthesizer

Turns the qualitative layout labels of a technical plan ("top-left",
"large") into normalized rectangles. Deterministic and free of external
calls.
"""

import re
from typing import Dict, List, Optional, Tuple

from overlay_packs.models.enums import Accessibility
from overlay_packs.models.overlay import (
    DEFAULT_GLOW_COLOR,
    NormalizedCoordinate,
    OverlayPart,
)
from overlay_packs.models.planning import TechnicalPlan

# Canonical anchors for the nine positions, as (x, y).
POSITION_ANCHORS: Dict[str, Tuple[float, float]] = {
    "top-left": (0.2, 0.2),
    "top-center": (0.5, 0.2),
    "top-right": (0.8, 0.2),
    "center-left": (0.2, 0.5),
    "center": (0.5, 0.5),
    "center-right": (0.8, 0.5),
    "bottom-left": (0.2, 0.8),
    "bottom-center": (0.5, 0.8),
    "bottom-right": (0.8, 0.8),
}

# Half-extent of the emitted rectangle on each axis.
SIZE_HALF_EXTENTS: Dict[str, float] = {
    "small": 0.05,
    "medium": 0.10,
    "large": 0.15,
}

DEFAULT_POSITION = "center"
DEFAULT_SIZE = "small"

# Layout entries describing the canvas itself rather than a part.
NON_PART_LAYOUT_KEYS = frozenset({"workspace_background"})

_VERTICAL = ("top", "bottom")
_HORIZONTAL = ("left", "right")


def normalize_position(label: Optional[str]) -> str:
    """
    Normalize a free-form position label to one of the nine canonical ones.

    Accepts underscores and spaces ("top_left", "top left"), "middle" for
    "center", and axis-swapped forms ("left-center", "right top").
    Unrecognized labels map to "center".
    """
    text = (label or "").strip().lower()
    tokens = [t for t in re.split(r"[\s_\-]+", text) if t]
    tokens = ["center" if t in ("middle", "centre", "mid") else t for t in tokens]

    if not tokens:
        return DEFAULT_POSITION

    vertical = next((t for t in tokens if t in _VERTICAL), None)
    horizontal = next((t for t in tokens if t in _HORIZONTAL), None)

    if any(t not in _VERTICAL + _HORIZONTAL + ("center",) for t in tokens):
        return DEFAULT_POSITION

    if vertical and horizontal:
        return f"{vertical}-{horizontal}"
    if vertical:
        return f"{vertical}-center"
    if horizontal:
        return f"center-{horizontal}"
    return DEFAULT_POSITION


def normalize_size(label: Optional[str]) -> str:
    """Normalize a size label; anything unrecognized is "small"."""
    text = (label or "").strip().lower()
    return text if text in SIZE_HALF_EXTENTS else DEFAULT_SIZE


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def synthesize_polygon(
    position: Optional[str],
    size: Optional[str],
) -> List[NormalizedCoordinate]:
    """
    Produce the rectangle for a position/size label pair.

    Returns four points, clockwise from the top-left corner, each clamped
    to [0, 1].
    """
    x, y = POSITION_ANCHORS[normalize_position(position)]
    half = SIZE_HALF_EXTENTS[normalize_size(size)]
    return [
        NormalizedCoordinate(_clamp(x - half), _clamp(y - half)),
        NormalizedCoordinate(_clamp(x + half), _clamp(y - half)),
        NormalizedCoordinate(_clamp(x + half), _clamp(y + half)),
        NormalizedCoordinate(_clamp(x - half), _clamp(y + half)),
    ]


def normalize_part_name(name: str) -> str:
    """Lower-case snake_case part key, e.g. starter_motor."""
    return re.sub(r"[^a-z0-9]+", "_", (name or "").strip().lower()).strip("_")


def _part_type_label(name: str) -> str:
    """Display label for a part key, e.g. Air Filter."""
    return name.replace("_", " ").title()


def synthesize_parts(plan: TechnicalPlan) -> Dict[str, OverlayPart]:
    """
    Build the parts map from a technical plan.

    The plan's generic "target_part" layout entry is stored under the
    visual brief's target part name (e.g. "battery"), and takes its
    accessibility from the plan's vehicle notes. Other parts are "easy".
    """
    target_name = normalize_part_name(plan.visual_brief.target_part)
    target_access = Accessibility.parse(
        plan.vehicle_specific_details.part_accessibility,
        default=Accessibility.EASY,
    )

    parts: Dict[str, OverlayPart] = {}
    for raw_name, spec in plan.layout_specifications.items():
        if raw_name in NON_PART_LAYOUT_KEYS:
            continue

        is_target = raw_name == "target_part" or (
            target_name and normalize_part_name(raw_name) == target_name
        )
        name = target_name if is_target and target_name else normalize_part_name(raw_name)
        if not name:
            continue

        parts[name] = OverlayPart(
            polygon=synthesize_polygon(spec.position, spec.size),
            glow_color=spec.color or DEFAULT_GLOW_COLOR,
            part_type=_part_type_label(name),
            accessibility=target_access if is_target else Accessibility.EASY,
        )

    if target_name and target_name not in parts:
        parts[target_name] = OverlayPart(
            polygon=synthesize_polygon(DEFAULT_POSITION, DEFAULT_SIZE),
            glow_color=DEFAULT_GLOW_COLOR,
            part_type=_part_type_label(target_name),
            accessibility=target_access,
        )

    return parts
