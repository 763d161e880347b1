"""
Vector Scene Service

Renders the SVG workspace scene carried by packs that have no generated
image (vector-only and static tiers). The scene is drawn from the parts map
itself, so it always agrees with the pack geometry.
"""

from typing import List, Mapping, Optional, Tuple, Union

import svgwrite

from overlay_packs.models.enums import Accessibility
from overlay_packs.models.overlay import NormalizedCoordinate, OverlayPart

# High-contrast palette for camera overlays.
PRIMARY_COLOR = "#00FFFF"
STROKE_COLOR = "#FFFFFF"
HIGHLIGHT_COLOR = "#FFFF00"

FILL_OPACITY = 0.7
STROKE_WIDTH = 4
GLOW_WIDTH = 14
GLOW_OPACITY = 0.45

ACCESSIBILITY_DASH = {
    Accessibility.EASY: None,
    Accessibility.MODERATE: "12,6",
    Accessibility.DIFFICULT: "4,6",
}

Number = Union[int, float]


def _scale(value: float, extent: int) -> Number:
    scaled = round(value * extent, 1)
    return int(scaled) if scaled.is_integer() else scaled


def _canvas_points(
    polygon: List[NormalizedCoordinate],
    width: int,
    height: int,
) -> List[Tuple[Number, Number]]:
    return [(_scale(point.x, width), _scale(point.y, height)) for point in polygon]


def render_workspace_svg(
    parts: Mapping[str, OverlayPart],
    width: int = 1000,
    height: int = 600,
    highlight: Optional[str] = None,
    title: Optional[str] = None,
) -> str:
    """
    Render a wireframe SVG of the workspace.

    Parts are drawn in name order. The highlighted part gets a wide yellow
    underlay and a yellow fill.

    Args:
        parts: Parts map in normalized coordinates
        width: Baseline canvas width (viewBox)
        height: Baseline canvas height (viewBox)
        highlight: Part name drawn with the yellow glow
        title: Optional accessible title

    Returns:
        SVG markup string.
    """
    # Provider-supplied colors are not guaranteed to be valid SVG paint,
    # so attribute validation is off.
    dwg = svgwrite.Drawing(
        size=(width, height),
        viewBox=f"0 0 {width} {height}",
        debug=False,
    )
    if title:
        dwg.set_desc(title=title)

    for name in sorted(parts):
        part = parts[name]
        points = _canvas_points(part.polygon, width, height)
        is_highlight = name == highlight

        if is_highlight:
            dwg.add(dwg.polygon(
                points,
                id=f"glow-{name}",
                fill="none",
                stroke=HIGHLIGHT_COLOR,
                stroke_width=GLOW_WIDTH,
                stroke_opacity=GLOW_OPACITY,
                stroke_linejoin="round",
            ))

        attrs = {
            "id": f"part-{name}",
            "fill": HIGHLIGHT_COLOR if is_highlight else (part.glow_color or PRIMARY_COLOR),
            "fill_opacity": FILL_OPACITY,
            "stroke": STROKE_COLOR,
            "stroke_width": STROKE_WIDTH,
        }
        dash = ACCESSIBILITY_DASH.get(part.accessibility)
        if dash:
            attrs["stroke_dasharray"] = dash

        shape = dwg.polygon(points, **attrs)
        shape.set_desc(title=part.part_type or name)
        dwg.add(shape)

    return dwg.tostring()
