"""Tests for overlay_packs.services.auxiliary_service module."""

import json

import pytest

from overlay_packs.core.exceptions import ParseError, ProviderError
from overlay_packs.models import Accessibility, NormalizedCoordinate, OverlayPart, WorkspaceType
from overlay_packs.services.auxiliary_service import (
    AuxiliaryService,
    parse_access_paths,
    parse_cutaway_layers,
)
from tests.fakes import ACCESS_PATHS, CUTAWAY_LAYERS, FakeReasoningProvider

SQUARE = [
    NormalizedCoordinate(0.1, 0.1),
    NormalizedCoordinate(0.25, 0.1),
    NormalizedCoordinate(0.25, 0.2),
    NormalizedCoordinate(0.1, 0.2),
]
DIFFICULT_PARTS = {
    "battery": OverlayPart(polygon=SQUARE, accessibility=Accessibility.DIFFICULT),
    "fuse_box": OverlayPart(polygon=SQUARE),
}
EASY_PARTS = {"fuse_box": OverlayPart(polygon=SQUARE)}
FAMILY = "toyota_generic_family"


def polyline(count):
    return [{"x": 0.1 * (i + 1), "y": 0.1 * (i + 1)} for i in range(count)]


class TestParsers:
    """Tests for response parsers."""

    def test_access_paths(self):
        """Test a valid access-path response."""
        paths = parse_access_paths(json.dumps(ACCESS_PATHS))
        assert len(paths["battery"].polyline) == 3
        assert paths["battery"].dash_pattern == "15,10"

    def test_too_many_waypoints(self):
        """Test paths are limited to four waypoints."""
        with pytest.raises(ParseError):
            parse_access_paths(json.dumps({"battery": {"polyline": polyline(5)}}))

    def test_four_waypoints_allowed(self):
        """Test the upper bound is inclusive."""
        assert len(parse_access_paths(json.dumps({"battery": {"polyline": polyline(4)}}))["battery"].polyline) == 4

    def test_single_waypoint(self):
        """Test paths need at least two waypoints."""
        with pytest.raises(ParseError):
            parse_access_paths(json.dumps({"battery": {"polyline": polyline(1)}}))

    def test_non_object_entry(self):
        """Test entries must be objects."""
        with pytest.raises(ParseError):
            parse_access_paths(json.dumps({"battery": [0.1, 0.2]}))

    def test_cutaway_layers(self):
        """Test a valid layer response."""
        layers = parse_cutaway_layers(json.dumps(CUTAWAY_LAYERS))
        assert layers["engine_cover"].layer_name == "Engine Cover"

    def test_cutaway_out_of_range(self):
        """Test layers with coordinates outside [0, 1]."""
        bad = {"cover": {"polygon": [{"x": 0.1, "y": 0.1}, {"x": 1.5, "y": 0.1}, {"x": 0.2, "y": 0.2}]}}
        with pytest.raises(ParseError):
            parse_cutaway_layers(json.dumps(bad))


class TestAuxiliaryService:
    """Tests for AuxiliaryService."""

    @pytest.mark.asyncio
    async def test_run(self, reasoning):
        """Test both phases for a pack with a difficult part."""
        paths, layers = await AuxiliaryService(reasoning).run(FAMILY, WorkspaceType.ENGINE_FRONT, DIFFICULT_PARTS)

        assert set(paths) == {"battery"}
        assert set(layers) == {"engine_cover"}
        assert "Difficult Parts: battery" in next(p for p in reasoning.prompts if "Generate access paths" in p)

    @pytest.mark.asyncio
    async def test_no_difficult_parts_skips_call(self, reasoning):
        """Test access paths are not requested when nothing is difficult."""
        paths, layers = await AuxiliaryService(reasoning).run(FAMILY, WorkspaceType.ENGINE_FRONT, EASY_PARTS)

        assert paths == {}
        assert layers
        assert reasoning.count("access_paths") == 0

    @pytest.mark.asyncio
    async def test_provider_errors_swallowed(self):
        """Test phase failures yield empty maps."""
        reasoning = FakeReasoningProvider({
            "access_paths": ProviderError("upstream down", status=500),
            "cutaway_layers": "not json at all",
        })

        paths, layers = await AuxiliaryService(reasoning).run(FAMILY, WorkspaceType.ENGINE_FRONT, DIFFICULT_PARTS)

        assert paths == {}
        assert layers == {}

    @pytest.mark.asyncio
    async def test_invalid_geometry_swallowed(self):
        """Test out-of-range output from one phase does not affect the other."""
        reasoning = FakeReasoningProvider({
            "access_paths": json.dumps({"battery": {"polyline": [{"x": 0.1, "y": 0.1}, {"x": 1.2, "y": 0.5}]}}),
        })

        paths, layers = await AuxiliaryService(reasoning).run(FAMILY, WorkspaceType.ENGINE_FRONT, DIFFICULT_PARTS)

        assert paths == {}
        assert set(layers) == {"engine_cover"}
