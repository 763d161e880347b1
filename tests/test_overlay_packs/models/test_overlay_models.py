"""Tests for overlay_packs.models.overlay, planning and vehicle modules."""

import pytest

from overlay_packs.models import (
    AccessPath,
    Accessibility,
    NormalizedCoordinate,
    OverlayLayer,
    OverlayPack,
    OverlayPart,
    RepairIntent,
    TechnicalPlan,
    VehicleDescriptor,
)
from tests.fakes import CAMRY_PLAN


def square(x0=0.1, y0=0.1, x1=0.2, y1=0.2):
    return [
        NormalizedCoordinate(x0, y0),
        NormalizedCoordinate(x1, y0),
        NormalizedCoordinate(x1, y1),
        NormalizedCoordinate(x0, y1),
    ]


class TestNormalizedCoordinate:
    """Tests for NormalizedCoordinate."""

    def test_from_dict(self):
        """Test mapping form."""
        assert NormalizedCoordinate.from_dict({"x": 0.5, "y": "0.25"}) == NormalizedCoordinate(0.5, 0.25)

    def test_from_pair(self):
        """Test pair form."""
        assert NormalizedCoordinate.from_dict([0.1, 0.9]).as_tuple() == (0.1, 0.9)

    @pytest.mark.parametrize("data", [{"x": "left", "y": 0.1}, {"x": None, "y": 0.1}, [1], "0.1,0.2", {"x": True, "y": 0}])
    def test_invalid(self, data):
        """Test non-numeric points."""
        with pytest.raises(ValueError):
            NormalizedCoordinate.from_dict(data)

    def test_in_bounds(self):
        """Test bounds check includes the edges."""
        assert NormalizedCoordinate(0.0, 1.0).in_bounds
        assert not NormalizedCoordinate(1.2, 0.5).in_bounds
        assert not NormalizedCoordinate(0.5, -0.01).in_bounds

    def test_from_dict_does_not_range_check(self):
        """Test out-of-range values parse; validation happens later."""
        assert NormalizedCoordinate.from_dict({"x": 1.2, "y": 0.5}).x == 1.2


class TestOverlayPart:
    """Tests for OverlayPart."""

    def test_round_trip(self):
        """Test to_dict / from_dict."""
        part = OverlayPart(polygon=square(), glow_color="#FF6B35", part_type="electrical",
                           accessibility=Accessibility.DIFFICULT)
        data = part.to_dict()
        assert data["accessibility"] == "difficult"
        assert OverlayPart.from_dict(data) == part

    def test_from_dict_defaults(self):
        """Test defaults for missing fields."""
        part = OverlayPart.from_dict({"polygon": [[0.1, 0.1], [0.2, 0.1], [0.2, 0.2]]})
        assert part.glow_color == "#00FFFF"
        assert part.accessibility is Accessibility.EASY

    def test_polygon_must_be_list(self):
        """Test a non-list polygon."""
        with pytest.raises(ValueError):
            OverlayPart.from_dict({"polygon": "0.1,0.1"})


class TestAuxiliaryModels:
    """Tests for AccessPath and OverlayLayer."""

    def test_access_path_defaults(self):
        """Test access path defaults."""
        path = AccessPath.from_dict({"polyline": [{"x": 0.1, "y": 0.2}, {"x": 0.3, "y": 0.4}]})
        assert path.animation_duration == 3000
        assert path.stroke_width == 3
        assert path.dash_pattern == "15,10"

    def test_layer_defaults(self):
        """Test layer defaults."""
        layer = OverlayLayer.from_dict({"polygon": [[0, 0], [1, 0], [1, 1]]})
        assert layer.color_tint == "#333333"
        assert layer.opacity_cutaway == 0.3


class TestOverlayPack:
    """Tests for OverlayPack."""

    def make_pack(self, **overrides):
        data = dict(
            id="toyota_generic_family__engine_front",
            vehicle_family="toyota_generic_family",
            workspace_type="engine_front",
            parts={"battery": OverlayPart(polygon=square())},
            gpt_model="hybrid-deepseek-dalle3",
            image_url="https://storage.test/a.png",
        )
        data.update(overrides)
        return OverlayPack(**data)

    def test_defaults(self):
        """Test baseline dimensions and usage count."""
        pack = self.make_pack()
        assert pack.baseline_dimensions == {"width": 1000, "height": 600}
        assert pack.usage_count == 0
        assert pack.has_image
        assert pack.generated_at

    def test_round_trip_with_auxiliary(self):
        """Test serialization with access paths and layers."""
        pack = self.make_pack(
            access_paths={"battery": AccessPath(polyline=square()[:2])},
            layers={"engine_cover": OverlayLayer(polygon=square(), layer_name="Engine Cover")},
            usage_count=4,
        )
        assert OverlayPack.from_dict(pack.to_dict()) == pack

    def test_empty_auxiliary_serialized_as_none(self):
        """Test empty maps are stored as null."""
        data = self.make_pack(access_paths={}, layers={}).to_dict()
        assert data["access_paths"] is None
        assert data["layers"] is None

    def test_vector_only_pack(self):
        """Test a pack without an image."""
        pack = self.make_pack(image_url=None, workspace_svg="<svg/>")
        assert not pack.has_image
        assert OverlayPack.from_dict(pack.to_dict()).workspace_svg == "<svg/>"


class TestTechnicalPlan:
    """Tests for TechnicalPlan."""

    def test_from_dict(self):
        """Test parsing a provider plan."""
        plan = TechnicalPlan.from_dict(CAMRY_PLAN)
        assert plan.visual_brief.target_part == "battery"
        assert plan.layout_specifications["target_part"].position == "top-left"
        assert plan.vehicle_specific_details.part_accessibility == "easy"

    def test_part_location_fallbacks(self):
        """Test part location falls back to layout details then a default."""
        plan = TechnicalPlan.from_dict({
            "visual_brief": {"target_part": "battery"},
            "layout_specifications": {"target_part": {"location_details": "left of radiator"}},
        })
        assert plan.part_location == "left of radiator"
        assert TechnicalPlan.from_dict({"visual_brief": {}}).part_location == "center of the workspace"

    def test_list_values_joined(self):
        """Test list values from the provider become text."""
        plan = TechnicalPlan.from_dict({
            "visual_brief": {"target_part": "battery"},
            "layout_specifications": {},
            "vehicle_specific_details": {"surrounding_obstacles": ["intake", "fuse box"]},
        })
        assert plan.vehicle_specific_details.surrounding_obstacles == "intake, fuse box"

    def test_round_trip(self):
        """Test to_dict / from_dict."""
        plan = TechnicalPlan.from_dict(CAMRY_PLAN)
        assert TechnicalPlan.from_dict(plan.to_dict()) == plan


class TestVehicleModels:
    """Tests for VehicleDescriptor and RepairIntent."""

    def test_display_name(self):
        """Test display name."""
        vehicle = VehicleDescriptor(year=2020, make="Toyota", model="Camry")
        assert vehicle.display_name == "2020 Toyota Camry"

    def test_frozen(self):
        """Test descriptors are immutable."""
        vehicle = VehicleDescriptor(year=2020, make="Toyota", model="Camry")
        with pytest.raises(AttributeError):
            vehicle.make = "Honda"

    def test_round_trip(self):
        """Test to_dict / from_dict."""
        vehicle = VehicleDescriptor(year=2019, make="Ford", model="F-150", drivetrain="4WD", steering="LHD")
        assert VehicleDescriptor.from_dict(vehicle.to_dict()) == vehicle

    def test_repair_label(self):
        """Test repair label."""
        assert RepairIntent("brake_pad_replacement").label == "brake pad replacement"
