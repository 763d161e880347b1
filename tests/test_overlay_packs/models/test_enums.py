"""Tests for overlay_packs.models.enums module."""

import pytest

from overlay_packs.models.enums import Accessibility, GenerationState, WorkspaceType


class TestWorkspaceType:
    """Tests for WorkspaceType enum."""

    def test_values(self):
        """Test the five workspaces."""
        assert [w.value for w in WorkspaceType] == [
            "engine_front", "undercarriage", "wheel_assembly", "interior", "trunk_rear",
        ]

    @pytest.mark.parametrize("label", ["engine_front", "Engine-Front", " engine front ", "ENGINE_FRONT"])
    def test_parse_variants(self, label):
        """Test lenient parsing."""
        assert WorkspaceType.parse(label) is WorkspaceType.ENGINE_FRONT

    def test_parse_passthrough(self):
        """Test an enum member is returned unchanged."""
        assert WorkspaceType.parse(WorkspaceType.INTERIOR) is WorkspaceType.INTERIOR

    def test_parse_unknown(self):
        """Test unknown workspaces raise ValueError."""
        with pytest.raises(ValueError):
            WorkspaceType.parse("roof")


class TestAccessibility:
    """Tests for Accessibility enum."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("easy", Accessibility.EASY),
            ("Moderate - behind the airbox", Accessibility.MODERATE),
            ("DIFFICULT", Accessibility.DIFFICULT),
            ("moderate to difficult", Accessibility.DIFFICULT),
        ],
    )
    def test_parse_text(self, text, expected):
        """Test substring parsing of provider text."""
        assert Accessibility.parse(text) is expected

    def test_parse_unknown_defaults_easy(self):
        """Test unrecognized text."""
        assert Accessibility.parse("unknown") is Accessibility.EASY
        assert Accessibility.parse(None) is Accessibility.EASY

    def test_parse_custom_default(self):
        """Test a custom default."""
        assert Accessibility.parse("", default=Accessibility.MODERATE) is Accessibility.MODERATE


class TestGenerationState:
    """Tests for GenerationState enum."""

    def test_terminal_states(self):
        """Test which states carry a pack."""
        terminal = {state for state in GenerationState if state.is_terminal}
        assert terminal == {
            GenerationState.CACHED,
            GenerationState.FAILED_FALLBACK_TO_VECTOR_ONLY,
            GenerationState.FAILED_FALLBACK_TO_STATIC,
        }

    def test_in_flight_states_not_terminal(self):
        """Test in-flight states."""
        assert not GenerationState.PLANNING_IN_FLIGHT.is_terminal
        assert not GenerationState.NOT_STARTED.is_terminal
