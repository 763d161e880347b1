"""
Overlay pack enums.

Shared enums for workspaces, part accessibility and pipeline state.
"""

from enum import Enum
from typing import Optional, Union


class WorkspaceType(Enum):
    """Physical repair area an overlay pack covers."""
    ENGINE_FRONT = "engine_front"
    UNDERCARRIAGE = "undercarriage"
    WHEEL_ASSEMBLY = "wheel_assembly"
    INTERIOR = "interior"
    TRUNK_REAR = "trunk_rear"

    @classmethod
    def parse(cls, value: Union[str, "WorkspaceType"]) -> "WorkspaceType":
        """Parse a workspace label, accepting dashes, spaces and any case."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "_").replace(" ", "_")
        return cls(normalized)


class Accessibility(Enum):
    """How hard a part is to reach."""
    EASY = "easy"
    MODERATE = "moderate"
    DIFFICULT = "difficult"

    @classmethod
    def parse(cls, value: object, default: Optional["Accessibility"] = None) -> "Accessibility":
        """
        Parse free text from a provider into an accessibility tier.

        Matches on substring so "moderate - behind the airbox" is understood.
        Unrecognized text maps to ``default`` (EASY when not given).
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for tier in (cls.DIFFICULT, cls.MODERATE, cls.EASY):
            if tier.value in text:
                return tier
        return default or cls.EASY


class GenerationState(Enum):
    """Pipeline states of one generation run."""
    NOT_STARTED = "not_started"
    PLANNING_IN_FLIGHT = "planning_in_flight"
    IMAGE_IN_FLIGHT = "image_in_flight"
    GEOMETRY_IN_FLIGHT = "geometry_in_flight"
    ASSEMBLING = "assembling"
    CACHED = "cached"
    FAILED_FALLBACK_TO_VECTOR_ONLY = "failed_fallback_to_vector_only"
    FAILED_FALLBACK_TO_STATIC = "failed_fallback_to_static"

    @property
    def is_terminal(self) -> bool:
        """Terminal states always carry a renderable pack."""
        return self in (
            GenerationState.CACHED,
            GenerationState.FAILED_FALLBACK_TO_VECTOR_ONLY,
            GenerationState.FAILED_FALLBACK_TO_STATIC,
        )
