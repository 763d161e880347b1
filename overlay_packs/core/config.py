"""
Generation policy loading.

This module loads per-phase provider policies (model, token budget and
retry/backoff parameters) and the canvas baseline from a YAML file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os
import yaml


PLANNING_PHASE = "planning"
VISUAL_GENERATION_PHASE = "visual_generation"
PART_DEFINITIONS_PHASE = "part_definitions"
ACCESS_PATHS_PHASE = "access_paths"
CUTAWAY_LAYERS_PHASE = "cutaway_layers"


@dataclass
class PhaseProfile:
    """
    Provider policy for one pipeline phase.

    Values loaded from config/overlay_policy.yaml phase_profiles.
    An empty model means "use the provider client's default model".
    """
    name: str
    model: str = ""
    max_output_tokens: int = 1500
    max_attempts: int = 3
    base_delay: float = 2.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    timeout: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "model": self.model,
            "max_output_tokens": self.max_output_tokens,
            "max_attempts": self.max_attempts,
            "base_delay": self.base_delay,
            "max_delay": self.max_delay,
            "backoff_factor": self.backoff_factor,
            "timeout": self.timeout,
        }

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "PhaseProfile":
        """Create from dictionary."""
        return cls(
            name=name,
            model=data.get("model", ""),
            max_output_tokens=data.get("max_output_tokens", 1500),
            max_attempts=data.get("max_attempts", 3),
            base_delay=float(data.get("base_delay", 2.0)),
            max_delay=float(data.get("max_delay", 30.0)),
            backoff_factor=float(data.get("backoff_factor", 2.0)),
            timeout=float(data["timeout"]) if data.get("timeout") is not None else None,
        )


@dataclass
class CanvasConfig:
    """Baseline canvas every normalized coordinate is relative to."""
    width: int = 1000
    height: int = 600


@dataclass
class OverlayConfig:
    """
    Complete generation policy.

    Aggregates the phase profiles and the canvas baseline.
    """
    phase_profiles: Dict[str, PhaseProfile] = field(default_factory=dict)
    canvas: CanvasConfig = field(default_factory=CanvasConfig)

    def get_phase_profile(self, phase: str) -> PhaseProfile:
        """Get the profile for a phase, falling back to defaults."""
        profile = self.phase_profiles.get(phase)
        if profile is None:
            profile = PhaseProfile(name=phase)
        return profile

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "phase_profiles": {
                name: profile.to_dict()
                for name, profile in self.phase_profiles.items()
            },
            "canvas": {
                "width": self.canvas.width,
                "height": self.canvas.height,
            },
        }


# Global config instance
_config: Optional[OverlayConfig] = None


def load_config(config_path: Optional[str] = None) -> OverlayConfig:
    """
    Load generation policy from YAML file.

    Args:
        config_path: Path to policy file. If None, uses default location.

    Returns:
        Loaded OverlayConfig instance.
    """
    global _config

    if config_path is None:
        config_path = os.environ.get(
            "OVERLAY_POLICY_PATH",
            str(Path(__file__).parent.parent.parent / "config" / "overlay_policy.yaml"),
        )

    config_file = Path(config_path)

    if not config_file.exists():
        _config = OverlayConfig()
        return _config

    with open(config_file, "r") as f:
        data = yaml.safe_load(f) or {}

    phase_profiles = {}
    for name, profile_data in (data.get("phase_profiles") or {}).items():
        phase_profiles[name] = PhaseProfile.from_dict(name, profile_data or {})

    canvas_data = data.get("canvas") or {}
    canvas = CanvasConfig(
        width=canvas_data.get("width", 1000),
        height=canvas_data.get("height", 600),
    )

    _config = OverlayConfig(phase_profiles=phase_profiles, canvas=canvas)
    return _config


def get_config() -> OverlayConfig:
    """
    Get the current policy.

    Loads the default policy file if not already loaded.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def get_phase_profile(phase: str) -> PhaseProfile:
    """Get the profile for a pipeline phase."""
    return get_config().get_phase_profile(phase)


def reset_config() -> None:
    """Reset the global config (useful for testing)."""
    global _config
    _config = None
