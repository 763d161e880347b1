"""
Vehicle and repair input models.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class VehicleDescriptor:
    """
    Vehicle the overlay is generated for.

    Immutable input. Optional fields refine prompts but never change the
    cache key, which is derived from the vehicle family instead.
    """
    year: int
    make: str
    model: str
    trim: Optional[str] = None
    engine: Optional[str] = None
    drivetrain: Optional[str] = None
    market: Optional[str] = None
    steering: Optional[str] = None
    body_style: Optional[str] = None

    @property
    def display_name(self) -> str:
        """e.g. "2020 Toyota Camry"."""
        return f"{self.year} {self.make} {self.model}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "year": self.year,
            "make": self.make,
            "model": self.model,
            "trim": self.trim,
            "engine": self.engine,
            "drivetrain": self.drivetrain,
            "market": self.market,
            "steering": self.steering,
            "body_style": self.body_style,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VehicleDescriptor":
        """Create from dictionary."""
        return cls(
            year=int(data.get("year", 0)),
            make=data.get("make", ""),
            model=data.get("model", ""),
            trim=data.get("trim"),
            engine=data.get("engine"),
            drivetrain=data.get("drivetrain"),
            market=data.get("market"),
            steering=data.get("steering"),
            body_style=data.get("body_style"),
        )


@dataclass(frozen=True)
class RepairIntent:
    """Identifier of the repair being performed, e.g. ``battery_replacement``."""
    identifier: str

    @property
    def label(self) -> str:
        """Human label used in prompts, e.g. "battery replacement"."""
        return self.identifier.replace("_", " ").strip()

    def __str__(self) -> str:
        return self.identifier
