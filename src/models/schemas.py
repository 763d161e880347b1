"""
Request and response schemas for API endpoints.
"""
from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field

from overlay_packs.models import OverlayPack, RepairIntent, VehicleDescriptor, WorkspaceType

# A cache key component needs at least one letter or digit.
VEHICLE_FAMILY_PATTERN = r".*[A-Za-z0-9].*"


class VehicleSchema(BaseModel):
    """Vehicle the overlay is generated for."""
    year: int = Field(..., ge=1900, le=2100, description="Model year")
    make: str = Field(..., min_length=1, description="Manufacturer, e.g. Toyota")
    model: str = Field(..., min_length=1, description="Model name, e.g. Camry")
    trim: Optional[str] = Field(default=None, description="Trim level")
    engine: Optional[str] = Field(default=None, description="Engine, e.g. 2.5L I4")
    drivetrain: Optional[str] = Field(default=None, description="FWD, RWD, AWD or 4WD")
    market: Optional[str] = Field(default=None, description="Market region")
    steering: Optional[str] = Field(default=None, description="LHD or RHD")
    body_style: Optional[str] = Field(default=None, description="Body style")

    def to_descriptor(self) -> VehicleDescriptor:
        return VehicleDescriptor.from_dict(self.model_dump())


# Overlay Pack Schemas
class OverlayPackRequest(BaseModel):
    """Resolve or generate an overlay pack."""
    vehicle: VehicleSchema
    repair_type: str = Field(..., min_length=1, description="Repair identifier, e.g. battery_replacement")
    workspace_type: Optional[WorkspaceType] = Field(
        default=None, description="Workspace; resolved from the repair when omitted"
    )
    vehicle_family: Optional[str] = Field(
        default=None,
        pattern=VEHICLE_FAMILY_PATTERN,
        description="Vehicle family; classified from the vehicle when omitted",
    )

    def to_repair(self) -> RepairIntent:
        return RepairIntent(self.repair_type.strip())


class CoordinateSchema(BaseModel):
    x: float
    y: float


class OverlayPartSchema(BaseModel):
    polygon: list[CoordinateSchema]
    glow_color: str
    part_type: str
    accessibility: str


class AccessPathSchema(BaseModel):
    polyline: list[CoordinateSchema]
    animation_duration: int
    stroke_width: float
    dash_pattern: str


class OverlayLayerSchema(BaseModel):
    polygon: list[CoordinateSchema]
    color_tint: str
    opacity_cutaway: float
    layer_name: str


class OverlayPackResponse(BaseModel):
    """Overlay pack as returned to renderers."""
    id: str
    vehicle_family: str
    workspace_type: str
    image_url: Optional[str] = None
    workspace_svg: Optional[str] = None
    baseline_dimensions: dict[str, int]
    parts: dict[str, OverlayPartSchema]
    access_paths: Optional[dict[str, AccessPathSchema]] = None
    layers: Optional[dict[str, OverlayLayerSchema]] = None
    generated_at: str
    gpt_model: str
    usage_count: int

    @classmethod
    def from_pack(cls, pack: OverlayPack) -> "OverlayPackResponse":
        return cls.model_validate(pack.to_dict())


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "0.1.0"
    services: dict[str, bool]


# Error Schemas
class ErrorDetail(BaseModel):
    """Error detail."""
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorResponse(BaseModel):
    """Error response."""
    error: ErrorDetail
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: Optional[str] = None
