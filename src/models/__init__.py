"""Data models and schemas."""
from .schemas import (
    VehicleSchema,
    OverlayPackRequest,
    OverlayPackResponse,
    HealthResponse,
    ErrorDetail,
    ErrorResponse,
)

__all__ = [
    "VehicleSchema",
    "OverlayPackRequest",
    "OverlayPackResponse",
    "HealthResponse",
    "ErrorDetail",
    "ErrorResponse",
]
