"""
Shared value records used across the projection engine.
"""
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field, field_validator

from geoviewport.core.config import settings
from geoviewport.utils.matrix_utils import readonly, to_matrix4, to_vector3

_DISTANCE_SCALE_KEYS = {
    "pixels_per_meter": "pixelsPerMeter",
    "meters_per_pixel": "metersPerPixel",
    "pixels_per_degree": "pixelsPerDegree",
    "degrees_per_pixel": "degreesPerPixel",
}


@dataclass(frozen=True)
class DistanceScales:
    """Per-axis conversion factors between meters, pixels and degrees."""

    pixels_per_meter: np.ndarray
    meters_per_pixel: np.ndarray
    pixels_per_degree: np.ndarray
    degrees_per_pixel: np.ndarray

    def __post_init__(self) -> None:
        # Own a private read-only copy of every vector
        for name in _DISTANCE_SCALE_KEYS:
            object.__setattr__(self, name, readonly(to_vector3(getattr(self, name))))

    @classmethod
    def unit(cls) -> "DistanceScales":
        return cls(
            pixels_per_meter=np.ones(3),
            meters_per_pixel=np.ones(3),
            pixels_per_degree=np.ones(3),
            degrees_per_pixel=np.ones(3),
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Sequence[float]]) -> "DistanceScales":
        """Build from a mapping with snake_case or camelCase keys; missing entries default to 1."""
        values = {}
        for name, camel_name in _DISTANCE_SCALE_KEYS.items():
            value = data.get(name, data.get(camel_name))
            values[name] = np.ones(3) if value is None else value
        return cls(**values)


@dataclass(frozen=True)
class ViewportMatrices:
    """Matrices a renderer needs to place geometry for one viewport."""

    model_view_projection_matrix: np.ndarray
    view_projection_matrix: np.ndarray
    view_matrix: np.ndarray
    projection_matrix: np.ndarray
    pixel_projection_matrix: np.ndarray
    pixel_unprojection_matrix: Optional[np.ndarray]
    width: float
    height: float
    scale: float


class ViewportOptions(BaseModel):
    """Construction parameters of a viewport. Every field is optional."""

    id: Optional[str] = Field(None, description="Instance label; defaults to the viewport type name.")

    # Window rectangle in pixels (for pixel projection)
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    view_matrix: Optional[np.ndarray] = Field(None, description="4x4 view matrix; identity if absent.")
    projection_matrix: Optional[np.ndarray] = Field(
        None, description="4x4 projection matrix; built from fovy/near/far if absent."
    )

    # Perspective parameters, used if projection_matrix is not supplied
    fovy: float = Field(default_factory=lambda: settings.DEFAULT_FOVY, description="Degrees.")
    near: float = Field(default_factory=lambda: settings.DEFAULT_NEAR)
    far: float = Field(default_factory=lambda: settings.DEFAULT_FAR)

    # Geographic anchor; both longitude and latitude switch on geospatial mode
    longitude: Optional[float] = None
    latitude: Optional[float] = None
    zoom: Optional[float] = None

    position: Optional[np.ndarray] = Field(None, description="Anchor offset, in meters for geospatial viewports.")
    model_matrix: Optional[np.ndarray] = Field(None, description="Applied to position when supplied.")

    distance_scales: Optional[Any] = Field(None, description="Distance scales for non-geospatial viewports.")

    focal_distance: float = 1.0

    model_config = {
        "arbitrary_types_allowed": True,
        "extra": "forbid",
        "frozen": True,
        "protected_namespaces": (),
    }

    @field_validator("view_matrix", "projection_matrix", "model_matrix", mode="before")
    @classmethod
    def coerce_matrix(cls, v: Any) -> Optional[np.ndarray]:
        if v is None:
            return None
        return readonly(to_matrix4(v))

    @field_validator("position", mode="before")
    @classmethod
    def coerce_position(cls, v: Any) -> Optional[np.ndarray]:
        if v is None:
            return None
        return readonly(to_vector3(v))

    @field_validator("distance_scales", mode="before")
    @classmethod
    def coerce_distance_scales(cls, v: Any) -> Optional[DistanceScales]:
        if v is None or isinstance(v, DistanceScales):
            return v
        if isinstance(v, Mapping):
            return DistanceScales.from_mapping(v)
        raise ValueError(f"distance_scales must be a DistanceScales or a mapping, got {type(v).__name__}")
