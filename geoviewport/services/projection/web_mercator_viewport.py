"""
Map-style geospatial viewport.

Builds the uncentered view matrix and the perspective projection from a
longitude/latitude/zoom anchor plus pitch, bearing and camera altitude, then
relies on ``Viewport`` to center and flip the view on the Mercator world.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, Optional

import numpy as np

from geoviewport.core.config import settings
from geoviewport.core.exceptions import InvalidArgumentError
from geoviewport.services.projection.viewport import Viewport
from geoviewport.shared.types import ViewportOptions
from geoviewport.utils.matrix_utils import (
    create_mat4,
    perspective_matrix,
    rotation_x_matrix,
    rotation_z_matrix,
    scale_matrix,
    translation_matrix,
)

logger = logging.getLogger(__name__)

DEFAULT_NEAR = 0.1


def make_uncentered_view_matrix(height: float, pitch: float, bearing: float, altitude: float) -> np.ndarray:
    """View matrix of a camera at ``altitude`` screen heights, tilted by pitch and rotated by bearing."""
    # Move camera to altitude
    vm = create_mat4() @ translation_matrix([0, 0, -altitude])
    # After the pitch rotation z values are in pixel units; convert them to altitude units
    vm = vm @ scale_matrix([1, 1, 1 / height])
    # Rotate by bearing, and then by pitch, which tilts the view
    vm = vm @ rotation_x_matrix(-math.radians(pitch))
    vm = vm @ rotation_z_matrix(math.radians(bearing))
    return vm


def get_projection_parameters(
    width: float,
    height: float,
    pitch: float,
    altitude: float,
    far_z_multiplier: float,
) -> Dict[str, float]:
    """
    Perspective parameters matching a camera at ``altitude`` screen heights.

    The far plane is placed just beyond the ground point seen at the top of the
    window for the given pitch.
    """
    pitch_radians = math.radians(pitch)
    half_fov = math.atan(0.5 / altitude)
    top_half_surface_distance = (
        math.sin(half_fov) * altitude / math.sin(math.pi / 2 - pitch_radians - half_fov)
    )
    far_z = math.cos(math.pi / 2 - pitch_radians) * top_half_surface_distance + altitude

    return {
        "fovy": math.degrees(2 * math.atan((height / 2) / altitude)),
        "aspect": width / height,
        "focal_distance": altitude,
        "near": DEFAULT_NEAR,
        "far": far_z * far_z_multiplier,
    }


class WebMercatorViewport(Viewport):
    """
    Geospatial viewport for a map camera described by pitch, bearing and altitude.

    Always operates in geospatial mode, so it projects with the Web Mercator hook.
    """

    display_name = "WebMercatorViewport"

    def __init__(
        self,
        *,
        id: Optional[str] = None,
        x: float = 0.0,
        y: float = 0.0,
        width: float = 1.0,
        height: float = 1.0,
        longitude: float = 0.0,
        latitude: float = 0.0,
        zoom: float = 11.0,
        pitch: float = 0.0,
        bearing: float = 0.0,
        altitude: Optional[float] = None,
        far_z_multiplier: Optional[float] = None,
        position: Optional[Any] = None,
        model_matrix: Optional[Any] = None,
    ) -> None:
        if not (math.isfinite(longitude) and math.isfinite(latitude)):
            raise InvalidArgumentError(
                f"WebMercatorViewport requires a finite anchor, got longitude={longitude} latitude={latitude}"
            )
        altitude = settings.WEB_MERCATOR_DEFAULT_ALTITUDE if altitude is None else altitude
        far_z_multiplier = (
            settings.WEB_MERCATOR_FAR_Z_MULTIPLIER if far_z_multiplier is None else far_z_multiplier
        )
        # Silently allow apps to send in 0,0
        width = max(width, 1.0)
        height = max(height, 1.0)
        # Altitude must stay above the ground plane
        altitude = max(0.75, altitude)

        self.pitch = pitch
        self.bearing = bearing
        self.altitude = altitude

        projection = get_projection_parameters(width, height, pitch, altitude, far_z_multiplier)
        projection_matrix = perspective_matrix(
            math.radians(projection["fovy"]),
            projection["aspect"],
            projection["near"],
            projection["far"],
        )
        view_matrix = make_uncentered_view_matrix(height, pitch, bearing, altitude)

        logger.debug(
            "WebMercatorViewport camera: pitch=%s bearing=%s altitude=%s far=%.4f",
            pitch,
            bearing,
            altitude,
            projection["far"],
        )

        super().__init__(
            ViewportOptions(
                id=id,
                x=x,
                y=y,
                width=width,
                height=height,
                view_matrix=view_matrix,
                projection_matrix=projection_matrix,
                longitude=longitude,
                latitude=latitude,
                zoom=zoom,
                position=position,
                model_matrix=model_matrix,
                focal_distance=projection["focal_distance"],
            )
        )

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id!r}, width={self.width}, height={self.height}, "
            f"longitude={self.longitude}, latitude={self.latitude}, zoom={self.zoom}, "
            f"pitch={self.pitch}, bearing={self.bearing}, altitude={self.altitude})"
        )
