"""
geoviewport: coordinate transformations between geographic, world and pixel
space for interactive map rendering.
"""

from geoviewport.core.exceptions import InvalidArgumentError
from geoviewport.services.projection import (
    FlatProjection,
    IdentityProjection,
    MercatorProjection,
    Viewport,
    WebMercatorViewport,
)
from geoviewport.shared.types import DistanceScales, ViewportMatrices, ViewportOptions

__version__ = "0.1.0"

__all__ = [
    "DistanceScales",
    "FlatProjection",
    "IdentityProjection",
    "InvalidArgumentError",
    "MercatorProjection",
    "Viewport",
    "ViewportMatrices",
    "ViewportOptions",
    "WebMercatorViewport",
]
