"""Viewports and projection hooks for geospatial map rendering."""

from .flat_projection import FlatProjection, IdentityProjection, MercatorProjection
from .viewport import Viewport
from .web_mercator_viewport import WebMercatorViewport

__all__ = [
    "FlatProjection",
    "IdentityProjection",
    "MercatorProjection",
    "Viewport",
    "WebMercatorViewport",
]
