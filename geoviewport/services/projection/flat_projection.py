"""
Non-linear projection hooks.

A hook performs the non-linear part of the geographic-to-world mapping before
the linear 4x4 pipeline takes over. ``project_flat`` and ``unproject_flat`` of a
hook are an exact inverse pair at any scale.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence, Tuple

from geoviewport.utils.mercator_utils import lng_lat_to_world, world_to_lng_lat


class FlatProjection(ABC):
    """Pair of functions mapping 2D coordinates to and from flat world coordinates."""

    @abstractmethod
    def project_flat(self, xy: Sequence[float], scale: float) -> Tuple[float, float]:
        ...

    @abstractmethod
    def unproject_flat(self, xy: Sequence[float], scale: float) -> Tuple[float, float]:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class IdentityProjection(FlatProjection):
    """Cartesian coordinates are already flat; returns input unchanged."""

    def project_flat(self, xy: Sequence[float], scale: float) -> Tuple[float, float]:
        return float(xy[0]), float(xy[1])

    def unproject_flat(self, xy: Sequence[float], scale: float) -> Tuple[float, float]:
        return float(xy[0]), float(xy[1])


class MercatorProjection(FlatProjection):
    """Spherical Web Mercator: [lng, lat] in degrees to/from the scaled world tile."""

    def project_flat(self, xy: Sequence[float], scale: float) -> Tuple[float, float]:
        return lng_lat_to_world(xy, scale)

    def unproject_flat(self, xy: Sequence[float], scale: float) -> Tuple[float, float]:
        return world_to_lng_lat(xy, scale)


IDENTITY_PROJECTION = IdentityProjection()
MERCATOR_PROJECTION = MercatorProjection()
