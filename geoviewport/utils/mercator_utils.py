"""
Web Mercator math used by geospatial viewports.

The world is a square tile ``TILE_SIZE`` units wide at zoom 0, scaled by
``2 ** zoom``. World X grows eastward and world Y grows southward (upper-left
origin), which is why the Y entries of the distance scales are negative.
"""
import logging
import math
from typing import Optional, Sequence, Tuple

import numpy as np

from geoviewport.core.exceptions import InvalidArgumentError
from geoviewport.shared.types import DistanceScales

logger = logging.getLogger(__name__)

TILE_SIZE = 512
EARTH_CIRCUMFERENCE = 40.03e6
PI_4 = math.pi / 4


def validate_latitude(latitude: float) -> None:
    """Raise InvalidArgumentError unless ``latitude`` is a finite value in [-90, 90]."""
    if not math.isfinite(latitude) or abs(latitude) > 90:
        raise InvalidArgumentError(f"Latitude must be finite and within [-90, 90], got {latitude}")


def zoom_to_scale(zoom: float) -> float:
    return math.pow(2, zoom)


def scale_to_zoom(scale: float) -> float:
    return math.log2(scale)


def lng_lat_to_world(lng_lat: Sequence[float], scale: float) -> Tuple[float, float]:
    """
    Project [lng, lat] on the sphere onto [x, y] on the Mercator world tile.

    Performs the non-linear part of the Web Mercator projection; the remaining
    (linear) part is handled by 4x4 matrices.
    """
    lng, lat = lng_lat[0], lng_lat[1]
    validate_latitude(lat)
    scale = scale * TILE_SIZE
    lambda2 = math.radians(lng)
    phi2 = math.radians(lat)
    tangent = math.tan(PI_4 + phi2 * 0.5)
    if tangent <= 0:
        raise InvalidArgumentError(f"Latitude {lat} cannot be projected with Web Mercator")
    x = scale * (lambda2 + math.pi) / (2 * math.pi)
    y = scale * (math.pi - math.log(tangent)) / (2 * math.pi)
    return x, y


def world_to_lng_lat(xy: Sequence[float], scale: float) -> Tuple[float, float]:
    """Unproject world point [x, y] on the Mercator tile onto [lng, lat] in degrees."""
    x, y = xy[0], xy[1]
    scale = scale * TILE_SIZE
    lambda2 = (x / scale) * (2 * math.pi) - math.pi
    phi2 = 2 * (math.atan(math.exp(math.pi - (y / scale) * (2 * math.pi))) - PI_4)
    return math.degrees(lambda2), math.degrees(phi2)


def get_mercator_meter_zoom(latitude: float) -> float:
    """Zoom at which one world unit equals one meter at ``latitude``."""
    validate_latitude(latitude)
    lat_cosine = math.cos(math.radians(latitude))
    return scale_to_zoom(EARTH_CIRCUMFERENCE * lat_cosine) - math.log2(TILE_SIZE)


def get_mercator_distance_scales(
    latitude: float,
    longitude: float,
    scale: float,
) -> DistanceScales:
    """
    Calculate distance scales in meters around the current lat/lon, for both
    degrees and pixels, using a local tangent-plane approximation.
    """
    lat_cosine = math.cos(math.radians(latitude))

    pixels_per_degree_x = scale * TILE_SIZE / 360
    pixels_per_degree_y = pixels_per_degree_x / lat_cosine

    alt_pixels_per_meter = scale * TILE_SIZE / EARTH_CIRCUMFERENCE / lat_cosine

    logger.debug(
        "Mercator distance scales at (%.6f, %.6f), scale %s: %.6g px/m",
        longitude,
        latitude,
        scale,
        alt_pixels_per_meter,
    )
    return DistanceScales(
        pixels_per_meter=np.array([alt_pixels_per_meter, -alt_pixels_per_meter, alt_pixels_per_meter]),
        meters_per_pixel=np.array(
            [1 / alt_pixels_per_meter, -1 / alt_pixels_per_meter, 1 / alt_pixels_per_meter]
        ),
        pixels_per_degree=np.array([pixels_per_degree_x, -pixels_per_degree_y, alt_pixels_per_meter]),
        degrees_per_pixel=np.array(
            [1 / pixels_per_degree_x, -1 / pixels_per_degree_y, 1 / alt_pixels_per_meter]
        ),
    )


def get_mercator_world_position(
    longitude: float,
    latitude: float,
    zoom: float,
    meter_offset: Optional[Sequence[float]] = None,
    distance_scales: Optional[DistanceScales] = None,
) -> np.ndarray:
    """
    World position of a geographic anchor, shifted by an offset in meters.

    Returns:
        A float64 3-vector ``[X, Y, Z]`` in world units at ``zoom``.
    """
    scale = zoom_to_scale(zoom)
    x, y = lng_lat_to_world([longitude, latitude], scale)
    center = np.array([x, y, 0.0], dtype=np.float64)

    if meter_offset is not None:
        if distance_scales is None:
            distance_scales = get_mercator_distance_scales(latitude, longitude, scale)
        offset = np.zeros(3, dtype=np.float64)
        offset[: len(meter_offset)] = meter_offset
        center += offset * distance_scales.pixels_per_meter

    return center
