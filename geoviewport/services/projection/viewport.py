"""
Viewport: coordinate system transformations between geographic, world and
pixel space for one resolved camera state.

A viewport is immutable. It only has accessors, and a new instance should be
created whenever any camera parameter changes.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from geoviewport.core.config import settings
from geoviewport.core.exceptions import InvalidArgumentError
from geoviewport.services.projection.flat_projection import (
    IDENTITY_PROJECTION,
    MERCATOR_PROJECTION,
    FlatProjection,
)
from geoviewport.shared.types import DistanceScales, ViewportMatrices, ViewportOptions
from geoviewport.utils.matrix_utils import (
    MatrixLike,
    create_mat4,
    extract_camera_vectors,
    homogeneous_divide,
    invert_matrix,
    matrices_equal,
    perspective_matrix,
    readonly,
    scale_matrix,
    to_matrix4,
    transform_point,
    transform_vector,
    translation_matrix,
)
from geoviewport.utils.mercator_utils import (
    get_mercator_distance_scales,
    get_mercator_meter_zoom,
    get_mercator_world_position,
    validate_latitude,
    zoom_to_scale,
)

logger = logging.getLogger(__name__)

ERR_ARGUMENT = "Illegal argument to Viewport"


def _is_finite(value: Optional[float]) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def _unpack_coordinates(xyz: Sequence[float], operation: str) -> List[float]:
    """Validate a 2- or 3-component coordinate and return [x, y, z] (z defaults to 0)."""
    if len(xyz) not in (2, 3):
        raise InvalidArgumentError(f"{ERR_ARGUMENT}: {operation} expects 2 or 3 components, got {len(xyz)}")
    try:
        values = [float(v) for v in xyz]
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"{ERR_ARGUMENT}: {operation} received non-numeric input {xyz!r}") from exc
    if not all(math.isfinite(v) for v in values):
        raise InvalidArgumentError(f"{ERR_ARGUMENT}: {operation} received non-finite input {xyz!r}")
    if len(values) == 2:
        values.append(0.0)
    return values


class Viewport:
    """
    Manages coordinate system transformations for map rendering.

    Projects [lng, lat(, z)] (geospatial mode) or flat [x, y(, z)] coordinates
    to window pixels and back, using a non-linear flat projection hook followed
    by a 4x4 view-projection pipeline.
    """

    display_name = "Viewport"

    def __init__(self, options: Optional[ViewportOptions] = None, **kwargs: Any) -> None:
        opts = self._resolve_options(options, kwargs)

        self.id = opts.id or self.display_name

        # Check if we have a geospatial anchor
        self.is_geospatial = _is_finite(opts.latitude) and _is_finite(opts.longitude)
        if self.is_geospatial:
            validate_latitude(opts.latitude)
        self.longitude = opts.longitude
        self.latitude = opts.latitude

        # Silently allow apps to send in w,h = 0,0
        self.x = opts.x
        self.y = opts.y
        self.width = max(opts.width, 1.0)
        self.height = max(opts.height, 1.0)

        zoom = opts.zoom
        if not _is_finite(zoom):
            zoom = get_mercator_meter_zoom(opts.latitude) if self.is_geospatial else settings.DEFAULT_ZOOM
        self.zoom = float(zoom)
        self.scale = zoom_to_scale(self.zoom)

        # Calculate distance scales if lng/lat/zoom are provided
        if self.is_geospatial:
            self.distance_scales = get_mercator_distance_scales(opts.latitude, opts.longitude, self.scale)
        else:
            self.distance_scales = opts.distance_scales or DistanceScales.unit()

        self.focal_distance = opts.focal_distance or 1.0
        self.flat_projection = self._select_flat_projection()

        self.model_matrix = None
        position = np.zeros(3, dtype=np.float64)
        meter_offset = np.zeros(3, dtype=np.float64)
        if opts.position is not None:
            # Apply model matrix if supplied
            position = np.array(opts.position, dtype=np.float64)
            if opts.model_matrix is not None:
                self.model_matrix = readonly(np.array(opts.model_matrix, dtype=np.float64))
                meter_offset = transform_point(self.model_matrix, position)
            else:
                meter_offset = position.copy()
        self.position = readonly(position)
        self.meter_offset = readonly(meter_offset)

        view_matrix = create_mat4() if opts.view_matrix is None else np.array(opts.view_matrix, dtype=np.float64)
        self.view_matrix_uncentered = readonly(view_matrix)

        if self.is_geospatial:
            # Determine camera center
            center = get_mercator_world_position(
                opts.longitude,
                opts.latitude,
                self.zoom,
                meter_offset=self.meter_offset,
                distance_scales=self.distance_scales,
            )
            # The Mercator world coordinate system is upper left, but GL expects
            # lower left, so flip around the center before centering
            centered = self.view_matrix_uncentered @ scale_matrix([1, -1, 1]) @ translation_matrix(-center)
            self.center = readonly(center)
            self.view_matrix = readonly(centered)
        else:
            self.center = readonly(position.copy())
            self.view_matrix = readonly(view_matrix.copy())

        if opts.projection_matrix is not None:
            self.projection_matrix = readonly(np.array(opts.projection_matrix, dtype=np.float64))
        else:
            self.projection_matrix = readonly(self._build_projection_matrix(opts.fovy, opts.near, opts.far))

        self._init_matrices()

        logger.debug(
            "%s %s resolved: geospatial=%s zoom=%.4f scale=%.4f size=%sx%s",
            type(self).__name__,
            self.id,
            self.is_geospatial,
            self.zoom,
            self.scale,
            self.width,
            self.height,
        )
        self._frozen = True

    @staticmethod
    def _resolve_options(options: Optional[ViewportOptions], overrides: Dict[str, Any]) -> ViewportOptions:
        if options is None:
            return ViewportOptions(**overrides)
        if overrides:
            return ViewportOptions(**{**options.model_dump(), **overrides})
        return options

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError(
                f"{type(self).__name__} is immutable; construct a new viewport to change '{name}'"
            )
        super().__setattr__(name, value)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id!r}, width={self.width}, height={self.height}, "
            f"zoom={self.zoom}, is_geospatial={self.is_geospatial})"
        )

    # Two viewports are equal if width and height are identical, and if
    # their view and projection matrices are (approximately) equal.
    def equals(self, other: Any) -> bool:
        """
        Compare two viewports by size, view matrix and projection matrix.

        Distance scales are not compared, so viewports that differ only in
        latitude-derived distance scaling compare equal when their matrices match.
        """
        if not isinstance(other, Viewport):
            return False

        epsilon = settings.EQUALS_EPSILON
        return (
            other.width == self.width
            and other.height == self.height
            and matrices_equal(other.projection_matrix, self.projection_matrix, epsilon)
            and matrices_equal(other.view_matrix, self.view_matrix, epsilon)
        )

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Viewport):
            return NotImplemented
        return self.equals(other)

    __hash__ = None  # type: ignore[assignment]

    def project(self, xyz: Sequence[float], top_left: bool = False) -> List[float]:
        """
        Project xyz (possibly longitude and latitude) to pixel coordinates in the window.

        - [lng, lat] => [x, y]
        - [lng, lat, z] => [x, y, 0]

        Args:
            xyz: [x, y] or [x, y, z]; z defaults to 0.
            top_left: Mirror the pixel y coordinate (height - y).

        Raises:
            InvalidArgumentError: if any component is not a finite number.
        """
        x0, y0, z0 = _unpack_coordinates(xyz, "project")

        flat_x, flat_y = self.project_flat([x0, y0])
        # View and projection are applied separately so a point on the view axis
        # keeps exactly zero x and y through the pipeline
        view = self.view_matrix @ np.array([flat_x, flat_y, z0, 1.0])
        clip = self.projection_matrix @ view
        ndc = homogeneous_divide(clip)
        # The NDC to pixel matrix is a per-axis scale and offset; applying it
        # per component keeps an infinite coordinate from turning the other into NaN
        m = self._ndc_to_pixel_matrix
        x = float(m[0, 0] * ndc[0] + m[0, 3])
        y = float(m[1, 1] * ndc[1] + m[1, 3])
        y2 = self.height - y if top_left else y
        return [x, y2] if len(xyz) == 2 else [x, y2, 0.0]

    def unproject(self, xyz: Sequence[float], top_left: bool = False) -> Optional[List[float]]:
        """
        Unproject pixel coordinates on screen onto world coordinates
        (possibly [lng, lat]) on the map.

        - [x, y] => [lng, lat]
        - [x, y, target_z] => [lng, lat, 0]

        Returns:
            The unprojected coordinates, or None if the pixel projection matrix
            is not invertible or the pixel ray cannot be resolved.
        """
        x, y, target_z = _unpack_coordinates(xyz, "unproject")

        if self.pixel_unprojection_matrix is None:
            return None

        y2 = self.height - y if top_left else y

        # The projected z value of the point is unknown, so unproject two points
        # to get a line and find the point on that line at target_z
        coord0 = transform_vector(self.pixel_unprojection_matrix, [x, y2, 0.0, 1.0])
        coord1 = transform_vector(self.pixel_unprojection_matrix, [x, y2, 1.0, 1.0])

        if coord0 is None or coord1 is None:
            return None

        z0 = coord0[2]
        z1 = coord1[2]

        # Ray parallel to the target plane
        t = 0.0 if z0 == z1 else (target_z - z0) / (z1 - z0)
        v = coord0[:2] + t * (coord1[:2] - coord0[:2])

        lng, lat = self.unproject_flat(v)
        return [lng, lat] if len(xyz) == 2 else [lng, lat, 0.0]

    # Non-linear projection hooks

    def project_flat(self, xy: Sequence[float], scale: Optional[float] = None) -> List[float]:
        """Project [x, y] (e.g. [lng, lat]) onto flat world coordinates at ``scale``."""
        scale = self.scale if scale is None else scale
        return list(self.flat_projection.project_flat(xy, scale))

    def unproject_flat(self, xy: Sequence[float], scale: Optional[float] = None) -> List[float]:
        """Unproject flat world [x, y] back to the input coordinate system at ``scale``."""
        scale = self.scale if scale is None else scale
        return list(self.flat_projection.unproject_flat(xy, scale))

    def get_mercator_params(self) -> Dict[str, float]:
        lng_lat = self.add_meters_to_lng_lat(
            [self.longitude or 0.0, self.latitude or 0.0],
            self.meter_offset,
        )
        return {
            "longitude": lng_lat[0],
            "latitude": lng_lat[1],
        }

    def get_distance_scales(self) -> DistanceScales:
        return self.distance_scales

    def get_matrices(self, model_matrix: Optional[MatrixLike] = None) -> ViewportMatrices:
        """
        Return the matrices needed to place geometry in this viewport.

        With a model matrix, the model-view-projection and pixel matrices include
        it. The viewport's own matrices are never modified.
        """
        model_view_projection_matrix = self.view_projection_matrix
        pixel_projection_matrix = self.pixel_projection_matrix
        pixel_unprojection_matrix = self.pixel_unprojection_matrix

        if model_matrix is not None:
            model = to_matrix4(model_matrix)
            model_view_projection_matrix = self.view_projection_matrix @ model
            pixel_projection_matrix = self.pixel_projection_matrix @ model
            pixel_unprojection_matrix = invert_matrix(pixel_projection_matrix)

        return ViewportMatrices(
            model_view_projection_matrix=model_view_projection_matrix,
            view_projection_matrix=self.view_projection_matrix,
            view_matrix=self.view_matrix,
            projection_matrix=self.projection_matrix,
            # project/unproject between pixels and world
            pixel_projection_matrix=pixel_projection_matrix,
            pixel_unprojection_matrix=pixel_unprojection_matrix,
            width=self.width,
            height=self.height,
            scale=self.scale,
        )

    def get_camera_position(self) -> np.ndarray:
        return self.camera_position

    def get_camera_direction(self) -> np.ndarray:
        return self.camera_direction

    def get_camera_up(self) -> np.ndarray:
        return self.camera_up

    def add_meters_to_lng_lat(self, lng_lat_z: Sequence[float], xyz: Sequence[float]) -> List[float]:
        """Offset [lng, lat(, z)] by [x, y(, z)] meters using this viewport's distance scales."""
        lng, lat = lng_lat_z[0], lng_lat_z[1]
        z = lng_lat_z[2] if len(lng_lat_z) > 2 else 0.0
        delta = self.meters_to_lng_lat_delta(xyz)
        delta_z = delta[2] if len(delta) > 2 else 0.0
        if len(lng_lat_z) == 2:
            return [lng + delta[0], lat + delta[1]]
        return [lng + delta[0], lat + delta[1], z + delta_z]

    def meters_to_lng_lat_delta(self, xyz: Sequence[float]) -> List[float]:
        """Convert a [x, y(, z)] offset in meters to a [d_lng, d_lat(, z)] delta in degrees."""
        x, y, z = _unpack_coordinates(xyz, "meters_to_lng_lat_delta")
        pixels_per_meter = self.distance_scales.pixels_per_meter
        degrees_per_pixel = self.distance_scales.degrees_per_pixel
        delta_lng = float(x * pixels_per_meter[0] * degrees_per_pixel[0])
        delta_lat = float(y * pixels_per_meter[1] * degrees_per_pixel[1])
        return [delta_lng, delta_lat] if len(xyz) == 2 else [delta_lng, delta_lat, z]

    # Internal methods

    def _select_flat_projection(self) -> FlatProjection:
        return MERCATOR_PROJECTION if self.is_geospatial else IDENTITY_PROJECTION

    def _build_projection_matrix(self, fovy: float, near: float, far: float) -> np.ndarray:
        if not _is_finite(fovy):
            raise InvalidArgumentError(f"{ERR_ARGUMENT}: fovy must be finite, got {fovy}")
        aspect = self.width / self.height
        return perspective_matrix(math.radians(fovy), aspect, near, far)

    def _init_matrices(self) -> None:
        # Matrix operations are applied in "reverse" order since vectors are
        # multiplied in from the right during transformation
        self.view_projection_matrix = readonly(self.projection_matrix @ self.view_matrix)

        view_matrix_inverse = invert_matrix(self.view_matrix)
        self.view_matrix_invertible = view_matrix_inverse is not None
        if view_matrix_inverse is None:
            logger.warning(
                "View matrix of %s %s is not invertible; camera vectors are derived from the view matrix itself",
                type(self).__name__,
                self.id,
            )
            view_matrix_inverse = self.view_matrix.copy()
        self.view_matrix_inverse = readonly(view_matrix_inverse)

        # Decompose camera directions
        eye, direction, up = extract_camera_vectors(self.view_matrix_inverse)
        self.camera_position = readonly(eye)
        self.camera_direction = readonly(direction)
        self.camera_up = readonly(up)

        # Clip space to window pixels
        ndc_to_pixel = (
            create_mat4()
            @ scale_matrix([self.width / 2, -self.height / 2, 1])
            @ translation_matrix([1, -1, 0])
        )
        self._ndc_to_pixel_matrix = readonly(ndc_to_pixel)

        # World location to window (pixel) coordinates, and back
        self.pixel_projection_matrix = readonly(ndc_to_pixel @ self.view_projection_matrix)

        pixel_unprojection_matrix = invert_matrix(self.pixel_projection_matrix)
        if pixel_unprojection_matrix is None:
            logger.warning(
                "Pixel projection matrix of %s %s is not invertible; unproject will return None",
                type(self).__name__,
                self.id,
            )
            self.pixel_unprojection_matrix = None
        else:
            self.pixel_unprojection_matrix = readonly(pixel_unprojection_matrix)
