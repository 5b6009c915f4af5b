"""
4x4 homogeneous matrix helpers for the viewport pipeline.

All matrices are float64 ``numpy`` arrays in mathematical (row-major) layout and
act on column vectors: ``v' = M @ v``. Builders follow the usual GL convention
of right-multiplying the accumulator, so the transform composed last is the
first one applied to an incoming vector.
"""
import logging
import math
from typing import Optional, Sequence, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

MatrixLike = Union[np.ndarray, Sequence[float], Sequence[Sequence[float]]]


def create_mat4() -> np.ndarray:
    """Return a fresh identity matrix."""
    return np.eye(4, dtype=np.float64)


def to_matrix4(value: MatrixLike) -> np.ndarray:
    """
    Coerce a matrix-like value to a new float64 4x4 array.

    Nested 4x4 sequences are read in row-major (mathematical) order. Flat
    16-element sequences are read in column-major order, which is how OpenGL
    tooling serialises matrices.
    """
    matrix = np.array(value, dtype=np.float64)
    if matrix.shape == (16,):
        return matrix.reshape(4, 4).T.copy()
    if matrix.shape != (4, 4):
        raise ValueError(f"Matrix has invalid shape {matrix.shape}, expected 4x4 or 16 elements")
    return matrix


def to_vector3(value: Union[np.ndarray, Sequence[float]]) -> np.ndarray:
    """Coerce a 2- or 3-element sequence to a float64 3-vector (missing z is 0)."""
    vector = np.array(value, dtype=np.float64).reshape(-1)
    if vector.shape == (2,):
        return np.append(vector, 0.0)
    if vector.shape != (3,):
        raise ValueError(f"Vector has invalid shape {vector.shape}, expected 2 or 3 elements")
    return vector


def readonly(array: np.ndarray) -> np.ndarray:
    """Mark an array as non-writeable and return it."""
    array.setflags(write=False)
    return array


def scale_matrix(factors: Sequence[float]) -> np.ndarray:
    sx, sy, sz = factors
    return np.diag([sx, sy, sz, 1.0]).astype(np.float64)


def translation_matrix(offset: Sequence[float]) -> np.ndarray:
    matrix = create_mat4()
    matrix[:3, 3] = offset
    return matrix


def rotation_x_matrix(radians: float) -> np.ndarray:
    c, s = math.cos(radians), math.sin(radians)
    matrix = create_mat4()
    matrix[1, 1], matrix[1, 2] = c, -s
    matrix[2, 1], matrix[2, 2] = s, c
    return matrix


def rotation_z_matrix(radians: float) -> np.ndarray:
    c, s = math.cos(radians), math.sin(radians)
    matrix = create_mat4()
    matrix[0, 0], matrix[0, 1] = c, -s
    matrix[1, 0], matrix[1, 1] = s, c
    return matrix


def perspective_matrix(fovy: float, aspect: float, near: float, far: float) -> np.ndarray:
    """
    Build a symmetric perspective projection matrix.

    Args:
        fovy: Vertical field of view in radians.
        aspect: Viewport width divided by height.
        near: Distance of the near clipping plane.
        far: Distance of the far clipping plane.
    """
    f = 1.0 / math.tan(fovy / 2.0)
    nf = 1.0 / (near - far)
    matrix = np.zeros((4, 4), dtype=np.float64)
    matrix[0, 0] = f / aspect
    matrix[1, 1] = f
    matrix[2, 2] = (far + near) * nf
    matrix[2, 3] = 2.0 * far * near * nf
    matrix[3, 2] = -1.0
    return matrix


def invert_matrix(matrix: np.ndarray) -> Optional[np.ndarray]:
    """Return the inverse of ``matrix``, or None if it is singular."""
    if np.linalg.det(matrix) == 0.0:
        return None
    try:
        inverse = np.linalg.inv(matrix)
    except np.linalg.LinAlgError:
        return None
    if not np.all(np.isfinite(inverse)):
        return None
    return inverse


def homogeneous_divide(vector: np.ndarray) -> np.ndarray:
    """
    Divide the xyz components of a homogeneous 4-vector by w.

    Components that are 0 over a w of 0 resolve to 0, so a point sitting on the
    eye along the view axis lands on the principal point instead of NaN.
    """
    numerator = vector[:3]
    w = vector[3]
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.divide(
            numerator,
            w,
            out=np.zeros(3, dtype=np.float64),
            where=(w != 0) | (numerator != 0),
        )


def transform_vector(matrix: Optional[np.ndarray], vector: Sequence[float]) -> Optional[np.ndarray]:
    """
    Transform a homogeneous 4-vector and normalise by w.

    Returns None if the matrix is missing, w is zero or the result is not finite.
    """
    if matrix is None:
        return None
    result = matrix @ np.asarray(vector, dtype=np.float64)
    w = result[3]
    if w == 0 or not np.isfinite(w):
        return None
    result = result / w
    if not np.all(np.isfinite(result)):
        return None
    return result


def transform_point(matrix: np.ndarray, point: Sequence[float]) -> np.ndarray:
    """Transform a 3D point by a 4x4 matrix (w = 1), dividing by the resulting w."""
    x, y, z = point
    result = transform_vector(matrix, [x, y, z, 1.0])
    if result is None:
        raise ValueError(f"Point {list(point)} cannot be transformed by a matrix with w = 0")
    return result[:3]


def extract_camera_vectors(view_matrix_inverse: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Decompose an inverse view matrix into eye position, direction and up vectors.

    Direction and up are normalised; the eye is the translation column.
    """
    eye = view_matrix_inverse[:3, 3].copy()
    direction = _normalize(view_matrix_inverse @ np.array([0.0, 0.0, -1.0, 0.0]))
    up = _normalize(view_matrix_inverse @ np.array([0.0, 1.0, 0.0, 0.0]))
    return eye, direction, up


def _normalize(vector: np.ndarray) -> np.ndarray:
    direction = vector[:3]
    length = float(np.linalg.norm(direction))
    if length == 0:
        logger.debug("Cannot normalise a zero-length camera vector; returning it unchanged")
        return direction.copy()
    return direction / length


def matrices_equal(a: Optional[np.ndarray], b: Optional[np.ndarray], epsilon: float) -> bool:
    """Per-element relative comparison: |a - b| <= epsilon * max(1, |a|, |b|)."""
    if a is None or b is None:
        return a is b
    if a.shape != b.shape:
        return False
    tolerance = epsilon * np.maximum(1.0, np.maximum(np.abs(a), np.abs(b)))
    return bool(np.all(np.abs(a - b) <= tolerance))
