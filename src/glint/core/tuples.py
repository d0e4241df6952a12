"""Host-side point, vector and color helpers.

Points and vectors are 4-component NumPy arrays distinguished by their w
component (1.0 for points, 0.0 for vectors), so they compose directly with
the 4x4 matrices in :mod:`src.glint.core.matrix`. Colors are plain RGB
tuples, which is also how materials and lights store them.

These helpers are used while building scenes (view transforms, loader
input, camera placement). Inside kernels the equivalent operations are the
``taichi.math`` vector functions re-exported from :mod:`src.glint.core.ray`.

Example:
    >>> from src.glint.core.tuples import point, vector, normalize
    >>> p = point(1.0, 2.0, 3.0)
    >>> v = normalize(vector(0.0, 3.0, 4.0))
    >>> (p + v)[3]
    1.0
"""

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

# Tolerance shared by tuple comparisons and all kernel-side epsilon tests.
# Kernels run in float32, which rules out anything much tighter.
EPSILON = 1e-4

Color = tuple[float, float, float]
Tuple4 = npt.NDArray[np.float64]

BLACK: Color = (0.0, 0.0, 0.0)
WHITE: Color = (1.0, 1.0, 1.0)


def point(x: float, y: float, z: float) -> Tuple4:
    """Create a point (w = 1)."""
    return np.array([x, y, z, 1.0], dtype=np.float64)


def vector(x: float, y: float, z: float) -> Tuple4:
    """Create a vector (w = 0)."""
    return np.array([x, y, z, 0.0], dtype=np.float64)


def as_point(values: Sequence[float]) -> Tuple4:
    """Promote an (x, y, z) or (x, y, z, w) sequence to a point."""
    return point(float(values[0]), float(values[1]), float(values[2]))


def as_vector(values: Sequence[float]) -> Tuple4:
    """Promote an (x, y, z) or (x, y, z, w) sequence to a vector."""
    return vector(float(values[0]), float(values[1]), float(values[2]))


def is_point(t: Tuple4) -> bool:
    return abs(float(t[3]) - 1.0) < EPSILON


def is_vector(t: Tuple4) -> bool:
    return abs(float(t[3])) < EPSILON


def approx_equal(a: Sequence[float], b: Sequence[float], eps: float = EPSILON) -> bool:
    """Compare two tuples component-wise within ``eps``."""
    if len(a) != len(b):
        return False
    return all(abs(float(x) - float(y)) < eps for x, y in zip(a, b))


def magnitude(v: Tuple4) -> float:
    return float(np.linalg.norm(v[:3]))


def normalize(v: Tuple4) -> Tuple4:
    """Scale a vector to unit length.

    Raises:
        ValueError: If the vector has zero length.
    """
    length = magnitude(v)
    if length < EPSILON * EPSILON:
        raise ValueError("Cannot normalize a zero-length vector")
    result = np.array(v, dtype=np.float64)
    result[:3] /= length
    return result


def dot(a: Tuple4, b: Tuple4) -> float:
    return float(np.dot(a[:3], b[:3]))


def cross(a: Tuple4, b: Tuple4) -> Tuple4:
    """Cross product of two vectors (the result is always a vector)."""
    c = np.cross(a[:3], b[:3])
    return vector(float(c[0]), float(c[1]), float(c[2]))


def reflect(incident: Tuple4, normal: Tuple4) -> Tuple4:
    """Reflect ``incident`` about ``normal`` (normal should be unit length)."""
    return incident - normal * 2.0 * dot(incident, normal)


def color(r: float, g: float, b: float) -> Color:
    return (float(r), float(g), float(b))


def as_color(values: Sequence[float]) -> Color:
    """Validate and convert a 3-sequence into a color tuple.

    Raises:
        ValueError: If the sequence does not hold exactly three finite numbers.
    """
    if len(values) != 3:
        raise ValueError(f"A color needs exactly 3 components, got {len(values)}")
    result = color(values[0], values[1], values[2])
    if not all(math.isfinite(c) for c in result):
        raise ValueError(f"Color components must be finite, got {result}")
    return result
