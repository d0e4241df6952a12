"""Immutable 4x4 transformation matrices.

Transforms are built and inverted on the host in float64 when a shape,
pattern or camera is constructed. Only the finished inverse (and, for
shapes, the inverse-transpose used for normals) is uploaded to Taichi
fields as float32, so a singular transform is always rejected before any
kernel runs.

Transforms compose right-to-left with ``@``: ``translation(...) @ scaling(...)``
scales first, then translates.

Example:
    >>> import math
    >>> from src.glint.core.matrix import rotation_y, scaling, translation
    >>> from src.glint.core.tuples import point
    >>> m = translation(10, 5, 7) @ scaling(5, 5, 5) @ rotation_y(math.pi / 2)
    >>> m @ point(1, 0, 1)
    array([15.,  5.,  2.,  1.])
"""

import math
from collections.abc import Sequence

import numpy as np
import numpy.typing as npt

from src.glint.core.errors import ConstructionError
from src.glint.core.tuples import EPSILON, Tuple4, as_point, as_vector, cross, magnitude, normalize

# Determinants smaller than this (in float64) are treated as singular.
DETERMINANT_EPSILON = 1e-10


class Matrix:
    """An immutable 4x4 matrix of float64 values.

    Equality is approximate (within EPSILON per element), matching how
    tuples are compared, so matrices are deliberately unhashable.
    """

    __slots__ = ("_data",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, rows: Sequence[Sequence[float]] | npt.NDArray[np.float64] | None = None) -> None:
        """Create a matrix from row-major values (identity when omitted).

        Raises:
            ValueError: If the values do not form a finite 4x4 matrix.
        """
        data = np.identity(4) if rows is None else np.array(rows, dtype=np.float64)
        if data.shape != (4, 4):
            raise ValueError(f"Matrix must be 4x4, got shape {data.shape}")
        if not np.all(np.isfinite(data)):
            raise ValueError("Matrix elements must be finite")
        data.setflags(write=False)
        self._data = data

    @classmethod
    def identity(cls) -> "Matrix":
        return cls()

    def __getitem__(self, index: tuple[int, int]) -> float:
        return float(self._data[index])

    def to_numpy(self) -> npt.NDArray[np.float64]:
        """Return a writable copy of the elements."""
        return np.array(self._data)

    def tolist(self) -> list[list[float]]:
        return self._data.tolist()

    def __matmul__(self, other: "Matrix | Tuple4 | Sequence[float]") -> "Matrix | Tuple4":
        """Multiply by another matrix or by a 4-component tuple."""
        if isinstance(other, Matrix):
            return Matrix(self._data @ other._data)
        vec = np.asarray(other, dtype=np.float64)
        if vec.shape != (4,):
            return NotImplemented
        return self._data @ vec

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matrix):
            return NotImplemented
        return self.approx_equal(other)

    def approx_equal(self, other: "Matrix", eps: float = EPSILON) -> bool:
        return bool(np.all(np.abs(self._data - other._data) < eps))

    def transpose(self) -> "Matrix":
        return Matrix(self._data.T)

    def determinant(self) -> float:
        return float(np.linalg.det(self._data))

    def is_invertible(self) -> bool:
        return abs(self.determinant()) >= DETERMINANT_EPSILON

    def inverse(self) -> "Matrix":
        """Invert the matrix.

        Returns:
            The inverse matrix.

        Raises:
            ConstructionError: If the matrix is singular.
        """
        if not self.is_invertible():
            raise ConstructionError(
                f"Matrix is not invertible (determinant {self.determinant():.3e})"
            )
        return Matrix(np.linalg.inv(self._data))

    def __repr__(self) -> str:
        rows = ", ".join("[" + ", ".join(f"{v:.5g}" for v in row) + "]" for row in self._data)
        return f"Matrix([{rows}])"


# =============================================================================
# Transform Builders
# =============================================================================


def identity() -> Matrix:
    return Matrix()


def translation(x: float, y: float, z: float) -> Matrix:
    m = np.identity(4)
    m[0, 3] = x
    m[1, 3] = y
    m[2, 3] = z
    return Matrix(m)


def scaling(x: float, y: float, z: float) -> Matrix:
    return Matrix(np.diag([x, y, z, 1.0]))


def rotation_x(radians: float) -> Matrix:
    c, s = math.cos(radians), math.sin(radians)
    return Matrix([[1, 0, 0, 0], [0, c, -s, 0], [0, s, c, 0], [0, 0, 0, 1]])


def rotation_y(radians: float) -> Matrix:
    c, s = math.cos(radians), math.sin(radians)
    return Matrix([[c, 0, s, 0], [0, 1, 0, 0], [-s, 0, c, 0], [0, 0, 0, 1]])


def rotation_z(radians: float) -> Matrix:
    c, s = math.cos(radians), math.sin(radians)
    return Matrix([[c, -s, 0, 0], [s, c, 0, 0], [0, 0, 1, 0], [0, 0, 0, 1]])


def shearing(xy: float, xz: float, yx: float, yz: float, zx: float, zy: float) -> Matrix:
    """Shear each axis in proportion to the other two.

    ``xy`` moves x in proportion to y, ``xz`` moves x in proportion to z,
    and so on.
    """
    return Matrix([[1, xy, xz, 0], [yx, 1, yz, 0], [zx, zy, 1, 0], [0, 0, 0, 1]])


def view_transform(
    from_point: Sequence[float],
    to_point: Sequence[float],
    up: Sequence[float],
) -> Matrix:
    """Build the world-to-camera transform for an eye looking at a target.

    Args:
        from_point: Eye position in world space.
        to_point: Point the eye looks at.
        up: Approximate up direction; only needs to be non-parallel to the
            view direction.

    Returns:
        A matrix that moves the world so the eye sits at the origin looking
        down -z with +y up.

    Raises:
        ConstructionError: If the eye and target coincide or ``up`` is
            parallel to the view direction.
    """
    eye = as_point(from_point)
    target = as_point(to_point)
    try:
        forward = normalize(target - eye)
        left = cross(forward, normalize(as_vector(up)))
    except ValueError as exc:
        raise ConstructionError(f"Degenerate view transform: {exc}") from exc
    # left keeps the length of forward x up, so a tilted up skews the view
    if magnitude(left) < EPSILON:
        raise ConstructionError("Degenerate view transform: up is parallel to the view direction")
    true_up = cross(left, forward)
    orientation = Matrix(
        [
            [left[0], left[1], left[2], 0.0],
            [true_up[0], true_up[1], true_up[2], 0.0],
            [-forward[0], -forward[1], -forward[2], 0.0],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    return orientation @ translation(-eye[0], -eye[1], -eye[2])
