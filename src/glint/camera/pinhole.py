"""Pinhole camera mapping pixels to world-space rays.

The camera sits at the origin of its own space looking down -z, with an
image plane one unit in front of it. ``transform`` is the view transform
(world to camera, usually from ``view_transform``); its inverse carries
camera-space points back into the world.

The image plane spans ``field_of_view`` across its longer side:

    half_view = tan(field_of_view / 2)
    aspect = hsize / vsize
    aspect >= 1: half_width = half_view, half_height = half_view / aspect
    aspect <  1: half_width = half_view * aspect, half_height = half_view
    pixel_size = 2 * half_width / hsize

Pixel (px, py) with sub-pixel offset (xo, yo) in [0, 1) sits at camera
space (half_width - (px + xo) * pixel_size, half_height - (py + yo) *
pixel_size, -1). Row 0 is the top of the image and column 0 its left edge.

Example:
    >>> import math
    >>> from src.glint.camera.pinhole import Camera
    >>> from src.glint.core.matrix import view_transform
    >>> camera = Camera(
    ...     hsize=200,
    ...     vsize=125,
    ...     field_of_view=math.pi / 2,
    ...     transform=view_transform((0, 0, -5), (0, 0, 0), (0, 1, 0)),
    ... )
    >>> round(camera.pixel_size, 5)
    0.01
"""

import math
from dataclasses import dataclass, field

import numpy as np
import taichi as ti
import taichi.math as tm

from src.glint.core.errors import ConstructionError
from src.glint.core.matrix import Matrix
from src.glint.core.ray import Ray, make_ray, transform_point, vec3
from src.glint.core.tuples import normalize, point

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass(frozen=True)
class Camera:
    """Configuration for a pinhole camera.

    Attributes:
        hsize: Image width in pixels.
        vsize: Image height in pixels.
        field_of_view: Angle (radians) covered by the longer image side.
            Must lie strictly between 0 and pi.
        transform: View transform (world to camera). Must be invertible.
    """

    hsize: int
    vsize: int
    field_of_view: float
    transform: Matrix = field(default_factory=Matrix.identity)
    half_width: float = field(init=False, repr=False, compare=False)
    half_height: float = field(init=False, repr=False, compare=False)
    pixel_size: float = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            whole = int(self.hsize) == self.hsize and int(self.vsize) == self.vsize
            field_of_view = float(self.field_of_view)
        except (TypeError, ValueError, OverflowError) as exc:
            raise ConstructionError(f"Camera dimensions and field_of_view must be numbers: {exc}") from exc
        if not whole:
            raise ConstructionError("Camera dimensions must be integers")
        if self.hsize < 1 or self.vsize < 1:
            raise ConstructionError(
                f"Camera dimensions must be positive, got {self.hsize}x{self.vsize}"
            )
        if not 0.0 < field_of_view < math.pi:
            raise ConstructionError(
                f"Camera field_of_view must be in (0, pi), got {self.field_of_view}"
            )
        if not isinstance(self.transform, Matrix):
            raise ConstructionError(
                f"Camera transform must be a Matrix, got {type(self.transform).__name__}"
            )
        object.__setattr__(self, "hsize", int(self.hsize))
        object.__setattr__(self, "vsize", int(self.vsize))
        object.__setattr__(self, "field_of_view", field_of_view)
        object.__setattr__(self, "_inverse", self.transform.inverse())

        half_view = math.tan(self.field_of_view / 2.0)
        aspect = self.hsize / self.vsize
        if aspect >= 1.0:
            half_width = half_view
            half_height = half_view / aspect
        else:
            half_width = half_view * aspect
            half_height = half_view
        object.__setattr__(self, "half_width", half_width)
        object.__setattr__(self, "half_height", half_height)
        object.__setattr__(self, "pixel_size", half_width * 2.0 / self.hsize)

    @property
    def inverse_transform(self) -> Matrix:
        """Camera-to-world transform."""
        return self._inverse

    def ray_for_pixel(
        self, px: float, py: float, x_offset: float = 0.5, y_offset: float = 0.5
    ) -> tuple[np.ndarray, np.ndarray]:
        """World-space ray through a pixel, computed on the host in float64.

        Returns:
            A tuple (origin, direction) of points/vectors; the direction
            is unit length.
        """
        world_x = self.half_width - (px + x_offset) * self.pixel_size
        world_y = self.half_height - (py + y_offset) * self.pixel_size
        pixel = self._inverse @ point(world_x, world_y, -1.0)
        origin = self._inverse @ point(0.0, 0.0, 0.0)
        return origin, normalize(pixel - origin)


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_inverse = ti.Matrix.field(4, 4, dtype=ti.f32, shape=())
_half_width = ti.field(dtype=ti.f32, shape=())
_half_height = ti.field(dtype=ti.f32, shape=())
_pixel_size = ti.field(dtype=ti.f32, shape=())
_camera_initialized = ti.field(dtype=ti.i32, shape=())


def setup_camera(camera: Camera) -> None:
    """Upload a camera for use by the render kernels.

    Args:
        camera: The camera to upload.
    """
    _camera_inverse[None] = ti.Matrix(camera.inverse_transform.tolist())
    _half_width[None] = camera.half_width
    _half_height[None] = camera.half_height
    _pixel_size[None] = camera.pixel_size
    _camera_initialized[None] = 1


def is_camera_initialized() -> bool:
    return bool(_camera_initialized[None])


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def ray_for_pixel(px: ti.i32, py: ti.i32, x_offset: ti.f32, y_offset: ti.f32) -> Ray:
    """Generate the ray through a point of a pixel.

    Args:
        px: Pixel column (0 = left).
        py: Pixel row (0 = top).
        x_offset: Horizontal position inside the pixel, in [0, 1).
        y_offset: Vertical position inside the pixel, in [0, 1).

    Returns:
        A Ray from the camera origin with a unit-length direction.
    """
    pixel_size = _pixel_size[None]
    world_x = _half_width[None] - (ti.cast(px, ti.f32) + x_offset) * pixel_size
    world_y = _half_height[None] - (ti.cast(py, ti.f32) + y_offset) * pixel_size
    inverse = _camera_inverse[None]
    pixel = transform_point(inverse, vec3(world_x, world_y, -1.0))
    origin = transform_point(inverse, vec3(0.0, 0.0, 0.0))
    return make_ray(origin, tm.normalize(pixel - origin))


_query_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_direction = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _camera_ray_kernel(px: ti.i32, py: ti.i32, x_offset: ti.f32, y_offset: ti.f32):
    ray = ray_for_pixel(px, py, x_offset, y_offset)
    _query_origin[None] = ray.origin
    _query_direction[None] = ray.direction


def camera_ray(
    px: int, py: int, x_offset: float = 0.5, y_offset: float = 0.5
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Generate a ray with the uploaded camera, through the render kernel path.

    Returns:
        A tuple (origin, direction).

    Raises:
        RuntimeError: If no camera has been uploaded.
    """
    if not is_camera_initialized():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    _camera_ray_kernel(px, py, x_offset, y_offset)
    origin = _query_origin[None]
    direction = _query_direction[None]
    return (
        (float(origin[0]), float(origin[1]), float(origin[2])),
        (float(direction[0]), float(direction[1]), float(direction[2])),
    )
