"""Render target, render kernel and the ``render`` entry point.

A render pass uploads a World and a Camera, then evaluates every pixel in
parallel: ``ti.ndrange`` over the image is the worker pool, each pixel is
sampled independently by ``sample_pixel`` and written to its own cell of
the color buffer, so no synchronization is needed. Scene data is only
read during the pass.

Passes are dispatched in bands of rows. Between bands the Renderer
reports progress, and a caller driving ``render_progressive`` can stop
the pass early by not resuming the generator; rows already dispatched
finish, the rest are never started.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.core.config import RenderConfig
    >>> from src.glint.core.renderer import render
    >>> from src.glint.scene.showcase import create_showcase_scene
    >>> world, camera = create_showcase_scene(160, 90)
    >>> image = render(camera, world, RenderConfig(reflection_depth=4))
    >>> image.shape
    (90, 160, 3)
"""

import logging
import time
from collections.abc import Callable, Generator

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

from src.glint.camera.pinhole import Camera, setup_camera
from src.glint.camera.sampler import sample_pixel
from src.glint.core.config import RenderConfig
from src.glint.core.ray import vec3
from src.glint.scene.world import World

logger = logging.getLogger(__name__)

# Callback receives (rows_done, total_rows)
ProgressCallback = Callable[[int, int], None]

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Preallocated to avoid kernel recompilation when the image size changes
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Indexed [column, row]; row 0 is the top of the image
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    select_render_target(width, height)
    clear_render_target()


def select_render_target(width: int, height: int) -> None:
    """Set the active image size, keeping whatever the buffers hold.

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width < 1 or height < 1:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )
    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1


def clear_render_target() -> None:
    _color_buffer.fill(0.0)
    _sample_count.fill(0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the active render target size as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Rendering Kernel
# =============================================================================


@ti.kernel
def _render_rows(
    width: ti.i32,
    row_start: ti.i32,
    row_end: ti.i32,
    mode: ti.i32,
    samples: ti.i32,
    max_samples: ti.i32,
    threshold: ti.f32,
    depth: ti.i32,
):
    """Render rows [row_start, row_end) of the image."""
    for px, py in ti.ndrange(width, (row_start, row_end)):
        color, n = sample_pixel(px, py, mode, samples, max_samples, threshold, depth)

        # Replace NaN/Inf from degenerate geometry with black
        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _color_buffer[px, py] = color
        _sample_count[px, py] = n


# =============================================================================
# Renderer
# =============================================================================


class Renderer:
    """Renders one World through one Camera.

    Construction uploads the world and the camera and sizes the render
    target to the camera. The image and per-pixel sample counts stay
    available after a pass until another Renderer starts one.

    Attributes:
        camera: The camera being rendered.
        world: The world being rendered.
        config: Sampling and depth settings.
    """

    def __init__(self, camera: Camera, world: World, config: RenderConfig | None = None) -> None:
        """Upload the scene and prepare the render target.

        Raises:
            ValueError: If the camera's image size exceeds the maximum.
            RuntimeError: If a scene storage capacity is exceeded.
        """
        self.camera = camera
        self.world = world
        self.config = config if config is not None else RenderConfig()
        setup_render_target(camera.hsize, camera.vsize)
        world.upload()
        setup_camera(camera)
        self._rows_done = 0

    @property
    def width(self) -> int:
        return self.camera.hsize

    @property
    def height(self) -> int:
        return self.camera.vsize

    @property
    def rows_done(self) -> int:
        """Rows rendered by the most recent pass."""
        return self._rows_done

    def _render_band(self, row_start: int, row_end: int) -> None:
        config = self.config
        # Scene, camera and image size are global; another renderer may have run since
        self.world.upload()
        setup_camera(self.camera)
        select_render_target(self.width, self.height)
        _render_rows(
            self.width,
            row_start,
            row_end,
            int(config.antialiasing_mode),
            config.samples_per_pixel,
            config.max_samples,
            config.variance_threshold,
            config.reflection_depth,
        )
        self._rows_done = row_end

    def render_progressive(self, rows_per_batch: int = 16) -> Generator[tuple[int, int], None, None]:
        """Render the image band by band, yielding progress after each band.

        Args:
            rows_per_batch: Rows dispatched per kernel launch.

        Yields:
            Tuple of (rows_done, total_rows).

        Example:
            >>> for done, total in renderer.render_progressive(rows_per_batch=8):
            ...     if cancelled():
            ...         break
        """
        if rows_per_batch < 1:
            raise ValueError(f"rows_per_batch must be positive, got {rows_per_batch}")
        setup_render_target(self.width, self.height)
        self._rows_done = 0
        total = self.height
        start = time.perf_counter()
        for row_start in range(0, total, rows_per_batch):
            row_end = min(row_start + rows_per_batch, total)
            self._render_band(row_start, row_end)
            logger.debug("Rendered rows %d-%d of %d", row_start, row_end, total)
            yield (row_end, total)
        logger.info(
            "Rendered %dx%d (%s) in %.2fs",
            self.width,
            self.height,
            self.config.antialiasing_mode.name.lower(),
            time.perf_counter() - start,
        )

    def render(self, rows_per_batch: int = 16, callback: ProgressCallback | None = None) -> None:
        """Render the whole image.

        Args:
            rows_per_batch: Rows dispatched per kernel launch.
            callback: Optional function called after each band with
                (rows_done, total_rows).
        """
        for done, total in self.render_progressive(rows_per_batch):
            if callback is not None:
                callback(done, total)

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Args:
            gamma: Gamma encoding to apply. 1.0 returns linear colors,
                unclamped; any other value clamps to [0, 1] first.

        Returns:
            Array of shape (height, width, 3), row 0 at the top.
        """
        _check_render_target_initialized()
        width, height = get_image_dimensions()
        image = _color_buffer.to_numpy()[:width, :height, :]
        # (width, height, 3) -> (height, width, 3)
        image = np.transpose(image, (1, 0, 2))
        if gamma != 1.0:
            image = np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma)
        return np.ascontiguousarray(image, dtype=np.float32)

    def get_image_uint8(self, gamma: float = 2.2) -> npt.NDArray[np.uint8]:
        """Get the rendered image as 8-bit RGB, clamped and gamma encoded."""
        from src.glint.preview.export import image_to_uint8

        return image_to_uint8(self.get_image_numpy(), gamma=gamma)

    def get_sample_counts(self) -> npt.NDArray[np.int32]:
        """Samples taken per pixel, as an array of shape (height, width)."""
        _check_render_target_initialized()
        width, height = get_image_dimensions()
        counts = _sample_count.to_numpy()[:width, :height]
        return np.ascontiguousarray(counts.T, dtype=np.int32)

    def save_image(self, filepath: str, gamma: float = 2.2) -> None:
        """Save the rendered image as a PNG file."""
        from src.glint.preview.export import save_png_from_array

        save_png_from_array(self.get_image_numpy(), filepath, gamma=gamma)

    def __repr__(self) -> str:
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"mode={self.config.antialiasing_mode.name.lower()}, rows_done={self._rows_done})"
        )


def render(camera: Camera, world: World, config: RenderConfig | None = None) -> npt.NDArray[np.float32]:
    """Render a world through a camera.

    Args:
        camera: The camera; its hsize and vsize set the image size.
        world: The world to render.
        config: Sampling and depth settings (defaults to RenderConfig()).

    Returns:
        Linear, unclamped colors as float32 of shape (vsize, hsize, 3),
        row 0 at the top of the image.
    """
    renderer = Renderer(camera, world, config)
    renderer.render()
    return renderer.get_image_numpy()
