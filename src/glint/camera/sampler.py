"""Per-pixel sample generation for antialiasing.

Three strategies, selected by AntialiasingMode:

    NONE:     one ray through the pixel center.
    UNIFORM:  ``samples`` rays at offsets drawn uniformly from [0, 1)^2,
              averaged.
    ADAPTIVE: starts like UNIFORM, then keeps drawing jittered rays while
              the variance of the pixel mean stays above ``threshold``
              and fewer than ``max_samples`` have been taken.

The adaptive criterion tracks the running sums of colors and squared
colors. With n samples the per-channel variance is
E[c^2] - E[c]^2, and the variance of the mean is that total (summed over
RGB) divided by n. A flat region therefore stops at the initial count,
while an edge keeps sampling up to the cap; the cap guarantees
termination even when the variance never settles.
"""

import taichi as ti

from src.glint.camera.pinhole import ray_for_pixel
from src.glint.core.config import AntialiasingMode
from src.glint.core.integrator import trace
from src.glint.core.ray import vec3


@ti.func
def _mean_variance(sum_color: vec3, sum_squared: vec3, n: ti.i32) -> ti.f32:
    """Variance of the sample mean, summed over RGB."""
    inv_n = 1.0 / ti.cast(n, ti.f32)
    mean = sum_color * inv_n
    variance = sum_squared * inv_n - mean * mean
    # Rounding can push a flat region's variance slightly negative
    total = ti.max(variance.x, 0.0) + ti.max(variance.y, 0.0) + ti.max(variance.z, 0.0)
    return total * inv_n


@ti.func
def sample_pixel(
    px: ti.i32,
    py: ti.i32,
    mode: ti.i32,
    samples: ti.i32,
    max_samples: ti.i32,
    threshold: ti.f32,
    depth: ti.i32,
):
    """Estimate the color of one pixel.

    Args:
        px: Pixel column (0 = left).
        py: Pixel row (0 = top).
        mode: AntialiasingMode value.
        samples: Samples for UNIFORM, initial samples for ADAPTIVE.
        max_samples: Sample cap for ADAPTIVE.
        threshold: ADAPTIVE variance threshold.
        depth: Reflection/refraction depth for every traced ray.

    Returns:
        A tuple (color, n) with the averaged color and the number of
        samples taken.
    """
    count = 1
    limit = max_samples
    if mode == int(AntialiasingMode.UNIFORM):
        count = samples
        limit = samples
    elif mode == int(AntialiasingMode.ADAPTIVE):
        count = samples
    else:
        limit = 1

    sum_color = vec3(0.0, 0.0, 0.0)
    sum_squared = vec3(0.0, 0.0, 0.0)
    n = 0
    active = 1
    for _ in range(limit):
        if active == 1:
            x_offset = 0.5
            y_offset = 0.5
            if mode != int(AntialiasingMode.NONE):
                x_offset = ti.random(ti.f32)
                y_offset = ti.random(ti.f32)
            ray = ray_for_pixel(px, py, x_offset, y_offset)
            color = trace(ray.origin, ray.direction, depth)
            sum_color += color
            sum_squared += color * color
            n += 1
            if n >= count:
                if mode != int(AntialiasingMode.ADAPTIVE):
                    active = 0
                elif _mean_variance(sum_color, sum_squared, n) <= threshold:
                    active = 0

    return sum_color / ti.cast(n, ti.f32), n
