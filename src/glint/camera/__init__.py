"""Camera module for ray generation and pixel sampling.

Components:
    pinhole: Camera configuration, kernel-side ray_for_pixel
    sampler: Per-pixel sampling (center, uniform jitter, adaptive)
"""

from .pinhole import Camera, camera_ray, ray_for_pixel, setup_camera
from .sampler import sample_pixel

__all__ = [
    "Camera",
    "camera_ray",
    "ray_for_pixel",
    "sample_pixel",
    "setup_camera",
]
