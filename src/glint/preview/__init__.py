"""Preview module for image output.

Components:
    tonemap: Tone mapping and gamma encoding of linear renders
    export: PNG export through Pillow, sample-count maps and image RMSE
"""

from src.glint.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png_from_array,
    save_sample_map,
)
from src.glint.preview.tonemap import (
    ToneMapMethod,
    encode_gamma,
    to_display,
    tone_map_exposure,
    tone_map_reinhard,
)

__all__ = [
    "ToneMapMethod",
    "compute_rmse",
    "encode_gamma",
    "image_to_uint8",
    "save_png_from_array",
    "save_sample_map",
    "to_display",
    "tone_map_exposure",
    "tone_map_reinhard",
]
