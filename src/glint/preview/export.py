"""Image export through Pillow.

Rendered images are written as 8-bit RGB PNGs after tone mapping and
gamma encoding. The adaptive sampler's per-pixel sample counts can be
written as a grayscale map, which makes it easy to see where the extra
samples went (edges and reflections light up, flat regions stay dark).

Example:
    >>> from src.glint.preview.export import save_png_from_array
    >>> image = render(camera, world, config)
    >>> save_png_from_array(image, "showcase.png", tone_map="reinhard")
"""

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.glint.preview.tonemap import ToneMapMethod, to_display


def image_to_uint8(
    image: npt.NDArray[np.floating],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image to 8-bit RGB.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding value (default 2.2 for sRGB).
        exposure: Exposure for exposure tone mapping.

    Returns:
        Array of shape (H, W, 3) with dtype uint8.
    """
    processed = to_display(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.floating],
    filepath: str,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> None:
    """Write a linear float image as an 8-bit PNG."""
    image_uint8 = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(image_uint8, mode="RGB").save(filepath)


def save_sample_map(counts: npt.NDArray[np.integer], filepath: str, max_samples: int | None = None) -> None:
    """Write per-pixel sample counts as a grayscale PNG.

    Args:
        counts: Array of shape (H, W) from ``Renderer.get_sample_counts``.
        filepath: Output file path.
        max_samples: Count mapped to white. Defaults to the largest count.
    """
    if counts.ndim != 2:
        raise ValueError(f"Expected counts of shape (H, W), got {counts.shape}")
    top = max_samples if max_samples is not None else int(counts.max(initial=1))
    scaled = np.clip(counts.astype(np.float64) / max(top, 1), 0.0, 1.0)
    PILImage.fromarray(np.round(scaled * 255.0).astype(np.uint8), mode="L").save(filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Root mean squared error between two images of the same shape.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")
    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
