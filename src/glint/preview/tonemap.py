"""Display transforms for rendered images.

Rendered colors are linear and unbounded: several lights, specular
highlights and mirror bounces all add up, so values above 1 are normal.
Before an image is shown or written as 8-bit it goes through:

    1. optional tone mapping ("reinhard" or "exposure") to compress
       highlights, or "none" to simply clip them
    2. gamma encoding (2.2 approximates sRGB)
    3. clamping to [0, 1]

Example:
    >>> import numpy as np
    >>> from src.glint.preview.tonemap import to_display
    >>> hdr = np.full((2, 2, 3), 4.0, dtype=np.float32)
    >>> float(to_display(hdr, tone_map="reinhard", gamma=1.0)[0, 0, 0])
    0.8
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

ToneMapMethod = Literal["none", "reinhard", "exposure"]


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Compress highlights with c / (1 + c)."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(image: npt.NDArray[np.float32], exposure: float = 1.0) -> npt.NDArray[np.float32]:
    """Compress highlights with 1 - exp(-c * exposure).

    Args:
        image: Linear image of shape (H, W, 3).
        exposure: Brightness scale; higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1].
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def encode_gamma(image: npt.NDArray[np.float32], gamma: float = 2.2) -> npt.NDArray[np.float32]:
    """Clamp to [0, 1] and raise to 1 / gamma.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    image = np.clip(image, 0.0, 1.0)
    if gamma == 1.0:
        return image.astype(np.float32)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def to_display(
    image: npt.NDArray[np.floating],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the full display pipeline on a linear image.

    NaN and infinite components are treated as black.

    Raises:
        ValueError: If the image is not (H, W, 3) or the tone map is unknown.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")
    result = np.nan_to_num(np.asarray(image, dtype=np.float32), nan=0.0, posinf=0.0, neginf=0.0)

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    return encode_gamma(result, gamma)
