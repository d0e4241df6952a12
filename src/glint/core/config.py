"""Render configuration.

RenderConfig gathers every knob the renderer reads: how pixels are
sampled and how deep reflection/refraction may recurse. It is validated
once at construction so that a render never starts with settings it cannot
honour.

Example:
    >>> from src.glint.core.config import AntialiasingMode, RenderConfig
    >>> config = RenderConfig(
    ...     samples_per_pixel=8,
    ...     antialiasing_mode="adaptive",
    ...     variance_threshold=1e-3,
    ...     max_samples=64,
    ... )
    >>> config.antialiasing_mode is AntialiasingMode.ADAPTIVE
    True
"""

import math
from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any

# Upper bound on reflection_depth; sizes the per-pixel ray stack in kernels
MAX_REFLECTION_DEPTH = 8


class AntialiasingMode(IntEnum):
    """Per-pixel sampling strategies.

    NONE traces a single ray through the pixel center. UNIFORM averages
    ``samples_per_pixel`` jittered rays. ADAPTIVE starts like UNIFORM and
    keeps adding jittered rays while the sample variance stays above the
    threshold, up to ``max_samples``.
    """

    NONE = 0
    UNIFORM = 1
    ADAPTIVE = 2

    @classmethod
    def parse(cls, value: "AntialiasingMode | str | int") -> "AntialiasingMode":
        """Coerce a mode name ("none", "uniform", "adaptive") or value.

        Raises:
            ValueError: If the value names no known mode.
        """
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                names = ", ".join(m.name.lower() for m in cls)
                raise ValueError(
                    f"Unknown antialiasing mode: {value!r} (expected one of {names})"
                ) from None
        return cls(value)


@dataclass(frozen=True)
class RenderConfig:
    """Configuration for a single render pass.

    Attributes:
        samples_per_pixel: Samples for UNIFORM mode, and the initial
            sample count for ADAPTIVE mode. Ignored by NONE.
        antialiasing_mode: The sampling strategy.
        variance_threshold: ADAPTIVE keeps sampling while the variance of
            the pixel mean (summed over RGB) exceeds this value.
        max_samples: Hard cap on samples per pixel in ADAPTIVE mode.
        reflection_depth: How many reflection/refraction bounces may be
            spawned below a primary ray. 0 disables both.
    """

    samples_per_pixel: int = 4
    antialiasing_mode: AntialiasingMode = AntialiasingMode.NONE
    variance_threshold: float = 1e-3
    max_samples: int = 64
    reflection_depth: int = 5

    def __post_init__(self) -> None:
        object.__setattr__(self, "antialiasing_mode", AntialiasingMode.parse(self.antialiasing_mode))
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}")
        if self.max_samples < self.samples_per_pixel:
            raise ValueError(
                f"max_samples ({self.max_samples}) must be >= "
                f"samples_per_pixel ({self.samples_per_pixel})"
            )
        if not math.isfinite(self.variance_threshold) or self.variance_threshold < 0.0:
            raise ValueError(
                f"variance_threshold must be a non-negative number, got {self.variance_threshold}"
            )
        if not 0 <= self.reflection_depth <= MAX_REFLECTION_DEPTH:
            raise ValueError(
                f"reflection_depth must be in [0, {MAX_REFLECTION_DEPTH}], "
                f"got {self.reflection_depth}"
            )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["antialiasing_mode"] = self.antialiasing_mode.name.lower()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RenderConfig":
        """Build a configuration from a dictionary, ignoring unknown keys."""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)
