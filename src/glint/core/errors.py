"""Exception types raised while building scenes.

Rendering itself never raises for per-ray anomalies (misses, total internal
reflection, exhausted recursion budget); those resolve to well-defined
colors inside the kernels. Errors are reserved for invalid input detected
while the world, camera or render configuration is being built, so that a
render either fails before it starts or runs to completion.
"""


class GlintError(Exception):
    """Base class for all errors raised by glint."""


class ConstructionError(GlintError, ValueError):
    """A shape, pattern, material or camera could not be constructed.

    Raised for singular (non-invertible) transforms and for parameters that
    describe no valid object, such as a cylinder whose minimum exceeds its
    maximum or a camera with zero pixels.
    """


class SceneFormatError(GlintError, ValueError):
    """A scene description is malformed and cannot be turned into a world."""
