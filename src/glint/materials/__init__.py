"""Material and pattern models.

Components:
    patterns: Procedural color patterns and their kernel-side evaluation
    material: Material parameters and GPU-side material storage
    phong: Phong lighting and Schlick reflectance
"""

from .material import (
    AIR,
    DIAMOND,
    GLASS,
    VACUUM,
    WATER,
    Material,
    MaterialRecord,
    add_material,
    clear_materials,
    get_material,
)
from .patterns import (
    Blended,
    Checker,
    Gradient,
    Pattern,
    PatternKind,
    Ring,
    Solid,
    Stripe,
    add_pattern,
    clear_patterns,
    pattern_at,
    sample_pattern,
)
from .phong import lighting, schlick

__all__ = [
    "AIR",
    "DIAMOND",
    "GLASS",
    "VACUUM",
    "WATER",
    "Blended",
    "Checker",
    "Gradient",
    "Material",
    "MaterialRecord",
    "Pattern",
    "PatternKind",
    "Ring",
    "Solid",
    "Stripe",
    "add_material",
    "add_pattern",
    "clear_materials",
    "clear_patterns",
    "get_material",
    "lighting",
    "pattern_at",
    "sample_pattern",
    "schlick",
]
