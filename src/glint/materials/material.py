"""Surface materials for Phong shading, reflection and refraction.

A Material holds the Phong coefficients, the reflection/refraction
parameters and the surface color, which is either a flat color or a
procedural pattern. Materials are immutable once built; shapes share them
by reference, and each distinct material is uploaded once per world.

Material properties:
    - color / pattern: Surface color (the pattern wins when both are set)
    - ambient, diffuse, specular, shininess: Phong reflection coefficients
    - reflective: Fraction of a mirror reflection added on top
    - transparency: Fraction of a refracted ray added on top
    - refractive_index: Index of the medium inside the surface

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.materials.material import GLASS, Material, add_material
    >>> glass = Material(color=(0.1, 0.1, 0.1), transparency=0.9,
    ...                  reflective=0.9, refractive_index=GLASS)
    >>> mat_id = add_material(glass)
    >>> # Use get_material(mat_id) within a Taichi kernel
"""

import math
from dataclasses import dataclass

import taichi as ti

from src.glint.core.errors import ConstructionError
from src.glint.core.tuples import WHITE, Color, as_color
from src.glint.materials.patterns import Pattern, Solid, add_pattern

# Common refractive indices
VACUUM = 1.0
AIR = 1.00029
WATER = 1.333
GLASS = 1.52
DIAMOND = 2.417

# Maximum number of distinct materials per world
MAX_MATERIALS = 512


@dataclass(frozen=True, eq=False)
class Material:
    """Reflectance parameters of a surface.

    Attributes:
        color: Flat surface color, used when ``pattern`` is None.
        pattern: Optional procedural pattern sampled in object space.
        ambient: Ambient coefficient (>= 0).
        diffuse: Diffuse coefficient (>= 0).
        specular: Specular coefficient (>= 0).
        shininess: Specular exponent (> 0).
        reflective: Mirror reflection weight (>= 0).
        transparency: Refraction weight (>= 0). Shapes with a non-zero
            transparency do not cast shadows.
        refractive_index: Index of refraction of the interior (> 0).
    """

    color: Color = WHITE
    pattern: Pattern | None = None
    ambient: float = 0.1
    diffuse: float = 0.9
    specular: float = 0.9
    shininess: float = 200.0
    reflective: float = 0.0
    transparency: float = 0.0
    refractive_index: float = VACUUM

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "color", as_color(self.color))
        except (TypeError, ValueError) as exc:
            raise ConstructionError(f"Invalid material color: {exc}") from exc
        if self.pattern is not None and not isinstance(self.pattern, Pattern):
            raise ConstructionError(
                f"Material pattern must be a Pattern, got {type(self.pattern).__name__}"
            )
        for name in ("ambient", "diffuse", "specular", "reflective", "transparency"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0.0:
                raise ConstructionError(f"Material {name} must be a non-negative number, got {value}")
        if not math.isfinite(self.shininess) or self.shininess <= 0.0:
            raise ConstructionError(f"Material shininess must be positive, got {self.shininess}")
        if not math.isfinite(self.refractive_index) or self.refractive_index <= 0.0:
            raise ConstructionError(
                f"Material refractive_index must be positive, got {self.refractive_index}"
            )

    @property
    def surface(self) -> Pattern:
        """The pattern actually sampled for this material."""
        return self.pattern if self.pattern is not None else Solid(color=self.color)

    @property
    def casts_shadow(self) -> bool:
        return self.transparency == 0.0


@ti.dataclass
class MaterialRecord:
    """Kernel-side view of an uploaded material.

    Attributes:
        ambient: Ambient coefficient.
        diffuse: Diffuse coefficient.
        specular: Specular coefficient.
        shininess: Specular exponent.
        reflective: Mirror reflection weight.
        transparency: Refraction weight.
        refractive_index: Index of refraction of the interior.
        pattern: Root index of the material's pattern tree.
    """

    ambient: ti.f32
    diffuse: ti.f32
    specular: ti.f32
    shininess: ti.f32
    reflective: ti.f32
    transparency: ti.f32
    refractive_index: ti.f32
    pattern: ti.i32


# =============================================================================
# Material Storage (Structure of Arrays, GPU-side)
# =============================================================================

material_ambient = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflective = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_transparency = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_refractive_index = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_pattern = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Forget all uploaded materials.

    Pattern storage is cleared separately by ``clear_patterns``.
    """
    num_materials[None] = 0


def add_material(material: Material) -> int:
    """Upload a material and its pattern tree.

    Args:
        material: The material to upload.

    Returns:
        The index of the uploaded material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
    """
    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")
    material_ambient[idx] = material.ambient
    material_diffuse[idx] = material.diffuse
    material_specular[idx] = material.specular
    material_shininess[idx] = material.shininess
    material_reflective[idx] = material.reflective
    material_transparency[idx] = material.transparency
    material_refractive_index[idx] = material.refractive_index
    material_pattern[idx] = add_pattern(material.surface)
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of uploaded materials."""
    return int(num_materials[None])


@ti.func
def get_material(material_id: ti.i32) -> MaterialRecord:
    """Load an uploaded material inside a kernel.

    Args:
        material_id: Index returned by ``add_material``.

    Returns:
        The material's parameters.
    """
    return MaterialRecord(
        ambient=material_ambient[material_id],
        diffuse=material_diffuse[material_id],
        specular=material_specular[material_id],
        shininess=material_shininess[material_id],
        reflective=material_reflective[material_id],
        transparency=material_transparency[material_id],
        refractive_index=material_refractive_index[material_id],
        pattern=material_pattern[material_id],
    )


@ti.func
def get_material_refractive_index(material_id: ti.i32) -> ti.f32:
    return material_refractive_index[material_id]

