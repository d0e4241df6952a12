"""World: the shapes and lights of a scene.

A World is built on the host, then uploaded into the kernel-side scene
storage before rendering. Uploading flattens groups into their leaf
primitives (composing transforms), uploads every distinct material once,
and uploads the lights. Only one world is resident at a time; uploading a
world replaces whatever was there, and re-uploading an unchanged world
is a no-op.

Host-side queries (``intersect``, ``color_at``, ``is_shadowed`` ...)
upload the world on demand and run small kernels against it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.scene.world import World, hit
    >>> from src.glint.scene.light import PointLight
    >>> from src.glint.geometry.sphere import Sphere
    >>> world = World()
    >>> world.add(Sphere(), PointLight(position=(-10, 10, -10)))
    >>> hit(world.intersect((0, 0, -5), (0, 0, 1))).t
    4.0
"""

import logging
from dataclasses import dataclass, field

import numpy as np

from src.glint.core.errors import ConstructionError
from src.glint.core.matrix import Matrix, scaling
from src.glint.core.tuples import color
from src.glint.geometry.base import Shape, TruncatedShape
from src.glint.geometry.group import check_transforms, check_tree, flatten
from src.glint.geometry.sphere import Sphere
from src.glint.materials.material import Material, add_material, clear_materials, get_material_count
from src.glint.materials.patterns import clear_patterns, get_pattern_node_count
from src.glint.scene.intersection import (
    MAX_SHAPES,
    add_primitive,
    clear_scene,
    intersect_world,
    point_shadowed,
    world_normal,
)
from src.glint.scene.light import MAX_LIGHTS, PointLight, add_light, clear_lights

logger = logging.getLogger(__name__)

# The world whose data currently sits in the kernel-side fields
_active_world: "World | None" = None


@dataclass(frozen=True)
class Intersection:
    """One crossing of a ray with a shape.

    Attributes:
        t: Ray parameter of the crossing.
        shape: The leaf shape that was crossed.
        index: Index of that shape among the world's primitives.
    """

    t: float
    shape: Shape
    index: int


def hit(intersections: list[Intersection]) -> Intersection | None:
    """Return the intersection with the lowest non-negative t, if any."""
    candidates = [i for i in intersections if i.t >= 0.0]
    if not candidates:
        return None
    return min(candidates, key=lambda i: i.t)


@dataclass(eq=False)
class World:
    """The shapes and lights of a scene.

    Attributes:
        shapes: Top-level shapes. Groups own their children.
        lights: Point lights.
    """

    shapes: list[Shape] = field(default_factory=list)
    lights: list[PointLight] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.shapes = list(self.shapes)
        self.lights = list(self.lights)
        self._validate(self.shapes, self.lights)
        self._primitives: list[tuple[Shape, Matrix]] | None = None
        self._snapshot = (tuple(self.shapes), tuple(self.lights))

    @staticmethod
    def _check_item(item: object) -> None:
        if not isinstance(item, (Shape, PointLight)):
            raise TypeError(f"World items must be shapes or point lights, got {type(item).__name__}")

    @classmethod
    def _validate(cls, shapes: list[Shape], lights: list[PointLight]) -> None:
        for item in shapes + lights:
            cls._check_item(item)
        check_tree(shapes)
        leaves = check_transforms(shapes)
        if leaves > MAX_SHAPES:
            raise ConstructionError(f"World has {leaves} primitives, more than {MAX_SHAPES}")
        if len(lights) > MAX_LIGHTS:
            raise ConstructionError(f"World has {len(lights)} lights, more than {MAX_LIGHTS}")

    def add(self, *items: Shape | PointLight) -> "World":
        """Add shapes and lights to the world.

        Returns:
            The world, for chaining.

        Raises:
            ConstructionError: If a shape is already part of the world, a
                composed transform is singular or a capacity is exceeded.
        """
        self._sync()
        for item in items:
            self._check_item(item)
        new_shapes = [item for item in items if isinstance(item, Shape)]
        new_lights = [item for item in items if isinstance(item, PointLight)]
        self._validate(self.shapes + new_shapes, self.lights + new_lights)
        self.shapes.extend(new_shapes)
        self.lights.extend(new_lights)
        self._invalidate()
        return self

    def _invalidate(self) -> None:
        global _active_world
        self._primitives = None
        self._snapshot = (tuple(self.shapes), tuple(self.lights))
        if _active_world is self:
            _active_world = None

    def _sync(self) -> None:
        """Revalidate if ``shapes`` or ``lights`` were edited in place."""
        shapes, lights = self._snapshot
        unchanged = (
            len(shapes) == len(self.shapes)
            and len(lights) == len(self.lights)
            and all(a is b for a, b in zip(shapes, self.shapes))
            and all(a is b for a, b in zip(lights, self.lights))
        )
        if not unchanged:
            self.shapes = list(self.shapes)
            self.lights = list(self.lights)
            self._validate(self.shapes, self.lights)
            self._invalidate()

    def primitives(self) -> list[tuple[Shape, Matrix]]:
        """Leaf shapes with their composed world transforms, in upload order."""
        self._sync()
        if self._primitives is None:
            self._primitives = [pair for shape in self.shapes for pair in flatten(shape)]
        return self._primitives

    def upload(self) -> None:
        """Copy the world into the kernel-side scene storage.

        Edits made directly to ``shapes`` or ``lights`` are picked up (and
        validated) here, so an edited world is uploaded again.

        Raises:
            ConstructionError: If an edited world is no longer valid.
            RuntimeError: If a storage capacity is exceeded.
        """
        global _active_world
        self._sync()
        if _active_world is self:
            return
        _active_world = None
        clear_scene()
        clear_materials()
        clear_patterns()
        clear_lights()

        material_ids: dict[int, int] = {}
        for shape, transform in self.primitives():
            material = shape.material
            if id(material) not in material_ids:
                material_ids[id(material)] = add_material(material)
            bounds = {}
            if isinstance(shape, TruncatedShape):
                bounds = {"minimum": shape.minimum, "maximum": shape.maximum, "closed": shape.closed}
            add_primitive(
                shape.kind,
                transform,
                material_ids[id(material)],
                casts_shadow=material.casts_shadow,
                **bounds,
            )
        for light in self.lights:
            add_light(light)

        _active_world = self
        logger.debug(
            "Uploaded world: %d primitives, %d materials, %d pattern nodes, %d lights",
            len(self.primitives()),
            get_material_count(),
            get_pattern_node_count(),
            len(self.lights),
        )

    # =========================================================================
    # Host Queries
    # =========================================================================

    def intersect(self, origin, direction) -> list[Intersection]:
        """All intersections of a ray with the world, sorted by t."""
        self.upload()
        leaves = self.primitives()
        return [Intersection(t, leaves[index][0], index) for t, index in intersect_world(origin, direction)]

    def color_at(self, origin, direction, depth: int = 5) -> tuple[float, float, float]:
        """Color seen along a ray, with up to ``depth`` bounces."""
        from src.glint.core.integrator import shade_ray

        self.upload()
        return shade_ray(origin, direction, depth)

    def is_shadowed(self, point, light_index: int = 0) -> bool:
        """Whether an opaque shape occludes light ``light_index`` from ``point``."""
        self.upload()
        return point_shadowed(point, self.lights[light_index].position)

    def normal_at(self, shape: Shape | int, point) -> np.ndarray:
        """World-space normal of a leaf shape (or primitive index) at a point."""
        self.upload()
        return world_normal(self._index_of(shape), point)

    def prepare(self, origin, direction) -> dict | None:
        """Shading state of a ray's hit (see ``hit_computations``)."""
        from src.glint.core.integrator import hit_computations

        self.upload()
        return hit_computations(origin, direction)

    def _index_of(self, shape: Shape | int) -> int:
        if isinstance(shape, int):
            return shape
        for index, (leaf, _) in enumerate(self.primitives()):
            if leaf is shape:
                return index
        raise ValueError(f"{shape!r} is not a primitive of this world")


def default_world() -> World:
    """The classic two-sphere test world.

    A white point light at (-10, 10, -10), an outer unit sphere with color
    (0.8, 1.0, 0.6), diffuse 0.7 and specular 0.2, and an inner sphere
    scaled by 0.5 with the default material.
    """
    outer = Sphere(material=Material(color=color(0.8, 1.0, 0.6), diffuse=0.7, specular=0.2))
    inner = Sphere(transform=scaling(0.5, 0.5, 0.5))
    return World(
        shapes=[outer, inner],
        lights=[PointLight(position=(-10.0, 10.0, -10.0), intensity=color(1.0, 1.0, 1.0))],
    )


def get_active_world() -> World | None:
    """The world currently uploaded, if any."""
    return _active_world


def reset_active_world() -> None:
    """Forget which world is uploaded, forcing the next upload to run."""
    global _active_world
    _active_world = None
