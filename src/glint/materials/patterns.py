"""Procedural color patterns evaluated in pattern-local space.

A pattern is a pure function from a point to a color. Every pattern
carries its own transform, and the composite patterns (stripe, gradient,
ring, checker, blended) take children that are either plain colors or
nested patterns, so patterns compose into small trees. Stripes and rings
cycle through any number of children; the others take exactly two.

Host side, patterns are frozen dataclasses validated at construction (a
singular transform raises ConstructionError). When a material is uploaded
its pattern tree is compiled into a contiguous block of nodes in
pre-order, each node storing the composite transform from object space
into its own space. Kernel side, ``pattern_at`` evaluates a block from the
last node to the first, so every child is ready before its parent reads it.

Example:
    >>> from src.glint.core.matrix import scaling
    >>> from src.glint.materials.patterns import Checker, Stripe
    >>> floor = Checker(a=(1.0, 1.0, 1.0), b=Stripe(a=(1, 0, 0), b=(0, 0, 1)))
    >>> fine = Stripe(a=(1, 1, 1), b=(0, 0, 0), transform=scaling(0.25, 1, 1))
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import ClassVar, Union

import taichi as ti

from src.glint.core.errors import ConstructionError
from src.glint.core.matrix import Matrix
from src.glint.core.ray import transform_point, vec3
from src.glint.core.tuples import BLACK, WHITE, Color, as_color


class PatternKind(IntEnum):
    """Pattern variants, used for kernel-side dispatch."""

    SOLID = 0
    STRIPE = 1
    GRADIENT = 2
    RING = 3
    CHECKER = 4
    BLENDED = 5


# Nodes per pattern tree; sizes the register block used by pattern_at
MAX_TREE_NODES = 8

# Total pattern nodes across all uploaded materials
MAX_PATTERN_NODES = 2048


# =============================================================================
# Pattern Descriptions (host side)
# =============================================================================


PatternChild = Union[Color, "Pattern"]


def _check_transform(transform: Matrix) -> None:
    if not isinstance(transform, Matrix):
        raise ConstructionError(f"Pattern transform must be a Matrix, got {type(transform).__name__}")
    transform.inverse()


def _coerce_child(child: "PatternChild") -> "PatternChild":
    if isinstance(child, Pattern):
        return child
    try:
        return as_color(child)
    except (TypeError, ValueError) as exc:
        raise ConstructionError(f"Pattern child must be a color or a Pattern: {exc}") from exc


@dataclass(frozen=True, eq=False)
class Pattern:
    """Base class of all patterns. Subclasses declare their own fields."""

    kind: ClassVar[PatternKind]

    def __post_init__(self) -> None:
        _check_transform(self.transform)
        for name in ("a", "b"):
            if hasattr(self, name):
                object.__setattr__(self, name, _coerce_child(getattr(self, name)))
        if hasattr(self, "more"):
            if not isinstance(self.more, (tuple, list)):
                raise ConstructionError("Pattern 'more' must be a sequence of colors or patterns")
            object.__setattr__(self, "more", tuple(_coerce_child(c) for c in self.more))
        if self.node_count() > MAX_TREE_NODES:
            raise ConstructionError(
                f"Pattern tree has {self.node_count()} nodes, more than {MAX_TREE_NODES}"
            )

    def children(self) -> tuple["PatternChild", ...]:
        return ()

    def node_count(self) -> int:
        """Number of compiled nodes, counting each color child as one."""
        return 1 + sum(c.node_count() if isinstance(c, Pattern) else 1 for c in self.children())


@dataclass(frozen=True, eq=False)
class Solid(Pattern):
    """A single color everywhere."""

    kind: ClassVar[PatternKind] = PatternKind.SOLID
    color: Color = WHITE
    transform: Matrix = field(default_factory=Matrix.identity)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "color", as_color(self.color))
        except (TypeError, ValueError) as exc:
            raise ConstructionError(str(exc)) from exc
        super().__post_init__()


@dataclass(frozen=True, eq=False)
class _TwoChildPattern(Pattern):
    a: PatternChild = WHITE
    b: PatternChild = BLACK
    transform: Matrix = field(default_factory=Matrix.identity)

    def children(self) -> tuple["PatternChild", ...]:
        return (self.a, self.b)


@dataclass(frozen=True, eq=False)
class _BandedPattern(_TwoChildPattern):
    # Children after a and b, cycled through in order
    more: tuple[PatternChild, ...] = ()

    def children(self) -> tuple["PatternChild", ...]:
        return (self.a, self.b, *self.more)


@dataclass(frozen=True, eq=False)
class Stripe(_BandedPattern):
    """Unit-wide bands along x cycling through ``a``, ``b`` and then ``more``."""

    kind: ClassVar[PatternKind] = PatternKind.STRIPE


@dataclass(frozen=True, eq=False)
class Gradient(_TwoChildPattern):
    """Blends linearly from ``a`` to ``b`` across each unit interval of x."""

    kind: ClassVar[PatternKind] = PatternKind.GRADIENT


@dataclass(frozen=True, eq=False)
class Ring(_BandedPattern):
    """Concentric unit-wide rings around the y axis, cycling like Stripe."""

    kind: ClassVar[PatternKind] = PatternKind.RING


@dataclass(frozen=True, eq=False)
class Checker(_TwoChildPattern):
    """Alternating unit cubes in all three dimensions."""

    kind: ClassVar[PatternKind] = PatternKind.CHECKER


@dataclass(frozen=True, eq=False)
class Blended(_TwoChildPattern):
    """The average of two patterns, each evaluated in its own space."""

    kind: ClassVar[PatternKind] = PatternKind.BLENDED


# =============================================================================
# Pattern Storage (Structure of Arrays, GPU-side)
# =============================================================================

pattern_kinds = ti.field(dtype=ti.i32, shape=MAX_PATTERN_NODES)
pattern_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PATTERN_NODES)
# Child offsets are relative to the root of the tree (-1 when absent)
MAX_CHILDREN = MAX_TREE_NODES - 1
pattern_children = ti.Vector.field(MAX_CHILDREN, dtype=ti.i32, shape=MAX_PATTERN_NODES)
pattern_child_counts = ti.field(dtype=ti.i32, shape=MAX_PATTERN_NODES)
# Composite transform from object space into the node's own space
pattern_transforms = ti.Matrix.field(4, 4, dtype=ti.f32, shape=MAX_PATTERN_NODES)
# Number of nodes in the tree rooted here (only meaningful at roots)
pattern_tree_sizes = ti.field(dtype=ti.i32, shape=MAX_PATTERN_NODES)
num_pattern_nodes = ti.field(dtype=ti.i32, shape=())


def clear_patterns() -> None:
    """Forget all uploaded patterns."""
    num_pattern_nodes[None] = 0


def get_pattern_node_count() -> int:
    return int(num_pattern_nodes[None])


def _compile(pattern: Pattern) -> list[tuple[int, Color, list[int], Matrix]]:
    """Flatten a pattern tree into pre-order nodes.

    Each node is (kind, color, child_offsets, object_to_node).
    """
    nodes: list[tuple[int, Color, list[int], Matrix]] = []

    def visit(child: PatternChild, parent_space: Matrix) -> int:
        index = len(nodes)
        if not isinstance(child, Pattern):
            nodes.append((int(PatternKind.SOLID), child, [], parent_space))
            return index
        space = child.transform.inverse() @ parent_space
        solid_color = child.color if isinstance(child, Solid) else BLACK
        nodes.append((int(child.kind), solid_color, [], space))
        links = [visit(grandchild, space) for grandchild in child.children()]
        nodes[index] = (int(child.kind), solid_color, links, space)
        return index

    visit(pattern, Matrix.identity())
    return nodes


def add_pattern(pattern: Pattern) -> int:
    """Compile a pattern tree into pattern storage.

    Args:
        pattern: The pattern to upload.

    Returns:
        The index of the tree's root node.

    Raises:
        RuntimeError: If the pattern storage would overflow.
    """
    nodes = _compile(pattern)
    root = num_pattern_nodes[None]
    if root + len(nodes) > MAX_PATTERN_NODES:
        raise RuntimeError(f"Maximum number of pattern nodes ({MAX_PATTERN_NODES}) exceeded")
    for offset, (kind, node_color, links, space) in enumerate(nodes):
        idx = root + offset
        pattern_kinds[idx] = kind
        pattern_colors[idx] = list(node_color)
        pattern_children[idx] = links + [-1] * (MAX_CHILDREN - len(links))
        pattern_child_counts[idx] = len(links)
        pattern_transforms[idx] = space.tolist()
        pattern_tree_sizes[idx] = len(nodes) - offset
    num_pattern_nodes[None] = root + len(nodes)
    return root


# =============================================================================
# Pattern Evaluation (Taichi-compatible)
# =============================================================================


@ti.func
def _floor_int(x: ti.f32) -> ti.i32:
    return ti.cast(ti.floor(x), ti.i32)


@ti.func
def _node_color(colors, index: ti.i32) -> vec3:
    """Read one row of the per-tree color block (zero for index -1)."""
    result = vec3(0.0, 0.0, 0.0)
    for k in ti.static(range(MAX_TREE_NODES)):
        if k == index:
            result = vec3(colors[k, 0], colors[k, 1], colors[k, 2])
    return result


@ti.func
def select_child(kind: ti.i32, p: vec3, count: ti.i32) -> ti.i32:
    """Which child a banded node (stripe, ring, checker) shows at a point.

    Stripes and rings cycle through all ``count`` children, with band -1
    showing the last child; checkers alternate between their two.
    """
    band = 0
    if kind == int(PatternKind.STRIPE):
        band = _floor_int(p.x)
    elif kind == int(PatternKind.RING):
        band = _floor_int(ti.sqrt(p.x * p.x + p.z * p.z))
    elif kind == int(PatternKind.CHECKER):
        band = _floor_int(p.x) + _floor_int(p.y) + _floor_int(p.z)
    return band % ti.max(count, 1)


@ti.func
def evaluate_node(kind: ti.i32, solid: vec3, p: vec3, a: vec3, b: vec3, picked: vec3) -> vec3:
    """Evaluate a single pattern node at a point in its own space.

    Args:
        kind: The PatternKind of the node.
        solid: The node color (used by SOLID nodes).
        p: The point in the node's space.
        a: The color of the first child at this point.
        b: The color of the second child at this point.
        picked: The color of the child chosen by ``select_child``.

    Returns:
        The node's color.
    """
    result = solid
    if kind == int(PatternKind.STRIPE) or kind == int(PatternKind.RING) or kind == int(PatternKind.CHECKER):
        result = picked
    elif kind == int(PatternKind.GRADIENT):
        result = a + (b - a) * (p.x - ti.floor(p.x))
    elif kind == int(PatternKind.BLENDED):
        result = (a + b) * 0.5
    return result


@ti.func
def pattern_at(root: ti.i32, object_point: vec3) -> vec3:
    """Evaluate the pattern tree rooted at ``root``.

    Args:
        root: Root node index returned by ``add_pattern``.
        object_point: The point in the shape's object space.

    Returns:
        The pattern color at the point.
    """
    size = pattern_tree_sizes[root]
    colors = ti.Matrix.zero(ti.f32, MAX_TREE_NODES, 3)
    for k in ti.static(range(MAX_TREE_NODES - 1, -1, -1)):
        if k < size:
            node = root + k
            kind = pattern_kinds[node]
            links = pattern_children[node]
            p = transform_point(pattern_transforms[node], object_point)
            pick = select_child(kind, p, pattern_child_counts[node])
            picked_link = -1
            for j in ti.static(range(MAX_CHILDREN)):
                if j == pick:
                    picked_link = links[j]
            a = _node_color(colors, links[0])
            b = _node_color(colors, links[1])
            picked = _node_color(colors, picked_link)
            c = evaluate_node(kind, pattern_colors[node], p, a, b, picked)
            for ch in ti.static(range(3)):
                colors[k, ch] = c[ch]
    return vec3(colors[0, 0], colors[0, 1], colors[0, 2])


_sample_result = ti.Vector.field(3, dtype=ti.f32, shape=())


@ti.kernel
def _sample_pattern_kernel(root: ti.i32, x: ti.f32, y: ti.f32, z: ti.f32):
    _sample_result[None] = pattern_at(root, vec3(x, y, z))


def sample_pattern(root: int, object_point: tuple[float, float, float]) -> Color:
    """Evaluate an uploaded pattern at an object-space point from Python.

    Args:
        root: Root index returned by ``add_pattern``.
        object_point: The point in object space.

    Returns:
        The pattern color as an (r, g, b) tuple.

    Raises:
        IndexError: If ``root`` is not an uploaded pattern node.
    """
    if not 0 <= root < num_pattern_nodes[None]:
        raise IndexError(f"No pattern uploaded at index {root}")
    _sample_pattern_kernel(root, object_point[0], object_point[1], object_point[2])
    c = _sample_result[None]
    return (float(c[0]), float(c[1]), float(c[2]))

