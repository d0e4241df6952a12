"""Groups: shapes composed under a shared transform.

A Group owns a tuple of child shapes (which may themselves be groups) and
a transform applied on top of each child's own. The scene is a tree: a
shape instance may appear at most once in it.

Groups are resolved when the world is uploaded. ``flatten`` walks the
tree and yields every leaf primitive with its parent transforms composed
into its own; building a group or world already inverts each composed
transform, so a singular product raises ConstructionError there.

Transforming a ray once by a group's inverse and then by a child's
inverse is the same as transforming it once by the composed inverse, so
intersecting the flattened leaves matches recursing through the group.

Example:
    >>> from src.glint.core.matrix import translation
    >>> from src.glint.geometry.group import Group
    >>> from src.glint.geometry.sphere import Sphere
    >>> pair = Group(
    ...     children=(Sphere(transform=translation(-1, 0, 0)), Sphere()),
    ...     transform=translation(0, 2, 0),
    ... )
"""

from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar

from src.glint.core.errors import ConstructionError
from src.glint.core.matrix import Matrix
from src.glint.geometry.base import Shape, ShapeKind


@dataclass(frozen=True, eq=False)
class Group(Shape):
    """A transform applied to a collection of child shapes.

    Attributes:
        children: The owned child shapes.
    """

    kind: ClassVar[ShapeKind] = ShapeKind.GROUP
    children: tuple[Shape, ...] = ()

    def __post_init__(self) -> None:
        super().__post_init__()
        children = tuple(self.children)
        for child in children:
            if not isinstance(child, Shape):
                raise ConstructionError(
                    f"Group children must be shapes, got {type(child).__name__}"
                )
        object.__setattr__(self, "children", children)
        # Raises if any shape is reachable twice
        check_tree([self])
        check_transforms([self])

    def __len__(self) -> int:
        return len(self.children)

    def __repr__(self) -> str:
        return f"Group(children={len(self.children)}, transform={self.transform!r})"


def check_tree(shapes: list[Shape]) -> None:
    """Verify that no shape instance is reachable more than once.

    Raises:
        ConstructionError: If a shape has more than one parent.
    """
    seen: set[int] = set()
    stack = list(shapes)
    while stack:
        shape = stack.pop()
        if id(shape) in seen:
            raise ConstructionError(f"{shape!r} appears more than once in the scene tree")
        seen.add(id(shape))
        if isinstance(shape, Group):
            stack.extend(shape.children)


def flatten(shape: Shape, parent_transform: Matrix | None = None) -> Iterator[tuple[Shape, Matrix]]:
    """Yield (leaf, composed object-to-world transform) for a shape tree."""
    transform = shape.transform if parent_transform is None else parent_transform @ shape.transform
    if isinstance(shape, Group):
        for child in shape.children:
            yield from flatten(child, transform)
    else:
        yield shape, transform


def check_transforms(shapes: list[Shape]) -> int:
    """Invert every composed leaf transform of a list of shape trees.

    Each shape's own transform is invertible, but a product of them can
    still fall below the determinant tolerance.

    Returns:
        The number of leaf primitives.

    Raises:
        ConstructionError: If a composed transform is singular.
    """
    count = 0
    for shape in shapes:
        for leaf, transform in flatten(shape):
            try:
                transform.inverse()
            except ConstructionError as exc:
                raise ConstructionError(f"Composed transform of {leaf!r} is not invertible: {exc}") from exc
            count += 1
    return count
