"""Showcase scene exercising every shape, pattern and optical effect.

The scene consists of:
- A checkered floor plane, slightly reflective
- A back wall with a blended stripe pattern
- A glass sphere (reflective and transparent, index 1.52) in the middle
- A mirror sphere on the left
- A matte ring-patterned sphere on the right
- A capped cylinder with a cone on top, built as a group
- A small gradient cube in the foreground
- Two point lights; the second is dim and fills in the shadows

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.glint.core.renderer import render
    >>> from src.glint.scene.showcase import create_showcase_scene
    >>> world, camera = create_showcase_scene(320, 180)
    >>> image = render(camera, world)
"""

import math

from src.glint.camera.pinhole import Camera
from src.glint.core.matrix import rotation_x, rotation_y, scaling, translation, view_transform
from src.glint.core.tuples import color
from src.glint.geometry.cone import Cone
from src.glint.geometry.cube import Cube
from src.glint.geometry.cylinder import Cylinder
from src.glint.geometry.group import Group
from src.glint.geometry.plane import Plane
from src.glint.geometry.sphere import Sphere
from src.glint.materials.material import GLASS, Material
from src.glint.materials.patterns import Blended, Checker, Gradient, Ring, Stripe
from src.glint.scene.light import PointLight
from src.glint.scene.world import World

# Default field of view: 60 degrees across the wider image side
SHOWCASE_FIELD_OF_VIEW = math.pi / 3.0


def create_showcase_world() -> World:
    """Build the showcase world."""
    floor = Plane(
        material=Material(
            pattern=Checker(a=color(0.35, 0.35, 0.35), b=color(0.65, 0.65, 0.65)),
            specular=0.0,
            reflective=0.15,
        )
    )

    wall_pattern = Blended(
        a=Stripe(a=color(0.55, 0.25, 0.2), b=color(0.85, 0.6, 0.45), transform=scaling(0.5, 0.5, 0.5)),
        b=Stripe(
            a=color(0.55, 0.25, 0.2),
            b=color(0.85, 0.6, 0.45),
            transform=rotation_y(math.pi / 2.0) @ scaling(0.5, 0.5, 0.5),
        ),
    )
    wall = Plane(
        transform=translation(0.0, 0.0, 8.0) @ rotation_x(math.pi / 2.0),
        material=Material(pattern=wall_pattern, specular=0.0, ambient=0.15),
    )

    glass = Sphere(
        transform=translation(0.0, 1.0, 0.5),
        material=Material(
            color=color(0.05, 0.05, 0.08),
            diffuse=0.1,
            specular=1.0,
            shininess=300.0,
            reflective=0.9,
            transparency=0.9,
            refractive_index=GLASS,
        ),
    )
    mirror = Sphere(
        transform=translation(-2.2, 0.75, 1.5) @ scaling(0.75, 0.75, 0.75),
        material=Material(color=color(0.1, 0.1, 0.12), diffuse=0.2, reflective=0.8),
    )
    ringed = Sphere(
        transform=translation(2.0, 0.6, -0.2) @ scaling(0.6, 0.6, 0.6),
        material=Material(
            pattern=Ring(
                a=color(0.2, 0.5, 0.9),
                b=color(0.95, 0.95, 0.9),
                transform=scaling(0.2, 0.2, 0.2) @ rotation_x(math.pi / 4.0),
            ),
            specular=0.3,
        ),
    )

    pillar_material = Material(color=color(0.85, 0.75, 0.3), diffuse=0.7, specular=0.6, reflective=0.1)
    tower = Group(
        transform=translation(3.0, 0.0, 3.0),
        children=(
            Cylinder(
                minimum=0.0,
                maximum=1.5,
                closed=True,
                transform=scaling(0.4, 1.0, 0.4),
                material=pillar_material,
            ),
            Cone(
                minimum=-1.0,
                maximum=0.0,
                closed=True,
                transform=translation(0.0, 2.3, 0.0) @ scaling(0.6, 0.8, 0.6),
                material=pillar_material,
            ),
        ),
    )

    block = Cube(
        transform=translation(-1.0, 0.25, -1.5) @ rotation_y(math.pi / 5.0) @ scaling(0.25, 0.25, 0.25),
        material=Material(
            pattern=Gradient(
                a=color(0.9, 0.2, 0.3),
                b=color(0.3, 0.2, 0.9),
                transform=translation(-1.0, 0.0, 0.0) @ scaling(2.0, 1.0, 1.0),
            ),
        ),
    )

    return World(
        shapes=[floor, wall, glass, mirror, ringed, tower, block],
        lights=[
            PointLight(position=(-6.0, 8.0, -8.0), intensity=color(0.9, 0.9, 0.9)),
            PointLight(position=(6.0, 4.0, -6.0), intensity=color(0.2, 0.2, 0.25)),
        ],
    )


def create_showcase_camera(width: int, height: int, field_of_view: float = SHOWCASE_FIELD_OF_VIEW) -> Camera:
    """A camera looking at the showcase from the front, slightly raised."""
    return Camera(
        hsize=width,
        vsize=height,
        field_of_view=field_of_view,
        transform=view_transform((0.0, 2.0, -6.0), (0.0, 0.9, 0.0), (0.0, 1.0, 0.0)),
    )


def create_showcase_scene(width: int = 320, height: int = 180) -> tuple[World, Camera]:
    """Create the showcase world and a camera framing it.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        A tuple (world, camera).
    """
    return create_showcase_world(), create_showcase_camera(width, height)
