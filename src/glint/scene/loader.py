"""Scene descriptions: plain data to Camera, World and RenderConfig.

A scene description is a list of items, read from a YAML file (or JSON,
for any other suffix) or passed in directly. Each item either adds
something to the scene or defines a reusable value:

    - add: camera
      hsize: 320
      vsize: 180
      fov: 1.05
      from: [0, 1.5, -5]
      to: [0, 1, 0]
      up: [0, 1, 0]
      aa: {method: adaptive, level: 4, tolerance: 0.01, max_samples: 32}
      depth: 5
    - add: light
      type: point
      at: [-10, 10, -10]
      intensity: [1, 1, 1]
    - define: glass
      value: {transparency: 0.9, refractive-index: 1.52}
    - add: sphere
      material: glass
      transform:
        - [scale, 0.5, 0.5, 0.5]
        - [translate, 0, 1, 0]
    - add: group
      transform: [[rotate-y, 0.5]]
      children:
        - {add: cylinder, min: 0, max: 1, closed: true}

The camera also accepts ``width``, ``height`` and ``field-of-view``.

Shapes: sphere, plane, cube, cylinder, cone (``min``, ``max``, ``closed``)
and group (``children``). Transform lists are applied in the order given,
so ``[[scale, ...], [translate, ...]]`` scales first; entries are
scale, translate, rotate-x, rotate-y, rotate-z (radians) and shear (six
values), or the name of a defined transform list. Materials are dicts of
Material fields (hyphens or underscores) or the name of a defined
material; ``extend`` on a define starts from another definition.

Patterns have a ``type`` (stripes, gradient, rings, checkers, blended or
solid), a list of ``colors`` whose entries are colors or nested patterns
(or ``pattern1``/``pattern2`` for blended), and an optional ``transform``.
Stripes and rings cycle through two or more colors; the others take two.

The camera's ``aa`` block and ``depth`` produce a RenderConfig. Methods
are none, uniform (alias random, stochastic) and adaptive (alias
multisampling, msaa); ``tolerance`` is an RMS tolerance and is squared
into the variance threshold, while ``variance_threshold`` is used as is.

Any malformed item raises SceneFormatError before anything is rendered.
"""

import json
import logging
import math
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from src.glint.camera.pinhole import Camera
from src.glint.core.config import AntialiasingMode, RenderConfig
from src.glint.core.errors import ConstructionError, SceneFormatError
from src.glint.core.matrix import (
    Matrix,
    identity,
    rotation_x,
    rotation_y,
    rotation_z,
    scaling,
    shearing,
    translation,
    view_transform,
)
from src.glint.geometry.base import Shape
from src.glint.geometry.cone import Cone
from src.glint.geometry.cube import Cube
from src.glint.geometry.cylinder import Cylinder
from src.glint.geometry.group import Group
from src.glint.geometry.plane import Plane
from src.glint.geometry.sphere import Sphere
from src.glint.materials.material import Material
from src.glint.materials.patterns import Blended, Checker, Gradient, Pattern, Ring, Solid, Stripe
from src.glint.scene.light import PointLight
from src.glint.scene.world import World

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")

_TRANSFORM_ARITY = {
    "scale": 3,
    "translate": 3,
    "rotate-x": 1,
    "rotate-y": 1,
    "rotate-z": 1,
    "shear": 6,
}

_TRANSFORM_BUILDERS: dict[str, Callable[..., Matrix]] = {
    "scale": scaling,
    "translate": translation,
    "rotate-x": rotation_x,
    "rotate-y": rotation_y,
    "rotate-z": rotation_z,
    "shear": shearing,
}

_PATTERN_TYPES = {
    "stripes": Stripe,
    "striped": Stripe,
    "gradient": Gradient,
    "rings": Ring,
    "ring": Ring,
    "checkers": Checker,
    "checkered": Checker,
    "blended": Blended,
    "blend": Blended,
}

_AA_METHODS = {
    "none": AntialiasingMode.NONE,
    "uniform": AntialiasingMode.UNIFORM,
    "random": AntialiasingMode.UNIFORM,
    "stochastic": AntialiasingMode.UNIFORM,
    "adaptive": AntialiasingMode.ADAPTIVE,
    "multisampling": AntialiasingMode.ADAPTIVE,
    "msaa": AntialiasingMode.ADAPTIVE,
}

_MATERIAL_KEYS = {
    "color",
    "pattern",
    "ambient",
    "diffuse",
    "specular",
    "shininess",
    "reflective",
    "transparency",
    "refractive_index",
}

_PRIMITIVES: dict[str, type[Shape]] = {
    "sphere": Sphere,
    "plane": Plane,
    "cube": Cube,
    "cylinder": Cylinder,
    "cone": Cone,
}


def _normalize_key(key: str) -> str:
    return key.replace("-", "_")


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SceneFormatError(f"{where}: expected a number, got {value!r}")
    result = float(value)
    if math.isnan(result):
        raise SceneFormatError(f"{where}: expected a number, got NaN")
    return result


def _triple(value: Any, where: str) -> tuple[float, float, float]:
    if not isinstance(value, Sequence) or isinstance(value, str) or len(value) != 3:
        raise SceneFormatError(f"{where}: expected a list of 3 numbers, got {value!r}")
    return (_number(value[0], where), _number(value[1], where), _number(value[2], where))


def _mapping(value: Any, where: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise SceneFormatError(f"{where}: expected an object, got {value!r}")
    return value


class _SceneParser:
    """Walks a scene description, resolving definitions as it goes."""

    def __init__(self) -> None:
        self.definitions: dict[str, Any] = {}
        self.camera: Camera | None = None
        self.config: RenderConfig | None = None
        self.world = World()

    # =========================================================================
    # Definitions
    # =========================================================================

    def define(self, item: Mapping[str, Any], where: str) -> None:
        name = item["define"]
        if not isinstance(name, str):
            raise SceneFormatError(f"{where}: define needs a name, got {name!r}")
        if "value" not in item:
            raise SceneFormatError(f"{where}: define {name!r} has no value")
        value = item["value"]
        base_name = item.get("extend")
        if base_name is not None:
            base = self._lookup(base_name, where)
            if not isinstance(base, Mapping) or not isinstance(value, Mapping):
                raise SceneFormatError(f"{where}: only objects can extend other definitions")
            value = {**base, **value}
        self.definitions[name] = value

    def _lookup(self, name: Any, where: str) -> Any:
        if not isinstance(name, str) or name not in self.definitions:
            raise SceneFormatError(f"{where}: undefined name {name!r}")
        return self.definitions[name]

    # =========================================================================
    # Values
    # =========================================================================

    def transform(self, desc: Any, where: str) -> Matrix:
        """Compose a transform list; entries apply in the order listed."""
        if desc is None:
            return identity()
        if isinstance(desc, str):
            desc = self._lookup(desc, where)
        if not isinstance(desc, Sequence):
            raise SceneFormatError(f"{where}: transform must be a list, got {desc!r}")
        result = identity()
        for entry in desc:
            if isinstance(entry, str):
                step = self.transform(self._lookup(entry, where), where)
            else:
                step = self._transform_step(entry, where)
            result = step @ result
        return result

    def _transform_step(self, entry: Any, where: str) -> Matrix:
        if not isinstance(entry, Sequence) or not entry or not isinstance(entry[0], str):
            raise SceneFormatError(f"{where}: malformed transform entry {entry!r}")
        kind = entry[0]
        if kind not in _TRANSFORM_ARITY:
            raise SceneFormatError(f"{where}: unknown transform {kind!r}")
        args = [_number(v, f"{where}: {kind}") for v in entry[1:]]
        if len(args) != _TRANSFORM_ARITY[kind]:
            raise SceneFormatError(
                f"{where}: {kind} takes {_TRANSFORM_ARITY[kind]} values, got {len(args)}"
            )
        return _TRANSFORM_BUILDERS[kind](*args)

    def pattern_child(self, value: Any, where: str) -> tuple[float, float, float] | Pattern:
        if isinstance(value, Mapping):
            return self.pattern(value, where)
        return _triple(value, where)

    def pattern(self, desc: Any, where: str) -> Pattern:
        if isinstance(desc, str):
            desc = self._lookup(desc, where)
        desc = _mapping(desc, where)
        kind = desc.get("type")
        transform = self.transform(desc.get("transform"), where)
        if kind == "solid":
            return Solid(color=_triple(desc.get("color"), f"{where}: solid"), transform=transform)
        if kind not in _PATTERN_TYPES:
            raise SceneFormatError(f"{where}: unknown pattern type {kind!r}")
        if kind in ("blended", "blend") and "pattern1" in desc:
            children = [desc.get("pattern1"), desc.get("pattern2")]
        else:
            children = desc.get("colors")
        cycles = _PATTERN_TYPES[kind] in (Stripe, Ring)
        if isinstance(children, str) or not isinstance(children, Sequence):
            raise SceneFormatError(f"{where}: {kind} pattern needs a list of colors")
        if len(children) < 2 or (len(children) > 2 and not cycles):
            needed = "at least two" if cycles else "exactly two"
            raise SceneFormatError(f"{where}: {kind} pattern needs {needed} colors")
        a, b, *more = (self.pattern_child(child, f"{where}: {kind}") for child in children)
        if more:
            return _PATTERN_TYPES[kind](a=a, b=b, more=tuple(more), transform=transform)
        return _PATTERN_TYPES[kind](a=a, b=b, transform=transform)

    def material(self, desc: Any, where: str) -> Material:
        if desc is None:
            return Material()
        if isinstance(desc, str):
            desc = self._lookup(desc, where)
        desc = _mapping(desc, where)
        params: dict[str, Any] = {}
        for key, value in desc.items():
            name = _normalize_key(key)
            if name not in _MATERIAL_KEYS:
                raise SceneFormatError(f"{where}: unknown material property {key!r}")
            if name == "color":
                params[name] = _triple(value, f"{where}: color")
            elif name == "pattern":
                params[name] = self.pattern(value, f"{where}: pattern")
            else:
                params[name] = _number(value, f"{where}: {key}")
        return Material(**params)

    # =========================================================================
    # Items
    # =========================================================================

    def shape(self, item: Mapping[str, Any], where: str) -> Shape:
        kind = item.get("add")
        transform = self.transform(item.get("transform"), where)
        if kind == "group":
            children = item.get("children", [])
            if not isinstance(children, Sequence):
                raise SceneFormatError(f"{where}: group children must be a list")
            shapes = [
                self.shape(_mapping(child, f"{where}.children[{i}]"), f"{where}.children[{i}]")
                for i, child in enumerate(children)
            ]
            return Group(children=tuple(shapes), transform=transform)
        if kind not in _PRIMITIVES:
            raise SceneFormatError(f"{where}: unknown item {kind!r}")
        params: dict[str, Any] = {
            "transform": transform,
            "material": self.material(item.get("material"), f"{where}: material"),
        }
        if kind in ("cylinder", "cone"):
            params["minimum"] = _number(item.get("min", -math.inf), f"{where}: min")
            params["maximum"] = _number(item.get("max", math.inf), f"{where}: max")
            closed = item.get("closed", False)
            if not isinstance(closed, bool):
                raise SceneFormatError(f"{where}: closed must be true or false")
            params["closed"] = closed
        return _PRIMITIVES[kind](**params)

    def light(self, item: Mapping[str, Any], where: str) -> PointLight:
        light_type = item.get("type", "point")
        if light_type != "point":
            raise SceneFormatError(f"{where}: unsupported light type {light_type!r}")
        intensity = _triple(item.get("intensity", (1.0, 1.0, 1.0)), f"{where}: intensity")
        return PointLight(position=_triple(item.get("at"), f"{where}: at"), intensity=intensity)

    def camera_item(self, item: Mapping[str, Any], where: str) -> None:
        width = item.get("width", item.get("hsize"))
        height = item.get("height", item.get("vsize"))
        fov = item.get("field-of-view", item.get("fov"))
        for name, value in (("width", width), ("height", height)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise SceneFormatError(f"{where}: camera {name} must be an integer, got {value!r}")
        fov = _number(fov, f"{where}: field-of-view")
        transform = view_transform(
            _triple(item.get("from"), f"{where}: from"),
            _triple(item.get("to"), f"{where}: to"),
            _triple(item.get("up"), f"{where}: up"),
        )
        self.camera = Camera(hsize=width, vsize=height, field_of_view=fov, transform=transform)
        if "aa" in item or "depth" in item:
            self.config = self.render_config(item, where)

    def render_config(self, item: Mapping[str, Any], where: str) -> RenderConfig:
        params: dict[str, Any] = {}
        aa = _mapping(item.get("aa", {}), f"{where}: aa")
        if "method" in aa:
            method = aa["method"]
            if method not in _AA_METHODS:
                raise SceneFormatError(f"{where}: unknown antialiasing method {method!r}")
            params["antialiasing_mode"] = _AA_METHODS[method]
        if "level" in aa:
            params["samples_per_pixel"] = int(_number(aa["level"], f"{where}: aa level"))
        if "tolerance" in aa:
            params["variance_threshold"] = _number(aa["tolerance"], f"{where}: aa tolerance") ** 2
        if "variance_threshold" in aa:
            params["variance_threshold"] = _number(aa["variance_threshold"], f"{where}: aa")
        if "max_samples" in aa:
            params["max_samples"] = int(_number(aa["max_samples"], f"{where}: aa max_samples"))
        elif "samples_per_pixel" in params:
            params["max_samples"] = max(RenderConfig().max_samples, params["samples_per_pixel"])
        if "depth" in item:
            params["reflection_depth"] = int(_number(item["depth"], f"{where}: depth"))
        try:
            return RenderConfig(**params)
        except ValueError as exc:
            raise SceneFormatError(f"{where}: {exc}") from exc

    def item(self, item: Any, where: str) -> None:
        item = _mapping(item, where)
        if "define" in item:
            self.define(item, where)
            return
        kind = item.get("add")
        if kind == "camera":
            self.camera_item(item, where)
        elif kind == "light":
            self.world.add(self.light(item, where))
        elif kind is None:
            raise SceneFormatError(f"{where}: item has neither 'add' nor 'define'")
        else:
            self.world.add(self.shape(item, where))


def load_scene_dict(data: Sequence[Any]) -> tuple[Camera | None, World, RenderConfig | None]:
    """Build a scene from a list of description items.

    Args:
        data: The parsed scene description.

    Returns:
        A tuple (camera, world, config); camera and config are None when
        the description has no camera item (or no aa/depth settings).

    Raises:
        SceneFormatError: If the description is malformed, including
            singular transforms and invalid parameters.
    """
    if isinstance(data, (str, bytes)) or not isinstance(data, Sequence):
        raise SceneFormatError(f"Scene description must be a list of items, got {type(data).__name__}")
    parser = _SceneParser()
    for index, item in enumerate(data):
        where = f"item {index}"
        try:
            parser.item(item, where)
        except ConstructionError as exc:
            raise SceneFormatError(f"{where}: {exc}") from exc
        except (TypeError, KeyError) as exc:
            raise SceneFormatError(f"{where}: malformed item ({exc})") from exc
    logger.debug(
        "Loaded scene: %d shapes, %d lights, camera=%s",
        len(parser.world.shapes),
        len(parser.world.lights),
        parser.camera is not None,
    )
    return parser.camera, parser.world, parser.config


def load_scene_file(path: str | Path) -> tuple[Camera | None, World, RenderConfig | None]:
    """Build a scene from a YAML or JSON file (see ``load_scene_dict``).

    Files ending in ``.yml`` or ``.yaml`` are read with ``yaml.safe_load``;
    anything else is parsed as JSON.

    Raises:
        OSError: If the file cannot be read.
        SceneFormatError: If the file cannot be parsed or the scene is
            malformed.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in YAML_SUFFIXES:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SceneFormatError(f"{path}: invalid YAML ({exc})") from exc
    else:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise SceneFormatError(f"{path}: invalid JSON ({exc})") from exc
    return load_scene_dict(data)
