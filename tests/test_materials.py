"""Unit tests for materials, Phong lighting and Schlick reflectance.

Tests cover:
- Material defaults and validation
- Material upload and kernel-side access
- Phong lighting for the classic eye/light/normal arrangements
- Shadowed points keeping only ambient light
- Schlick reflectance at normal incidence, grazing angles and under
  total internal reflection
"""

import math

import pytest
import taichi as ti

SQRT2_2 = math.sqrt(2.0) / 2.0


def phong(eyev, normalv, light_position, in_shadow=False, surface=(1.0, 1.0, 1.0)):
    """Light the origin with the default material and a white light."""
    from src.glint.core.ray import vec3
    from src.glint.materials.material import MaterialRecord
    from src.glint.materials.phong import lighting

    result = ti.Vector.field(3, dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(eye: vec3, normal: vec3, light: vec3, color: vec3, shadowed: ti.i32):
        material = MaterialRecord(
            ambient=0.1,
            diffuse=0.9,
            specular=0.9,
            shininess=200.0,
            reflective=0.0,
            transparency=0.0,
            refractive_index=1.0,
            pattern=0,
        )
        result[None] = lighting(
            material,
            color,
            light,
            vec3(1.0, 1.0, 1.0),
            vec3(0.0, 0.0, 0.0),
            eye,
            normal,
            shadowed,
        )

    test_kernel(vec3(*eyev), vec3(*normalv), vec3(*light_position), vec3(*surface), int(in_shadow))
    c = result[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def reflectance(eyev, normalv, n1, n2):
    from src.glint.core.ray import vec3
    from src.glint.materials.phong import schlick

    result = ti.field(dtype=ti.f32, shape=())

    @ti.kernel
    def test_kernel(eye: vec3, normal: vec3, a: ti.f32, b: ti.f32):
        result[None] = schlick(eye, normal, a, b)

    test_kernel(vec3(*eyev), vec3(*normalv), n1, n2)
    return float(result[None])


def assert_gray(actual, value, tol=1e-3):
    for c in actual:
        assert abs(c - value) < tol, f"{actual} != {value}"


class TestMaterial:
    """Tests for the Material description."""

    def test_defaults(self):
        from src.glint.materials.material import Material

        m = Material()
        assert m.color == (1.0, 1.0, 1.0)
        assert m.pattern is None
        assert m.ambient == 0.1
        assert m.diffuse == 0.9
        assert m.specular == 0.9
        assert m.shininess == 200.0
        assert m.reflective == 0.0
        assert m.transparency == 0.0
        assert m.refractive_index == 1.0

    @pytest.mark.parametrize(
        "params",
        [
            {"ambient": -0.1},
            {"diffuse": math.nan},
            {"specular": -1.0},
            {"shininess": 0.0},
            {"reflective": -0.5},
            {"transparency": math.inf},
            {"refractive_index": 0.0},
            {"color": (1.0, 1.0)},
            {"pattern": "stripes"},
        ],
    )
    def test_invalid_parameters_raise(self, params):
        from src.glint.core.errors import ConstructionError
        from src.glint.materials.material import Material

        with pytest.raises(ConstructionError):
            Material(**params)

    def test_only_opaque_materials_cast_shadows(self):
        from src.glint.materials.material import GLASS, Material

        assert Material().casts_shadow
        assert not Material(transparency=0.5, refractive_index=GLASS).casts_shadow

    def test_surface_prefers_pattern(self):
        from src.glint.materials.material import Material
        from src.glint.materials.patterns import Solid, Stripe

        stripes = Stripe()
        assert Material(color=(0.2, 0.3, 0.4), pattern=stripes).surface is stripes
        surface = Material(color=(0.2, 0.3, 0.4)).surface
        assert isinstance(surface, Solid)
        assert surface.color == (0.2, 0.3, 0.4)


class TestMaterialStorage:
    """Tests for uploading materials."""

    def test_add_material_returns_sequential_ids(self):
        from src.glint.materials.material import Material, add_material, get_material_count

        assert add_material(Material()) == 0
        assert add_material(Material(reflective=0.5)) == 1
        assert get_material_count() == 2

    def test_get_material_in_kernel(self):
        from src.glint.materials.material import Material, add_material, get_material

        mat_id = add_material(
            Material(ambient=0.3, shininess=50.0, reflective=0.25, transparency=0.75, refractive_index=1.5)
        )
        values = ti.field(dtype=ti.f32, shape=5)

        @ti.kernel
        def test_kernel(index: ti.i32):
            m = get_material(index)
            values[0] = m.ambient
            values[1] = m.shininess
            values[2] = m.reflective
            values[3] = m.transparency
            values[4] = m.refractive_index

        test_kernel(mat_id)
        expected = [0.3, 50.0, 0.25, 0.75, 1.5]
        for i, e in enumerate(expected):
            assert abs(values[i] - e) < 1e-5

    def test_material_color_is_sampled_as_solid_pattern(self):
        from src.glint.materials.material import Material, add_material, material_pattern
        from src.glint.materials.patterns import sample_pattern

        mat_id = add_material(Material(color=(0.2, 0.4, 0.6)))
        c = sample_pattern(int(material_pattern[mat_id]), (5.0, 5.0, 5.0))
        assert all(abs(a - e) < 1e-5 for a, e in zip(c, (0.2, 0.4, 0.6)))


class TestLighting:
    """Tests for the Phong reflection model."""

    def test_eye_between_light_and_surface(self):
        assert_gray(phong((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), (0.0, 0.0, -10.0)), 1.9)

    def test_eye_offset_45_degrees(self):
        assert_gray(phong((0.0, SQRT2_2, -SQRT2_2), (0.0, 0.0, -1.0), (0.0, 0.0, -10.0)), 1.0)

    def test_light_offset_45_degrees(self):
        assert_gray(phong((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), (0.0, 10.0, -10.0)), 0.7364)

    def test_eye_in_reflection_path(self):
        assert_gray(phong((0.0, -SQRT2_2, -SQRT2_2), (0.0, 0.0, -1.0), (0.0, 10.0, -10.0)), 1.6364)

    def test_light_behind_surface(self):
        assert_gray(phong((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), (0.0, 0.0, 10.0)), 0.1)

    def test_surface_in_shadow(self):
        """A shadowed point keeps only its ambient term."""
        result = phong((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), (0.0, 0.0, -10.0), in_shadow=True)
        assert_gray(result, 0.1)

    def test_surface_color_tints_ambient_and_diffuse(self):
        result = phong(
            (0.0, 0.0, -1.0), (0.0, 0.0, -1.0), (0.0, 0.0, -10.0), surface=(1.0, 0.0, 0.0)
        )
        # ambient + diffuse in red only; specular is white
        assert abs(result[0] - 1.9) < 1e-3
        assert abs(result[1] - 0.9) < 1e-3
        assert abs(result[2] - 0.9) < 1e-3


class TestSchlick:
    """Tests for the Schlick approximation."""

    def test_total_internal_reflection(self):
        r = reflectance((0.0, SQRT2_2, -SQRT2_2), (0.0, 0.0, -1.0), 1.5, 1.0)
        assert abs(r - 1.0) < 1e-5

    def test_perpendicular_viewing_angle(self):
        r = reflectance((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 1.5, 1.0)
        assert abs(r - 0.04) < 1e-4

    def test_small_angle_entering_denser_medium(self):
        cos = math.sqrt(1.0 - 0.99 * 0.99)
        r = reflectance((0.0, 0.0, -1.0), (0.0, 0.99, -cos), 1.0, 1.5)
        assert abs(r - 0.48873) < 1e-3

    def test_matching_indices_reflect_nothing_head_on(self):
        r = reflectance((0.0, 0.0, -1.0), (0.0, 0.0, -1.0), 1.5, 1.5)
        assert abs(r) < 1e-6
