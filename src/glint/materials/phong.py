"""Phong reflection model and Fresnel reflectance.

The Phong model lights a surface point with one point light as the sum of
three terms:

    ambient  = color * intensity * ambient
    diffuse  = color * intensity * diffuse * max(light . normal, 0)
    specular = intensity * specular * max(reflect(-light, normal) . eye, 0)^shininess

A point in shadow keeps only its ambient term. Surfaces lit by several
lights sum one ``lighting`` call per light.

The Schlick approximation gives the fraction of light reflected at a
dielectric interface and is used to blend reflection and refraction on
surfaces that are both reflective and transparent.
"""

import taichi as ti
import taichi.math as tm

from src.glint.core.ray import reflect, vec3
from src.glint.materials.material import MaterialRecord


@ti.func
def lighting(
    material: MaterialRecord,
    surface_color: vec3,
    light_position: vec3,
    light_intensity: vec3,
    point: vec3,
    eyev: vec3,
    normalv: vec3,
    in_shadow: ti.i32,
) -> vec3:
    """Shade a surface point with a single point light.

    Args:
        material: The surface material.
        surface_color: The material's (pattern) color at the point.
        light_position: World-space position of the light.
        light_intensity: RGB intensity of the light.
        point: World-space point being shaded.
        eyev: Unit vector from the point toward the eye.
        normalv: Unit surface normal, facing the eye.
        in_shadow: 1 if the light is occluded from the point.

    Returns:
        The RGB contribution of this light.
    """
    effective_color = surface_color * light_intensity
    ambient = effective_color * material.ambient
    diffuse = vec3(0.0, 0.0, 0.0)
    specular = vec3(0.0, 0.0, 0.0)

    if in_shadow == 0:
        lightv = tm.normalize(light_position - point)
        light_dot_normal = tm.dot(lightv, normalv)
        # Negative means the light is on the other side of the surface
        if light_dot_normal >= 0.0:
            diffuse = effective_color * material.diffuse * light_dot_normal
            reflectv = reflect(-lightv, normalv)
            reflect_dot_eye = tm.dot(reflectv, eyev)
            if reflect_dot_eye > 0.0:
                factor = reflect_dot_eye**material.shininess
                specular = light_intensity * material.specular * factor

    return ambient + diffuse + specular


@ti.func
def schlick(eyev: vec3, normalv: vec3, n1: ti.f32, n2: ti.f32) -> ti.f32:
    """Approximate the Fresnel reflectance at an interface.

    Args:
        eyev: Unit vector from the surface toward the eye.
        normalv: Unit surface normal on the eye's side.
        n1: Refractive index of the medium being left.
        n2: Refractive index of the medium being entered.

    Returns:
        The reflected fraction in [0, 1]; 1.0 under total internal reflection.
    """
    cos = tm.dot(eyev, normalv)
    reflectance = 1.0
    n = n1 / n2
    sin2_t = n * n * (1.0 - cos * cos)
    if sin2_t <= 1.0:
        # Going from dense to thin, the transmitted angle governs
        if n1 > n2:
            cos = ti.sqrt(1.0 - sin2_t)
        r0 = ((n1 - n2) / (n1 + n2)) ** 2
        reflectance = r0 + (1.0 - r0) * (1.0 - cos) ** 5
    return reflectance
