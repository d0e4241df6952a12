"""Glint: a Taichi-based Whitted-style ray tracer.

This package renders scenes of transformed analytic shapes lit by point
lights, using Taichi kernels for all per-ray work:
- Phong shading with shadows
- Recursive reflection and refraction with Schlick blending
- Procedural patterns (stripes, gradients, rings, checkers, blends)
- Uniform and adaptive (variance-driven) antialiasing

Subpackages:
    core: Matrices, tuples, rays, render configuration, the Whitted
        integrator and the renderer entry point
    geometry: Shape descriptions and local intersection/normal routines
    materials: Surface materials, procedural patterns and Phong lighting
    scene: Lights, world assembly, GPU-side scene storage and scene loading
    camera: Pinhole camera and per-pixel sampler
    preview: Tone mapping and PNG export
"""

__version__ = "0.1.0"
