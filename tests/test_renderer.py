"""Tests for the renderer and the per-pixel sampler.

Tests cover:
- render() output shape, dtype and orientation
- The classic default-world render
- Sampling modes: none, uniform and adaptive sample counts
- Adaptive sampling stopping early on flat regions and refining edges
- Depth 0 matching a scene without reflections
- Progressive rendering, callbacks and early stopping
- Interleaved renderers and worlds edited between renders
- Render target validation and image accessors
"""

import math

import numpy as np
import pytest


def front_camera(size=11, field_of_view=math.pi / 2.0):
    from src.glint.camera.pinhole import Camera
    from src.glint.core.matrix import view_transform

    return Camera(
        hsize=size,
        vsize=size,
        field_of_view=field_of_view,
        transform=view_transform((0.0, 0.0, -5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
    )


def backdrop_world():
    """A flat, evenly lit wall filling the view of an identity camera."""
    from src.glint.core.matrix import rotation_x, translation
    from src.glint.geometry.plane import Plane
    from src.glint.materials.material import Material
    from src.glint.scene.light import PointLight
    from src.glint.scene.world import World

    wall = Plane(
        transform=translation(0.0, 0.0, -5.0) @ rotation_x(math.pi / 2.0),
        material=Material(ambient=1.0, diffuse=0.0, specular=0.0),
    )
    return World(shapes=[wall], lights=[PointLight(position=(0.0, 0.0, 0.0))])


class TestRender:
    """Tests for the render entry point."""

    def test_default_world_center_pixel(self):
        from src.glint.core.renderer import render
        from src.glint.scene.world import default_world

        image = render(front_camera(), default_world())
        assert np.allclose(image[5, 5], (0.38066, 0.47583, 0.2855), atol=1e-3)

    def test_output_shape_and_dtype(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import render
        from src.glint.scene.world import World

        image = render(Camera(hsize=7, vsize=3, field_of_view=1.0), World())
        assert image.shape == (3, 7, 3)
        assert image.dtype == np.float32

    def test_empty_world_is_black(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import render
        from src.glint.scene.world import World

        image = render(Camera(hsize=4, vsize=4, field_of_view=1.0), World())
        assert np.all(image == 0.0)

    def test_row_zero_is_top_and_column_zero_is_left(self):
        """A sphere up and to the left lands in the top-left quadrant."""
        from src.glint.core.matrix import scaling, translation
        from src.glint.core.renderer import render
        from src.glint.geometry.sphere import Sphere
        from src.glint.scene.light import PointLight
        from src.glint.scene.world import World

        sphere = Sphere(transform=translation(-2.0, 2.0, 0.0) @ scaling(0.5, 0.5, 0.5))
        world = World(shapes=[sphere], lights=[PointLight(position=(0.0, 0.0, -10.0))])
        image = render(front_camera(), world)
        assert image[:5, :5].max() > 0.0
        assert image[:, 6:].max() == 0.0
        assert image[6:, :].max() == 0.0

    def test_colors_are_not_clamped(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import render
        from src.glint.scene.light import PointLight

        world = backdrop_world()
        world.add(PointLight(position=(0.0, 0.0, 1.0)), PointLight(position=(0.0, 0.0, 2.0)))
        image = render(Camera(hsize=3, vsize=3, field_of_view=0.5), world)
        # Ambient 1.0 from each of three lights
        assert np.allclose(image, 3.0, atol=1e-4)

    def test_depth_zero_matches_matte_scene(self):
        from src.glint.core.config import RenderConfig
        from src.glint.core.matrix import translation
        from src.glint.core.renderer import render
        from src.glint.geometry.plane import Plane
        from src.glint.materials.material import Material
        from src.glint.scene.world import World, default_world

        def scene(reflective):
            base = default_world()
            floor = Plane(
                transform=translation(0.0, -1.0, 0.0), material=Material(reflective=reflective)
            )
            return World(shapes=base.shapes + [floor], lights=base.lights)

        camera = front_camera(size=9)
        capped = render(camera, scene(0.8), RenderConfig(reflection_depth=0))
        matte = render(camera, scene(0.0), RenderConfig(reflection_depth=5))
        assert np.allclose(capped, matte, atol=1e-6)


class TestSampling:
    """Tests for the antialiasing modes."""

    def test_none_takes_one_sample(self):
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import Renderer
        from src.glint.scene.world import default_world

        renderer = Renderer(front_camera(size=5), default_world(), RenderConfig(antialiasing_mode="none"))
        renderer.render()
        assert np.all(renderer.get_sample_counts() == 1)

    def test_uniform_takes_fixed_samples(self):
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import Renderer
        from src.glint.scene.world import default_world

        config = RenderConfig(antialiasing_mode="uniform", samples_per_pixel=6)
        renderer = Renderer(front_camera(size=5), default_world(), config)
        renderer.render()
        assert np.all(renderer.get_sample_counts() == 6)

    def test_uniform_flat_region_matches_single_sample(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import render

        camera = Camera(hsize=4, vsize=4, field_of_view=0.5)
        single = render(camera, backdrop_world())
        jittered = render(camera, backdrop_world(), RenderConfig(antialiasing_mode="uniform", samples_per_pixel=8))
        assert np.allclose(single, jittered, atol=1e-5)

    def test_adaptive_flat_region_stops_at_initial_samples(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import Renderer

        config = RenderConfig(antialiasing_mode="adaptive", samples_per_pixel=4, max_samples=64)
        renderer = Renderer(Camera(hsize=4, vsize=4, field_of_view=0.5), backdrop_world(), config)
        renderer.render()
        assert np.all(renderer.get_sample_counts() == 4)

    def test_adaptive_empty_world_stops_at_initial_samples(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import Renderer
        from src.glint.scene.world import World

        config = RenderConfig(antialiasing_mode="adaptive", samples_per_pixel=3, max_samples=30)
        renderer = Renderer(Camera(hsize=3, vsize=2, field_of_view=1.0), World(), config)
        renderer.render()
        assert np.all(renderer.get_sample_counts() == 3)

    def test_adaptive_edge_refines_to_cap(self):
        """A pixel split by an edge keeps sampling until max_samples."""
        from src.glint.camera.pinhole import Camera
        from src.glint.core.config import RenderConfig
        from src.glint.core.matrix import scaling, translation
        from src.glint.core.renderer import Renderer
        from src.glint.geometry.cube import Cube
        from src.glint.materials.material import Material
        from src.glint.scene.light import PointLight
        from src.glint.scene.world import World

        # The cube covers the half of the single pixel with world x > 0
        cube = Cube(
            transform=translation(10.0, 0.0, -10.0) @ scaling(10.0, 10.0, 1.0),
            material=Material(ambient=1.0, diffuse=0.0, specular=0.0),
        )
        world = World(shapes=[cube], lights=[PointLight(position=(0.0, 0.0, 0.0))])
        config = RenderConfig(
            antialiasing_mode="adaptive",
            samples_per_pixel=16,
            max_samples=32,
            variance_threshold=1e-6,
        )
        renderer = Renderer(Camera(hsize=1, vsize=1, field_of_view=math.pi / 2.0), world, config)
        renderer.render()
        assert renderer.get_sample_counts()[0, 0] == 32
        value = renderer.get_image_numpy()[0, 0, 0]
        assert 0.0 < value < 1.0

    def test_adaptive_never_exceeds_cap(self):
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import Renderer
        from src.glint.scene.world import default_world

        config = RenderConfig(
            antialiasing_mode="adaptive", samples_per_pixel=2, max_samples=8, variance_threshold=0.0
        )
        renderer = Renderer(front_camera(size=7), default_world(), config)
        renderer.render()
        counts = renderer.get_sample_counts()
        assert counts.min() >= 2
        assert counts.max() <= 8
        # The sphere's silhouette is an edge; the background is flat
        assert counts.max() == 8
        assert counts[0, 0] == 2


class TestProgressiveRendering:
    """Tests for band-by-band rendering."""

    def test_callback_receives_progress(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer

        calls = []
        renderer = Renderer(Camera(hsize=3, vsize=5, field_of_view=1.0), backdrop_world())
        renderer.render(rows_per_batch=2, callback=lambda done, total: calls.append((done, total)))
        assert calls == [(2, 5), (4, 5), (5, 5)]
        assert renderer.rows_done == 5

    def test_stopping_early_leaves_remaining_rows_unrendered(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer

        renderer = Renderer(Camera(hsize=4, vsize=4, field_of_view=0.5), backdrop_world())
        for done, total in renderer.render_progressive(rows_per_batch=2):
            assert (done, total) == (2, 4)
            break
        image = renderer.get_image_numpy()
        assert renderer.rows_done == 2
        assert np.allclose(image[:2], 1.0, atol=1e-4)
        assert np.all(image[2:] == 0.0)
        assert np.all(renderer.get_sample_counts()[2:] == 0)

    def test_invalid_batch_size_raises(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer

        renderer = Renderer(Camera(hsize=2, vsize=2, field_of_view=1.0), backdrop_world())
        with pytest.raises(ValueError):
            renderer.render(rows_per_batch=0)

    def test_renderer_reuploads_its_world(self):
        """Another world uploaded in between does not leak into the render."""
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer
        from src.glint.scene.world import World

        renderer = Renderer(Camera(hsize=2, vsize=2, field_of_view=0.5), backdrop_world())
        World().upload()
        renderer.render()
        assert np.allclose(renderer.get_image_numpy(), 1.0, atol=1e-4)

    def test_interleaved_renderers_keep_their_cameras(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.matrix import view_transform
        from src.glint.core.renderer import Renderer, render
        from src.glint.scene.world import default_world

        expected = render(front_camera(), default_world())
        first = Renderer(front_camera(), default_world())
        other_camera = Camera(
            hsize=7,
            vsize=5,
            field_of_view=0.5,
            transform=view_transform((0.0, 5.0, -5.0), (0.0, 0.0, 0.0), (0.0, 1.0, 0.0)),
        )
        second = Renderer(other_camera, default_world())

        bands = first.render_progressive(rows_per_batch=4)
        assert next(bands) == (4, 11)
        second.render()
        for _ in bands:
            pass
        image = first.get_image_numpy()
        assert image.shape == (11, 11, 3)
        assert np.allclose(image[4:], expected[4:], atol=1e-5)

    def test_world_edited_in_place_is_rerendered(self):
        from src.glint.core.renderer import render
        from src.glint.scene.world import default_world

        world = default_world()
        assert render(front_camera(), world).max() > 0.0
        world.shapes.clear()
        world.lights.clear()
        assert np.all(render(front_camera(), world) == 0.0)


class TestRenderTarget:
    """Tests for render target management and image accessors."""

    def test_oversized_camera_raises(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import MAX_IMAGE_WIDTH, Renderer
        from src.glint.scene.world import World

        with pytest.raises(ValueError):
            Renderer(Camera(hsize=MAX_IMAGE_WIDTH + 1, vsize=1, field_of_view=1.0), World())

    def test_setup_render_target_validation(self):
        from src.glint.core.renderer import get_image_dimensions, setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(0, 10)
        setup_render_target(12, 8)
        assert get_image_dimensions() == (12, 8)

    def test_gamma_and_uint8_accessors(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer

        renderer = Renderer(Camera(hsize=2, vsize=2, field_of_view=0.5), backdrop_world())
        renderer.render()
        assert np.allclose(renderer.get_image_numpy(gamma=2.2), 1.0, atol=1e-4)
        image8 = renderer.get_image_uint8()
        assert image8.dtype == np.uint8
        assert image8.shape == (2, 2, 3)
        assert np.all(image8 == 255)

    def test_save_image(self, tmp_path):
        from PIL import Image as PILImage

        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer

        renderer = Renderer(Camera(hsize=5, vsize=3, field_of_view=0.5), backdrop_world())
        renderer.render()
        path = tmp_path / "wall.png"
        renderer.save_image(str(path))
        with PILImage.open(path) as img:
            assert img.size == (5, 3)
            assert img.mode == "RGB"

    def test_repr(self):
        from src.glint.camera.pinhole import Camera
        from src.glint.core.renderer import Renderer
        from src.glint.scene.world import World

        renderer = Renderer(Camera(hsize=2, vsize=3, field_of_view=0.5), World())
        assert "width=2" in repr(renderer)
        assert "height=3" in repr(renderer)
