"""Integration tests rendering the showcase scene end to end."""

import numpy as np


class TestShowcaseScene:
    """Tests for the built-in showcase."""

    def test_scene_contents(self):
        from src.glint.geometry.group import Group
        from src.glint.scene.showcase import create_showcase_scene

        world, camera = create_showcase_scene(64, 36)
        assert camera.hsize == 64
        assert camera.vsize == 36
        assert len(world.lights) == 2
        assert any(isinstance(shape, Group) for shape in world.shapes)
        # The group contributes two leaves
        assert len(world.primitives()) == len(world.shapes) + 1

    def test_small_render_is_finite(self):
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import render
        from src.glint.scene.showcase import create_showcase_scene

        world, camera = create_showcase_scene(32, 18)
        image = render(camera, world, RenderConfig(reflection_depth=3))
        assert image.shape == (18, 32, 3)
        assert image.dtype == np.float32
        assert np.all(np.isfinite(image))
        assert np.all(image >= 0.0)
        assert image.mean() > 0.0

    def test_adaptive_render_uses_extra_samples(self):
        from src.glint.core.config import RenderConfig
        from src.glint.core.renderer import Renderer
        from src.glint.scene.showcase import create_showcase_scene

        world, camera = create_showcase_scene(24, 14)
        config = RenderConfig(
            antialiasing_mode="adaptive", samples_per_pixel=2, max_samples=8, reflection_depth=2
        )
        renderer = Renderer(camera, world, config)
        renderer.render(rows_per_batch=5)
        counts = renderer.get_sample_counts()
        assert counts.min() >= 2
        assert counts.max() == 8
        assert np.all(np.isfinite(renderer.get_image_numpy()))
