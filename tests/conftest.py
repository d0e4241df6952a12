"""Pytest configuration for glint tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear uploaded scene data before and after each test.

    Tests that upload a World leave it resident in the module-level
    fields; forgetting the active world forces the next upload to run.
    """
    # Import here so that Taichi is initialized first
    from src.glint.materials.material import clear_materials
    from src.glint.materials.patterns import clear_patterns
    from src.glint.scene.intersection import clear_scene
    from src.glint.scene.light import clear_lights
    from src.glint.scene.world import reset_active_world

    def _clear_all():
        clear_scene()
        clear_materials()
        clear_patterns()
        clear_lights()
        reset_active_world()

    _clear_all()
    yield
    _clear_all()
