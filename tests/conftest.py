"""Pytest configuration for meshtracer tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session. Modules that
declare Taichi fields are imported inside tests, after initialization.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls which can cause
    segmentation faults due to Taichi runtime conflicts.
    """
    ti.init(arch=ti.cpu)
    yield
    # Note: We don't call ti.reset() here as it can cause issues
    # with subsequent tests if any cleanup happens after


@pytest.fixture(autouse=True)
def clear_all_scene_data():
    """Clear device scene storage before and after each test.

    This ensures tests are isolated from each other.
    """
    # Import here to ensure Taichi is initialized
    from meshtracer.scene.intersection import clear_scene

    clear_scene()
    yield
    clear_scene()


@pytest.fixture
def reference_triangle():
    """The triangle (0,0,0), (0,1,0), (1,1,0) in the z = 0 plane."""
    from meshtracer.geometry.primitives import Point3
    from meshtracer.geometry.triangle import Triangle

    return Triangle(Point3(0.0, 0.0, 0.0), Point3(0.0, 1.0, 0.0), Point3(1.0, 1.0, 0.0))


@pytest.fixture
def reference_scene():
    """The reference scene and camera."""
    from meshtracer.scene.reference import create_reference_scene

    return create_reference_scene()
