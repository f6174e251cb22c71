"""Pytest configuration for wavetrace tests.

This module provides shared fixtures for all test modules, including
Taichi initialization which must happen once per session.
"""

import pytest
import taichi as ti


@pytest.fixture(scope="session", autouse=True)
def init_taichi_session():
    """Initialize Taichi once for the entire test session.

    Using session scope prevents multiple ti.init() calls, which would reset
    the runtime and invalidate fields created by earlier tests.
    """
    ti.init(arch=ti.cpu, random_seed=42)
    yield


@pytest.fixture
def uniform_sky():
    """A 16x8 sky field of constant color (0.5, 0.6, 0.7)."""
    import numpy as np

    from wavetrace.render.sky import sky_field_from_image

    image = np.empty((8, 16, 3), dtype=np.float32)
    image[...] = (0.5, 0.6, 0.7)
    return sky_field_from_image(image)


@pytest.fixture
def recording_allocator():
    """Allocator that records every allocation it performs.

    Before each allocation it also records whether every earlier allocation
    had already been released.
    """
    from wavetrace.gpu.resources import allocate_field

    class RecordingAllocator:
        def __init__(self):
            self.allocations = []
            self.all_released_before = []

        def __call__(self, shape, components=None, **kwargs):
            self.all_released_before.append(all(a.released for a in self.allocations))
            allocation = allocate_field(shape, components, **kwargs)
            self.allocations.append(allocation)
            return allocation

    return RecordingAllocator()
