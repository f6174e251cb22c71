"""GPU-resident mirror of the scene.

The GpuSceneBuffer holds the spheres of a SceneModel in a float32 Taichi field
of shape (count, 10), one row per sphere in the 40-byte layout described in
``wavetrace.scene.model``. Kernels read sphere k as ``spheres[k, 0..9]``.

Synchronization rules:
    - the field is reallocated only when the sphere count changes
      (the old field is released first);
    - the contents are rewritten on every sync, since animation moves the
      spheres every frame;
    - an empty scene holds no allocation at all.

Example:
    >>> buffer = GpuSceneBuffer()
    >>> buffer.sync(scene)      # allocate + upload
    >>> buffer.sync(scene)      # upload only
    >>> buffer.allocations
    1
    >>> buffer.release()
"""

import logging
from typing import Any

from wavetrace.errors import SceneInvariantError
from wavetrace.gpu.resources import Allocator, GpuAllocation, allocate_field
from wavetrace.scene.model import FLOATS_PER_SPHERE, SPHERE_STRIDE, SceneModel

logger = logging.getLogger(__name__)


class GpuSceneBuffer:
    """Owns the single GPU allocation mirroring a SceneModel.

    Attributes:
        allocations: Number of allocations performed so far.
        uploads: Number of full-content uploads performed so far.
    """

    stride = SPHERE_STRIDE

    def __init__(self, allocator: Allocator = allocate_field) -> None:
        """Create an empty buffer.

        Args:
            allocator: Function used to allocate the backing field. Tests
                substitute it to observe or fail allocations.
        """
        self._allocator = allocator
        self._allocation: GpuAllocation | None = None
        self._count = 0
        self._generation: int | None = None
        self.allocations = 0
        self.uploads = 0

    @property
    def count(self) -> int:
        """Number of spheres the buffer currently holds."""
        return self._count

    @property
    def nbytes(self) -> int:
        return self._count * self.stride

    @property
    def field(self) -> Any:
        """The backing Taichi field, or None while the scene is empty."""
        if self._allocation is None:
            return None
        return self._allocation.field

    @property
    def generation(self) -> int | None:
        """Generation of the scene last synchronized, or None before any sync."""
        return self._generation

    def sync(self, scene: SceneModel) -> None:
        """Bring the buffer in line with the scene.

        Reallocates when the sphere count changed, then uploads the whole
        serialized scene.

        Raises:
            ResourceAllocationError: If the new field cannot be allocated.
        """
        view = scene.view()
        count = view.count

        if count != self._count:
            self._reallocate(count)

        if count:
            self._allocation.field.from_numpy(view.as_array())
            self.uploads += 1
        self._generation = view.generation

    def _reallocate(self, count: int) -> None:
        previous = self._count
        self.release()
        if count:
            self._allocation = self._allocator(
                (count, FLOATS_PER_SPHERE), label="scene buffer"
            )
            self.allocations += 1
        self._count = count
        logger.debug("Scene buffer resized from %d to %d spheres", previous, count)

    def check(self, scene: SceneModel) -> None:
        """Verify that the buffer matches the scene exactly.

        Raises:
            SceneInvariantError: If the element count, stride or scene
                generation disagree with the scene.
        """
        if self._count != len(scene):
            raise SceneInvariantError(
                f"Scene buffer holds {self._count} spheres but the scene has {len(scene)}"
            )
        if self._generation != scene.generation:
            raise SceneInvariantError(
                f"Scene buffer was synchronized with generation {self._generation}, "
                f"scene is at generation {scene.generation}"
            )
        if self._allocation is not None:
            rows, floats = self._allocation.shape
            if rows != self._count or floats * 4 != self.stride:
                raise SceneInvariantError(
                    f"Scene buffer layout {self._allocation.shape} does not match "
                    f"{self._count} spheres of {self.stride} bytes"
                )

    def release(self) -> None:
        """Release the backing allocation. Safe to call repeatedly."""
        if self._allocation is not None:
            self._allocation.release()
            self._allocation = None
        self._count = 0

    def __enter__(self) -> "GpuSceneBuffer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"GpuSceneBuffer(count={self._count}, allocations={self.allocations})"
