"""Explicitly owned GPU allocations.

Fields declared at module level live as long as the Taichi runtime. The scene
buffer and the render surface are resized while the program runs, so they are
instead placed in their own SNode tree through ``ti.FieldsBuilder``; the tree
is destroyed when the allocation is released, which frees the device memory
deterministically.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from wavetrace.gpu.resources import allocate_field
    >>> surface = allocate_field((640, 480), components=4, label="surface")
    >>> surface.field.shape
    (640, 480)
    >>> surface.release()
"""

import logging
from collections.abc import Callable
from typing import Any

import taichi as ti

from wavetrace.errors import ResourceAllocationError

logger = logging.getLogger(__name__)


class GpuAllocation:
    """A Taichi field placed in its own, independently destroyable SNode tree.

    Attributes:
        field: The allocated Taichi field (scalar or vector).
        shape: The field shape.
        components: Number of vector components, or None for a scalar field.
        label: Human-readable name used in log messages.
    """

    def __init__(
        self,
        field: Any,
        tree: Any,
        shape: tuple[int, ...],
        components: int | None,
        label: str,
    ) -> None:
        self.field = field
        self.shape = shape
        self.components = components
        self.label = label
        self._tree = tree
        self._released = False

    @property
    def released(self) -> bool:
        """Whether release() has been called."""
        return self._released

    def release(self) -> None:
        """Destroy the backing SNode tree. Calling it again is a no-op.

        Pending kernel launches are flushed first, which also materializes
        the field in the runtime; destroying a tree that was never
        materialized leaves stale members behind for later fields.
        """
        if self._released:
            return
        self._released = True
        if self._tree is not None:
            ti.sync()
            self._tree.destroy()
        logger.debug("Released %s %s", self.label, self.shape)

    def __repr__(self) -> str:
        state = "released" if self._released else "live"
        return f"GpuAllocation({self.label!r}, shape={self.shape}, {state})"


# Signature of an allocator: (shape, components, dtype, label) -> GpuAllocation
Allocator = Callable[..., GpuAllocation]


def allocate_field(
    shape: tuple[int, ...],
    components: int | None = None,
    dtype: Any = ti.f32,
    label: str = "field",
) -> GpuAllocation:
    """Allocate a dense field in a fresh SNode tree.

    Args:
        shape: Field shape; every dimension must be positive.
        components: Vector width for a vector field, or None for scalars.
        dtype: Element type (default float32).
        label: Name used in log messages.

    Returns:
        The live allocation.

    Raises:
        ResourceAllocationError: If Taichi fails to allocate the field.
    """
    if any(dim <= 0 for dim in shape):
        raise ResourceAllocationError(f"Cannot allocate {label} with shape {shape}")

    axes = ti.ij if len(shape) == 2 else ti.i
    try:
        builder = ti.FieldsBuilder()
        if components is None:
            field = ti.field(dtype=dtype)
        else:
            field = ti.Vector.field(components, dtype=dtype)
        builder.dense(axes, shape).place(field)
        tree = builder.finalize()
    except Exception as exc:
        raise ResourceAllocationError(f"Failed to allocate {label} {shape}: {exc}") from exc

    logger.debug("Allocated %s %s", label, shape)
    return GpuAllocation(field, tree, shape, components, label)
