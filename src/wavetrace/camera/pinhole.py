"""Pinhole camera producing the matrices bound to the compute kernel.

The kernel reconstructs primary rays from two 4x4 matrices:

- ``cameraToWorld``: maps camera space to world space. Camera space is
  right-handed with the camera looking down -Z (OpenGL convention).
- ``cameraInverseProjection``: the inverse of a perspective projection, which
  turns a clip-space point (u, v, 0, 1) into a camera-space view direction.

The camera builds an orthonormal basis (u, v, w) from the look-at parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

Example:
    >>> from wavetrace.camera.pinhole import PinholeCamera
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 80.0, -220.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ... )
    >>> to_world = camera.camera_to_world()
    >>> inverse_projection = camera.inverse_projection(aspect_ratio=16.0 / 9.0)
"""

import math
from dataclasses import dataclass, replace

import numpy as np
import numpy.typing as npt

from wavetrace.errors import ConfigurationError


@dataclass(frozen=True)
class PinholeCamera:
    """Configuration for a pinhole (perspective) camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees.
        near: Near clipping distance (positive).
        far: Far clipping distance (greater than near).
    """

    lookfrom: tuple[float, float, float] = (0.0, 80.0, -220.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, 0.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 60.0
    near: float = 0.3
    far: float = 1000.0

    def validate(self) -> None:
        """Check the camera parameters.

        Raises:
            ConfigurationError: If the FOV, clip planes or orientation are invalid.
        """
        if not 0.0 < self.vfov < 180.0:
            raise ConfigurationError(f"Vertical FOV must be in (0, 180), got {self.vfov}")
        if not 0.0 < self.near < self.far:
            raise ConfigurationError(
                f"Clip planes must satisfy 0 < near < far, got {self.near}, {self.far}"
            )
        forward = np.subtract(self.lookat, self.lookfrom)
        if np.linalg.norm(forward) < 1e-8:
            raise ConfigurationError("Camera lookfrom and lookat coincide")
        if np.linalg.norm(np.cross(self.vup, forward)) < 1e-8:
            raise ConfigurationError("Camera up vector is parallel to the view direction")

    def moved(self, **changes: object) -> "PinholeCamera":
        """Return a copy with some fields replaced."""
        return replace(self, **changes)

    def basis(self) -> tuple[npt.NDArray[np.float64], ...]:
        """Compute the orthonormal basis (u, v, w)."""
        lookfrom = np.array(self.lookfrom, dtype=np.float64)
        lookat = np.array(self.lookat, dtype=np.float64)
        vup = np.array(self.vup, dtype=np.float64)

        # w points from lookat toward lookfrom (backward)
        w = lookfrom - lookat
        w = w / np.linalg.norm(w)

        # u points right (perpendicular to w and vup)
        u = np.cross(vup, w)
        u = u / np.linalg.norm(u)

        # v points up in the camera's frame
        v = np.cross(w, u)
        return u, v, w

    def camera_to_world(self) -> npt.NDArray[np.float32]:
        """Build the camera-to-world transform.

        Columns are the camera's right, up and backward axes followed by its
        position, so (0, 0, 0, 1) maps to ``lookfrom``.
        """
        u, v, w = self.basis()
        matrix = np.identity(4, dtype=np.float64)
        matrix[:3, 0] = u
        matrix[:3, 1] = v
        matrix[:3, 2] = w
        matrix[:3, 3] = self.lookfrom
        return matrix.astype(np.float32)

    def projection(self, aspect_ratio: float) -> npt.NDArray[np.float32]:
        """Build the OpenGL-style perspective projection for an aspect ratio."""
        if aspect_ratio <= 0.0:
            raise ConfigurationError(f"Aspect ratio must be positive, got {aspect_ratio}")
        f = 1.0 / math.tan(math.radians(self.vfov) / 2.0)
        near, far = self.near, self.far
        matrix = np.zeros((4, 4), dtype=np.float64)
        matrix[0, 0] = f / aspect_ratio
        matrix[1, 1] = f
        matrix[2, 2] = (far + near) / (near - far)
        matrix[2, 3] = 2.0 * far * near / (near - far)
        matrix[3, 2] = -1.0
        return matrix.astype(np.float32)

    def inverse_projection(self, aspect_ratio: float) -> npt.NDArray[np.float32]:
        """Build the inverse of projection(aspect_ratio)."""
        projection = self.projection(aspect_ratio).astype(np.float64)
        return np.linalg.inv(projection).astype(np.float32)
