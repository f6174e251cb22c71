"""CPU-side scene model: the authoritative list of animated spheres.

The SceneModel owns the ordered sphere list produced by the scene generator,
animates the spheres each frame, and exposes a read-only serialization view in
the flat layout uploaded to the GPU:

    offset  0  position.xyz   3 x float32
    offset 12  radius         1 x float32
    offset 16  albedo.rgb     3 x float32
    offset 28  specular.rgb   3 x float32
    stride 40 bytes (10 floats)

Spheres are stored in a NumPy structured array so that animation is a single
vectorized update and the upload is a zero-copy reinterpretation.

Example:
    >>> from wavetrace.scene.model import SceneModel, Sphere
    >>> scene = SceneModel([Sphere((0.0, 4.5, 0.0), 3.0, (1, 0, 0), (0.1, 0.1, 0.1))])
    >>> scene.animate(time=0.5, speed=10.0)
    >>> scene.view().nbytes
    40
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

import numpy as np
import numpy.typing as npt

from wavetrace.errors import StaleSceneViewError

# Type alias for 3-component tuples
Vec3 = tuple[float, float, float]

SPHERE_DTYPE = np.dtype(
    [
        ("position", np.float32, (3,)),
        ("radius", np.float32),
        ("albedo", np.float32, (3,)),
        ("specular", np.float32, (3,)),
    ]
)

# Serialized size of one sphere
FLOATS_PER_SPHERE = 10
SPHERE_STRIDE = SPHERE_DTYPE.itemsize

# Height of a resting sphere's center, in radii
REST_HEIGHT_FACTOR = 1.5


@dataclass(frozen=True)
class Sphere:
    """A sphere entity of the scene.

    Attributes:
        position: Center of the sphere in world space (x, y, z).
        radius: Radius of the sphere (positive).
        albedo: Diffuse color (R, G, B), each component in [0, 1].
        specular: Specular reflectance (R, G, B), each component in [0, 1].
    """

    position: Vec3
    radius: float
    albedo: Vec3
    specular: Vec3

    def to_dict(self) -> dict[str, Any]:
        return {
            "position": list(self.position),
            "radius": self.radius,
            "albedo": list(self.albedo),
            "specular": list(self.specular),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Sphere":
        return cls(
            position=_vec3(data["position"]),
            radius=float(data["radius"]),
            albedo=_vec3(data["albedo"]),
            specular=_vec3(data["specular"]),
        )


def _vec3(values: Iterable[float]) -> Vec3:
    x, y, z = (float(v) for v in values)
    return (x, y, z)


class SceneView:
    """Read-only serialization view of a SceneModel.

    A view stays valid while the model it came from keeps the same generation.
    It reflects animation (positions change in place) but becomes stale as soon
    as the scene is replaced; reading a stale view raises StaleSceneViewError.
    """

    def __init__(self, model: "SceneModel") -> None:
        self._model = model
        self._generation = model.generation
        self._records = model._records

    @property
    def generation(self) -> int:
        """The scene generation this view was issued for."""
        return self._generation

    @property
    def count(self) -> int:
        """Number of spheres in the view."""
        return int(self._records.shape[0])

    @property
    def nbytes(self) -> int:
        """Total serialized size in bytes (count x 40)."""
        return self.count * SPHERE_STRIDE

    def is_stale(self) -> bool:
        return self._generation != self._model.generation

    def _check(self) -> None:
        if self.is_stale():
            raise StaleSceneViewError(
                f"Scene view of generation {self._generation} used after the scene "
                f"was replaced (current generation {self._model.generation})"
            )

    def as_array(self) -> npt.NDArray[np.float32]:
        """Get the spheres as a read-only float32 array of shape (count, 10).

        Raises:
            StaleSceneViewError: If the scene was replaced after this view
                was issued.
        """
        self._check()
        flat = self._records.view(np.float32).reshape(self.count, FLOATS_PER_SPHERE)
        flat.flags.writeable = False
        return flat

    def tobytes(self) -> bytes:
        """Get the packed byte layout (count x 40 bytes).

        Raises:
            StaleSceneViewError: If the scene was replaced after this view
                was issued.
        """
        self._check()
        return self._records.tobytes()


class SceneModel:
    """Ordered, exclusively owned collection of animated spheres.

    Index i in this model is index i in the GPU buffer and the phase offset
    used by animate(), so the order never changes except through replace().

    Attributes:
        generation: Incremented on every replace(); used to detect stale
            serialization views and GPU bindings.
    """

    def __init__(self, spheres: Iterable[Sphere] = ()) -> None:
        self.generation = 0
        self._records = self._pack(spheres)

    @staticmethod
    def _pack(spheres: Iterable[Sphere]) -> npt.NDArray[np.void]:
        spheres = list(spheres)
        records = np.zeros(len(spheres), dtype=SPHERE_DTYPE)
        for i, sphere in enumerate(spheres):
            records["position"][i] = sphere.position
            records["radius"][i] = sphere.radius
            records["albedo"][i] = sphere.albedo
            records["specular"][i] = sphere.specular
        return records

    def __len__(self) -> int:
        return int(self._records.shape[0])

    def __getitem__(self, index: int) -> Sphere:
        record = self._records[index]
        return Sphere(
            position=_vec3(record["position"]),
            radius=float(record["radius"]),
            albedo=_vec3(record["albedo"]),
            specular=_vec3(record["specular"]),
        )

    def __iter__(self) -> Iterator[Sphere]:
        for i in range(len(self)):
            yield self[i]

    @property
    def spheres(self) -> list[Sphere]:
        """Snapshot of the current spheres, in storage order."""
        return list(self)

    def replace(self, spheres: Iterable[Sphere]) -> None:
        """Replace every sphere in the scene.

        Views issued before this call become stale and GPU mirrors must be
        re-synchronized.
        """
        self._records = self._pack(spheres)
        self.generation += 1

    def animate(self, time: float, speed: float) -> None:
        """Bob every sphere vertically around its resting height.

        For the sphere at index i:
            position.y = radius * 1.5 + sin((time + i) * speed) * radius

        The index term offsets each sphere's phase so they do not move in
        lockstep.

        Args:
            time: Elapsed time in seconds.
            speed: Angular speed of the wave.
        """
        if len(self) == 0:
            return
        radius = self._records["radius"].astype(np.float64)
        phase = (time + np.arange(len(self), dtype=np.float64)) * speed
        heights = radius * REST_HEIGHT_FACTOR + np.sin(phase) * radius
        self._records["position"][:, 1] = heights.astype(np.float32)

    def view(self) -> SceneView:
        """Issue a read-only serialization view of the current scene."""
        return SceneView(self)

    def to_dicts(self) -> list[dict[str, Any]]:
        return [sphere.to_dict() for sphere in self]

    @classmethod
    def from_dicts(cls, data: Iterable[dict[str, Any]]) -> "SceneModel":
        return cls(Sphere.from_dict(item) for item in data)

    def __repr__(self) -> str:
        return f"SceneModel(spheres={len(self)}, generation={self.generation})"
