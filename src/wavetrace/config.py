"""Renderer configuration.

RayTracingConfig collects every tunable of the renderer: the scene generation
parameters, the animation speed, the optional directional light and the
reference kernel's bounce count. Configurations round-trip through plain
dictionaries and JSON files.

Example:
    >>> from wavetrace.config import DirectionalLight, RayTracingConfig
    >>> config = RayTracingConfig(sphere_count=50, light=DirectionalLight((0.3, -1.0, 0.4)))
    >>> config.validate()
    >>> RayTracingConfig.from_dict(config.to_dict()) == config
    True
"""

import json
import math
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from wavetrace.errors import ConfigurationError


@dataclass(frozen=True)
class DirectionalLight:
    """A light infinitely far away, shining along ``direction``.

    Attributes:
        direction: Direction the light travels (need not be normalized).
        intensity: Radiance scale; 0 disables direct lighting.
    """

    direction: tuple[float, float, float] = (-0.3, -1.0, 0.5)
    intensity: float = 1.0

    def as_vector(self) -> tuple[float, float, float, float]:
        """Pack as (dx, dy, dz, intensity) with a normalized direction."""
        x, y, z = self.direction
        length = math.sqrt(x * x + y * y + z * z)
        if length < 1e-8:
            raise ConfigurationError("Directional light has a zero direction")
        return (x / length, y / length, z / length, float(self.intensity))


# Bound in place of a light when none is configured: zero intensity
NO_LIGHT_VECTOR = (0.0, 0.0, 0.0, 0.0)


# Scalar fields and the type each is coerced to when read from a dictionary
_FLOAT_FIELDS = ("min_sphere_radius", "max_sphere_radius", "placement_radius", "waving_speed")
_INT_FIELDS = ("sphere_count", "bounces")


@dataclass(frozen=True)
class RayTracingConfig:
    """Parameters of the waving-spheres ray tracer.

    Attributes:
        min_sphere_radius: Smallest sphere radius drawn by the generator.
        max_sphere_radius: Largest sphere radius drawn by the generator.
        sphere_count: Number of placement attempts (upper bound on spheres).
        placement_radius: Radius of the disk the spheres are scattered over.
        waving_speed: Angular speed of the vertical bobbing.
        light: Optional directional light; None renders without direct light.
        seed: Optional RNG seed for reproducible scenes.
        bounces: Reflection bounces of the reference kernel.
    """

    min_sphere_radius: float = 3.0
    max_sphere_radius: float = 8.0
    sphere_count: int = 100
    placement_radius: float = 100.0
    waving_speed: float = 10.0
    light: DirectionalLight | None = field(default_factory=DirectionalLight)
    seed: int | None = None
    bounces: int = 8

    @property
    def radius_range(self) -> tuple[float, float]:
        return self.min_sphere_radius, self.max_sphere_radius

    def validate(self) -> None:
        """Check the configuration.

        Raises:
            ConfigurationError: On any invalid parameter.
        """
        if self.min_sphere_radius > self.max_sphere_radius:
            raise ConfigurationError(
                f"min_sphere_radius ({self.min_sphere_radius}) exceeds "
                f"max_sphere_radius ({self.max_sphere_radius})"
            )
        if self.min_sphere_radius <= 0.0:
            raise ConfigurationError("min_sphere_radius must be positive")
        if self.sphere_count < 0:
            raise ConfigurationError("sphere_count must be non-negative")
        if self.placement_radius < 0.0:
            raise ConfigurationError("placement_radius must be non-negative")
        if self.bounces < 1:
            raise ConfigurationError("bounces must be at least 1")
        if self.light is not None:
            self.light.as_vector()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.light is not None:
            data["light"]["direction"] = list(self.light.direction)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RayTracingConfig":
        """Build a configuration from a dictionary.

        Unknown keys are rejected; missing keys keep their defaults.

        Raises:
            ConfigurationError: On unknown keys or malformed values.
        """
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        values = dict(data)
        try:
            for name in _FLOAT_FIELDS:
                if name in values:
                    values[name] = float(values[name])
            for name in _INT_FIELDS:
                if name in values:
                    values[name] = int(values[name])
            if values.get("seed") is not None:
                values["seed"] = int(values["seed"])
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Malformed configuration value: {exc}") from exc

        if "light" in values and values["light"] is not None:
            light = values["light"]
            try:
                direction = tuple(float(c) for c in light["direction"])
                if len(direction) != 3:
                    raise ValueError("direction needs three components")
                values["light"] = DirectionalLight(
                    direction=direction,
                    intensity=float(light.get("intensity", 1.0)),
                )
            except (AttributeError, KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError(f"Malformed light configuration: {light!r}") from exc
        config = cls(**values)
        config.validate()
        return config


def load_config(path: str | Path) -> RayTracingConfig:
    """Load a configuration from a JSON file.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid JSON or
            holds invalid values.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must hold a JSON object")
    return RayTracingConfig.from_dict(data)


def save_config(config: RayTracingConfig, path: str | Path) -> None:
    """Write a configuration as JSON."""
    Path(path).write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
