"""Exception hierarchy for the wavetrace renderer.

The classes double as the built-in ``ValueError`` / ``RuntimeError`` so callers
that only know the standard exceptions keep working:

    ConfigurationError      invalid parameters or missing handles, raised
                            before any GPU work is issued
    ResourceAllocationError a GPU field could not be allocated (fatal)
    SceneInvariantError     the scene and its GPU mirror disagree, or a
                            generated scene overlaps (programming defect)
"""


class WavetraceError(Exception):
    """Base class for all wavetrace errors."""


class ConfigurationError(WavetraceError, ValueError):
    """Raised when the caller supplies an invalid configuration."""


class ResourceAllocationError(WavetraceError, RuntimeError):
    """Raised when a GPU buffer or surface cannot be allocated."""


class SceneInvariantError(WavetraceError, RuntimeError):
    """Raised when a scene invariant is violated."""


class StaleSceneViewError(SceneInvariantError):
    """Raised when a serialization view is read after the scene was replaced."""
