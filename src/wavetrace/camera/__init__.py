"""Camera module for view matrices.

Components:
    pinhole: Look-at pinhole camera producing camera-to-world and
        inverse projection matrices

The kernel reconstructs primary rays from clip-space coordinates:
    u in [-1, 1]: left to right across the image
    v in [-1, 1]: bottom to top across the image
"""

from .pinhole import PinholeCamera

__all__ = [
    "PinholeCamera",
]
