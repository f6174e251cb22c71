"""Sky images bound to the kernel as ``skyboxTexture``.

The kernel samples an equirectangular RGB image stored in a Taichi vector
field of shape (width, height) with row 0 at the bottom. Images come either
from disk (any format Pillow reads, or a NumPy float array) or from a
procedural vertical gradient used when no sky asset is given.
"""

from pathlib import Path

import numpy as np
import numpy.typing as npt
import taichi as ti
from PIL import Image as PILImage

from wavetrace.errors import ConfigurationError

# Default procedural sky colors (linear RGB)
HORIZON_COLOR = (0.85, 0.9, 1.0)
ZENITH_COLOR = (0.25, 0.45, 0.85)
NADIR_COLOR = (0.35, 0.33, 0.3)


def gradient_sky_image(
    width: int = 256,
    height: int = 128,
    horizon: tuple[float, float, float] = HORIZON_COLOR,
    zenith: tuple[float, float, float] = ZENITH_COLOR,
    nadir: tuple[float, float, float] = NADIR_COLOR,
) -> npt.NDArray[np.float32]:
    """Build a vertical-gradient equirectangular sky.

    Returns:
        Linear RGB image of shape (height, width, 3), top row = zenith.
    """
    # Elevation from +1 (top row) to -1 (bottom row)
    elevation = np.linspace(1.0, -1.0, height, dtype=np.float32)[:, None]
    up = np.clip(elevation, 0.0, 1.0)[..., None]
    down = np.clip(-elevation, 0.0, 1.0)[..., None]

    horizon_c = np.asarray(horizon, dtype=np.float32)
    sky = horizon_c + (np.asarray(zenith, dtype=np.float32) - horizon_c) * np.sqrt(up)
    ground = horizon_c + (np.asarray(nadir, dtype=np.float32) - horizon_c) * np.sqrt(down)
    column = np.where(elevation[..., None] >= 0.0, sky, ground)
    return np.broadcast_to(column, (height, width, 3)).astype(np.float32)


def load_sky_image(path: str | Path) -> npt.NDArray[np.float32]:
    """Load an equirectangular sky image from disk.

    ``.npy`` files are read as linear float RGB. Other formats are decoded with
    Pillow as 8-bit sRGB and converted to linear.

    Returns:
        Linear RGB image of shape (height, width, 3).

    Raises:
        ConfigurationError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigurationError(f"Sky image not found: {path}")

    if path.suffix == ".npy":
        image = np.load(path).astype(np.float32)
    else:
        try:
            with PILImage.open(path) as pil_image:
                srgb = np.asarray(pil_image.convert("RGB"), dtype=np.float32) / 255.0
        except OSError as exc:
            raise ConfigurationError(f"Cannot decode sky image {path}: {exc}") from exc
        image = np.power(srgb, 2.2)

    if image.ndim != 3 or image.shape[2] < 3:
        raise ConfigurationError(f"Sky image must be RGB, got shape {image.shape}")
    return image[..., :3].astype(np.float32)


def sky_field_from_image(image: npt.NDArray[np.float32]) -> ti.MatrixField:
    """Upload an RGB image of shape (height, width, 3) to a Taichi field.

    The field has shape (width, height); rows are flipped so that row 0 of the
    field is the bottom of the image, as the kernel expects.
    """
    height, width = image.shape[:2]
    field = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))
    # NumPy images are (height, width, channels) with the origin at the top
    field.from_numpy(np.ascontiguousarray(np.transpose(np.flipud(image[..., :3]), (1, 0, 2))))
    return field
