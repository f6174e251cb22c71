"""Reading frames back from the GPU and writing them as PNG files.

Frames are RGBA float32 Taichi fields of shape (width, height) with row 0 at
the bottom. field_to_image() turns one into a conventional (H, W, 3) NumPy
image with the top row first; the PNG writers then tone map, gamma encode and
quantize it to 8-bit sRGB with Pillow.

Example:
    >>> from wavetrace.preview.export import save_frame_png
    >>> compositor.render_frame(frame, time=1.5)
    >>> save_frame_png(frame, "waving_spheres.png", tone_map="reinhard")
"""

from pathlib import Path
from typing import Any

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from wavetrace.preview.display import ToneMapMethod, process_image_for_display


def field_to_image(field: Any) -> npt.NDArray[np.float32]:
    """Copy a (width, height) RGB(A) field into an (H, W, 3) image, top row first."""
    data = field.to_numpy()
    # (W, H, C) -> (H, W, C), then flip so that the top row comes first
    return np.ascontiguousarray(np.flipud(np.transpose(data[..., :3], (1, 0, 2)))).astype(
        np.float32
    )


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a linear float image of shape (H, W, 3) to 8-bit display values."""
    processed = process_image_for_display(
        image, tone_map=tone_map, gamma=gamma, exposure=exposure
    )
    return np.round(processed * 255.0).astype(np.uint8)


def save_png_from_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> Path:
    """Write a linear (H, W, 3) image as an 8-bit sRGB PNG.

    Args:
        image: Linear HDR image.
        filepath: Output path; parent directories are created.
        tone_map: Tone mapping operator.
        gamma: Display gamma.
        exposure: Exposure for the "exposure" operator.

    Returns:
        The path written.
    """
    path = Path(filepath)
    path.parent.mkdir(parents=True, exist_ok=True)
    pixels = image_to_uint8(image, tone_map=tone_map, gamma=gamma, exposure=exposure)
    PILImage.fromarray(pixels, mode="RGB").save(path)
    return path


def save_frame_png(
    field: Any,
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "reinhard",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> Path:
    """Read a rendered frame back from the GPU and save it as PNG."""
    return save_png_from_array(
        field_to_image(field), filepath, tone_map=tone_map, gamma=gamma, exposure=exposure
    )
