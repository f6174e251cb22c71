"""Display processing for HDR frames and a static Matplotlib viewer.

The render surface holds linear, unbounded color. Before it can be shown or
written as an 8-bit image it is tone mapped into [0, 1] and gamma encoded.

Tone mapping operators:
    - "none": clamp only
    - "reinhard": c / (1 + c)
    - "exposure": 1 - exp(-c * exposure)

Example:
    >>> from wavetrace.preview.display import show_preview
    >>> from wavetrace.preview.export import field_to_image
    >>> compositor.render_frame(frame, time=0.0)
    >>> show_preview(field_to_image(frame), tone_map="reinhard")
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

from wavetrace.errors import ConfigurationError

ToneMapMethod = Literal["none", "reinhard", "exposure"]

TONE_MAP_METHODS: tuple[str, ...] = ("none", "reinhard", "exposure")


def tone_map_reinhard(image: npt.NDArray[np.float32]) -> npt.NDArray[np.float32]:
    """Compress HDR values with the global Reinhard operator c / (1 + c)."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32], exposure: float = 1.0
) -> npt.NDArray[np.float32]:
    """Map HDR values with 1 - exp(-c * exposure).

    Args:
        image: Linear image of shape (H, W, 3).
        exposure: Brightness scale; larger values brighten the result.
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(image: npt.NDArray[np.float32], gamma: float = 2.2) -> npt.NDArray[np.float32]:
    """Encode linear [0, 1] values for display as in^(1 / gamma)."""
    if gamma == 1.0:
        return image
    # Negative inputs would produce NaN under a fractional power
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = 2.2,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Tone map, gamma encode and clamp a linear image.

    Args:
        image: Linear HDR image of shape (H, W, 3).
        tone_map: One of "none", "reinhard" or "exposure".
        gamma: Display gamma (2.2 for sRGB).
        exposure: Used by the "exposure" operator only.

    Returns:
        A new float32 image in [0, 1].

    Raises:
        ConfigurationError: If ``tone_map`` is not a known operator.
    """
    if tone_map == "reinhard":
        mapped = tone_map_reinhard(image)
    elif tone_map == "exposure":
        mapped = tone_map_exposure(image, exposure)
    elif tone_map == "none":
        mapped = np.array(image, dtype=np.float32)
    else:
        raise ConfigurationError(f"Unknown tone mapping method: {tone_map}")

    return np.clip(apply_gamma(mapped, gamma), 0.0, 1.0).astype(np.float32)


def show_preview(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "reinhard",
    gamma: float = 2.2,
    exposure: float = 1.0,
    title: str | None = None,
    figsize: tuple[float, float] = (10, 6),
    block: bool = True,
) -> None:
    """Show a rendered frame in a Matplotlib figure.

    Args:
        image: Linear HDR image of shape (H, W, 3), top row first.
        tone_map: Tone mapping operator.
        gamma: Display gamma.
        exposure: Exposure for the "exposure" operator.
        title: Figure title (default describes the image size).
        figsize: Figure size in inches.
        block: Whether to block until the figure is closed.
    """
    import matplotlib.pyplot as plt

    display_image = process_image_for_display(
        image, tone_map=tone_map, gamma=gamma, exposure=exposure
    )

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(display_image)
    ax.axis("off")
    if title is None:
        height, width = image.shape[:2]
        title = f"Waving spheres - {width}x{height}"
        if tone_map != "none":
            title += f" ({tone_map})"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)
