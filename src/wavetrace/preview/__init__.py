"""Preview module for output and visualization.

Components:
    display: Tone mapping, gamma and a Matplotlib preview
    export: Frame readback and PNG export (Pillow)
    interactive: Taichi GGUI window with live animation and scene controls

Example:
    >>> from wavetrace.preview import field_to_image, save_frame_png, show_preview
    >>> compositor.render_frame(frame, time=0.0)
    >>> show_preview(field_to_image(frame), tone_map="reinhard")
    >>> save_frame_png(frame, "output.png")
"""

from .display import (
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    show_preview,
    tone_map_exposure,
    tone_map_reinhard,
)
from .export import field_to_image, image_to_uint8, save_frame_png, save_png_from_array
from .interactive import InteractivePreview

__all__ = [
    # Interactive preview
    "InteractivePreview",
    # Display
    "show_preview",
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    # Export
    "field_to_image",
    "image_to_uint8",
    "save_png_from_array",
    "save_frame_png",
]
