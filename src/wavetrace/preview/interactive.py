"""Interactive preview window using Taichi GGUI.

The window renders one frame of the waving-spheres scene per refresh through
a FrameCompositor and shows it tone mapped on the canvas. A control panel
offers the "Regenerate Scene" action, the waving speed and the exposure, and
an Export PNG button.

Example:
    >>> from wavetrace.preview.interactive import InteractivePreview
    >>> compositor = FrameCompositor(config, SphereTracingKernel(), sky, camera)
    >>> preview = InteractivePreview(compositor, 960, 540)
    >>> preview.run()  # Blocks until the window is closed
"""

import dataclasses
import logging
import os
from datetime import datetime
from pathlib import Path

import taichi as ti
import taichi.math as tm

from wavetrace.preview.export import save_frame_png
from wavetrace.render.compositor import FrameCompositor, FrameStats

logger = logging.getLogger(__name__)


@ti.kernel
def _present(frame: ti.template(), display: ti.template(), exposure: ti.f32, gamma: ti.f32):
    """Exposure tone map and gamma encode an RGBA frame into an RGB display field."""
    for i, j in display:
        color = tm.max(frame[i, j].rgb, 0.0)
        mapped = 1.0 - tm.exp(-color * exposure)
        display[i, j] = tm.pow(tm.clamp(mapped, 0.0, 1.0), 1.0 / gamma)


class InteractivePreview:
    """GGUI window showing live frames from a FrameCompositor.

    Attributes:
        compositor: Renders each frame.
        width: Window width in pixels.
        height: Window height in pixels.
        frame: RGBA frame the compositor renders into.
        display_image: Tone-mapped RGB image shown on the canvas.
        exposure: Exposure used when presenting frames.
        gamma: Display gamma.
        export_dir: Directory Export PNG writes into.
    """

    def __init__(
        self,
        compositor: FrameCompositor,
        width: int,
        height: int,
        *,
        title: str = "Waving Spheres - Interactive Preview",
        exposure: float = 1.0,
        gamma: float = 2.2,
        export_dir: str | Path = ".",
    ) -> None:
        self.compositor = compositor
        self.width = width
        self.height = height
        self.exposure = exposure
        self.gamma = gamma
        self.export_dir = Path(export_dir)
        self._title = title

        # Window creation is deferred to run() so that headless code can
        # construct the preview and check is_display_available() first
        self._window: ti.ui.Window | None = None
        self._canvas: ti.ui.Canvas | None = None

        self.frame = ti.Vector.field(4, dtype=ti.f32, shape=(width, height))
        self.display_image = ti.Vector.field(3, dtype=ti.f32, shape=(width, height))
        self._last_stats: FrameStats | None = None

    def _initialize_window(self) -> None:
        if self._window is not None:
            return
        self._window = ti.ui.Window(name=self._title, res=(self.width, self.height), vsync=True)
        self._canvas = self._window.get_canvas()

    @property
    def window(self) -> ti.ui.Window:
        """The GGUI window, created on first access."""
        self._initialize_window()
        return self._window

    @property
    def last_stats(self) -> FrameStats | None:
        """Stats of the most recently rendered frame."""
        return self._last_stats

    def render_once(self, time: float | None = None) -> FrameStats:
        """Render one frame and refresh the display image (no window needed)."""
        self._last_stats = self.compositor.render_frame(self.frame, time=time)
        _present(self.frame, self.display_image, self.exposure, self.gamma)
        return self._last_stats

    def regenerate(self) -> None:
        """Handler of the "Regenerate Scene" button."""
        scene = self.compositor.regenerate_scene()
        logger.info("Scene regenerated with %d spheres", len(scene))

    def set_waving_speed(self, speed: float) -> None:
        self.compositor.config = dataclasses.replace(self.compositor.config, waving_speed=speed)

    def export_png(self) -> Path:
        """Save the current frame to a timestamped PNG in export_dir."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        path = self.export_dir / f"waving_spheres_{timestamp}.png"
        save_frame_png(self.frame, path, tone_map="exposure", gamma=self.gamma, exposure=self.exposure)
        logger.info("Exported %s", path)
        return path

    def run(self) -> None:
        """Render and show frames until the window is closed."""
        self._initialize_window()
        while self._window.running:
            self.render_once()
            self._draw_gui_panel()
            self._canvas.set_image(self.display_image)
            self._window.show()

    def close(self) -> None:
        if self._window is not None:
            self._window.running = False

    def _draw_gui_panel(self) -> None:
        config = self.compositor.config
        with self.window.GUI.sub_window("Scene", 0.02, 0.02, 0.28, 0.24) as gui:
            if gui.button("Regenerate Scene"):
                self.regenerate()
            gui.text(f"Spheres: {len(self.compositor.scene)}")
            speed = gui.slider_float("Waving speed", config.waving_speed, minimum=0.0, maximum=20.0)
            self.exposure = gui.slider_float("Exposure", self.exposure, minimum=0.1, maximum=5.0)
            if gui.button("Export PNG"):
                self.export_png()

        if abs(speed - config.waving_speed) > 1e-6:
            self.set_waving_speed(speed)

    @staticmethod
    def is_display_available() -> bool:
        """Whether a display is available for a GGUI window."""
        if os.name == "nt":
            return True
        if os.uname().sysname == "Darwin":
            # SSH sessions without X forwarding have no display
            return not (os.environ.get("SSH_CONNECTION") and not os.environ.get("DISPLAY"))
        return bool(os.environ.get("DISPLAY") or os.environ.get("WAYLAND_DISPLAY"))
