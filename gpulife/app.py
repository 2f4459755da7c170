"""gpulife high-level API — the ``Life`` object.

Usage — window::

    life = gpulife.Life(gpulife.LifeConfig(grid_size=2048))
    life.run()

Usage — headless (tests, recording)::

    life = gpulife.Life(cfg, headless=True)
    life.advance(50)
    grid = life.read_grid()     # (N, N) uint8 tensor
    frame = life.read_frame()   # (H, W, 4) uint8 array
    life.close()
"""

from __future__ import annotations

from typing import Optional

from .config import LifeConfig
from .context import CanvasSurface, OffscreenSurface, request_device
from .errors import DeviceLostError
from .recorder import Recorder
from .scheduler import CanvasDriver, FrameScheduler, LifeSession, ManualDriver

__all__ = ["Life"]

_MAX_FPS = 1000


class Life:
    """One running automaton: device, session and scheduler.

    Args:
        config:    Parameters (defaults to ``LifeConfig()``).
        initial:   Explicit ``(N, N)`` starting grid instead of a random one.
        headless:  Render into an offscreen texture and step with
                   :meth:`advance` instead of opening a window.
    """

    def __init__(self, config: Optional[LifeConfig] = None, *, initial=None,
                 headless: bool = False):
        self.config = (config if config is not None else LifeConfig()).validate()
        cfg = self.config
        self._headless = headless
        self._recorder: Optional[Recorder] = None
        self._canvas = None
        self._loop = None

        self.adapter, self.device = request_device(
            cfg.power_preference, cfg.force_fallback_adapter)

        if headless:
            surface = OffscreenSurface(self.device, cfg.width, cfg.height)
            driver = ManualDriver()
            on_error = None
        else:
            from rendercanvas.auto import RenderCanvas, loop
            self._canvas = RenderCanvas(
                title=cfg.title, size=(cfg.width, cfg.height),
                update_mode="ondemand", max_fps=_MAX_FPS, vsync=True)
            self._loop = loop
            surface = CanvasSurface(self._canvas, self.adapter, self.device)
            driver = CanvasDriver(self._canvas)
            on_error = self._on_device_lost

        self._driver = driver
        try:
            self.session = LifeSession.create(
                self.device, surface, cfg.grid_size,
                fill_probability=cfg.fill_probability, seed=cfg.seed,
                initial=initial, clear_color=cfg.clear_color)
        except Exception:
            if headless:
                surface.destroy()
            else:
                self._canvas.close()
            raise
        self.scheduler = FrameScheduler(
            self.session, driver, min_interval=cfg.min_interval,
            on_error=on_error)
        self.scheduler.after_step(self._after_step)

    # -- frame loop ----------------------------------------------------------

    def run(self) -> None:
        """Blocking loop: one step per display refresh until the window
        closes.  Raises :class:`DeviceLostError` if the device failed."""
        if self._headless:
            raise RuntimeError("Headless Life has no display loop; use advance()")
        self.scheduler.start()
        try:
            self._loop.run()
        finally:
            self.scheduler.stop()
        if self.scheduler.error is not None:
            raise self.scheduler.error

    def advance(self, steps: int = 1) -> int:
        """Run *steps* steps headless.  Returns the new step count."""
        if not self._headless:
            raise RuntimeError("advance() is only available on a headless Life")
        if steps < 0:
            raise ValueError(f"steps must be >= 0, got {steps}")
        self.scheduler.start()
        target = self.session.step + steps
        while self.session.step < target and self.scheduler.running:
            if not self._driver.pump(1):
                break
        return self.session.step

    @property
    def step(self) -> int:
        return self.session.step

    @property
    def canvas(self):
        """The rendercanvas canvas (``None`` when headless)."""
        return self._canvas

    # -- inspection ----------------------------------------------------------

    def read_grid(self):
        """The latest generation as an ``(N, N)`` uint8 tensor."""
        return self.session.read_grid()

    def alive_count(self) -> int:
        return int(self.read_grid().sum().item())

    def read_frame(self):
        """The last rendered frame as ``(H, W, 4)`` uint8 (headless only)."""
        if not self._headless:
            raise RuntimeError("Frames can only be read back from a headless Life")
        return self.session.surface.read_pixels()

    # -- recording -----------------------------------------------------------

    def start_recording(self, path: str, *, fps: int = 30,
                        quality: float = 0.8) -> Recorder:
        """Record every following frame to an animated GIF (headless only)."""
        if not self._headless:
            raise RuntimeError("Recording needs a headless Life (frames are read back)")
        if self._recorder is not None and self._recorder.recording:
            raise RuntimeError(f"Already recording to {self._recorder.path}")
        self._recorder = Recorder(path, fps=fps, quality=quality)
        return self._recorder

    def stop_recording(self) -> Optional[str]:
        """Stop recording; the GIF is written in the background.
        Returns the output path, or ``None`` if nothing was recording."""
        if self._recorder is None:
            return None
        return self._recorder.stop()

    @property
    def recorder(self) -> Optional[Recorder]:
        return self._recorder

    # -- lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Stop the loop and release GPU resources."""
        self.scheduler.stop()
        if self._recorder is not None and self._recorder.recording:
            self._recorder.stop()
        self.session.destroy()
        if self._headless:
            self.session.surface.destroy()
        elif self._canvas is not None:
            self._canvas.close()

    def __enter__(self) -> "Life":
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    # ── Internal ────────────────────────────────────────────────────

    def _after_step(self, step: int) -> None:
        if self._recorder is not None and self._recorder.recording:
            self._recorder.feed(self.session.surface.read_pixels())

    def _on_device_lost(self, err: DeviceLostError) -> None:
        # run() re-raises scheduler.error once the loop has exited.
        self._canvas.close()
