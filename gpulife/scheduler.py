"""Frame scheduling — one compute + render step per display tick.

Usage — window::

    session = LifeSession.create(device, surface, grid_size=1024)
    scheduler = FrameScheduler(session, CanvasDriver(canvas))
    scheduler.start()
    loop.run()

Usage — headless::

    driver = ManualDriver()
    scheduler = FrameScheduler(session, driver)
    scheduler.start()
    driver.pump(100)
"""

from __future__ import annotations

import time
import warnings
from typing import Callable, List, Optional

import wgpu

from .compute import ComputeStage
from .errors import DeviceLostError
from .grid import GridState
from .render import DEFAULT_CLEAR_COLOR, RenderStage

# Anything raised while encoding or submitting a tick is treated as device loss.
_TICK_ERRORS = (wgpu.GPUError, RuntimeError)


# ═══════════════════════════════════════════════════════════════════════
#  LifeSession — everything one render loop keeps alive
# ═══════════════════════════════════════════════════════════════════════

class LifeSession:
    """Device, grid, both stages, the surface, and the step counter.

    ``step`` is the only record of which buffer is current: the compute pass
    of a step reads ``grid.buffers[step % 2]``.
    """

    def __init__(self, device, grid: GridState, compute: ComputeStage,
                 render: RenderStage, surface):
        self.device = device
        self.grid = grid
        self.compute = compute
        self.render = render
        self.surface = surface
        self.step = 0

    @classmethod
    def create(cls, device, surface, grid_size: int, *,
               fill_probability: float = 0.4, seed: Optional[int] = None,
               initial=None, clear_color=DEFAULT_CLEAR_COLOR) -> "LifeSession":
        """Allocate the grid and build both pipelines over one layout."""
        grid = GridState.initialize(device, grid_size, fill_probability,
                                    seed=seed, initial=initial)
        pipeline_layout = device.create_pipeline_layout(
            label="Cell Pipeline Layout", bind_group_layouts=[grid.layout])
        render = RenderStage(device, pipeline_layout, grid_size, surface.format,
                             clear_color=clear_color)
        compute = ComputeStage(device, pipeline_layout, grid_size)
        return cls(device, grid, compute, render, surface)

    @property
    def current_index(self) -> int:
        """Index of the buffer holding the latest generation."""
        return self.step % 2

    def advance(self) -> int:
        """Encode and submit one step.  Returns the new step count."""
        groups = self.grid.bind_groups
        encoder = self.device.create_command_encoder(label="Life Step")
        self.compute.encode(encoder, groups.for_compute(self.step))
        self.render.encode(encoder, self.surface.get_current_view(),
                           groups.for_render(self.step))
        self.device.queue.submit([encoder.finish()])
        self.step += 1
        return self.step

    def read_grid(self):
        """The latest generation as an ``(N, N)`` uint8 tensor."""
        return self.grid.read(self.current_index)

    def destroy(self) -> None:
        self.render.destroy()
        self.grid.destroy()


# ═══════════════════════════════════════════════════════════════════════
#  Display drivers
# ═══════════════════════════════════════════════════════════════════════

class CanvasDriver:
    """Ticks on the draw events of a rendercanvas canvas.

    The canvas should be in ``"ondemand"`` update mode so that each
    re-arm produces exactly one draw.
    """

    __slots__ = ("_canvas",)

    def __init__(self, canvas):
        self._canvas = canvas

    def request_next_tick(self, callback: Callable[[], None]) -> None:
        self._canvas.request_draw(callback)


class ManualDriver:
    """Headless driver: pending ticks run only when :meth:`pump` is called."""

    __slots__ = ("_pending",)

    def __init__(self):
        self._pending: Optional[Callable[[], None]] = None

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def request_next_tick(self, callback: Callable[[], None]) -> None:
        self._pending = callback

    def pump(self, count: int = 1) -> int:
        """Run up to *count* ticks.  Returns how many actually ran."""
        ran = 0
        while ran < count and self._pending is not None:
            callback, self._pending = self._pending, None
            callback()
            ran += 1
        return ran


# ═══════════════════════════════════════════════════════════════════════
#  FrameScheduler
# ═══════════════════════════════════════════════════════════════════════

class FrameScheduler:
    """Drives :meth:`LifeSession.advance` once per display tick.

    Args:
        session:       The session to step.
        driver:        Object with ``request_next_tick(callback)``.
        min_interval:  Seconds that must pass between executed steps.  Ticks
                       arriving sooner are skipped but still re-armed.
        clock:         Time source in seconds.
        on_error:      Called with the :class:`DeviceLostError` when the
                       device fails.  Without it the error is raised from
                       the tick.
    """

    def __init__(self, session: LifeSession, driver, *, min_interval: float = 0.0,
                 clock: Callable[[], float] = time.perf_counter,
                 on_error: Optional[Callable[[DeviceLostError], None]] = None):
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self.session = session
        self.min_interval = min_interval
        self.error: Optional[DeviceLostError] = None
        self.skipped = 0
        self._driver = driver
        self._clock = clock
        self._on_error = on_error
        self._running = False
        self._last_time = 0.0
        self._after_step: List[Callable[[int], None]] = []

    @property
    def running(self) -> bool:
        return self._running

    @property
    def step(self) -> int:
        return self.session.step

    def after_step(self, fn):
        """Decorator — add a callback run with the new step count after
        every executed step.  Callbacks run in registration order."""
        self._after_step.append(fn)
        return fn

    def start(self) -> None:
        if self._running:
            return
        if self.error is not None:
            raise RuntimeError("Scheduler stopped after device loss; create a new session")
        self._running = True
        self._last_time = self._clock()
        self._driver.request_next_tick(self._tick)

    def stop(self) -> None:
        """Stop re-arming.  A tick already handed to the driver becomes a no-op."""
        self._running = False

    # ── Internal ────────────────────────────────────────────────────

    def _tick(self) -> None:
        if not self._running:
            return

        now = self._clock()
        if now - self._last_time < self.min_interval:
            self.skipped += 1
            self._driver.request_next_tick(self._tick)
            return

        try:
            step = self.session.advance()
        except _TICK_ERRORS as exc:
            self._fail(exc)
            return

        self._last_time = now
        # Re-arm before hooks; a raising hook leaves the loop armed.
        self._driver.request_next_tick(self._tick)
        for fn in self._after_step:
            fn(step)

    def _fail(self, exc: BaseException) -> None:
        self._running = False
        if isinstance(exc, DeviceLostError):
            err = exc
        else:
            err = DeviceLostError(
                f"Device lost at step {self.session.step}: {exc}")
            err.__cause__ = exc
        self.error = err
        warnings.warn(f"[gpulife] {err}; scheduling stopped", RuntimeWarning,
                      stacklevel=3)
        if self._on_error is not None:
            self._on_error(err)
        else:
            raise err
