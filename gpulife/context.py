"""Accelerator context — adapter / device acquisition and presentable surfaces.

A *surface* is anything with a ``format`` attribute and a
``get_current_view()`` method returning a fresh texture view for the frame
being drawn.  Two are provided:

    CanvasSurface     — a rendercanvas window (on-screen)
    OffscreenSurface  — a private texture that can be read back (headless)
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
import wgpu

from .errors import (DeviceAcquisitionError, SurfaceConfigurationError,
                     UnsupportedEnvironmentError)

OFFSCREEN_FORMAT = wgpu.TextureFormat.rgba8unorm


def _load_backend() -> None:
    """Make sure the native WebGPU implementation can be loaded."""
    try:
        import wgpu.backends.wgpu_native  # noqa: F401
    except (ImportError, OSError, RuntimeError) as exc:
        raise UnsupportedEnvironmentError(
            f"WebGPU is not supported on this host ({exc})") from exc


def request_device(power_preference: str = "high-performance",
                   force_fallback_adapter: bool = False) -> Tuple["wgpu.GPUAdapter", "wgpu.GPUDevice"]:
    """Acquire an adapter and a device.  One attempt, no retry.

    Raises:
        UnsupportedEnvironmentError: no WebGPU backend on this host.
        DeviceAcquisitionError:      the adapter or device request failed.
    """
    _load_backend()
    try:
        adapter = wgpu.gpu.request_adapter_sync(
            power_preference=power_preference,
            force_fallback_adapter=force_fallback_adapter)
    except (wgpu.GPUError, RuntimeError) as exc:
        raise DeviceAcquisitionError(f"No appropriate GPUAdapter found ({exc})") from exc
    if adapter is None:
        raise DeviceAcquisitionError("No appropriate GPUAdapter found.")

    try:
        device = adapter.request_device_sync(label="gpulife")
    except (wgpu.GPUError, RuntimeError) as exc:
        raise DeviceAcquisitionError(f"GPUDevice request failed ({exc})") from exc
    if device is None:
        raise DeviceAcquisitionError("GPUDevice request returned nothing.")
    return adapter, device


# ═══════════════════════════════════════════════════════════════════════
#  CanvasSurface — on-screen presentation through rendercanvas
# ═══════════════════════════════════════════════════════════════════════

class CanvasSurface:
    """Binds a rendercanvas canvas to *device* using the preferred format."""

    def __init__(self, canvas, adapter, device):
        try:
            context = canvas.get_context("wgpu")
            fmt = context.get_preferred_format(adapter)
            context.configure(device=device, format=fmt)
        except (wgpu.GPUError, RuntimeError, ValueError) as exc:
            raise SurfaceConfigurationError(
                f"Failed to initialize WebGPU context ({exc})") from exc
        if context is None:
            raise SurfaceConfigurationError("Failed to initialize WebGPU context.")
        self._canvas = canvas
        self._context = context
        self.format = fmt

    @property
    def canvas(self):
        return self._canvas

    def get_current_view(self):
        return self._context.get_current_texture().create_view()


# ═══════════════════════════════════════════════════════════════════════
#  OffscreenSurface — headless render target
# ═══════════════════════════════════════════════════════════════════════

class OffscreenSurface:
    """A ``width`` × ``height`` RGBA8 texture standing in for a window.

    The same texture is reused every frame; :meth:`read_pixels` copies it
    back to host memory.
    """

    def __init__(self, device, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Offscreen size must be positive, got {width}x{height}")
        self._device = device
        self.width = width
        self.height = height
        self.format = OFFSCREEN_FORMAT
        try:
            self._texture = device.create_texture(
                label="Offscreen Target",
                size=(width, height, 1),
                format=self.format,
                usage=wgpu.TextureUsage.RENDER_ATTACHMENT | wgpu.TextureUsage.COPY_SRC,
            )
        except wgpu.GPUError as exc:
            raise SurfaceConfigurationError(
                f"Could not allocate a {width}x{height} offscreen target ({exc})") from exc

    def get_current_view(self):
        return self._texture.create_view()

    def read_pixels(self) -> np.ndarray:
        """Return the last rendered frame as ``(height, width, 4)`` uint8."""
        data = self._device.queue.read_texture(
            {"texture": self._texture, "mip_level": 0, "origin": (0, 0, 0)},
            {"offset": 0, "bytes_per_row": self.width * 4, "rows_per_image": self.height},
            (self.width, self.height, 1),
        )
        return np.frombuffer(data, dtype=np.uint8).reshape(self.height, self.width, 4).copy()

    def destroy(self) -> None:
        self._texture.destroy()
