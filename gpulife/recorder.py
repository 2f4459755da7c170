"""Frame recorder — capture rendered frames to an animated GIF.

Uses ``Pillow`` to write the file.  Quality (0–1) controls the number of
colours per frame: 0 → 2 colours, 1 → 256 colours (full quality).

Saving runs in a background thread so the simulation loop is never blocked.

Usage::

    life = gpulife.Life(cfg, headless=True)
    life.start_recording("life.gif", fps=15, quality=0.8)
    life.advance(120)
    life.stop_recording()
"""

from __future__ import annotations

import os
import threading
from typing import List, Optional

import numpy as np
import torch
from PIL import Image


class Recorder:
    """Accumulates RGBA frames and writes an animated GIF on stop."""

    __slots__ = (
        "_path", "_fps", "_width", "_height",
        "_gif_frames", "_recording", "_quality",
        "_saving", "_save_thread", "_save_error",
    )

    def __init__(self, path: str, fps: int = 30, quality: float = 0.8):
        ext = os.path.splitext(path)[1].lower()
        if ext != ".gif":
            raise ValueError(
                f"Unsupported recording format '{ext}'. "
                f"Only .gif is supported."
            )
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")

        self._path = os.path.abspath(path)
        self._fps = fps
        self._quality = max(0.0, min(1.0, float(quality)))
        self._recording = True
        self._width = 0
        self._height = 0
        self._gif_frames: List[Image.Image] = []
        self._saving = False
        self._save_thread: Optional[threading.Thread] = None
        self._save_error: Optional[str] = None

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def saving(self) -> bool:
        """``True`` while the GIF is being written in the background."""
        if self._saving and self._save_thread is not None:
            if not self._save_thread.is_alive():
                self._saving = False
                self._save_thread = None
        return self._saving

    @property
    def save_error(self) -> Optional[str]:
        """Error message from background save, or ``None``."""
        return self._save_error

    @property
    def path(self) -> str:
        return self._path

    @property
    def quality(self) -> float:
        return self._quality

    @property
    def frame_count(self) -> int:
        """Number of frames recorded so far."""
        return len(self._gif_frames)

    def feed(self, frame) -> None:
        """Feed one frame.

        *frame* is an ``(H, W, 3)`` or ``(H, W, 4)`` uint8 array or tensor,
        as returned by :meth:`OffscreenSurface.read_pixels`.  All frames
        must share the size of the first one.
        """
        if not self._recording:
            return

        t = frame if isinstance(frame, torch.Tensor) else torch.from_numpy(np.asarray(frame))
        if t.dtype != torch.uint8:
            raise ValueError(f"Frame dtype must be uint8, got {t.dtype}")
        if t.ndim != 3 or t.shape[2] not in (3, 4):
            raise ValueError(f"Expected an (H, W, 3|4) frame, got shape {tuple(t.shape)}")

        h, w = t.shape[0], t.shape[1]
        if self._width == 0:
            self._width, self._height = w, h
        elif (w, h) != (self._width, self._height):
            raise ValueError(
                f"Frame size {w}x{h} differs from the first frame "
                f"{self._width}x{self._height}")

        rgb = t[:, :, :3].contiguous().cpu().numpy()
        img = Image.fromarray(rgb)

        # Colour-quantize based on quality (2..256 colours)
        n_colors = max(2, int(self._quality * 254 + 2))
        if n_colors < 256:
            img = img.quantize(colors=n_colors, method=Image.Quantize.FASTOCTREE).convert("RGB")

        self._gif_frames.append(img)

    def stop(self) -> str:
        """Finalize the recording and start writing the GIF in a
        background thread.

        The file is not ready until :attr:`saving` becomes ``False``
        (or :meth:`wait` returns).  Returns the output file path.
        """
        if not self._recording:
            return self._path

        self._recording = False
        self._save_error = None

        frames = list(self._gif_frames)
        self._gif_frames.clear()
        if frames:
            self._saving = True
            self._save_thread = threading.Thread(
                target=self._write_gif_thread,
                args=(frames,),
                daemon=True,
            )
            self._save_thread.start()
        return self._path

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the background save finishes.  Returns ``True`` on success."""
        thread = self._save_thread
        if thread is not None:
            thread.join(timeout)
        return not self.saving and self._save_error is None

    def _write_gif_thread(self, frames: list):
        """Background thread: write frames to an animated GIF."""
        try:
            out_dir = os.path.dirname(self._path)
            if out_dir:
                os.makedirs(out_dir, exist_ok=True)

            duration_ms = max(1, int(1000 / self._fps))
            frames[0].save(
                self._path,
                save_all=True,
                append_images=frames[1:],
                duration=duration_ms,
                loop=0,
                optimize=True,
            )
        except (OSError, ValueError) as exc:
            self._save_error = str(exc)
        finally:
            self._saving = False
