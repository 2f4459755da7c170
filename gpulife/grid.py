"""Grid state store — the double-buffered cell grid and its bind groups.

The two storage buffers swap roles every step.  Which one is the input is
decided by the step parity alone:

    step % 2 == 0   group 0: A is read, B is written
    step % 2 == 1   group 1: B is read, A is written

The compute pass of step *s* uses ``group[s % 2]`` and the render pass of
the same step uses ``group[(s + 1) % 2]``, whose read-only slot is the buffer
compute has just written.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
import torch
import wgpu

from .errors import GridAllocationError

CELL_BYTES = 4  # one u32 per cell

_STAGES_ALL = wgpu.ShaderStage.COMPUTE | wgpu.ShaderStage.VERTEX | wgpu.ShaderStage.FRAGMENT
_STAGES_READ = wgpu.ShaderStage.COMPUTE | wgpu.ShaderStage.VERTEX


# ═══════════════════════════════════════════════════════════════════════
#  Seeding helpers
# ═══════════════════════════════════════════════════════════════════════

def seed_grid(size: int, fill_probability: float = 0.4,
              seed: Optional[int] = None) -> torch.Tensor:
    """Random ``(size, size)`` uint8 grid, each cell alive with
    probability *fill_probability*.

    A cell is alive when its uniform draw exceeds ``1 - fill_probability``
    (the default of 0.4 means "draw > 0.6").  Passing *seed* makes the
    result reproducible.
    """
    if size <= 0:
        raise ValueError(f"Grid size must be positive, got {size}")
    if not 0.0 <= fill_probability <= 1.0:
        raise ValueError(f"fill_probability must be within [0, 1], got {fill_probability}")
    gen = torch.Generator()
    if seed is None:
        gen.seed()
    else:
        gen.manual_seed(int(seed))
    draws = torch.rand(size, size, generator=gen)
    return (draws > 1.0 - fill_probability).to(torch.uint8)


def normalize_grid(grid, size: int) -> torch.Tensor:
    """Coerce *grid* (tensor, ndarray or nested sequence) to a
    ``(size, size)`` uint8 tensor of 0/1.  Nonzero means alive."""
    if isinstance(grid, torch.Tensor):
        arr = grid.detach().cpu().numpy()
    else:
        arr = np.asarray(grid)
    if arr.dtype.kind not in "biuf":
        raise ValueError(f"Grid dtype must be bool, integer or float, got {arr.dtype}")
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2D grid, got shape {arr.shape}")
    if arr.shape != (size, size):
        raise ValueError(f"Expected a {size}x{size} grid, got {arr.shape}")
    return torch.from_numpy((arr != 0).astype(np.uint8))


# ═══════════════════════════════════════════════════════════════════════
#  BindGroupPair — the ping-pong binding sets
# ═══════════════════════════════════════════════════════════════════════

class BindGroupPair:
    """Two precomputed bind groups over the same layout.

    Group *p* reads ``buffers[p]`` and writes ``buffers[1 - p]``.  The
    groups are only ever built from a parity, so there is no way to ask for
    a group whose input and output are the same buffer.
    """

    __slots__ = ("_buffers", "_groups")

    def __init__(self, device, layout, uniform, buffers: Sequence):
        if len(buffers) != 2:
            raise ValueError(f"Expected exactly 2 grid buffers, got {len(buffers)}")
        if buffers[0] is buffers[1]:
            raise ValueError("Ping-pong buffers must be two distinct buffers")
        self._buffers = (buffers[0], buffers[1])
        self._groups = tuple(
            device.create_bind_group(
                label=f"Cell Bind Group {'AB'[parity]}",
                layout=layout,
                entries=[
                    {"binding": 0, "resource": {"buffer": uniform}},
                    {"binding": 1, "resource": {"buffer": self._buffers[parity]}},
                    {"binding": 2, "resource": {"buffer": self._buffers[1 - parity]}},
                ],
            )
            for parity in (0, 1)
        )

    def __getitem__(self, parity: int):
        return self._groups[parity % 2]

    def __len__(self) -> int:
        return 2

    # -- step-derived selection ----------------------------------------------

    def for_compute(self, step: int):
        """Group for the compute pass of *step*."""
        return self._groups[step % 2]

    def for_render(self, step: int):
        """Group for the render pass of *step* — reads what compute wrote."""
        return self._groups[(step + 1) % 2]

    def input_buffer(self, step: int):
        """Buffer the compute pass of *step* reads."""
        return self._buffers[step % 2]

    def output_buffer(self, step: int):
        """Buffer the compute pass of *step* writes."""
        return self._buffers[(step + 1) % 2]


# ═══════════════════════════════════════════════════════════════════════
#  GridState — uniform + two storage buffers + bindings
# ═══════════════════════════════════════════════════════════════════════

class GridState:
    """GPU-resident grid.  Create with :meth:`initialize`."""

    def __init__(self, device, size: int, uniform, buffers, layout,
                 bind_groups: BindGroupPair):
        self._device = device
        self.size = size
        self.uniform = uniform
        self.buffers = tuple(buffers)
        self.layout = layout
        self.bind_groups = bind_groups

    @property
    def cell_count(self) -> int:
        return self.size * self.size

    @classmethod
    def initialize(cls, device, size: int, fill_probability: float = 0.4, *,
                   seed: Optional[int] = None, initial=None) -> "GridState":
        """Allocate and seed the grid.

        Args:
            device:            ``wgpu.GPUDevice``.
            size:              Grid edge length N (the grid is N × N).
            fill_probability:  Share of live cells in the random seed.
            seed:              Seed for the random fill (``None`` = fresh).
            initial:           Explicit ``(N, N)`` starting grid; replaces
                               the random fill.

        Raises:
            GridAllocationError: the device could not provide the memory.
        """
        if size <= 0:
            raise ValueError(f"Grid size must be positive, got {size}")
        cells = (normalize_grid(initial, size) if initial is not None
                 else seed_grid(size, fill_probability, seed))
        cell_data = cells.numpy().astype(np.uint32).ravel()
        nbytes = size * size * CELL_BYTES

        try:
            uniform = device.create_buffer_with_data(
                label="Grid Uniforms",
                data=np.array([size, size], dtype=np.float32),
                usage=wgpu.BufferUsage.UNIFORM,
            )
            buffers = [
                device.create_buffer(
                    label=f"Cell State {name}",
                    size=nbytes,
                    usage=(wgpu.BufferUsage.STORAGE | wgpu.BufferUsage.COPY_DST
                           | wgpu.BufferUsage.COPY_SRC),
                )
                for name in "AB"
            ]
            # B is fully overwritten by the first compute pass before it is read.
            device.queue.write_buffer(buffers[0], 0, cell_data)

            layout = device.create_bind_group_layout(
                label="Cell Bind Group Layout",
                entries=[
                    {"binding": 0, "visibility": _STAGES_ALL,
                     "buffer": {"type": wgpu.BufferBindingType.uniform}},
                    {"binding": 1, "visibility": _STAGES_READ,
                     "buffer": {"type": wgpu.BufferBindingType.read_only_storage}},
                    {"binding": 2, "visibility": wgpu.ShaderStage.COMPUTE,
                     "buffer": {"type": wgpu.BufferBindingType.storage}},
                ],
            )
            bind_groups = BindGroupPair(device, layout, uniform, buffers)
        except wgpu.GPUError as exc:
            raise GridAllocationError(
                f"Could not allocate a {size}x{size} grid ({nbytes * 2} bytes of "
                f"cell storage): {exc}") from exc

        return cls(device, size, uniform, buffers, layout, bind_groups)

    def read(self, index: int) -> torch.Tensor:
        """Copy buffer *index* (0 = A, 1 = B) back as an ``(N, N)`` uint8 tensor."""
        data = self._device.queue.read_buffer(self.buffers[index])
        cells = np.frombuffer(data, dtype=np.uint32).reshape(self.size, self.size)
        return torch.from_numpy((cells != 0).astype(np.uint8))

    def destroy(self) -> None:
        for buf in self.buffers:
            buf.destroy()
        self.uniform.destroy()
