"""Compute stage — one Game of Life generation per dispatch."""

from __future__ import annotations

import math
from typing import Optional

from .shaders import COMPUTE_ENTRY_POINT, load_shader

# Must match @workgroup_size in compute.wgsl.
WORKGROUP_SIZE = 8


def workgroup_count(size: int, workgroup_size: int = WORKGROUP_SIZE) -> int:
    """Workgroups needed along one axis to cover *size* cells.

    The last workgroup overhangs the grid when *size* is not a multiple
    of *workgroup_size*; the program rejects those invocations itself.
    """
    if size <= 0:
        raise ValueError(f"Grid size must be positive, got {size}")
    return math.ceil(size / workgroup_size)


class ComputeStage:
    """Compute pipeline applying the transition rule.

    Reads binding 1 and writes binding 2 of whichever group it is handed.
    """

    def __init__(self, device, pipeline_layout, grid_size: int, *,
                 shader_source: Optional[str] = None):
        self.grid_size = grid_size
        self.workgroups = workgroup_count(grid_size)
        module = device.create_shader_module(
            label="Simulation Shader",
            code=shader_source if shader_source is not None else load_shader("compute"))
        self.pipeline = device.create_compute_pipeline(
            label="Simulation Pipeline",
            layout=pipeline_layout,
            compute={"module": module, "entry_point": COMPUTE_ENTRY_POINT},
        )

    @property
    def dispatch_size(self) -> tuple:
        """``(x, y, z)`` workgroup counts of one dispatch."""
        return (self.workgroups, self.workgroups, 1)

    def encode(self, encoder, bind_group) -> None:
        """Record one compute pass into *encoder*."""
        compute_pass = encoder.begin_compute_pass(label="Simulation Pass")
        compute_pass.set_pipeline(self.pipeline)
        compute_pass.set_bind_group(0, bind_group)
        compute_pass.dispatch_workgroups(*self.dispatch_size)
        compute_pass.end()
