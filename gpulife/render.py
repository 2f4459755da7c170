"""Render stage — draw one instanced quad per cell."""

from __future__ import annotations

from typing import Optional

import numpy as np
import wgpu

from .shaders import FRAGMENT_ENTRY_POINT, VERTEX_ENTRY_POINT, load_shader

# Two triangles, inset so neighbouring live cells stay distinguishable.
QUAD_VERTICES = np.array([
    -0.8,  0.8,
     0.8,  0.8,
    -0.8, -0.8,
    -0.8, -0.8,
     0.8, -0.8,
     0.8,  0.8,
], dtype=np.float32)

QUAD_VERTEX_COUNT = len(QUAD_VERTICES) // 2

DEFAULT_CLEAR_COLOR = (0.0, 0.0, 0.4, 1.0)

_VERTEX_BUFFER_LAYOUT = {
    "array_stride": 2 * 4,
    "step_mode": wgpu.VertexStepMode.vertex,
    "attributes": [
        {"format": wgpu.VertexFormat.float32x2, "offset": 0, "shader_location": 0},
    ],
}


class RenderStage:
    """Render pipeline drawing ``grid_size ** 2`` instances of the cell quad.

    The vertex program looks up each instance's state in binding 1, so the
    group handed to :meth:`encode` must be the one whose read slot holds
    the freshly computed generation.
    """

    def __init__(self, device, pipeline_layout, grid_size: int, color_format, *,
                 clear_color=DEFAULT_CLEAR_COLOR, shader_source: Optional[str] = None):
        if len(clear_color) != 4:
            raise ValueError(f"clear_color needs 4 components, got {len(clear_color)}")
        self.grid_size = grid_size
        self.clear_color = tuple(float(c) for c in clear_color)
        self.vertex_buffer = device.create_buffer_with_data(
            label="Cell Vertices", data=QUAD_VERTICES, usage=wgpu.BufferUsage.VERTEX)

        module = device.create_shader_module(
            label="Cell Shader",
            code=shader_source if shader_source is not None else load_shader("render"))
        self.pipeline = device.create_render_pipeline(
            label="Cell Pipeline",
            layout=pipeline_layout,
            vertex={
                "module": module,
                "entry_point": VERTEX_ENTRY_POINT,
                "buffers": [_VERTEX_BUFFER_LAYOUT],
            },
            primitive={"topology": wgpu.PrimitiveTopology.triangle_list},
            fragment={
                "module": module,
                "entry_point": FRAGMENT_ENTRY_POINT,
                "targets": [{"format": color_format}],
            },
        )

    @property
    def instance_count(self) -> int:
        return self.grid_size * self.grid_size

    def encode(self, encoder, view, bind_group) -> None:
        """Record one render pass: clear *view*, then draw every cell."""
        render_pass = encoder.begin_render_pass(
            label="Cell Pass",
            color_attachments=[{
                "view": view,
                "clear_value": self.clear_color,
                "load_op": wgpu.LoadOp.clear,
                "store_op": wgpu.StoreOp.store,
            }],
        )
        render_pass.set_pipeline(self.pipeline)
        render_pass.set_vertex_buffer(0, self.vertex_buffer)
        render_pass.set_bind_group(0, bind_group)
        render_pass.draw(QUAD_VERTEX_COUNT, self.instance_count)
        render_pass.end()

    def destroy(self) -> None:
        self.vertex_buffer.destroy()
