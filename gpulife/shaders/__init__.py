"""WGSL programs for the compute and render stages.

Both programs share bind group 0:

====  ==========================  =========================
slot  resource                    stages
====  ==========================  =========================
0     ``vec2f`` grid size         compute, vertex, fragment
1     ``array<u32>`` input cells  compute, vertex
2     ``array<u32>`` output cells compute
====  ==========================  =========================
"""

from __future__ import annotations

from importlib import resources

COMPUTE_ENTRY_POINT = "mainCompute"
VERTEX_ENTRY_POINT = "mainVert"
FRAGMENT_ENTRY_POINT = "mainFrag"

_SOURCES = ("compute", "render")


def load_shader(name: str) -> str:
    """Return the WGSL source of the packaged program *name*
    (``"compute"`` or ``"render"``)."""
    if name not in _SOURCES:
        raise ValueError(f"Unknown shader '{name}', expected one of {_SOURCES}")
    return resources.files(__name__).joinpath(f"{name}.wgsl").read_text(encoding="utf-8")
