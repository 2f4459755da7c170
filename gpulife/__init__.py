"""gpulife – Conway's Game of Life running entirely on the GPU (WebGPU).

Every display frame runs one compute pass (the transition rule) and one
render pass (one instanced quad per cell) over a pair of ping-pong grid
buffers.  The host only enqueues work and counts steps.

High-level API:
    gpulife.Life(config)              — open a window and animate (``run()``)
    gpulife.Life(config, headless=True) — offscreen stepping / recording
    gpulife.main(config)              — ``Life(config).run()`` with error reporting
"""

from __future__ import annotations

import sys
import warnings
from typing import Optional

from .config import LifeConfig
from .errors import (DeviceAcquisitionError, DeviceLostError,  # noqa: F401
                     GridAllocationError, LifeError, LifeSetupError,
                     SurfaceConfigurationError, UnsupportedEnvironmentError)
from .grid import BindGroupPair, GridState, seed_grid  # noqa: F401
from .compute import ComputeStage, WORKGROUP_SIZE, workgroup_count  # noqa: F401
from .render import RenderStage  # noqa: F401
from .scheduler import (CanvasDriver, FrameScheduler,  # noqa: F401
                        LifeSession, ManualDriver)
from .recorder import Recorder  # noqa: F401
from .app import Life

__version__ = "0.1.0"


def main(config: Optional[LifeConfig] = None) -> int:
    """Open a window and animate until it is closed.  Returns an exit status.

    A host without WebGPU gets a plain notice on stderr; other setup
    failures are reported as a diagnostic warning.
    """
    try:
        life = Life(config)
    except UnsupportedEnvironmentError as exc:
        print(f"gpulife: {exc}", file=sys.stderr)
        return 2
    except LifeSetupError as exc:
        warnings.warn(f"[gpulife] setup failed: {exc!r}", RuntimeWarning, stacklevel=2)
        return 1

    try:
        life.run()
    except DeviceLostError:
        # already reported by the scheduler
        return 1
    finally:
        life.close()
    return 0
