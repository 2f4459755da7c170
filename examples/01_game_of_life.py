"""
01 - Game of Life
=================
A 4096 x 4096 toroidal Game of Life, stepped and drawn entirely on the GPU.

Key concepts
------------
- LifeConfig      : grid size and seed density, fixed at startup
- Ping-pong grid  : two storage buffers swap roles every frame, no host copies
- Instanced quads : one instance per cell; dead cells collapse to nothing
- main()          : opens the window and reports setup failures

Close the window to quit.
"""

import sys

import gpulife

config = gpulife.LifeConfig(
    grid_size=4096,
    fill_probability=0.4,
    width=1920,
    height=1080,
    title="01 - Game of Life",
)

sys.exit(gpulife.main(config))
