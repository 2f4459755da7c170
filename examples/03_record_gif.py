"""
03 - Record a GIF
=================
Run headless (no window) and capture every rendered frame to an animated GIF.

Key concepts
------------
- headless=True     : render into an offscreen texture, step with advance()
- start_recording   : read each frame back and hand it to the GIF recorder
- initial=          : start from an explicit pattern instead of random cells
"""

import numpy as np

import gpulife

N = 64

# Gosper glider gun, (row, col) offsets
GUN = [
    (4, 0), (5, 0), (4, 1), (5, 1),
    (4, 10), (5, 10), (6, 10), (3, 11), (7, 11), (2, 12), (8, 12),
    (2, 13), (8, 13), (5, 14), (3, 15), (7, 15), (4, 16), (5, 16), (6, 16), (5, 17),
    (2, 20), (3, 20), (4, 20), (2, 21), (3, 21), (4, 21), (1, 22), (5, 22),
    (0, 24), (1, 24), (5, 24), (6, 24),
    (2, 34), (3, 34), (2, 35), (3, 35),
]

grid = np.zeros((N, N), dtype=np.uint8)
for r, c in GUN:
    grid[N - 12 - r, 2 + c] = 1

config = gpulife.LifeConfig(grid_size=N, width=512, height=512,
                            clear_color=(0.05, 0.05, 0.08, 1.0))

with gpulife.Life(config, initial=grid, headless=True) as life:
    recorder = life.start_recording("glider_gun.gif", fps=20, quality=0.8)
    life.advance(240)
    path = life.stop_recording()
    recorder.wait()
    print(f"wrote {path} ({life.alive_count()} cells alive after {life.step} steps)")
