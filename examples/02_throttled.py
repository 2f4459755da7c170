"""
02 - Throttled simulation
=========================
Same automaton on a smaller grid, limited to 10 generations per second
regardless of the display refresh rate.

Key concepts
------------
- min_interval      : ticks arriving sooner are skipped (the frame is not
                      redrawn), the next refresh is still requested
- scheduler hooks   : ``after_step`` runs on the host after each submitted step
- seed              : the same seed always produces the same run
"""

import gpulife

config = gpulife.LifeConfig(
    grid_size=256,
    seed=2024,
    min_interval=0.1,
    width=800,
    height=800,
    title="02 - Throttled",
)

life = gpulife.Life(config)


@life.scheduler.after_step
def report(step):
    if step % 50 == 0:
        print(f"generation {step}")


try:
    life.run()
finally:
    life.close()
