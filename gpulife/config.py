"""Simulation parameters (Python-side data holder)."""

from __future__ import annotations

from typing import Optional

_POWER_PREFERENCES = ("high-performance", "low-power")


class LifeConfig:
    """Parameters fixed once at startup.

    Usage::

        cfg = gpulife.LifeConfig(grid_size=1024, seed=7)
        life = gpulife.Life(cfg)
    """

    __slots__ = ("grid_size", "fill_probability", "seed", "min_interval",
                 "clear_color", "width", "height", "title",
                 "power_preference", "force_fallback_adapter")

    def __init__(self, **kwargs):
        self.grid_size: int = 4096
        self.fill_probability: float = 0.4
        self.seed: Optional[int] = None
        self.min_interval: float = 0.0      # seconds between executed ticks
        self.clear_color: tuple = (0.0, 0.0, 0.4, 1.0)
        self.width: int = 1920
        self.height: int = 1080
        self.title: str = "gpulife"
        self.power_preference: str = "high-performance"
        self.force_fallback_adapter: bool = False

        for key, value in kwargs.items():
            if key not in self.__slots__:
                raise TypeError(f"LifeConfig got an unexpected field '{key}'")
            setattr(self, key, value)

    def copy(self, **changes) -> "LifeConfig":
        """Return a copy with *changes* applied."""
        values = {k: getattr(self, k) for k in self.__slots__}
        values.update(changes)
        return LifeConfig(**values)

    def validate(self) -> "LifeConfig":
        """Raise ``ValueError`` on an unusable configuration.  Returns *self*."""
        if isinstance(self.grid_size, bool) or not isinstance(self.grid_size, int):
            raise ValueError(f"grid_size must be an int, got {self.grid_size!r}")
        if self.grid_size <= 0:
            raise ValueError(f"grid_size must be positive, got {self.grid_size}")
        if not 0.0 <= float(self.fill_probability) <= 1.0:
            raise ValueError(
                f"fill_probability must be within [0, 1], got {self.fill_probability}")
        if self.min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {self.min_interval}")
        if len(self.clear_color) != 4:
            raise ValueError(
                f"clear_color needs 4 components (r, g, b, a), got {len(self.clear_color)}")
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Surface size must be positive, got {self.width}x{self.height}")
        if self.power_preference not in _POWER_PREFERENCES:
            raise ValueError(
                f"power_preference must be one of {_POWER_PREFERENCES}, "
                f"got '{self.power_preference}'")
        return self

    def __repr__(self) -> str:
        fields = ", ".join(f"{k}={getattr(self, k)!r}" for k in self.__slots__)
        return f"LifeConfig({fields})"
