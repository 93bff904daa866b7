from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple
import numpy as np


@dataclass(frozen=True)
class Point:
    x: int
    y: int


@dataclass(frozen=True)
class CropBox:
    """
    Inclusive rectangle in pixel coordinates of the *current* image
    generation (post-rotation if a rotation happened).
    """
    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def fits(self, width: int, height: int) -> bool:
        return 0 <= self.left <= self.right < width and 0 <= self.top <= self.bottom < height

    def as_dict(self) -> dict:
        return {"left": self.left, "top": self.top, "right": self.right, "bottom": self.bottom}


@dataclass
class ConnectedRegion:
    """
    Set of 8-connected mask points, stored as parallel coordinate arrays
    in row-major order. Size and bounds are derived, never stored.
    """
    xs: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))
    ys: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.int64))

    @property
    def size(self) -> int:
        return int(self.xs.size)

    def is_empty(self) -> bool:
        return self.size == 0

    def bounds(self) -> Tuple[int, int, int, int]:
        """(min_x, min_y, max_x, max_y) of the region. Region must be non-empty."""
        if self.is_empty():
            raise ValueError("Empty region has no bounds")
        return int(self.xs.min()), int(self.ys.min()), int(self.xs.max()), int(self.ys.max())

    def point_at(self, index: int) -> Point:
        return Point(int(self.xs[index]), int(self.ys[index]))
