from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass
class BinaryMask:
    """
    Boolean classification of every pixel of one image snapshot.
    Only valid for the image generation it was computed from.
    """
    values: np.ndarray # Shape (H, W), dtype bool.

    @property
    def width(self) -> int:
        return int(self.values.shape[1])

    @property
    def height(self) -> int:
        return int(self.values.shape[0])

    @property
    def count(self) -> int:
        return int(np.count_nonzero(self.values))

    def __getitem__(self, xy) -> bool:
        x, y = xy
        return bool(self.values[y, x])
