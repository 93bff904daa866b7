from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import time

from .geometry import CropBox
from .image import Image
from .rotation_estimate import RotationEstimate


@dataclass
class ProcessingMetrics:
    """
    Explicit timing context threaded through one run.
    Holds named stage durations in milliseconds.
    """
    timings: Dict[str, float] = field(default_factory=dict)

    @contextmanager
    def stage(self, name: str):
        start = time.perf_counter()
        try:
            yield
        finally:
            self.timings[name] = self.timings.get(name, 0.0) + (time.perf_counter() - start) * 1000.0

    def merge(self, other: "ProcessingMetrics") -> None:
        for name, ms in other.timings.items():
            self.timings[name] = self.timings.get(name, 0.0) + ms

    @property
    def total_ms(self) -> float:
        return sum(self.timings.values())


@dataclass
class BorderRemovalResult:
    """Everything the caller needs for logging/metrics after one border-removal run."""
    original_size: Tuple[int, int]          # (width, height)
    current_size: Tuple[int, int]           # after optional rotation
    cropped_size: Tuple[int, int]
    region_bounds: Tuple[int, int, int, int]  # (min_x, min_y, max_x, max_y) before padding
    crop_box: CropBox
    rotation: RotationEstimate
    white_pixels: int
    white_percentage: float
    retained_percentage: float
    largest_region_size: int
    image: Image
    encoded: bytes = b""
    metrics: ProcessingMetrics = field(default_factory=ProcessingMetrics)

    def to_dict(self) -> dict:
        return {
            "original_dimensions": {"width": self.original_size[0], "height": self.original_size[1]},
            "current_dimensions": {"width": self.current_size[0], "height": self.current_size[1]},
            "cropped_dimensions": {"width": self.cropped_size[0], "height": self.cropped_size[1]},
            "content_bounds": dict(zip(("min_x", "min_y", "max_x", "max_y"), self.region_bounds)),
            "crop_bounds": self.crop_box.as_dict(),
            "rotation": self.rotation.to_dict(),
            "statistics": {
                "white_pixels": self.white_pixels,
                "white_percentage": round(self.white_percentage, 2),
                "retained_percentage": round(self.retained_percentage, 2),
                "largest_white_area": self.largest_region_size,
            },
            "output_size": len(self.encoded),
            "timings_ms": {k: round(v, 2) for k, v in self.metrics.timings.items()},
        }


@dataclass
class NormalizationResult:
    original_size: Tuple[int, int]
    normalized_size: Tuple[int, int]
    method: str
    aspect_ratio_preserved: bool
    scale_factor: float
    images: List[Image] = field(default_factory=list)
    encoded: List[bytes] = field(default_factory=list)
    chunks_planned: Optional[int] = None

    @property
    def is_chunked(self) -> bool:
        return self.method == "chunk"

    @property
    def output_size(self) -> int:
        return sum(len(b) for b in self.encoded)

    def to_dict(self) -> dict:
        return {
            "original_dimensions": {"width": self.original_size[0], "height": self.original_size[1]},
            "normalized_dimensions": {"width": self.normalized_size[0], "height": self.normalized_size[1]},
            "method": self.method,
            "aspect_ratio_preserved": self.aspect_ratio_preserved,
            "scale_factor": round(self.scale_factor, 4),
            "output_size": self.output_size,
            "chunks_created": len(self.images) if self.is_chunked else None,
            "chunks_planned": self.chunks_planned,
        }
