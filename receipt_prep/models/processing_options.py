from __future__ import annotations
from dataclasses import dataclass, asdict
import os

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables
load_dotenv()

NORMALIZATION_METHODS = ("letterbox", "crop", "stretch", "chunk")


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class ProcessingOptions:
    """
    Value-object holding the border-removal configuration surface.
    Every numeric field is range-checked on construction, so an invalid
    option is rejected before any pixel work begins.
    """
    jpeg_quality: int = 85                  # [1 , 100]
    apply_sharpening: bool = False
    sharpening_strength: float = 1.0        # [0.1 , 3.0]
    apply_contrast: bool = False
    contrast_factor: float = 1.5            # [0.1 , 5.0]
    apply_threshold: bool = False
    threshold_value: int = 128              # [0 , 255]

    def __post_init__(self):
        _check_range("JPEG quality", self.jpeg_quality, 1, 100)
        _check_range("Sharpening strength", self.sharpening_strength, 0.1, 3.0)
        _check_range("Contrast factor", self.contrast_factor, 0.1, 5.0)
        _check_range("Threshold value", self.threshold_value, 0, 255)

    @classmethod
    def from_env(cls, **overrides) -> "ProcessingOptions":
        """Defaults from the environment, explicit keyword arguments win."""
        values = {"jpeg_quality": int(os.getenv("JPEG_QUALITY", "85"))}
        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class NormalizationOptions:
    """Resize settings for preparing images for the vision model."""
    target_width: int = 896
    target_height: int = 896
    method: str = "letterbox"
    background_color: tuple = (255, 255, 255, 255)
    jpeg_quality: int = 85
    apply_preprocessing: bool = False
    sharpening_strength: float = 1.0
    contrast_factor: float = 1.5
    threshold_value: int = 128
    chunk_overlap: int = 50
    chunk_threshold: float = 1.5            # height/width ratio that triggers chunking

    def __post_init__(self):
        if self.method not in NORMALIZATION_METHODS:
            raise ConfigurationError(f"Unknown normalization method: {self.method}")
        if self.target_width <= 0 or self.target_height <= 0:
            raise ConfigurationError(
                f"Target size must be positive, got {self.target_width}x{self.target_height}")
        _check_range("JPEG quality", self.jpeg_quality, 1, 100)
        if not 0 <= self.chunk_overlap < self.target_height:
            raise ConfigurationError(
                f"Chunk overlap must be in [0, {self.target_height}), got {self.chunk_overlap}")

    @classmethod
    def from_env(cls, **overrides) -> "NormalizationOptions":
        values = {
            "target_width": int(os.getenv("NORMALIZE_TARGET_WIDTH", "896")),
            "target_height": int(os.getenv("NORMALIZE_TARGET_HEIGHT", "896")),
            "jpeg_quality": int(os.getenv("JPEG_QUALITY", "85")),
            "chunk_overlap": int(os.getenv("CHUNK_OVERLAP", "50")),
        }
        values.update(overrides)
        return cls(**values)
