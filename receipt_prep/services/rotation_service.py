from dataclasses import replace
import logging
import math
import os

import numpy as np
from dotenv import load_dotenv

from ..models.geometry import ConnectedRegion
from ..models.image import Image
from ..models.rotation_estimate import (
    EDGE_GRADIENT_ANALYSIS,
    INSUFFICIENT_EDGES,
    LARGE_ROTATION_REJECTED,
    RotationEstimate,
)
from .image_service import ImageService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

EDGE_MARGIN = 2  # px kept clear of the image border for the 3×3 kernel


def corrective_rotation(dominant_angle: float) -> float:
    """
    Map a dominant edge orientation in [0, 180] to the rotation that makes
    it axis-aligned, folded once into [-45, 45].

    Orientations just below 180° are nearly horizontal already and need a
    small positive correction (178° → +2°), not a near-90° one.
    """
    rotation = -dominant_angle
    if dominant_angle > 170:
        rotation = -(dominant_angle - 180)

    if rotation > 45:
        rotation -= 90
    if rotation < -45:
        rotation += 90
    return rotation + 0.0


class RotationService:
    """
    Estimates receipt skew from Sobel gradients sampled inside the paper
    region, voting into a magnitude-weighted orientation histogram.

    Positive angles are clockwise corrections as the image is displayed.
    """

    def __init__(self,
                 noise_floor: float = None,
                 bin_size: float = None,
                 min_edges: int = None,
                 sample_divisor: float = None,
                 max_angle: float = None,
                 min_confidence: float = None,
                 min_angle: float = None):
        if noise_floor is None:
            noise_floor = float(os.getenv("ROTATION_NOISE_FLOOR", "10"))
        if bin_size is None:
            bin_size = float(os.getenv("ROTATION_BIN_SIZE", "2"))
        if min_edges is None:
            min_edges = int(os.getenv("ROTATION_MIN_EDGES", "10"))
        if sample_divisor is None:
            sample_divisor = float(os.getenv("ROTATION_SAMPLE_DIVISOR", "50"))
        if max_angle is None:
            max_angle = float(os.getenv("ROTATION_MAX_ANGLE", "75"))
        if min_confidence is None:
            min_confidence = float(os.getenv("ROTATION_MIN_CONFIDENCE", "0.02"))
        if min_angle is None:
            min_angle = float(os.getenv("ROTATION_MIN_ANGLE", "2"))

        self.noise_floor = noise_floor
        self.bin_size = bin_size
        self.min_edges = min_edges
        self.sample_divisor = sample_divisor
        self.max_angle = max_angle
        self.min_confidence = min_confidence
        self.min_angle = min_angle
        self.image_service = ImageService()

    # ─── Public API ────────────────────────────────────────────────
    def estimate(self, img: Image, region: ConnectedRegion) -> RotationEstimate:
        gx, gy = self._sobel_at_samples(img, region)
        magnitude = np.hypot(gx, gy)
        strong = magnitude > self.noise_floor

        n_edges = int(np.count_nonzero(strong))
        logger.debug(f"Found {n_edges} edge gradients")
        if n_edges < self.min_edges:
            return RotationEstimate(angle=0.0, confidence=0.0, method=INSUFFICIENT_EDGES)

        angles = np.degrees(np.arctan2(gy[strong], gx[strong]))
        weights = magnitude[strong]

        dominant, confidence = self._dominant_orientation(angles, weights)

        rotation = corrective_rotation(dominant)
        if abs(rotation) > self.max_angle:
            logger.info(f"Large rotation detected ({rotation:.1f}°), likely misdetection")
            return RotationEstimate(angle=0.0, confidence=0.0, method=LARGE_ROTATION_REJECTED)

        while rotation > 45:
            rotation -= 90
        while rotation < -45:
            rotation += 90

        logger.debug(f"Dominant angle: {dominant}°, rotation needed: {rotation}°, "
                     f"confidence: {confidence:.2f}")
        return RotationEstimate(angle=float(rotation), confidence=confidence,
                                method=EDGE_GRADIENT_ANALYSIS)

    def accept(self, estimate: RotationEstimate) -> RotationEstimate:
        """Mark the estimate accepted when both confidence and |angle| reach their minimums."""
        ok = estimate.confidence >= self.min_confidence and abs(estimate.angle) >= self.min_angle
        return replace(estimate, accepted=ok)

    # ─── Internal helpers ──────────────────────────────────────────
    def _sobel_at_samples(self, img: Image, region: ConnectedRegion):
        if region.is_empty():
            empty = np.empty(0, dtype=np.float64)
            return empty, empty

        h, w = self.image_service.get_image_dimensions(img)
        stride = max(1, int(math.floor(math.sqrt(region.size) / self.sample_divisor)))
        xs, ys = region.xs[::stride], region.ys[::stride]

        inside = ((xs >= EDGE_MARGIN) & (xs < w - EDGE_MARGIN) &
                  (ys >= EDGE_MARGIN) & (ys < h - EDGE_MARGIN))
        xs, ys = xs[inside], ys[inside]

        bright = self.image_service.brightness_map(img)

        def b(dx: int, dy: int) -> np.ndarray:
            return bright[ys + dy, xs + dx]

        gx = (-b(-1, -1) - 2 * b(-1, 0) - b(-1, 1)
              + b(1, -1) + 2 * b(1, 0) + b(1, 1))
        gy = (-b(-1, -1) - 2 * b(0, -1) - b(1, -1)
              + b(-1, 1) + 2 * b(0, 1) + b(1, 1))
        return gx, gy

    def _dominant_orientation(self, angles: np.ndarray, weights: np.ndarray):
        """
        Fold directions into orientations in [0, 180), bucket them and
        return (heaviest bucket angle, its share of the total weight).
        """
        orientation = np.where(angles < 0, angles + 180.0, angles)
        orientation = np.where(orientation >= 180.0, orientation - 180.0, orientation)

        # round-half-up, so 1.0° lands in the 2° bucket
        buckets = np.floor(orientation / self.bin_size + 0.5) * self.bin_size
        keys, inverse = np.unique(buckets, return_inverse=True)
        totals = np.bincount(inverse.ravel(), weights=weights)

        best = int(np.argmax(totals))  # ties → smallest bucket angle
        total = float(totals.sum())
        confidence = float(totals[best]) / total if total > 0 else 0.0
        return float(keys[best]), confidence
