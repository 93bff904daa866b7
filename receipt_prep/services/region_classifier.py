from typing import Sequence
import os

import numpy as np
from dotenv import load_dotenv

from ..models.image import Image
from ..models.mask import BinaryMask

# Load environment variables
load_dotenv()


def brightness(rgba: Sequence[int]) -> float:
    """Unweighted channel mean, used by every classifier."""
    return (int(rgba[0]) + int(rgba[1]) + int(rgba[2])) / 3.0


class RegionClassifier:
    """
    Per-pixel predicates for receipt paper vs. background vs. ink.

    The scalar predicates are pure functions of one pixel value; the
    *_mask methods apply the same rule to a whole image at once.
    """

    def __init__(self,
                 white_min_brightness: float = None,
                 white_max_color_variation: float = None,
                 content_threshold: float = None,
                 uniform_tolerance: int = None):
        if white_min_brightness is None:
            white_min_brightness = float(os.getenv("WHITE_MIN_BRIGHTNESS", "120"))
        if white_max_color_variation is None:
            white_max_color_variation = float(os.getenv("WHITE_MAX_COLOR_VARIATION", "50"))
        if content_threshold is None:
            content_threshold = float(os.getenv("CONTENT_BRIGHTNESS_THR", "200"))
        if uniform_tolerance is None:
            uniform_tolerance = int(os.getenv("UNIFORM_COLOR_TOLERANCE", "15"))

        self.white_min_brightness = white_min_brightness
        self.white_max_color_variation = white_max_color_variation
        self.content_threshold = content_threshold
        self.uniform_tolerance = uniform_tolerance

    # ---------- scalar predicates ----------
    def is_whitish(self, rgba: Sequence[int]) -> bool:
        r, g, b = int(rgba[0]), int(rgba[1]), int(rgba[2])
        variation = max(r, g, b) - min(r, g, b)
        return brightness(rgba) > self.white_min_brightness and variation < self.white_max_color_variation

    def is_content(self, rgba: Sequence[int], threshold: float = None) -> bool:
        thr = self.content_threshold if threshold is None else threshold
        return brightness(rgba) < thr

    def is_background_uniform(self, rgba: Sequence[int], ref: Sequence[int], tolerance: int = None) -> bool:
        tol = self.uniform_tolerance if tolerance is None else tolerance
        return all(abs(int(rgba[c]) - int(ref[c])) <= tol for c in range(3))

    # ---------- whole-image masks ----------
    def whitish_mask(self, img: Image) -> BinaryMask:
        rgb = img.pixels[:, :, :3].astype(np.int16)
        mean = rgb.sum(axis=2) / 3.0
        variation = rgb.max(axis=2) - rgb.min(axis=2)
        return BinaryMask((mean > self.white_min_brightness) & (variation < self.white_max_color_variation))

    def content_mask(self, img: Image, threshold: float = None) -> BinaryMask:
        thr = self.content_threshold if threshold is None else threshold
        mean = img.pixels[:, :, :3].astype(np.int16).sum(axis=2) / 3.0
        return BinaryMask(mean < thr)

    def uniform_mask(self, img: Image, ref: Sequence[int], tolerance: int = None) -> BinaryMask:
        tol = self.uniform_tolerance if tolerance is None else tolerance
        diff = np.abs(img.pixels[:, :, :3].astype(np.int16) - np.asarray(ref[:3], dtype=np.int16))
        return BinaryMask((diff <= tol).all(axis=2))
