import logging

import numpy as np

from ..models.geometry import CropBox
from ..models.image import Image
from .image_service import ImageService
from .region_classifier import RegionClassifier

logger = logging.getLogger(__name__)


class UniformBorderService:
    """
    Alternate border strategy for scans on a flat, uniform background.

    The top-left pixel is taken as the border color; whole rows and then
    whole columns are peeled off while nearly all of their pixels match it.
    """

    def __init__(self,
                 classifier: RegionClassifier = None,
                 pixel_tolerance: float = 0.95,
                 max_border_ratio: float = 0.3):
        self.classifier = classifier or RegionClassifier()
        self.pixel_tolerance = pixel_tolerance
        self.max_border_ratio = max_border_ratio
        self.image_service = ImageService()

    def detect(self, img: Image, tolerance: int = None) -> CropBox:
        h, w = self.image_service.get_image_dimensions(img)
        ref = self.image_service.sample(img, 0, 0)
        uniform = self.classifier.uniform_mask(img, ref, tolerance).values

        row_limit = int(np.floor(h * self.max_border_ratio))
        col_limit = int(np.floor(w * self.max_border_ratio))
        row_share = uniform.mean(axis=1)

        top = 0
        for y in range(row_limit):
            if row_share[y] < self.pixel_tolerance:
                break
            top = y + 1

        bottom = h - 1
        for y in range(h - 1, max(0, h - row_limit) - 1, -1):
            if row_share[y] < self.pixel_tolerance:
                break
            bottom = y - 1

        top = min(top, h - 1)
        bottom = max(bottom, top)

        col_share = uniform[top:bottom + 1].mean(axis=0)

        left = 0
        for x in range(col_limit):
            if col_share[x] < self.pixel_tolerance:
                break
            left = x + 1

        right = w - 1
        for x in range(w - 1, w - col_limit - 1, -1):
            if col_share[x] < self.pixel_tolerance:
                break
            right = x - 1

        left = min(left, w - 1)
        right = max(right, left)

        box = CropBox(left=left, top=top, right=right, bottom=bottom)
        logger.info(f"Uniform borders: top={top}, bottom={h - 1 - bottom}, "
                    f"left={left}, right={w - 1 - right} (color RGB{ref[:3]})")
        return box

    def remove(self, img: Image, tolerance: int = None) -> Image:
        box = self.detect(img, tolerance)
        return self.image_service.create_image(self.image_service.crop_pixels(img, box), img.path)
