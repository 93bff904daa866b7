import logging
import os

import cv2
import numpy as np
from dotenv import load_dotenv

from ..models.geometry import ConnectedRegion, CropBox
from ..models.image import Image
from .image_service import ImageService

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

_NEIGHBORHOOD = np.ones((3, 3), np.uint8)


class ContentBoundsService:
    """
    Tightens the paper region's bounding box to the part that actually
    carries ink (text, logos, barcodes), then pads it.
    """

    def __init__(self, content_threshold: float = None, padding: int = None):
        if content_threshold is None:
            content_threshold = float(os.getenv("CONTENT_BRIGHTNESS_THR", "200"))
        if padding is None:
            padding = int(os.getenv("CROP_PADDING", "5"))
        self.content_threshold = content_threshold
        self.padding = padding
        self.image_service = ImageService()

    def content_bounds(self, img: Image, region: ConnectedRegion):
        """
        (min_x, min_y, max_x, max_y) of region points with a dark pixel in
        their 3×3 neighborhood, or the raw region bounds if none has one.
        Region must be non-empty.
        """
        min_x, min_y, max_x, max_y = region.bounds()
        h, w = self.image_service.get_image_dimensions(img)

        # Window = region bbox grown by 1 px, so its outer ring is never region
        wx0, wy0 = min_x - 1, min_y - 1
        win_w, win_h = max_x - min_x + 3, max_y - min_y + 3

        in_region = np.zeros((win_h, win_w), dtype=bool)
        in_region[region.ys - wy0, region.xs - wx0] = True

        # Pixels outside the image are never ink
        dark = np.zeros((win_h, win_w), dtype=bool)
        sx0, sy0 = max(wx0, 0), max(wy0, 0)
        sx1, sy1 = min(wx0 + win_w, w), min(wy0 + win_h, h)
        bright = self.image_service.brightness_map(img)[sy0:sy1, sx0:sx1]
        dark[sy0 - wy0:sy1 - wy0, sx0 - wx0:sx1 - wx0] = bright < self.content_threshold

        inside = self._hull_fill(region, wx0, wy0, in_region)
        ink = (dark & inside).astype(np.uint8)
        has_content = in_region & (cv2.dilate(ink, _NEIGHBORHOOD) > 0)

        ys, xs = np.nonzero(has_content)
        if xs.size == 0:
            logger.debug("No content boundaries found, using white area boundaries")
            return min_x, min_y, max_x, max_y

        bounds = (int(xs.min()) + wx0, int(ys.min()) + wy0, int(xs.max()) + wx0, int(ys.max()) + wy0)
        logger.debug(f"Content boundaries: ({bounds[0]}, {bounds[1]}) to ({bounds[2]}, {bounds[3]})")
        return bounds

    def refine(self, img: Image, region: ConnectedRegion) -> CropBox:
        min_x, min_y, max_x, max_y = self.content_bounds(img, region)
        return self.pad(min_x, min_y, max_x, max_y, img.width, img.height)

    def pad(self, min_x: int, min_y: int, max_x: int, max_y: int, width: int, height: int) -> CropBox:
        return CropBox(
            left=max(0, min_x - self.padding),
            top=max(0, min_y - self.padding),
            right=min(width - 1, max_x + self.padding),
            bottom=min(height - 1, max_y + self.padding),
        )

    @staticmethod
    def _hull_fill(region: ConnectedRegion, wx0: int, wy0: int, in_region: np.ndarray) -> np.ndarray:
        """
        Filled convex hull of the region in window coordinates. Dark pixels
        outside it belong to the photo background, not the receipt.
        """
        points = np.column_stack((region.xs - wx0, region.ys - wy0)).astype(np.int32)
        hull = cv2.convexHull(points)
        filled = np.zeros(in_region.shape, dtype=np.uint8)
        cv2.fillPoly(filled, [hull], 1)
        return (filled > 0) | in_region
