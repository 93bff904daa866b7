import logging

import cv2
import numpy as np

from ..models.image import Image
from ..models.processing_options import ProcessingOptions
from .image_service import ImageService

logger = logging.getLogger(__name__)

# Laplacian-based sharpening kernel
SHARPEN_KERNEL = np.array([[0, -1, 0],
                           [-1, 5, -1],
                           [0, -1, 0]], dtype=np.float64)


def _round_to_u8(values: np.ndarray) -> np.ndarray:
    """Clamp to [0, 255] and round half up."""
    return np.floor(np.clip(values, 0, 255) + 0.5).astype(np.uint8)


class FilterService:
    """
    Optional post-crop filters. Each returns a *new* Image; the input
    buffer is only ever read. Alpha is carried through untouched.
    """

    def __init__(self):
        self.image_service = ImageService()

    def sharpen(self, img: Image, strength: float) -> Image:
        """
        Unsharp mask: out = orig + (kernel(orig) − orig) × strength.
        The 1 px frame keeps its original values.
        """
        out = img.pixels.copy()
        h, w = out.shape[:2]
        if h < 3 or w < 3:
            return self.image_service.create_image(out, img.path)

        rgb = img.pixels[:, :, :3].astype(np.float64)
        convolved = cv2.filter2D(rgb, cv2.CV_64F, SHARPEN_KERNEL, borderType=cv2.BORDER_REPLICATE)
        blended = rgb + (convolved - rgb) * strength
        out[1:-1, 1:-1, :3] = _round_to_u8(blended[1:-1, 1:-1])
        return self.image_service.create_image(out, img.path)

    def adjust_contrast(self, img: Image, factor: float) -> Image:
        out = img.pixels.copy()
        rgb = out[:, :, :3].astype(np.float64)
        out[:, :, :3] = _round_to_u8((rgb - 128.0) * factor + 128.0)
        return self.image_service.create_image(out, img.path)

    def threshold(self, img: Image, value: float) -> Image:
        out = img.pixels.copy()
        bright = self.image_service.brightness_map(img)
        binary = np.where(bright >= value, 255, 0).astype(np.uint8)
        out[:, :, :3] = binary[:, :, None]
        return self.image_service.create_image(out, img.path)

    def apply(self, img: Image, options: ProcessingOptions) -> Image:
        """Enabled filters in fixed order: sharpen → contrast → threshold."""
        if options.apply_sharpening:
            logger.info(f"Applying sharpening (strength: {options.sharpening_strength})")
            img = self.sharpen(img, options.sharpening_strength)
        if options.apply_contrast:
            logger.info(f"Applying contrast enhancement (factor: {options.contrast_factor})")
            img = self.adjust_contrast(img, options.contrast_factor)
        if options.apply_threshold:
            logger.info(f"Applying threshold transformation (threshold: {options.threshold_value})")
            img = self.threshold(img, options.threshold_value)
        return img
