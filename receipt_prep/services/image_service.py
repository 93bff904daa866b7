from pathlib import Path
from typing import Iterable, Iterator, Tuple, Union
import logging

import numpy as np

from ..models.geometry import CropBox
from ..models.image import Image
from ..repositories.image_repository import ImageRepository, RGBA

logger = logging.getLogger(__name__)


class ImageService:
    """I/O and geometry helpers.  No detection logic here."""
    def __init__(self):
        self.image_repository = ImageRepository()

    def create_image(self, pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        return self.image_repository.create_image(pixels, path)

    def load(self, path: Union[str, Path]) -> Image:
        """Load a single image from disk into an RGBA Image object."""
        return self.image_repository.load(path)

    def decode(self, data: bytes, path: Union[str, Path] = None) -> Image:
        return self.image_repository.decode(data, path)

    def stream_paths(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Path]:
        """
        Yield image paths lazily instead of returning a gigantic list.
        """
        return self.image_repository.iter_paths(folder, recursive=recursive, exts=exts)

    def encode_jpeg(self, image: Image, quality: int) -> bytes:
        return self.image_repository.encode_jpeg(image, quality)

    def write_bytes(self, data: bytes, path: Union[str, Path]) -> Path:
        return self.image_repository.write_bytes(data, path)

    def save(self, image: Image, quality: int = 85) -> Path:
        """
        Business-level method to save the image to its own path.
        """
        return self.image_repository.save(image, quality)

    def update_pixels(self, image: Image, new_pixels: np.ndarray) -> None:
        """
        Business-level method to replace the current image pixels.
        """
        self.image_repository.set_pixels(image, new_pixels)

    def sample(self, image: Image, x: int, y: int) -> RGBA:
        return self.image_repository.sample(image, x, y)

    def brightness_map(self, image: Image) -> np.ndarray:
        return self.image_repository.brightness_map(image)

    def get_image_dimensions(self, img: Image) -> Tuple[int, int]:
        return self.image_repository.retrieve_image_dimensions(img)

    def crop_pixels(self, img: Image, box: CropBox) -> np.ndarray:
        logger.debug(f"Crop bounds=({box.left},{box.top},{box.right},{box.bottom}) "
                     f"→ {box.width}x{box.height}")
        return self.image_repository.crop(img, box)

    def rotate(self, img: Image, angle: float) -> None:
        """Rotate in place with an expanded canvas; the old pixel buffer is dropped."""
        self.update_pixels(img, self.image_repository.rotate_expanded(img, angle))

    def resize_pixels(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        return self.image_repository.resize(pixels, width, height)

    @staticmethod
    def blank_canvas(width: int, height: int, color: Tuple[int, int, int, int]) -> np.ndarray:
        canvas = np.empty((height, width, 4), dtype=np.uint8)
        canvas[:, :] = color
        return canvas
