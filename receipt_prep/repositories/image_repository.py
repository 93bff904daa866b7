from io import BytesIO
from pathlib import Path
from typing import Iterable, Iterator, Tuple, Union
import logging
import os

import cv2
import numpy as np
from PIL import Image as PILImage
from dotenv import load_dotenv

from ..models.errors import InvalidInputError
from ..models.geometry import CropBox
from ..models.image import Image

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

RGBA = Tuple[int, int, int, int]
OUT_OF_BOUNDS: RGBA = (0, 0, 0, 0)


class ImageRepository:
    """
    Handles file I/O and pixel-level access for Image entities.
    All OpenCV / Pillow calls for decoding, encoding and geometry live here.
    """
    def __init__(self):
        self.VALID_EXTS = {
            ext.strip().lower()
            for ext in os.getenv("VALID_IMAGE_EXTENSIONS", ".jpg,.jpeg,.png,.bmp,.webp,.tif,.tiff").split(",")
        }

    @staticmethod
    def create_image(pixels: np.ndarray, path: Union[str, Path] = None) -> Image:
        if path is None:
            return Image(pixels)
        return Image(pixels=pixels, path=Path(path))

    @staticmethod
    def retrieve_image_dimensions(img: Image) -> Tuple[int, int]:
        """(height, width), numpy order."""
        return img.pixels.shape[:2]

    # ─── Decoding ─────────────────────────────────────────────────────
    @staticmethod
    def _to_rgba(arr_bgr: np.ndarray) -> np.ndarray:
        return cv2.cvtColor(arr_bgr, cv2.COLOR_BGR2RGBA)

    @staticmethod
    def _check_dimensions(pixels: np.ndarray, source) -> None:
        if pixels.ndim < 2 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidInputError(f"Image has zero dimensions: {source}")

    def load(self, path: Union[str, Path]) -> Image:
        path = Path(path)
        if not path.is_file():
            raise InvalidInputError(f"Image not found: {path}")

        arr_bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if arr_bgr is None:
            raise InvalidInputError(f"Image unreadable or corrupt: {path}")

        self._check_dimensions(arr_bgr, path)
        return Image(pixels=self._to_rgba(arr_bgr), path=path)

    def decode(self, data: bytes, path: Union[str, Path] = None) -> Image:
        """Decode an in-memory encoded image (upload body, test fixture...)."""
        buf = np.frombuffer(data, dtype=np.uint8)
        arr_bgr = cv2.imdecode(buf, cv2.IMREAD_COLOR) if buf.size else None
        if arr_bgr is None:
            raise InvalidInputError("Image data unreadable or corrupt")

        self._check_dimensions(arr_bgr, path or "<bytes>")
        return self.create_image(self._to_rgba(arr_bgr), path)

    # ─── Encoding ─────────────────────────────────────────────────────
    @staticmethod
    def encode_jpeg(image: Image, quality: int) -> bytes:
        rgb = np.ascontiguousarray(image.pixels[:, :, :3])
        buffer = BytesIO()
        PILImage.fromarray(rgb).save(buffer, format="JPEG", quality=int(quality))
        return buffer.getvalue()

    @staticmethod
    def write_bytes(data: bytes, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return path

    def save(self, image: Image, quality: int = 85) -> Path:
        if image.path is None:
            raise ValueError("Image has no path to save to")
        return self.write_bytes(self.encode_jpeg(image, quality), image.path)

    @staticmethod
    def set_pixels(image: Image, new_pixels: np.ndarray) -> None:
        image.pixels = new_pixels

    # ─── Pixel access ─────────────────────────────────────────────────
    @staticmethod
    def sample(image: Image, x: int, y: int) -> RGBA:
        """
        0-based pixel read. Out-of-bounds reads return transparent black
        instead of failing; kernels and neighborhoods rely on that.
        """
        h, w = image.pixels.shape[:2]
        if x < 0 or x >= w or y < 0 or y >= h:
            return OUT_OF_BOUNDS
        r, g, b, a = image.pixels[y, x]
        return int(r), int(g), int(b), int(a)

    @staticmethod
    def brightness_map(image: Image) -> np.ndarray:
        """(R+G+B)/3 of every pixel as float64, shape (H, W)."""
        return image.pixels[:, :, :3].astype(np.float64).sum(axis=2) / 3.0

    # ─── Geometry ─────────────────────────────────────────────────────
    @staticmethod
    def crop(image: Image, box: CropBox) -> np.ndarray:
        h, w = image.pixels.shape[:2]
        if not box.fits(w, h):
            raise ValueError(f"Crop box {box.as_dict()} does not fit a {w}x{h} image")
        return image.pixels[box.top:box.bottom + 1, box.left:box.right + 1].copy()

    @staticmethod
    def rotate_expanded(image: Image, angle: float) -> np.ndarray:
        """
        Rotate by `angle` degrees (positive = clockwise as displayed) onto a
        canvas grown to fit every rotated corner. New area is transparent black.
        """
        h, w = image.pixels.shape[:2]
        # OpenCV's positive angle is counter-clockwise
        m = cv2.getRotationMatrix2D((w / 2.0, h / 2.0), -angle, 1.0)
        cos, sin = abs(m[0, 0]), abs(m[0, 1])
        new_w = int(round(h * sin + w * cos))
        new_h = int(round(h * cos + w * sin))
        m[0, 2] += new_w / 2.0 - w / 2.0
        m[1, 2] += new_h / 2.0 - h / 2.0
        return cv2.warpAffine(
            image.pixels, m, (new_w, new_h),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )

    @staticmethod
    def resize(pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        src_h, src_w = pixels.shape[:2]
        shrinking = width * height < src_w * src_h
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        return cv2.resize(pixels, (width, height), interpolation=interpolation)

    # ─── Directory streaming ──────────────────────────────────────────
    def iter_paths(
        self,
        folder: Union[str, Path],
        *,
        recursive: bool = False,
        exts: Iterable[str] | None = None,
    ) -> Iterator[Path]:
        """
        Yield image file paths one at a time. Decoding is left to the caller
        so one bad file cannot abort a whole batch.
        """
        folder = Path(folder)
        if not folder.is_dir():
            raise NotADirectoryError(folder)

        allowed = {e.lower() for e in (exts or self.VALID_EXTS)}
        pattern = "**/*" if recursive else "*"

        for p in sorted(folder.glob(pattern)):
            if not p.is_file():
                continue
            if p.suffix.lower() not in allowed:
                logger.debug(f"Skipping due to extension: {p}")
                continue
            yield p
