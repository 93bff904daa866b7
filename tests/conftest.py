"""
Synthetic receipt photos shared by the test modules.
"""

import cv2
import numpy as np
import pytest

from receipt_prep.models.image import Image

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
INK = (30, 30, 30, 255)


def solid(height: int, width: int, color=BLACK) -> np.ndarray:
    pixels = np.empty((height, width, 4), dtype=np.uint8)
    pixels[:, :] = color
    return pixels


def write_png(path, pixels: np.ndarray):
    cv2.imwrite(str(path), cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGR))
    return path


@pytest.fixture
def framed_receipt() -> Image:
    """
    1000x1600 photo: 20 px black margin around white paper (x 20-979,
    y 20-1579) holding a 100x50 dark block at its center (x 450-549, y 775-824).
    """
    pixels = solid(1600, 1000)
    pixels[20:1580, 20:980] = WHITE
    pixels[775:825, 450:550] = INK
    return Image(pixels)


@pytest.fixture
def edge_bar_receipt(framed_receipt) -> Image:
    """framed_receipt plus a heading bar (x 20-499, y 100-120) running into the paper's left edge."""
    pixels = framed_receipt.pixels.copy()
    pixels[100:121, 20:500] = INK
    return Image(pixels)


@pytest.fixture
def blank_paper() -> Image:
    """400x300 photo: 40 px dark margin around blank white paper."""
    pixels = solid(300, 400, (25, 25, 25, 255))
    pixels[40:260, 40:360] = WHITE
    return Image(pixels)


@pytest.fixture
def gray_scan() -> Image:
    """100x80 flat gray scan with white paper at x 30-69, y 20-49."""
    pixels = solid(80, 100, (90, 90, 90, 255))
    pixels[20:50, 30:70] = WHITE
    return Image(pixels)


@pytest.fixture
def dark_photo() -> Image:
    return Image(solid(120, 160, (40, 40, 40, 255)))


@pytest.fixture
def tilted_receipt() -> Image:
    """
    500x700 paper with ten horizontal dark bars, turned 10° counter-clockwise
    (as displayed) on a 900x900 black background.
    """
    pixels = solid(900, 900)
    pixels[100:800, 200:700] = WHITE
    for i in range(10):
        top = 200 + i * 50
        pixels[top:top + 12, 300:600] = (20, 20, 20, 255)

    m = cv2.getRotationMatrix2D((450, 450), 10, 1.0)
    rotated = cv2.warpAffine(pixels, m, (900, 900), flags=cv2.INTER_LINEAR,
                             borderMode=cv2.BORDER_CONSTANT, borderValue=BLACK)
    return Image(rotated)


@pytest.fixture
def tall_receipt() -> Image:
    """Long receipt: 300x1500 paper on a 400x1600 photo, ink near the top and the bottom."""
    pixels = solid(1600, 400)
    pixels[50:1550, 50:350] = WHITE
    pixels[150:160, 100:300] = INK
    pixels[1440:1450, 100:300] = INK
    return Image(pixels)


@pytest.fixture
def noisy_image() -> Image:
    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=(160, 200, 4), dtype=np.uint8)
    pixels[:, :, 3] = 255
    return Image(pixels)
