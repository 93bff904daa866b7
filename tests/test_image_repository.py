"""
Unit tests for image I/O and pixel access.
"""

import numpy as np
import pytest

from conftest import solid, write_png
from receipt_prep.models.errors import InvalidInputError
from receipt_prep.models.geometry import CropBox
from receipt_prep.models.image import Image
from receipt_prep.services.image_service import ImageService


@pytest.fixture
def service():
    return ImageService()


class TestPixelAccess:

    def test_sample_in_bounds(self, service):
        pixels = solid(4, 5)
        pixels[2, 3] = (10, 20, 30, 40)
        assert service.sample(Image(pixels), 3, 2) == (10, 20, 30, 40)

    @pytest.mark.parametrize("x, y", [(-1, 0), (0, -1), (5, 0), (0, 4)])
    def test_sample_out_of_bounds(self, service, x, y):
        assert service.sample(Image(solid(4, 5, (255, 255, 255, 255))), x, y) == (0, 0, 0, 0)

    def test_brightness_map(self, service):
        pixels = solid(2, 2, (30, 60, 90, 255))
        bright = service.brightness_map(Image(pixels))
        assert bright.shape == (2, 2)
        assert np.all(bright == 60.0)


class TestGeometry:

    def test_crop_is_inclusive_copy(self, service, noisy_image):
        out = service.crop_pixels(noisy_image, CropBox(10, 20, 19, 24))
        assert out.shape == (5, 10, 4)
        out[:] = 0
        assert noisy_image.pixels[20:25, 10:20].any()

    def test_crop_outside_image(self, service, noisy_image):
        with pytest.raises(ValueError):
            service.crop_pixels(noisy_image, CropBox(0, 0, noisy_image.width, 10))

    def test_rotate_expands_canvas(self, service):
        img = Image(solid(100, 200, (255, 255, 255, 255)))
        service.rotate(img, 90)
        assert (img.width, img.height) == (100, 200)

    def test_rotate_fills_with_transparent_black(self, service):
        img = Image(solid(100, 100, (255, 255, 255, 255)))
        service.rotate(img, 45)
        assert img.width > 100
        assert list(img.pixels[0, 0]) == [0, 0, 0, 0]

    def test_resize(self, service):
        assert service.resize_pixels(solid(100, 200), 50, 25).shape == (25, 50, 4)


class TestFiles:

    def test_load_converts_to_rgba(self, service, tmp_path):
        pixels = solid(10, 12, (200, 100, 50, 255))
        img = service.load(write_png(tmp_path / "a.png", pixels))
        assert img.pixels.shape == (10, 12, 4)
        assert list(img.pixels[0, 0]) == [200, 100, 50, 255]
        assert img.path == tmp_path / "a.png"

    def test_decode_garbage(self, service):
        with pytest.raises(InvalidInputError):
            service.decode(b"")

    def test_save_writes_jpeg_to_own_path(self, service, tmp_path):
        img = Image(solid(20, 30, (255, 255, 255, 255)), tmp_path / "nested" / "out.jpg")
        path = service.save(img, quality=80)
        assert path.read_bytes()[:2] == b"\xff\xd8"
        assert service.load(path).pixels.shape == (20, 30, 4)

    def test_save_without_path(self, service):
        with pytest.raises(ValueError):
            service.save(Image(solid(2, 2)))

    def test_stream_paths(self, service, tmp_path):
        write_png(tmp_path / "b.png", solid(5, 5))
        write_png(tmp_path / "a.png", solid(5, 5))
        (tmp_path / "notes.txt").write_text("skip me")
        (tmp_path / "sub").mkdir()
        write_png(tmp_path / "sub" / "c.png", solid(5, 5))

        assert [p.name for p in service.stream_paths(tmp_path)] == ["a.png", "b.png"]
        assert [p.name for p in service.stream_paths(tmp_path, recursive=True)] == ["a.png", "b.png", "c.png"]
