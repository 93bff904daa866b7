"""
Unit tests for resizing receipts to the vision model's input size.
"""

import numpy as np
import pytest

from conftest import solid
from receipt_prep.models.image import Image
from receipt_prep.models.processing_options import NormalizationOptions
from receipt_prep.services.normalization_service import NormalizationService


@pytest.fixture
def service():
    return NormalizationService()


class TestResizeMethods:

    def test_letterbox_pads_with_background(self, service):
        result = service.normalize(Image(solid(200, 400)), NormalizationOptions(method="letterbox"))
        out = result.images[0].pixels

        assert out.shape == (896, 896, 4)
        assert result.scale_factor == pytest.approx(2.24)
        assert result.aspect_ratio_preserved
        # 896x448 content centered vertically at y 224-671
        assert list(out[100, 448]) == [255, 255, 255, 255]
        assert list(out[800, 448]) == [255, 255, 255, 255]
        assert list(out[448, 448, :3]) == [0, 0, 0]
        assert not result.is_chunked
        assert len(result.encoded) == 1

    def test_crop_fills_target(self, service):
        result = service.normalize(Image(solid(200, 400)), NormalizationOptions(method="crop"))
        assert result.images[0].pixels.shape == (896, 896, 4)
        assert result.scale_factor == pytest.approx(4.48)
        # every output pixel comes from the source, no padding
        assert not np.any(result.images[0].pixels[:, :, :3])

    def test_stretch_ignores_aspect(self, service):
        result = service.normalize(Image(solid(100, 300)), NormalizationOptions(method="stretch"))
        assert result.normalized_size == (896, 896)
        assert not result.aspect_ratio_preserved

    def test_custom_target(self, service):
        opts = NormalizationOptions(target_width=640, target_height=480)
        result = service.normalize(Image(solid(300, 300)), opts)
        assert result.images[0].pixels.shape == (480, 640, 4)

    def test_preprocessing_thresholds_output(self, service, noisy_image):
        opts = NormalizationOptions(apply_preprocessing=True)
        out = service.normalize(noisy_image, opts).images[0].pixels
        assert set(np.unique(out[:, :, :3])) <= {0, 255}

    def test_input_untouched(self, service, noisy_image):
        before = noisy_image.pixels.copy()
        service.normalize(noisy_image, NormalizationOptions(apply_preprocessing=True))
        assert np.array_equal(noisy_image.pixels, before)


class TestChunking:

    def test_long_receipt_is_chunked_automatically(self, service):
        img = Image(solid(1800, 896))
        assert service.should_chunk(img, NormalizationOptions())

        result = service.normalize(img, NormalizationOptions(method="letterbox"))
        # steps of 846 px: chunks start at 0, 846, 1692; the last is only 108 px tall
        assert result.is_chunked
        assert result.chunks_planned == 3
        assert len(result.images) == 2
        assert len(result.encoded) == 2
        assert result.to_dict()["chunks_created"] == 2
        assert all(chunk.pixels.shape == (896, 896, 4) for chunk in result.images)

    def test_short_receipt_not_chunked(self, service):
        assert not service.should_chunk(Image(solid(1000, 896)), NormalizationOptions())
        # tall aspect but not taller than 1.2x the target
        assert not service.should_chunk(Image(solid(1000, 400)), NormalizationOptions())

    def test_last_chunk_is_padded(self, service):
        result = service.normalize(Image(solid(1100, 896)), NormalizationOptions(method="chunk"))
        assert len(result.images) == 2
        last = result.images[1].pixels
        # 254 px of receipt, then background
        assert list(last[100, 10, :3]) == [0, 0, 0]
        assert list(last[300, 10, :3]) == [255, 255, 255]

    def test_overlap(self, service):
        pixels = solid(1100, 896)
        pixels[846:896] = (255, 0, 0, 255)
        result = service.normalize(Image(pixels), NormalizationOptions(method="chunk", chunk_overlap=50))
        first, second = (chunk.pixels for chunk in result.images)
        # the 50 px band shows at the bottom of chunk 1 and the top of chunk 2
        assert np.array_equal(first[846:896], second[0:50])
        assert list(second[10, 10, :3]) == [255, 0, 0]

    def test_report(self, service):
        report = service.normalize(Image(solid(1800, 896))).to_dict()
        assert report["method"] == "chunk"
        assert report["normalized_dimensions"] == {"width": 896, "height": 896}
        assert report["chunks_planned"] == 3
        assert report["output_size"] > 0
