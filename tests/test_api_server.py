"""
Tests for the Flask API using the built-in test client.
"""

import io

import cv2
import numpy as np
import pytest

from conftest import solid
from receipt_prep.api_server import app


def png_upload(pixels, name="receipt.png"):
    ok, buf = cv2.imencode(".png", cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGR))
    assert ok
    return io.BytesIO(buf.tobytes()), name


@pytest.fixture
def client():
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}


class TestRemoveBordersEndpoint:

    def test_success(self, client, framed_receipt):
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(framed_receipt.pixels), "quality": "90"},
                               content_type="multipart/form-data")
        body = response.get_json()

        assert response.status_code == 200
        assert body["success"] is True
        assert body["crop_bounds"] == {"left": 444, "top": 769, "right": 555, "bottom": 830}
        assert body["image"].startswith("data:image/jpeg;base64,")
        assert body["options"]["jpeg_quality"] == 90

    def test_missing_file(self, client):
        response = client.post("/api/remove-borders", data={}, content_type="multipart/form-data")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_unsupported_extension(self, client, framed_receipt):
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(framed_receipt.pixels, "receipt.gif")},
                               content_type="multipart/form-data")
        assert response.status_code == 400

    def test_corrupt_upload(self, client):
        response = client.post("/api/remove-borders",
                               data={"file": (io.BytesIO(b"garbage"), "receipt.jpg")},
                               content_type="multipart/form-data")
        assert response.status_code == 400

    @pytest.mark.parametrize("field, value", [("quality", "abc"), ("quality", "150"), ("contrast_factor", "9")])
    def test_invalid_option(self, client, framed_receipt, field, value):
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(framed_receipt.pixels), field: value},
                               content_type="multipart/form-data")
        assert response.status_code == 400

    def test_no_receipt_found(self, client):
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(solid(50, 50, (30, 30, 30, 255)))},
                               content_type="multipart/form-data")
        assert response.status_code == 422
        assert "No significant content" in response.get_json()["message"]

    def test_uniform_strategy(self, client, gray_scan):
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(gray_scan.pixels), "strategy": "uniform"},
                               content_type="multipart/form-data")
        body = response.get_json()

        assert response.status_code == 200
        assert body["crop_bounds"] == {"left": 30, "top": 20, "right": 69, "bottom": 55}
        assert body["rotation"]["method"] == "not_attempted"

    def test_unknown_strategy(self, client, framed_receipt):
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(framed_receipt.pixels), "strategy": "zoom"},
                               content_type="multipart/form-data")
        assert response.status_code == 400
        assert "strategy" in response.get_json()["message"]

    def test_upload_too_large(self, client, monkeypatch):
        monkeypatch.setitem(client.application.config, "MAX_CONTENT_LENGTH", 1024)
        noise = np.random.default_rng(3).integers(0, 256, size=(200, 200, 4), dtype=np.uint8)
        response = client.post("/api/remove-borders",
                               data={"file": png_upload(noise)},
                               content_type="multipart/form-data")
        assert response.status_code == 413
        assert response.get_json()["success"] is False


class TestNormalizeEndpoint:

    def test_chunks_by_default(self, client, framed_receipt):
        response = client.post("/api/normalize",
                               data={"file": png_upload(framed_receipt.pixels)},
                               content_type="multipart/form-data")
        body = response.get_json()

        assert response.status_code == 200
        assert body["normalization"]["method"] == "chunk"
        assert len(body["images"]) == body["normalization"]["chunks_created"] >= 1
        assert body["border_removal"]["cropped_dimensions"] == {"width": 112, "height": 62}

    def test_letterbox(self, client, framed_receipt):
        response = client.post("/api/normalize",
                               data={"file": png_upload(framed_receipt.pixels), "method": "letterbox"},
                               content_type="multipart/form-data")
        body = response.get_json()
        assert response.status_code == 200
        assert len(body["images"]) == 1
        assert body["normalization"]["normalized_dimensions"] == {"width": 896, "height": 896}

    def test_unknown_method(self, client, framed_receipt):
        response = client.post("/api/normalize",
                               data={"file": png_upload(framed_receipt.pixels), "method": "zoom"},
                               content_type="multipart/form-data")
        assert response.status_code == 400
