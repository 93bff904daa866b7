"""
Resizes a (border-removed) receipt to the vision model's input size.

Four strategies:
    letterbox  keep aspect, fit inside target, pad with background color
    crop       keep aspect, fill target, center-crop the excess
    stretch    resize to exactly the target, aspect not kept
    chunk      fit target width, cut into overlapping target-height slices
Long receipts are chunked automatically whatever method was asked for.
"""
import logging
import math

from ..models.image import Image
from ..models.processing_options import NormalizationOptions
from ..models.processing_result import NormalizationResult
from .filter_service import FilterService
from .image_service import ImageService

logger = logging.getLogger(__name__)

MIN_CHUNK_HEIGHT = 200


class NormalizationService:

    def __init__(self):
        self.image_service = ImageService()
        self.filter_service = FilterService()

    # ─── Public API ────────────────────────────────────────────────
    def should_chunk(self, img: Image, opts: NormalizationOptions) -> bool:
        aspect = img.height / img.width
        return opts.method == "chunk" or (
            aspect > opts.chunk_threshold and img.height > opts.target_height * 1.2
        )

    def normalize(self, img: Image, opts: NormalizationOptions = None) -> NormalizationResult:
        opts = opts or NormalizationOptions()
        logger.info(f"Normalizing {img.width}x{img.height} → {opts.target_width}x{opts.target_height} "
                    f"({opts.method})")

        if self.should_chunk(img, opts):
            logger.info(f"Long receipt (aspect ratio {img.height / img.width:.2f}), creating chunks")
            return self._chunk(img, opts)

        if opts.method == "letterbox":
            pixels, scale = self._letterbox(img, opts)
            preserved = True
        elif opts.method == "crop":
            pixels, scale = self._fill_crop(img, opts)
            preserved = True
        else:
            pixels = self.image_service.resize_pixels(img.pixels, opts.target_width, opts.target_height)
            scale = min(opts.target_width / img.width, opts.target_height / img.height)
            preserved = False

        out = self._finish(self.image_service.create_image(pixels, img.path), opts)
        return NormalizationResult(
            original_size=(img.width, img.height),
            normalized_size=(out.width, out.height),
            method=opts.method,
            aspect_ratio_preserved=preserved,
            scale_factor=scale,
            images=[out],
            encoded=[self.image_service.encode_jpeg(out, opts.jpeg_quality)],
        )

    # ─── Strategies ────────────────────────────────────────────────
    def _letterbox(self, img: Image, opts: NormalizationOptions):
        scale = min(opts.target_width / img.width, opts.target_height / img.height)
        new_w = max(1, round(img.width * scale))
        new_h = max(1, round(img.height * scale))
        resized = self.image_service.resize_pixels(img.pixels, new_w, new_h)

        canvas = self.image_service.blank_canvas(opts.target_width, opts.target_height, opts.background_color)
        off_x = round((opts.target_width - new_w) / 2)
        off_y = round((opts.target_height - new_h) / 2)
        canvas[off_y:off_y + new_h, off_x:off_x + new_w] = resized
        logger.debug(f"Scaled to {new_w}x{new_h}, offset ({off_x}, {off_y})")
        return canvas, scale

    def _fill_crop(self, img: Image, opts: NormalizationOptions):
        scale = max(opts.target_width / img.width, opts.target_height / img.height)
        new_w = max(opts.target_width, round(img.width * scale))
        new_h = max(opts.target_height, round(img.height * scale))
        resized = self.image_service.resize_pixels(img.pixels, new_w, new_h)

        crop_x = round((new_w - opts.target_width) / 2)
        crop_y = round((new_h - opts.target_height) / 2)
        return resized[crop_y:crop_y + opts.target_height, crop_x:crop_x + opts.target_width].copy(), scale

    def _chunk(self, img: Image, opts: NormalizationOptions) -> NormalizationResult:
        scale = opts.target_width / img.width
        scaled_h = max(1, round(img.height * scale))
        scaled = self.image_service.resize_pixels(img.pixels, opts.target_width, scaled_h)

        step = opts.target_height - opts.chunk_overlap
        planned = math.ceil(scaled_h / step)
        min_height = min(MIN_CHUNK_HEIGHT, opts.target_height * 0.3)

        chunks, encoded = [], []
        for index in range(planned):
            start = index * step
            end = min(start + opts.target_height, scaled_h)
            if end - start < min_height:
                logger.info(f"Skipping chunk {index + 1}/{planned}, too small ({end - start}px < {min_height}px)")
                continue

            piece = self.image_service.blank_canvas(opts.target_width, opts.target_height, opts.background_color)
            piece[:end - start] = scaled[start:end]
            chunk = self._finish(self.image_service.create_image(piece), opts)
            chunks.append(chunk)
            encoded.append(self.image_service.encode_jpeg(chunk, opts.jpeg_quality))
            logger.debug(f"Chunk {index + 1}/{planned} (y: {start}-{end})")

        logger.info(f"Chunking complete, {len(chunks)} of {planned} chunks kept")
        return NormalizationResult(
            original_size=(img.width, img.height),
            normalized_size=(opts.target_width, opts.target_height),
            method="chunk",
            aspect_ratio_preserved=True,
            scale_factor=scale,
            images=chunks,
            encoded=encoded,
            chunks_planned=planned,
        )

    # ─── Internal helpers ──────────────────────────────────────────
    def _finish(self, img: Image, opts: NormalizationOptions) -> Image:
        if not opts.apply_preprocessing:
            return img
        if opts.sharpening_strength > 0:
            img = self.filter_service.sharpen(img, opts.sharpening_strength)
        if opts.contrast_factor != 1.0:
            img = self.filter_service.adjust_contrast(img, opts.contrast_factor)
        if 0 < opts.threshold_value < 255:
            img = self.filter_service.threshold(img, opts.threshold_value)
        return img
