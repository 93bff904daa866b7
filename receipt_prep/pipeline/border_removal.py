"""
Border Removal Pipeline
Locates the receipt paper inside a photo, straightens it when the skew
estimate is trustworthy, crops tightly around the printed content and
optionally runs the post-filters before JPEG encoding.

Stages, strictly in order:
    classify → largest region → rotation estimate
    → [rotate → re-classify → re-find region]
    → content bounds → crop → [sharpen] → [contrast] → [threshold] → encode

The "uniform" strategy replaces everything before the crop with a scan for
flat borders matching the top-left corner color (scans on a plain backdrop).
"""
from pathlib import Path
from typing import Tuple, Union
import logging

from ..models.errors import ConfigurationError, InvalidInputError, NoContentDetectedError
from ..models.geometry import ConnectedRegion, CropBox
from ..models.image import Image
from ..models.mask import BinaryMask
from ..models.processing_options import ProcessingOptions
from ..models.processing_result import BorderRemovalResult, ProcessingMetrics
from ..models.rotation_estimate import NOT_ATTEMPTED, RotationEstimate
from ..services.component_service import ComponentService
from ..services.content_bounds_service import ContentBoundsService
from ..services.filter_service import FilterService
from ..services.image_service import ImageService
from ..services.region_classifier import RegionClassifier
from ..services.rotation_service import RotationService
from ..services.uniform_border_service import UniformBorderService

logger = logging.getLogger(__name__)

WHITE_AREA = "white-area"
UNIFORM = "uniform"
STRATEGIES = (WHITE_AREA, UNIFORM)


class BorderRemovalPipeline:

    def __init__(self,
                 classifier: RegionClassifier = None,
                 component_service: ComponentService = None,
                 rotation_service: RotationService = None,
                 content_bounds_service: ContentBoundsService = None,
                 filter_service: FilterService = None,
                 image_service: ImageService = None,
                 uniform_border_service: UniformBorderService = None):
        self.classifier = classifier or RegionClassifier()
        self.component_service = component_service or ComponentService()
        self.rotation_service = rotation_service or RotationService()
        self.content_bounds_service = content_bounds_service or ContentBoundsService()
        self.filter_service = filter_service or FilterService()
        self.image_service = image_service or ImageService()
        self.uniform_border_service = uniform_border_service or UniformBorderService(self.classifier)

    # ─── Public API ────────────────────────────────────────────────
    def run(self,
            img: Image,
            options: ProcessingOptions = None,
            metrics: ProcessingMetrics = None) -> BorderRemovalResult:
        options = options or ProcessingOptions()
        metrics = metrics if metrics is not None else ProcessingMetrics()

        width, height = self._check_size(img)
        logger.info(f"Detecting white receipt area in {img.path or 'image'} ({width}x{height})")

        # Rotation swaps the pixel buffer of this wrapper, never the caller's Image
        work = self.image_service.create_image(img.pixels, img.path)

        with metrics.stage("classification"):
            mask = self.classifier.whitish_mask(work)
        white_pixels = mask.count
        logger.info(f"Found {white_pixels} white pixels "
                    f"({white_pixels / (width * height) * 100:.1f}% of image)")

        with metrics.stage("region_search"):
            region = self._find_region(work, mask)

        with metrics.stage("rotation_estimate"):
            estimate = self.rotation_service.accept(self.rotation_service.estimate(work, region))

        if estimate.accepted:
            logger.info(f"Applying rotation correction: {estimate.angle:.1f}° "
                        f"(confidence: {estimate.confidence:.2f})")
            with metrics.stage("rotation"):
                self.image_service.rotate(work, estimate.angle)
            # The old mask and region describe the unrotated canvas
            with metrics.stage("region_search"):
                region = self._find_region(work)
            logger.info(f"Largest white area after rotation: {region.size} pixels")
        else:
            logger.info(f"Skipping rotation: angle={estimate.angle:.1f}°, "
                        f"confidence={estimate.confidence:.2f} ({estimate.method})")

        current_h, current_w = self.image_service.get_image_dimensions(work)

        with metrics.stage("bounds"):
            bounds = self.content_bounds_service.content_bounds(work, region)
            box = self.content_bounds_service.pad(*bounds, current_w, current_h)

        return self._crop_and_encode(
            work, img, box, bounds, estimate, white_pixels, region.size, options, metrics)

    def run_uniform(self,
                    img: Image,
                    options: ProcessingOptions = None,
                    metrics: ProcessingMetrics = None,
                    tolerance: int = None) -> BorderRemovalResult:
        """Trim flat borders matching the top-left color, no rotation."""
        options = options or ProcessingOptions()
        metrics = metrics if metrics is not None else ProcessingMetrics()

        width, height = self._check_size(img)
        logger.info(f"Removing uniform borders from {img.path or 'image'} ({width}x{height})")

        with metrics.stage("classification"):
            white_pixels = self.classifier.whitish_mask(img).count

        with metrics.stage("bounds"):
            box = self.uniform_border_service.detect(img, tolerance)

        return self._crop_and_encode(
            img, img, box, (box.left, box.top, box.right, box.bottom),
            RotationEstimate(method=NOT_ATTEMPTED), white_pixels, box.width * box.height,
            options, metrics)

    def run_strategy(self,
                     strategy: str,
                     img: Image,
                     options: ProcessingOptions = None,
                     metrics: ProcessingMetrics = None) -> BorderRemovalResult:
        if strategy == WHITE_AREA:
            return self.run(img, options, metrics)
        if strategy == UNIFORM:
            return self.run_uniform(img, options, metrics)
        raise ConfigurationError(f"Unknown border removal strategy: {strategy}")

    # ─── Internal helpers ──────────────────────────────────────────
    def _check_size(self, img: Image) -> Tuple[int, int]:
        height, width = self.image_service.get_image_dimensions(img)
        if width == 0 or height == 0:
            raise InvalidInputError("Image has zero dimensions")
        return width, height

    def _find_region(self, work: Image, mask: BinaryMask = None) -> ConnectedRegion:
        if mask is None:
            mask = self.classifier.whitish_mask(work)
        region = self.component_service.largest_component(mask)
        if region.is_empty():
            raise NoContentDetectedError("No significant content found: no white receipt area detected")
        return region

    def _crop_and_encode(self,
                         work: Image,
                         source: Image,
                         box: CropBox,
                         bounds: Tuple[int, int, int, int],
                         estimate: RotationEstimate,
                         white_pixels: int,
                         region_size: int,
                         options: ProcessingOptions,
                         metrics: ProcessingMetrics) -> BorderRemovalResult:
        height, width = self.image_service.get_image_dimensions(source)
        current_h, current_w = self.image_service.get_image_dimensions(work)

        with metrics.stage("crop"):
            cropped = self.image_service.create_image(self.image_service.crop_pixels(work, box), source.path)
        logger.info(f"Cropping to ({box.left}, {box.top})-({box.right}, {box.bottom}), "
                    f"final crop {box.width}x{box.height}")

        with metrics.stage("filters"):
            cropped = self.filter_service.apply(cropped, options)

        with metrics.stage("encode"):
            encoded = self.image_service.encode_jpeg(cropped, options.jpeg_quality)

        retained = box.width * box.height / (current_w * current_h) * 100
        logger.info(f"Area retained: {retained:.1f}% of current image, "
                    f"JPEG quality {options.jpeg_quality} ({len(encoded) / 1024:.1f} KB)")

        return BorderRemovalResult(
            original_size=(width, height),
            current_size=(current_w, current_h),
            cropped_size=(box.width, box.height),
            region_bounds=bounds,
            crop_box=box,
            rotation=estimate,
            white_pixels=white_pixels,
            white_percentage=white_pixels / (width * height) * 100,
            retained_percentage=retained,
            largest_region_size=region_size,
            image=cropped,
            encoded=encoded,
            metrics=metrics,
        )


def remove_borders(
    img: Image,
    options: ProcessingOptions = None,
    *,
    pipeline: BorderRemovalPipeline = None,
    metrics: ProcessingMetrics = None,
    strategy: str = WHITE_AREA,
) -> BorderRemovalResult:
    pipeline = pipeline or BorderRemovalPipeline()
    return pipeline.run_strategy(strategy, img, options, metrics)


def remove_borders_file(
    input_path: Union[str, Path],
    output_path: Union[str, Path],
    options: ProcessingOptions = None,
    *,
    pipeline: BorderRemovalPipeline = None,
    metrics: ProcessingMetrics = None,
    strategy: str = WHITE_AREA,
) -> BorderRemovalResult:
    """
    Load, process and write one receipt. The output file is only written
    once every stage has succeeded.
    """
    pipeline = pipeline or BorderRemovalPipeline()
    metrics = metrics if metrics is not None else ProcessingMetrics()

    with metrics.stage("load"):
        img = pipeline.image_service.load(input_path)

    result = pipeline.run_strategy(strategy, img, options, metrics)

    with metrics.stage("write"):
        pipeline.image_service.write_bytes(result.encoded, output_path)
    logger.info(f"Saved white area cropped image to: {output_path}")
    return result
