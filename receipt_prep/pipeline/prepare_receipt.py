"""
Receipt Preparation Pipeline
Border removal followed by normalization to the vision model's input size.
This is the last step before image chunks are handed to the OCR model.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union
import logging

from ..models.processing_options import NormalizationOptions, ProcessingOptions
from ..models.processing_result import BorderRemovalResult, NormalizationResult, ProcessingMetrics
from ..services.image_service import ImageService
from ..services.normalization_service import NormalizationService
from .border_removal import WHITE_AREA, BorderRemovalPipeline

logger = logging.getLogger(__name__)


@dataclass
class PreparedReceipt:
    source: Path
    cropped_path: Path
    chunk_paths: List[Path]
    border_removal: BorderRemovalResult
    normalization: NormalizationResult
    metrics: ProcessingMetrics = field(default_factory=ProcessingMetrics)

    def to_dict(self) -> dict:
        return {
            "source": str(self.source),
            "cropped_path": str(self.cropped_path),
            "chunk_paths": [str(p) for p in self.chunk_paths],
            "border_removal": self.border_removal.to_dict(),
            "normalization": self.normalization.to_dict(),
            "timings_ms": {k: round(v, 2) for k, v in self.metrics.timings.items()},
        }


def chunk_output_paths(output_dir: Path, stem: str, count: int, chunked: bool) -> List[Path]:
    if not chunked:
        return [output_dir / f"{stem}_normalized.jpg"]
    return [output_dir / f"{stem}_normalized_{i}.jpg" for i in range(1, count + 1)]


def prepare_receipt(
    input_path: Union[str, Path],
    output_dir: Union[str, Path],
    options: ProcessingOptions = None,
    normalization: NormalizationOptions = None,
    *,
    border_pipeline: BorderRemovalPipeline = None,
    normalization_service: NormalizationService = None,
    image_service: ImageService = None,
    strategy: str = WHITE_AREA,
) -> PreparedReceipt:
    """
    Run the whole preparation for one photo.

    Args:
        input_path: Photo of a single receipt
        output_dir: Where the cropped image and the normalized chunk(s) go
        options: Border removal settings
        normalization: Resize / chunking settings
        strategy: Border removal strategy, "white-area" or "uniform"

    Returns:
        PreparedReceipt: Output paths, both stage results and merged timings
    """
    border_pipeline = border_pipeline or BorderRemovalPipeline()
    normalization_service = normalization_service or NormalizationService()
    image_service = image_service or ImageService()
    normalization = normalization or NormalizationOptions.from_env()

    input_path = Path(input_path)
    output_dir = Path(output_dir)
    metrics = ProcessingMetrics()

    with metrics.stage("load"):
        img = image_service.load(input_path)

    removal = border_pipeline.run_strategy(strategy, img, options, metrics)

    with metrics.stage("normalization"):
        normalized = normalization_service.normalize(removal.image, normalization)

    # Everything succeeded, only now touch the output directory
    with metrics.stage("write"):
        cropped_path = image_service.write_bytes(removal.encoded, output_dir / f"{input_path.stem}_cropped.jpg")
        targets = chunk_output_paths(output_dir, input_path.stem, len(normalized.encoded), normalized.is_chunked)
        chunk_paths = [image_service.write_bytes(data, path) for data, path in zip(normalized.encoded, targets)]

    logger.info(f"Prepared {input_path.name}: {len(chunk_paths)} image(s) for the vision model")
    return PreparedReceipt(
        source=input_path,
        cropped_path=cropped_path,
        chunk_paths=chunk_paths,
        border_removal=removal,
        normalization=normalized,
        metrics=metrics,
    )
