import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from tqdm import tqdm

from ..models.errors import ReceiptPrepError
from ..models.processing_options import NORMALIZATION_METHODS, NormalizationOptions, ProcessingOptions
from ..pipeline.border_removal import STRATEGIES, WHITE_AREA, BorderRemovalPipeline, remove_borders_file
from ..pipeline.prepare_receipt import prepare_receipt
from ..services.image_service import ImageService

# Load environment variables first
load_dotenv()

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="receipt-prep",
        description="Remove the background around photographed receipts, straighten and crop them. "
                    "Processing order: sharpening → contrast → threshold.",
    )
    parser.add_argument("inputs", nargs="+", help="Image files or directories of images")
    parser.add_argument("--output-dir", "-o", default=None,
                        help="Output directory (default: next to each input)")
    parser.add_argument("--strategy", choices=STRATEGIES, default=WHITE_AREA,
                        help="Border detection: white receipt area (default) or flat borders matching the corner color")
    parser.add_argument("--quality", "-q", type=int, default=None, help="JPEG quality 1-100 (default: 85)")
    parser.add_argument("--sharpen", action="store_true", help="Apply sharpening")
    parser.add_argument("--sharpen-strength", type=float, default=1.0, help="Sharpening strength 0.1-3.0")
    parser.add_argument("--contrast", action="store_true", help="Apply contrast enhancement")
    parser.add_argument("--contrast-factor", type=float, default=1.5, help="Contrast multiplier 0.1-5.0")
    parser.add_argument("--threshold", action="store_true", help="Apply black/white threshold")
    parser.add_argument("--threshold-value", type=int, default=128, help="Threshold value 0-255")
    parser.add_argument("--normalize", choices=NORMALIZATION_METHODS, default=None,
                        help="Also normalize for the vision model with this method")
    parser.add_argument("--overlap", type=int, default=None, help="Chunk overlap in pixels")
    parser.add_argument("--recursive", action="store_true", help="Recurse into directories")
    parser.add_argument("--json", action="store_true", help="Print one JSON result per line")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def collect_inputs(inputs: List[str], image_service: ImageService, recursive: bool) -> List[Path]:
    paths: List[Path] = []
    for raw in inputs:
        p = Path(raw)
        if p.is_dir():
            paths.extend(image_service.stream_paths(p, recursive=recursive))
        else:
            paths.append(p)
    return paths


def output_path_for(source: Path, output_dir: Optional[Path]) -> Path:
    folder = output_dir or source.parent
    return folder / f"{source.stem}_cropped.jpg"


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        overrides = dict(
            apply_sharpening=args.sharpen,
            sharpening_strength=args.sharpen_strength,
            apply_contrast=args.contrast,
            contrast_factor=args.contrast_factor,
            apply_threshold=args.threshold,
            threshold_value=args.threshold_value,
        )
        if args.quality is not None:
            overrides["jpeg_quality"] = args.quality
        options = ProcessingOptions.from_env(**overrides)

        normalization = None
        if args.normalize:
            norm_overrides = {"method": args.normalize, "jpeg_quality": options.jpeg_quality}
            if args.overlap is not None:
                norm_overrides["chunk_overlap"] = args.overlap
            normalization = NormalizationOptions.from_env(**norm_overrides)
    except ReceiptPrepError as err:
        logger.error(f"Invalid configuration: {err}")
        return 2

    image_service = ImageService()
    pipeline = BorderRemovalPipeline(image_service=image_service)
    output_dir = Path(args.output_dir) if args.output_dir else None
    sources = collect_inputs(args.inputs, image_service, args.recursive)

    failures = 0
    for source in tqdm(sources, desc="receipts", ncols=70, disable=len(sources) < 2):
        try:
            if normalization is not None:
                prepared = prepare_receipt(source, output_dir or source.parent, options, normalization,
                                           border_pipeline=pipeline, image_service=image_service,
                                           strategy=args.strategy)
                report = prepared.to_dict()
            else:
                target = output_path_for(source, output_dir)
                result = remove_borders_file(source, target, options, pipeline=pipeline,
                                             strategy=args.strategy)
                report = {"source": str(source), "output": str(target), **result.to_dict()}
        except ReceiptPrepError as err:
            failures += 1
            logger.error(f"{source}: {err}")
            continue

        if args.json:
            print(json.dumps(report))
        else:
            log_summary(report)

    if failures:
        logger.error(f"{failures} of {len(sources)} receipt(s) failed")
    return 1 if failures else 0


def log_summary(report: dict) -> None:
    removal = report.get("border_removal", report)
    rotation = removal["rotation"]
    original = removal["original_dimensions"]
    cropped = removal["cropped_dimensions"]
    print(f"{report['source']}: {original['width']}x{original['height']} → "
          f"{cropped['width']}x{cropped['height']} | "
          f"rotation {rotation['angle']:+.1f}° ({'applied' if rotation['accepted'] else 'skipped'}) | "
          f"retained {removal['statistics']['retained_percentage']:.1f}%")
    for chunk in report.get("chunk_paths", []):
        print(f"   chunk: {chunk}")


if __name__ == "__main__":
    sys.exit(main())
