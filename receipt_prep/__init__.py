"""Receipt photo preprocessing: border removal, de-skew, cropping and normalization."""

from .models.errors import ConfigurationError, InvalidInputError, NoContentDetectedError, ReceiptPrepError
from .models.processing_options import NormalizationOptions, ProcessingOptions
from .pipeline.border_removal import BorderRemovalPipeline, remove_borders, remove_borders_file
from .pipeline.prepare_receipt import prepare_receipt

__version__ = "1.0.0"

__all__ = [
    "BorderRemovalPipeline",
    "ConfigurationError",
    "InvalidInputError",
    "NoContentDetectedError",
    "NormalizationOptions",
    "ProcessingOptions",
    "ReceiptPrepError",
    "prepare_receipt",
    "remove_borders",
    "remove_borders_file",
]
