#!/usr/bin/env python3
"""
Receipt Preprocessor API Server
Upload a receipt photo, get back the cropped/straightened JPEG (or the
normalized chunks for the vision model) plus the processing report.
"""

import os
import logging
import base64
from typing import Any, Dict

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename

from .models.errors import ConfigurationError, InvalidInputError, NoContentDetectedError
from .models.processing_options import NormalizationOptions, ProcessingOptions
from .pipeline.border_removal import WHITE_AREA, BorderRemovalPipeline
from .services.image_service import ImageService
from .services.normalization_service import NormalizationService

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,bmp,webp,tif,tiff").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024

app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

# Initialize services
image_service = ImageService()
border_pipeline = BorderRemovalPipeline(image_service=image_service)
normalization_service = NormalizationService()

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}


def allowed_file(filename: str) -> bool:
    """Check if file extension is allowed."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def jpeg_to_data_url(data: bytes) -> str:
    """Encode JPEG bytes as a data URL for the JSON response."""
    return f"data:image/jpeg;base64,{base64.b64encode(data).decode('utf-8')}"


def _form_value(name: str, cast, default):
    raw = request.form.get(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}")


def _form_flag(name: str) -> bool:
    return request.form.get(name, "").strip().lower() in _TRUE


def options_from_form() -> ProcessingOptions:
    return ProcessingOptions.from_env(**{
        k: v for k, v in {
            "jpeg_quality": _form_value("quality", int, None),
            "apply_sharpening": _form_flag("sharpen"),
            "sharpening_strength": _form_value("sharpen_strength", float, 1.0),
            "apply_contrast": _form_flag("contrast"),
            "contrast_factor": _form_value("contrast_factor", float, 1.5),
            "apply_threshold": _form_flag("threshold"),
            "threshold_value": _form_value("threshold_value", int, 128),
        }.items() if v is not None
    })


def uploaded_image():
    """Return (Image, error response) for the multipart `file` field."""
    if 'file' not in request.files:
        return None, (jsonify({'success': False, 'message': 'No file uploaded'}), 400)

    file = request.files['file']
    if file.filename == '':
        return None, (jsonify({'success': False, 'message': 'No file selected'}), 400)
    filename = secure_filename(file.filename)
    if not allowed_file(filename):
        return None, (jsonify({'success': False, 'message': f'Unsupported file type: {filename}'}), 400)

    return image_service.decode(file.read(), filename), None


def error_response(err: Exception):
    if isinstance(err, HTTPException):
        return jsonify({'success': False, 'message': err.description}), err.code
    if isinstance(err, (ConfigurationError, InvalidInputError)):
        return jsonify({'success': False, 'message': str(err)}), 400
    if isinstance(err, NoContentDetectedError):
        return jsonify({'success': False, 'message': str(err)}), 422
    logger.exception("Unexpected processing error")
    return jsonify({'success': False, 'message': 'Error processing image'}), 500


@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({'status': 'ok'})


@app.route('/api/remove-borders', methods=['POST'])
def remove_borders_step():
    """Border removal + de-skew + optional filters for one uploaded photo."""
    try:
        options = options_from_form()
        img, failure = uploaded_image()
        if failure:
            return failure

        result = border_pipeline.run_strategy(request.form.get("strategy", WHITE_AREA), img, options)
        logger.info(f"Border removal done: {result.original_size} → {result.cropped_size}")

        payload: Dict[str, Any] = {'success': True, **result.to_dict()}
        payload['options'] = options.to_dict()
        payload['image'] = jpeg_to_data_url(result.encoded)
        return jsonify(payload)

    except Exception as e:
        return error_response(e)


@app.route('/api/normalize', methods=['POST'])
def normalize_step():
    """Border removal, then letterbox/crop/stretch/chunk normalization."""
    try:
        options = options_from_form()
        overrides = {"method": request.form.get("method", "chunk"), "jpeg_quality": options.jpeg_quality}
        overlap = _form_value("overlap", int, None)
        if overlap is not None:
            overrides["chunk_overlap"] = overlap
        normalization = NormalizationOptions.from_env(**overrides)

        img, failure = uploaded_image()
        if failure:
            return failure

        removal = border_pipeline.run_strategy(request.form.get("strategy", WHITE_AREA), img, options)
        normalized = normalization_service.normalize(removal.image, normalization)

        return jsonify({
            'success': True,
            'border_removal': removal.to_dict(),
            'normalization': normalized.to_dict(),
            'images': [jpeg_to_data_url(data) for data in normalized.encoded],
        })

    except Exception as e:
        return error_response(e)


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    port = int(os.getenv("API_PORT", "5000"))
    app.run(host=os.getenv("API_HOST", "127.0.0.1"), port=port, debug=False)


if __name__ == '__main__':
    main()
