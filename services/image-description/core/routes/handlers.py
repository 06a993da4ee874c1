"""
Route handler functions for API endpoints.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

from image_pipeline import DescriptionPipeline, ErrorKind, TEXT_MODEL_ID
from image_pipeline.decoder import MSG_NO_IMAGE
from structured_logger import StructuredLogger
from core.utils.config import get_stage
from core.utils.responses import create_error_response, create_response

logger = logging.getLogger(__name__)
structured_logger = StructuredLogger(service_name="image-description")


def _has_image(payload: Dict[str, Any]) -> bool:
    image = payload.get("image")
    if image is None:
        return False
    if isinstance(image, str):
        return bool(image.strip())
    return True


def handle_options(req_ctx):
    """Handle OPTIONS (CORS preflight) requests."""
    logger.info("Handling OPTIONS request")
    response = create_response(200, {"ok": True})
    structured_logger.log_response(req_ctx, status_code=200)
    return response


def handle_health(req_ctx):
    """Handle health check requests. No outbound service calls are made."""
    logger.info("Processing health check request")
    status = {"status": "healthy", "stage": get_stage(), "model_id": TEXT_MODEL_ID}
    response = create_response(200, status)
    structured_logger.log_response(req_ctx, status_code=200)
    return response


def handle_describe(
    req_ctx,
    payload: Dict[str, Any],
    pipeline: DescriptionPipeline,
    cancel_event: Optional[threading.Event] = None,
):
    """
    Handle image description requests.

    Request body:
    {
        "image": "<base64 JPEG or PNG, no data-URL prefix>"
    }

    Returns 200 with ``{"labels": [...], "description": "..."}``, or
    ``{"error": "..."}`` with 400 (bad input), 500 (service failure) or
    504 (cancelled).
    """
    if not _has_image(payload):
        error = ValueError(MSG_NO_IMAGE)
        structured_logger.log_error(req_ctx, error, status_code=400)
        return create_error_response(400, MSG_NO_IMAGE)

    pipeline_start = time.time()
    pipeline_run = pipeline.execute(payload["image"], cancel_event=cancel_event)
    pipeline_ms = int((time.time() - pipeline_start) * 1000)
    states = [state.value for state in pipeline_run.states]

    for stage, seconds in pipeline_run.timings.items():
        structured_logger.log_metric(req_ctx, f"{stage}_duration_ms", int(seconds * 1000), unit="Milliseconds")
    structured_logger.log_metric(req_ctx, "pipeline_duration_ms", pipeline_ms, unit="Milliseconds")

    if pipeline_run.error is not None:
        error = pipeline_run.error
        logger.error(f"Image description failed - kind: {error.kind.value}, status: {error.status_code}, cause: {error.cause}")
        structured_logger.log_error(req_ctx, error, status_code=error.status_code, states=states)
        if error.kind == ErrorKind.CANCELLED:
            structured_logger.log_warning(req_ctx, "Request cancelled before completion", error.details)
        return create_error_response(error.status_code, error.cause)

    result = pipeline_run.result
    if pipeline_run.short_circuited:
        structured_logger.log_warning(req_ctx, "No labels above confidence threshold", {
            "minConfidence": pipeline.min_confidence,
        })

    structured_logger.log_metric(req_ctx, "label_count", len(result.labels))
    logger.info(f"Image description completed - labels: {result.labels}")
    structured_logger.log_response(req_ctx, status_code=200, states=states, label_count=len(result.labels))
    return create_response(200, result.to_response_body())
