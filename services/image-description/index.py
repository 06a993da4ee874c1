"""
Main entry point for the image description Lambda function.

Routes API Gateway proxy events to the endpoint handlers. All endpoints are
defined here.
"""

import json
import logging
import os
import threading
import time

from structured_logger import StructuredLogger
from core.routes.handlers import handle_describe, handle_health, handle_options
from core.utils.clients import get_pipeline, get_service_config
from core.utils.config import get_stage
from core.utils.responses import create_error_response, create_response, parse_body

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize structured logger for metrics (REQUEST/RESPONSE/ERROR lifecycle events)
structured_logger = StructuredLogger(service_name="image-description")

logger.info(f"Image description service loaded - Stage: {get_stage()}")


# ============================================================================
# API ENDPOINT DEFINITIONS
# ============================================================================
#
# 1. POST /describe (any POST path)
#    - Describe an uploaded image
#    - Requires: image (base64 JPEG/PNG, no data-URL prefix)
#    - Returns: labels (list of names), description
#    - Errors: 400 missing/invalid image, 500 service failure, 504 cancelled
#
# 2. GET /health
#    - Health check endpoint, no outbound calls
#    - Returns: status, stage, model_id
#
# 3. OPTIONS *
#    - CORS preflight handler
#    - Returns: CORS headers
#
# ============================================================================


def _arm_deadline(context, margin_ms: int):
    """
    Create a cancel event that fires ``margin_ms`` before the Lambda deadline.

    Returns:
        (event, timer) - both None when the context exposes no deadline
    """
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if get_remaining is None:
        return None, None

    cancel_event = threading.Event()
    remaining_ms = get_remaining() - margin_ms
    if remaining_ms <= 0:
        cancel_event.set()
        return cancel_event, None

    timer = threading.Timer(remaining_ms / 1000.0, cancel_event.set)
    timer.daemon = True
    timer.start()
    return cancel_event, timer


def lambda_handler(event, context):
    """
    Main Lambda handler function.

    Routes incoming API Gateway events to the appropriate endpoint handlers.
    """
    request_start_time = time.time()
    request_id = getattr(context, "aws_request_id", None) or "unknown"

    # Start structured logging for metrics (captures request timing)
    req_ctx = structured_logger.start_request(event, aws_request_id=getattr(context, "aws_request_id", None))

    logger.info(f"Lambda invocation started - Request ID: {request_id}")
    logger.info(f"Event method: {event.get('httpMethod', 'UNKNOWN')}, path: {event.get('path', 'UNKNOWN')}")

    timer = None
    try:
        method = (event.get("httpMethod") or (event.get("requestContext") or {}).get("http", {}).get("method") or "GET").upper()
        path = (event.get("path") or event.get("rawPath") or "").rstrip("/")

        # Handle OPTIONS (CORS preflight)
        if method == "OPTIONS":
            return handle_options(req_ctx)

        # Route: GET /health
        if method == "GET" and path.endswith("/health"):
            return handle_health(req_ctx)

        # Route: POST /describe
        if method == "POST":
            try:
                payload = parse_body(event)
            except ValueError as e:
                structured_logger.log_error(req_ctx, e, status_code=400)
                return create_error_response(400, str(e))
            logger.info(f"Parsed payload keys: {list(payload.keys())}")

            pipeline = get_pipeline()
            cancel_event, timer = _arm_deadline(context, get_service_config().cancel_margin_ms)
            return handle_describe(req_ctx, payload, pipeline, cancel_event=cancel_event)

        # Route not found
        structured_logger.log_warning(req_ctx, f"Endpoint not found - path: {path}, method: {method}", {
            "path": path,
            "method": method,
        })
        response = create_response(404, {"error": "Endpoint not found"})
        structured_logger.log_response(req_ctx, status_code=404)
        return response

    except Exception as e:
        logger.exception(f"Unhandled error: {str(e)}")
        structured_logger.log_error(req_ctx, e, status_code=500)
        return create_error_response(500, str(e))
    finally:
        if timer is not None:
            timer.cancel()
        total_elapsed = time.time() - request_start_time
        logger.info(f"Lambda invocation completed in {total_elapsed:.2f}s - Request ID: {request_id}")


if __name__ == "__main__":
    # Local invocation: python index.py path/to/image.jpg
    import base64
    import sys

    if len(sys.argv) != 2:
        print("Usage: python index.py <image-path>")
        sys.exit(1)

    with open(sys.argv[1], "rb") as f:
        image_b64 = base64.b64encode(f.read()).decode("utf-8")

    result = lambda_handler(
        {"httpMethod": "POST", "path": "/describe", "body": json.dumps({"image": image_b64})},
        None,
    )
    print(json.dumps(json.loads(result["body"]), indent=2))
