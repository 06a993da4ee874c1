"""
HTTP response utilities for Lambda function.
"""

import base64
import binascii
import json
import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)

# The browser client is hosted separately and depends on these exact values
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "OPTIONS,POST",
}


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Parse request body from Lambda event.

    Args:
        event: Lambda event dictionary

    Returns:
        Parsed JSON body as dictionary, or empty dict if no body

    Raises:
        ValueError: If the body is not valid JSON or not a JSON object
    """
    body = event.get("body")
    if not body:
        return {}

    # API Gateway base64-encodes bodies for binary media types
    if isinstance(body, str) and event.get("isBase64Encoded"):
        try:
            body = base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            logger.error(f"Failed to decode base64 request body: {str(e)}")
            raise ValueError(f"Invalid base64-encoded request body: {str(e)}")

    # Handle string body (API Gateway)
    if isinstance(body, str):
        try:
            body = json.loads(body)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse JSON body: {str(e)}")
            raise ValueError(f"Invalid JSON in request body: {str(e)}")

    # Handle already-parsed body
    if isinstance(body, dict):
        return body

    logger.warning(f"Unexpected body type: {type(body)}")
    raise ValueError("Request body must be a JSON object")


def create_response(
    status_code: int,
    body: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Create Lambda API Gateway response.

    Args:
        status_code: HTTP status code
        body: Response body (will be JSON-serialized)
        headers: Optional response headers

    Returns:
        Lambda API Gateway response dictionary
    """
    default_headers = {"Content-Type": "application/json", **CORS_HEADERS}

    if headers:
        default_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": default_headers,
        "body": json.dumps(body, default=str)
    }


def create_error_response(status_code: int, message: str) -> Dict[str, Any]:
    """Create an error response with the ``{"error": message}`` body shape."""
    return create_response(status_code, {"error": message})
