"""
Structured Logger - JSON lifecycle logs for the image description service.

Each invocation emits one REQUEST log, zero or more WARNING/METRIC/DEBUG logs,
and exactly one RESPONSE or ERROR log. Logs are printed as single-line JSON so
CloudWatch Logs Insights can query them by field.

Usage:
    from structured_logger import StructuredLogger

    logger = StructuredLogger(service_name="image-description")

    def lambda_handler(event, context):
        req_ctx = logger.start_request(event)

        try:
            # ... your code ...
            logger.log_response(req_ctx, status_code=200)
            return response
        except Exception as e:
            logger.log_error(req_ctx, e, status_code=500)
            raise
"""

import json
import os
import random
import string
import time
import traceback
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

LOG_SCHEMA_VERSION = 1.0

# Stack traces longer than this are truncated
MAX_STACK_LENGTH = 1000


def _random_suffix(length: int = 9) -> str:
    return ''.join(random.choices(string.ascii_lowercase + string.digits, k=length))


def _header(headers: Dict[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup (API Gateway normalizes names differently)."""
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target:
            return value
    return None


class StructuredLogger:
    """
    Structured logger for request lifecycle events.

    Args:
        service_name: Name of the service (e.g., "image-description")
        stage: Deployment stage recorded on every log line
    """

    def __init__(self, service_name: str, stage: Optional[str] = None):
        self.service_name = service_name
        self.stage = stage or os.getenv("STAGE", "dev")

    def start_request(self, event: dict, aws_request_id: Optional[str] = None) -> dict:
        """
        Start tracking a request. Call this at the beginning of your handler.

        Args:
            event: Lambda event object
            aws_request_id: Lambda context request ID, used when API Gateway supplies none

        Returns:
            Request context dict to pass to the other log methods
        """
        request_context = event.get("requestContext") or {}
        headers = event.get("headers") or {}

        request_id = (
            request_context.get("requestId") or
            _header(headers, "x-request-id") or
            aws_request_id or
            f"req_{int(time.time() * 1000)}_{_random_suffix()}"
        )
        correlation_id = (
            _header(headers, "x-correlation-id") or
            f"corr_{int(time.time() * 1000)}_{_random_suffix()}"
        )

        method = event.get("httpMethod") or request_context.get("http", {}).get("method", "")
        path = event.get("path") or request_context.get("http", {}).get("path", "")

        ctx = {
            "request_id": request_id,
            "correlation_id": correlation_id,
            "method": method,
            "path": path,
            "route": f"{method} {path}".strip(),
            "source_ip": (request_context.get("identity") or {}).get("sourceIp"),
            "start_time": time.time(),
        }

        self._emit("REQUEST", ctx, {
            "bodyBytes": len(event.get("body") or ""),
            "isBase64Encoded": bool(event.get("isBase64Encoded")),
        })
        return ctx

    def log_response(
        self,
        ctx: dict,
        status_code: int = 200,
        states: Optional[List[str]] = None,
        label_count: Optional[int] = None,
    ):
        """
        Log a completed response.

        Args:
            ctx: Request context from start_request
            status_code: HTTP status code
            states: Pipeline state trail, when the pipeline ran
            label_count: Number of labels returned to the caller
        """
        extra: Dict[str, Any] = {
            "statusCode": status_code,
            "durationMs": self._duration_ms(ctx),
        }
        if states is not None:
            extra["pipelineStates"] = states
        if label_count is not None:
            extra["labelCount"] = label_count

        self._emit("RESPONSE", ctx, extra)

    def log_error(
        self,
        ctx: dict,
        error: Exception,
        status_code: int = 500,
        states: Optional[List[str]] = None,
    ):
        """
        Log an error. The stack trace is only included when one is being handled.

        Args:
            ctx: Request context from start_request
            error: The exception that occurred
            status_code: HTTP status code
            states: Pipeline state trail, when the pipeline ran
        """
        stack_trace = None
        if error.__traceback__ is not None:
            stack_trace = ''.join(traceback.format_exception(type(error), error, error.__traceback__))
            stack_trace = stack_trace[:MAX_STACK_LENGTH]

        extra: Dict[str, Any] = {
            "statusCode": status_code,
            "durationMs": self._duration_ms(ctx),
            "error": {
                "message": str(error),
                "name": type(error).__name__,
                "code": getattr(error, "code", None),
                "stack": stack_trace,
            },
        }
        if states is not None:
            extra["pipelineStates"] = states

        self._emit("ERROR", ctx, extra)

    def log_warning(
        self,
        ctx: dict,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """
        Log a warning. Warnings don't terminate the request.

        Args:
            ctx: Request context from start_request
            message: Warning message
            details: Additional details about the warning
        """
        warning_data = {"message": message}
        if details:
            warning_data.update(details)

        self._emit("WARNING", ctx, {"warning": warning_data})

    def log_metric(
        self,
        ctx: dict,
        metric_name: str,
        value: float,
        unit: str = "Count",
    ):
        """Log a custom metric (e.g. label count, stage latency)."""
        self._emit("METRIC", ctx, {
            "metricName": metric_name,
            "value": value,
            "unit": unit,
        })

    def debug(self, message: str, data: Optional[Dict[str, Any]] = None, ctx: Optional[dict] = None):
        """Log debug information when LOG_LEVEL=DEBUG."""
        if os.environ.get("LOG_LEVEL", "INFO").upper() != "DEBUG":
            return

        extra = {"message": message}
        if data:
            extra.update(data)

        self._emit("DEBUG", ctx or {"request_id": None}, extra)

    @staticmethod
    def _duration_ms(ctx: dict) -> int:
        return int((time.time() - ctx.get("start_time", time.time())) * 1000)

    def _emit(self, log_type: str, ctx: dict, extra: Optional[Dict[str, Any]] = None):
        payload = {
            "schemaVersion": LOG_SCHEMA_VERSION,
            "logType": log_type,
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "serviceName": self.service_name,
            "stage": self.stage,
            "requestId": ctx.get("request_id"),
            "correlationId": ctx.get("correlation_id"),
            "route": ctx.get("route"),
        }

        if extra:
            payload.update(extra)

        # Print as JSON (CloudWatch will capture this)
        print(json.dumps(payload, default=str))
