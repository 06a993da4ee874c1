"""
Pipeline error taxonomy.

Every stage raises a subclass of PipelineError; the HTTP boundary maps
``status_code`` and ``cause`` onto the response.
"""

from typing import Any, Dict, Optional

from .models import ErrorKind, ErrorReport


class PipelineError(Exception):
    """Base class for all failures raised by the image description pipeline."""

    status_code = 500
    recoverable = False

    def __init__(self, kind: ErrorKind, cause: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(cause)
        self.kind = kind
        self.cause = cause
        self.details = details or {}

    @property
    def code(self) -> str:
        return self.kind.value

    def to_report(self) -> ErrorReport:
        return ErrorReport(
            error_type=self.kind.value,
            message=self.cause,
            details=dict(self.details),
            recoverable=self.recoverable,
        )


class InputError(PipelineError):
    """Missing, empty or malformed request payload. Always client-caused."""

    status_code = 400

    def __init__(self, cause: str, kind: ErrorKind = ErrorKind.INVALID_INPUT, details: Optional[Dict[str, Any]] = None):
        super().__init__(kind, cause, details)


class DecodeError(InputError):
    """Image payload could not be decoded into a supported image."""

    def __init__(self, cause: str, kind: ErrorKind = ErrorKind.INVALID_ENCODING, details: Optional[Dict[str, Any]] = None):
        super().__init__(cause, kind=kind, details=details)


class DetectionError(PipelineError):
    """The label detection service failed or returned an unusable response."""

    recoverable = True

    def __init__(self, cause: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorKind.SERVICE_FAILURE, cause, details)


class GenerationError(PipelineError):
    """The text generation service failed or produced no description."""

    recoverable = True

    def __init__(self, cause: str, kind: ErrorKind = ErrorKind.SERVICE_FAILURE, details: Optional[Dict[str, Any]] = None):
        super().__init__(kind, cause, details)


class PipelineCancelled(PipelineError):
    """The invoking boundary aborted the request before it completed."""

    status_code = 504

    def __init__(self, cause: str = "Request was cancelled before completion.", details: Optional[Dict[str, Any]] = None):
        super().__init__(ErrorKind.CANCELLED, cause, details)
