"""
Label detection clients.

LabelDetector is the seam the orchestrator depends on; RekognitionLabelDetector
is the production implementation backed by Amazon Rekognition DetectLabels.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError

from .errors import DetectionError
from .models import Concept, ConceptSet, ImagePayload

logger = logging.getLogger(__name__)


class LabelDetector(ABC):
    @abstractmethod
    def detect(self, image: ImagePayload, max_labels: int, min_confidence: float) -> ConceptSet:
        """Return concepts above ``min_confidence``, at most ``max_labels``. Raises DetectionError."""
        ...


def _validate_limits(max_labels: int, min_confidence: float) -> None:
    if max_labels < 1:
        raise ValueError(f"max_labels must be >= 1, got {max_labels}")
    if not 0.0 <= min_confidence <= 100.0:
        raise ValueError(f"min_confidence must be between 0 and 100, got {min_confidence}")


def _parse_labels(response: Dict[str, Any], max_labels: int, min_confidence: float) -> ConceptSet:
    """Convert a DetectLabels response into a ConceptSet, keeping the service order."""
    raw_labels = response.get("Labels")
    if not isinstance(raw_labels, list):
        raise DetectionError("Label detection returned a malformed response: 'Labels' missing")

    concepts: List[Concept] = []
    try:
        for label in raw_labels:
            concept = Concept(name=label["Name"], confidence=float(label["Confidence"]))
            if concept.confidence < min_confidence:
                continue
            concepts.append(concept)
            if len(concepts) >= max_labels:
                break
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        raise DetectionError(f"Label detection returned a malformed label entry: {e}") from e

    return ConceptSet(concepts)


class RekognitionLabelDetector(LabelDetector):
    """Label detector backed by a boto3 ``rekognition`` client."""

    def __init__(self, client):
        self._client = client

    def detect(self, image: ImagePayload, max_labels: int, min_confidence: float) -> ConceptSet:
        _validate_limits(max_labels, min_confidence)

        logger.info(f"Detecting labels - {len(image)} bytes ({image.content_type}), max_labels: {max_labels}, min_confidence: {min_confidence}")
        try:
            response = self._client.detect_labels(
                Image={"Bytes": image.data},
                MaxLabels=max_labels,
                MinConfidence=min_confidence,
            )
        except ClientError as e:
            error = e.response.get("Error", {})
            code = error.get("Code", "Unknown")
            message = error.get("Message", str(e))
            logger.error(f"Label detection failed: {code} - {message}")
            raise DetectionError(f"Label detection failed ({code}): {message}", details={"aws_error_code": code}) from e
        except BotoCoreError as e:
            logger.error(f"Label detection request failed: {e}")
            raise DetectionError(f"Label detection request failed: {e}", details={"exception": type(e).__name__}) from e

        concepts = _parse_labels(response, max_labels, min_confidence)
        logger.info(f"Detected {len(concepts)} labels: {concepts.names()}")
        return concepts
