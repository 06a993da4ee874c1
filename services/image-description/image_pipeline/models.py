"""
Pipeline Models
===============

Data structures passed between the image description pipeline stages.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Tuple

from pydantic import BaseModel, ConfigDict, Field


class PipelineState(Enum):
    """Lifecycle states of a single pipeline run."""
    RECEIVED = "received"
    DECODED = "decoded"
    DETECTED = "detected"
    PROMPT_BUILT = "prompt_built"
    GENERATED = "generated"
    ASSEMBLED = "assembled"
    FAILED = "failed"


class ErrorKind(Enum):
    """Category of a pipeline failure."""
    INVALID_INPUT = "invalid_input"
    INVALID_ENCODING = "invalid_encoding"
    UNSUPPORTED_FORMAT = "unsupported_format"
    SERVICE_FAILURE = "service_failure"
    EMPTY_DESCRIPTION = "empty_description"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes and the content type they were identified as."""
    data: bytes
    content_type: str  # "image/jpeg" or "image/png"

    def __len__(self) -> int:
        return len(self.data)


class Concept(BaseModel):
    """A visual label detected in an image."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Label name as returned by the detector", min_length=1)
    confidence: float = Field(description="Detector confidence (0-100)", ge=0.0, le=100.0)


class ConceptSet:
    """
    Ordered, immutable collection of concepts for one image.

    Order is the detector's (descending confidence); it is never re-sorted here.
    """

    __slots__ = ("_concepts",)

    def __init__(self, concepts: Iterable[Concept] = ()):
        self._concepts: Tuple[Concept, ...] = tuple(concepts)

    def names(self) -> List[str]:
        return [concept.name for concept in self._concepts]

    def __iter__(self) -> Iterator[Concept]:
        return iter(self._concepts)

    def __len__(self) -> int:
        return len(self._concepts)

    def __bool__(self) -> bool:
        return bool(self._concepts)

    def __getitem__(self, index: int) -> Concept:
        return self._concepts[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConceptSet):
            return NotImplemented
        return self._concepts == other._concepts

    def __hash__(self) -> int:
        return hash(self._concepts)

    def __repr__(self) -> str:
        pairs = ", ".join(f"{c.name}={c.confidence:.1f}" for c in self._concepts)
        return f"ConceptSet([{pairs}])"


@dataclass(frozen=True)
class GenerationConfig:
    """Text generation parameters, fixed for the lifetime of the process."""
    max_token_count: int = 512
    temperature: float = 0.7
    top_p: float = 0.9
    stop_sequences: Tuple[str, ...] = ()

    def to_request_config(self) -> Dict[str, Any]:
        """Shape used by the text generation model's request body."""
        return {
            "maxTokenCount": self.max_token_count,
            "temperature": self.temperature,
            "topP": self.top_p,
            "stopSequences": list(self.stop_sequences),
        }


class AnalysisResult(BaseModel):
    """Final value returned to the caller: label names plus description."""
    labels: List[str] = Field(default_factory=list, description="Detected label names, detector order")
    description: str = Field(description="Generated or fallback description")

    @classmethod
    def from_concepts(cls, concepts: ConceptSet, description: str) -> "AnalysisResult":
        return cls(labels=concepts.names(), description=description)

    def to_response_body(self) -> Dict[str, Any]:
        return {"labels": list(self.labels), "description": self.description}


@dataclass
class ErrorReport:
    """Detailed error information for a failed pipeline run."""
    error_type: str  # ErrorKind value
    message: str  # Human-readable cause
    details: Dict[str, Any] = field(default_factory=dict)
    recoverable: bool = False  # Hint to the caller that retrying might help
