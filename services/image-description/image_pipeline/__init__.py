"""
Image Description Pipeline Package
==================================

Turns an uploaded image into a one-sentence description: label detection
followed by text generation.
"""

from .decoder import decode
from .errors import (
    DecodeError,
    DetectionError,
    GenerationError,
    InputError,
    PipelineCancelled,
    PipelineError,
)
from .label_detector import LabelDetector, RekognitionLabelDetector
from .models import (
    AnalysisResult,
    Concept,
    ConceptSet,
    ErrorKind,
    ErrorReport,
    GenerationConfig,
    ImagePayload,
    PipelineState,
)
from .orchestrator import NO_LABELS_DESCRIPTION, DescriptionPipeline, PipelineRun
from .prompt_builder import build_prompt
from .text_generator import TEXT_MODEL_ID, BedrockTextGenerator, TextGenerator

__version__ = "1.0.0"
__all__ = [
    "decode",
    "build_prompt",
    "DescriptionPipeline",
    "PipelineRun",
    "NO_LABELS_DESCRIPTION",
    "LabelDetector",
    "RekognitionLabelDetector",
    "TextGenerator",
    "BedrockTextGenerator",
    "TEXT_MODEL_ID",
    "AnalysisResult",
    "Concept",
    "ConceptSet",
    "ErrorKind",
    "ErrorReport",
    "GenerationConfig",
    "ImagePayload",
    "PipelineState",
    "PipelineError",
    "InputError",
    "DecodeError",
    "DetectionError",
    "GenerationError",
    "PipelineCancelled",
]
