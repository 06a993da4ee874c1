"""
Image Description Pipeline
==========================

Sequences decode -> detect -> build prompt -> generate -> assemble for a
single request. Every stage fails fast: the first PipelineError ends the run
and no partial result is produced.

The pipeline object holds only read-only collaborators and configuration, so
one instance is shared by all invocations in a process.
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .decoder import decode
from .errors import DetectionError, GenerationError, PipelineCancelled, PipelineError
from .label_detector import LabelDetector
from .models import AnalysisResult, ConceptSet, ErrorKind, GenerationConfig, PipelineState
from .prompt_builder import build_prompt
from .text_generator import TextGenerator

logger = logging.getLogger(__name__)

DEFAULT_MAX_LABELS = 10
DEFAULT_MIN_CONFIDENCE = 80.0

NO_LABELS_DESCRIPTION = "Could not detect any labels with high confidence. Please try another image."
MSG_EMPTY_DESCRIPTION = "Text generation returned an empty description."

# Outbound stage -> (error type, label used in the error cause)
_STAGE_ERRORS = {
    "detect": (DetectionError, "Label detection"),
    "generate": (GenerationError, "Text generation"),
}


@dataclass
class PipelineRun:
    """Outcome of one pipeline execution (success or failure)."""
    states: List[PipelineState] = field(default_factory=lambda: [PipelineState.RECEIVED])
    concepts: ConceptSet = field(default_factory=ConceptSet)
    result: Optional[AnalysisResult] = None
    error: Optional[PipelineError] = None
    timings: Dict[str, float] = field(default_factory=dict)  # stage -> seconds
    short_circuited: bool = False

    @property
    def state(self) -> PipelineState:
        return self.states[-1]

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.ASSEMBLED

    def advance(self, state: PipelineState) -> None:
        logger.debug(f"Pipeline state: {self.state.value} -> {state.value}")
        self.states.append(state)

    def fail(self, error: PipelineError) -> None:
        self.error = error
        self.result = None
        self.advance(PipelineState.FAILED)


class DescriptionPipeline:
    """
    Two-stage image description pipeline.

    Args:
        detector: Label detection client
        generator: Text generation client
        generation_config: Generation parameters shared by every request
        max_labels: Maximum number of concepts requested from the detector
        min_confidence: Minimum detector confidence (0-100)
        poll_interval: Seconds between cancellation checks while an outbound call is in flight
    """

    def __init__(
        self,
        detector: LabelDetector,
        generator: TextGenerator,
        generation_config: Optional[GenerationConfig] = None,
        max_labels: int = DEFAULT_MAX_LABELS,
        min_confidence: float = DEFAULT_MIN_CONFIDENCE,
        poll_interval: float = 0.05,
    ):
        if max_labels < 1:
            raise ValueError(f"max_labels must be >= 1, got {max_labels}")
        if not 0.0 <= min_confidence <= 100.0:
            raise ValueError(f"min_confidence must be between 0 and 100, got {min_confidence}")

        self.detector = detector
        self.generator = generator
        self.generation_config = generation_config or GenerationConfig()
        self.max_labels = max_labels
        self.min_confidence = min_confidence
        self.poll_interval = poll_interval

    def run(self, encoded_image: Any, cancel_event: Optional[threading.Event] = None) -> AnalysisResult:
        """
        Describe a base64-encoded image.

        Returns:
            AnalysisResult with label names and description

        Raises:
            PipelineError: The first stage failure (InputError, DecodeError,
                DetectionError, GenerationError or PipelineCancelled)
        """
        pipeline_run = self.execute(encoded_image, cancel_event=cancel_event)
        if pipeline_run.error is not None:
            raise pipeline_run.error
        return pipeline_run.result

    def execute(self, encoded_image: Any, cancel_event: Optional[threading.Event] = None) -> PipelineRun:
        """Run the pipeline and return the full run record instead of raising."""
        pipeline_run = PipelineRun()
        try:
            self._execute(pipeline_run, encoded_image, cancel_event)
        except PipelineError as e:
            logger.warning(f"Pipeline failed in state '{pipeline_run.state.value}': [{e.kind.value}] {e.cause}")
            pipeline_run.fail(e)
        return pipeline_run

    def _execute(self, pipeline_run: PipelineRun, encoded_image: Any, cancel_event: Optional[threading.Event]) -> None:
        self._check_cancelled(cancel_event, "decode")
        image = self._timed(pipeline_run, "decode", decode, encoded_image)
        pipeline_run.advance(PipelineState.DECODED)

        concepts = self._timed(
            pipeline_run,
            "detect",
            self._outbound,
            "detect",
            self.detector.detect,
            (image, self.max_labels, self.min_confidence),
            cancel_event,
        )
        pipeline_run.concepts = concepts
        pipeline_run.advance(PipelineState.DETECTED)

        if not concepts:
            logger.info("No labels above threshold - returning fallback description")
            pipeline_run.short_circuited = True
            pipeline_run.result = AnalysisResult(labels=[], description=NO_LABELS_DESCRIPTION)
            pipeline_run.advance(PipelineState.ASSEMBLED)
            return

        prompt = build_prompt(concepts)
        pipeline_run.advance(PipelineState.PROMPT_BUILT)

        description = self._timed(
            pipeline_run,
            "generate",
            self._outbound,
            "generate",
            self.generator.generate,
            (prompt, self.generation_config),
            cancel_event,
        )
        if not description:
            raise GenerationError(MSG_EMPTY_DESCRIPTION, kind=ErrorKind.EMPTY_DESCRIPTION)
        pipeline_run.advance(PipelineState.GENERATED)

        pipeline_run.result = AnalysisResult.from_concepts(concepts, description)
        pipeline_run.advance(PipelineState.ASSEMBLED)

    @staticmethod
    def _timed(pipeline_run: PipelineRun, stage: str, fn: Callable, *args):
        start = time.time()
        try:
            return fn(*args)
        finally:
            elapsed = time.time() - start
            pipeline_run.timings[stage] = elapsed
            logger.info(f"Stage '{stage}' finished in {elapsed:.2f}s")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelled(details={"stage": stage})

    def _outbound(self, stage: str, fn: Callable, args: tuple, cancel_event: Optional[threading.Event]):
        """
        Perform one outbound service call.

        Without a cancel event the call runs inline. With one, it runs on a
        worker thread while this thread watches the event; once the event is
        set the call is abandoned and PipelineCancelled is raised.

        Exceptions outside the pipeline taxonomy are reported as a
        service failure of the stage that raised them.
        """
        try:
            return self._await_call(stage, fn, args, cancel_event)
        except PipelineError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error during '{stage}' call")
            error_cls, label = _STAGE_ERRORS[stage]
            raise error_cls(f"{label} failed: {e}", details={"exception": type(e).__name__}) from e

    def _await_call(self, stage: str, fn: Callable, args: tuple, cancel_event: Optional[threading.Event]):
        if cancel_event is None:
            return fn(*args)

        self._check_cancelled(cancel_event, stage)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"pipeline-{stage}")
        try:
            future = executor.submit(fn, *args)
            while True:
                done, _ = wait([future], timeout=self.poll_interval)
                if done:
                    return future.result()
                if cancel_event.is_set():
                    future.cancel()
                    logger.warning(f"Cancelled in-flight '{stage}' call")
                    raise PipelineCancelled(details={"stage": stage})
        finally:
            executor.shutdown(wait=False)
