"""Shared fixtures: sample images and recording test doubles for both services."""
import base64
import threading
from io import BytesIO

import pytest
from PIL import Image

from image_pipeline import (
    Concept,
    ConceptSet,
    DescriptionPipeline,
    GenerationConfig,
    LabelDetector,
    TextGenerator,
)


def _encode_image(image_format: str) -> str:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color=(200, 120, 40)).save(buffer, format=image_format)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def png_b64():
    return _encode_image("PNG")


@pytest.fixture
def jpeg_b64():
    return _encode_image("JPEG")


@pytest.fixture
def gif_b64():
    return _encode_image("GIF")


class RecordingDetector(LabelDetector):
    """Returns canned concepts (or raises) and records every call."""

    def __init__(self, concepts=None, error=None, block_until=None):
        self.concepts = concepts if concepts is not None else ConceptSet()
        self.error = error
        self.block_until = block_until
        self.calls = []

    def detect(self, image, max_labels, min_confidence):
        self.calls.append((image, max_labels, min_confidence))
        if self.block_until is not None:
            self.block_until.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.concepts


class RecordingGenerator(TextGenerator):
    """Returns canned text (or raises) and records every prompt."""

    def __init__(self, text="A generated sentence.", error=None, block_until=None):
        self.text = text
        self.error = error
        self.block_until = block_until
        self.calls = []

    def generate(self, prompt, config):
        self.calls.append((prompt, config))
        if self.block_until is not None:
            self.block_until.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture
def cat_concepts():
    return ConceptSet([
        Concept(name="Cat", confidence=95.0),
        Concept(name="Animal", confidence=90.0),
        Concept(name="Pet", confidence=82.0),
    ])


@pytest.fixture
def make_detector():
    return RecordingDetector


@pytest.fixture
def make_generator():
    return RecordingGenerator


@pytest.fixture
def make_pipeline():
    def _make(detector, generator, **kwargs):
        kwargs.setdefault("generation_config", GenerationConfig())
        kwargs.setdefault("poll_interval", 0.01)
        return DescriptionPipeline(detector=detector, generator=generator, **kwargs)
    return _make


@pytest.fixture
def release_event():
    """Event used to unblock doubles; always set on teardown so no thread lingers."""
    event = threading.Event()
    yield event
    event.set()
