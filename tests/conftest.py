"""Shared test doubles for classifier and decoder capabilities."""
import threading
import time

import pytest

from nsfw_sieve.core.config import Config, ExecutorConfig
from nsfw_sieve.core.errors import InferenceError, UnsupportedFormat
from nsfw_sieve.core.models import CATEGORIES, ClassificationResult
from nsfw_sieve.classification.classifier import ImageClassifier


def frame(label: str, index: int = 0) -> bytes:
    """Fake image bytes whose classification is `label`."""
    return f"{label}:{index}".encode()


class FakeClassifier(ImageClassifier):
    """Deterministic classifier reading the label from the payload prefix.

    b"fail..." raises InferenceError.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def infer(self, image_data: bytes) -> ClassificationResult:
        with self._lock:
            self.calls.append(image_data)
        if self.delay:
            time.sleep(self.delay)
        label = image_data.split(b":")[0].decode()
        if label == "fail":
            raise InferenceError(f"model rejected {image_data!r}")
        others = [c for c in CATEGORIES if c != label]
        scores = {c: 0.1 / len(others) for c in others}
        scores[label] = 0.9
        return ClassificationResult.from_scores(scores)


class FakeDecoder:
    """Decoder returning a fixed frame list."""

    def __init__(self, frames=None, error: Exception = None):
        self.frames = list(frames or [])
        self.error = error
        self.calls = 0

    def decode(self, data: bytes):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.frames)


@pytest.fixture
def classifier():
    return FakeClassifier()


@pytest.fixture
def config():
    cfg = Config()
    cfg.executor = ExecutorConfig(max_workers=4)
    return cfg


@pytest.fixture
def single_worker_config():
    cfg = Config()
    cfg.executor = ExecutorConfig(max_workers=1)
    return cfg


@pytest.fixture
def unsupported_decoder():
    return FakeDecoder(error=UnsupportedFormat("not a container"))
