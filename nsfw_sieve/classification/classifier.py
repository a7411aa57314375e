"""Classifier capability: image bytes in, category scores out."""
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union

import numpy as np

from ..core.config import ModelConfig
from ..core.errors import InferenceError
from ..core.logging_config import get_logger
from ..core.models import ClassificationResult

logger = get_logger(__name__)


class ImageClassifier(ABC):
    """Single-unit inference contract used by the pipeline.

    Implementations must be deterministic for identical bytes and safe to
    call from several worker threads at once.
    """

    @abstractmethod
    def infer(self, image_data: bytes) -> ClassificationResult:
        """
        Classify one image.

        Raises:
            InferenceError: If the image cannot be classified.
        """


class ScoringSession(Protocol):
    """A loaded model that scores image bytes."""

    def predict(self, image_data: bytes) -> Union[Mapping[str, float], Any]:
        """Return a label->score mapping or a score vector in category order."""
        ...


class PooledClassifier(ImageClassifier):
    """
    Classifier over model sessions created by a factory.

    Non-reentrant sessions are pooled one per worker thread; a reentrant
    session is created once and shared. Sessions are created lazily.
    """

    def __init__(
        self,
        session_factory: Callable[[], ScoringSession],
        model_config: Optional[ModelConfig] = None,
        reentrant: bool = False,
    ):
        """
        Initialize classifier.

        Args:
            session_factory: Zero-argument callable returning a loaded session.
            model_config: Category taxonomy. Defaults to ModelConfig().
            reentrant: Whether one session may serve concurrent calls.
        """
        self.session_factory = session_factory
        self.model_config = model_config or ModelConfig()
        self.reentrant = reentrant
        self._local = threading.local()
        self._shared: Optional[ScoringSession] = None
        self._lock = threading.Lock()
        self._session_count = 0

    @property
    def session_count(self) -> int:
        """Number of sessions created so far."""
        return self._session_count

    def _create_session(self) -> ScoringSession:
        with self._lock:
            session = self.session_factory()
            self._session_count += 1
        logger.debug(
            "Created scoring session #%d on %s",
            self._session_count, threading.current_thread().name,
        )
        return session

    def _session(self) -> ScoringSession:
        if self.reentrant:
            if self._shared is None:
                with self._lock:
                    if self._shared is None:
                        self._shared = self.session_factory()
                        self._session_count += 1
            return self._shared

        session = getattr(self._local, "session", None)
        if session is None:
            session = self._create_session()
            self._local.session = session
        return session

    def _coerce_scores(self, raw: Any) -> Dict[str, float]:
        """Map raw model output onto category labels."""
        if isinstance(raw, Mapping):
            return {str(label): float(score) for label, score in raw.items()}

        vector = np.asarray(raw, dtype=np.float64).ravel()
        categories = self.model_config.categories
        if vector.size != len(categories):
            raise ValueError(
                f"Model returned {vector.size} scores for {len(categories)} categories"
            )
        return dict(zip(categories, vector.tolist()))

    def infer(self, image_data: bytes) -> ClassificationResult:
        if not image_data:
            raise InferenceError("Cannot classify empty image data")

        try:
            raw = self._session().predict(image_data)
            scores = self._coerce_scores(raw)
            return ClassificationResult.from_scores(
                scores,
                categories=self.model_config.categories,
                nsfw_categories=self.model_config.nsfw_categories,
                label_priority=self.model_config.label_priority,
            )
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"Inference failed: {e}") from e
