"""Concurrent fan-out of classification units with cooperative early stop."""
import concurrent.futures
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from tqdm import tqdm

from ..core.errors import NsfwSieveError
from ..core.logging_config import get_logger
from ..core.models import ClassificationResult, UnitFailure, UnitKey
from .classifier import ImageClassifier

logger = get_logger(__name__)

# Failures recorded against one unit; anything else is a bug and propagates.
UNIT_ERRORS = (NsfwSieveError, OSError)

ResultCallback = Callable[[UnitKey, ClassificationResult], None]


@dataclass
class ExecutionOutcome:
    """Unordered output of one executor run."""
    results: List[Tuple[UnitKey, ClassificationResult]] = field(default_factory=list)
    failures: List[UnitFailure] = field(default_factory=list)
    skipped: List[UnitKey] = field(default_factory=list)
    stopped_early: bool = False


class ResultSink:
    """Thread-safe collector for unit outcomes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._outcome = ExecutionOutcome()

    def add_result(self, key: UnitKey, result: ClassificationResult):
        with self._lock:
            self._outcome.results.append((key, result))

    def add_failure(self, failure: UnitFailure):
        with self._lock:
            self._outcome.failures.append(failure)

    def add_skipped(self, key: UnitKey):
        with self._lock:
            self._outcome.skipped.append(key)

    def close(self, stopped_early: bool) -> ExecutionOutcome:
        with self._lock:
            outcome = self._outcome
            outcome.stopped_early = stopped_early
            self._outcome = ExecutionOutcome()
        return outcome


class ClassificationExecutor:
    """
    Runs classification units across a thread pool.

    A unit is a key (frame index or item id) plus a loader that produces
    its image bytes inside the worker. Loading and inference failures are
    recorded per unit; sibling units keep running.
    """

    def __init__(
        self,
        classifier: ImageClassifier,
        max_workers: int = 1,
        show_progress: bool = False,
    ):
        """
        Initialize executor.

        Args:
            classifier: Shared classifier, safe for concurrent calls.
            max_workers: Worker thread count.
            show_progress: Whether to show a tqdm progress bar.
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.classifier = classifier
        self.max_workers = max_workers
        self.show_progress = show_progress

    def run(
        self,
        keys: Sequence[UnitKey],
        load: Callable[[UnitKey], bytes],
        early_stop_on_nsfw: bool = False,
        on_result: Optional[ResultCallback] = None,
        desc: str = "Classifying",
    ) -> ExecutionOutcome:
        """
        Classify every unit, honoring early stop.

        With early_stop_on_nsfw, the first explicit result sets a shared stop
        flag. Units that have not started when the flag is set are skipped;
        units already running finish and their results are kept.

        on_result is called once per successful unit, never concurrently
        with itself.

        Args:
            keys: Unique unit keys, dispatched in this order.
            load: Returns the image bytes for a key. Runs on the worker.
            early_stop_on_nsfw: Stop dispatching after the first explicit result.
            on_result: Optional per-unit completion callback.
            desc: Progress bar label.

        Returns:
            ExecutionOutcome with results, failures and skipped keys.
        """
        sink = ResultSink()
        stop = threading.Event()
        callback_lock = threading.Lock()

        def run_unit(key: UnitKey):
            if stop.is_set():
                sink.add_skipped(key)
                return

            try:
                data = load(key)
                result = self.classifier.infer(data)
            except UNIT_ERRORS as e:
                logger.warning("Unit %r failed: %s: %s", key, type(e).__name__, e)
                sink.add_failure(UnitFailure.from_exception(key, e))
                return

            sink.add_result(key, result)

            if early_stop_on_nsfw and result.is_nsfw and not stop.is_set():
                stop.set()
                logger.info("Explicit content at unit %r, stopping dispatch", key)

            if on_result is not None:
                with callback_lock:
                    on_result(key, result)

        if not keys:
            return sink.close(stopped_early=False)

        workers = min(self.max_workers, len(keys))
        logger.debug("Dispatching %d units across %d workers", len(keys), workers)

        with tqdm(total=len(keys), desc=desc, disable=not self.show_progress) as progress:
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix="nsfw-sieve"
            ) as executor:
                futures = [executor.submit(run_unit, key) for key in keys]
                try:
                    for future in concurrent.futures.as_completed(futures):
                        future.result()
                        progress.update(1)
                except BaseException:
                    # Unexpected error: start nothing new, let running units drain
                    stop.set()
                    for future in futures:
                        future.cancel()
                    raise

        outcome = sink.close(stopped_early=stop.is_set())
        logger.debug(
            "Run finished: %d results, %d failures, %d skipped",
            len(outcome.results), len(outcome.failures), len(outcome.skipped),
        )
        return outcome
