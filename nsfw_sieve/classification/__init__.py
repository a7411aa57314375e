"""Frame sampling, concurrent classification and result aggregation."""
from .sampler import sample_frame_indices
from .classifier import ImageClassifier, PooledClassifier, ScoringSession
from .executor import ClassificationExecutor, ExecutionOutcome
from .aggregator import aggregate_frames, aggregate_batch

__all__ = [
    "sample_frame_indices",
    "ImageClassifier",
    "PooledClassifier",
    "ScoringSession",
    "ClassificationExecutor",
    "ExecutionOutcome",
    "aggregate_frames",
    "aggregate_batch",
]
