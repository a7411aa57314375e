"""Explicit-content classification for images, gifs and videos."""
from .core import (
    Config,
    SamplingConfig,
    load_config,
    ClassificationResult,
    FramesResult,
    BatchItem,
    BatchResult,
    UnitFailure,
    NsfwSieveError,
    InvalidConfiguration,
    UnsupportedFormat,
    RetrievalError,
    InferenceError,
)
from .classification import ImageClassifier, PooledClassifier
from .pipelines import MediaPipeline

__version__ = "0.1.0"

__all__ = [
    "Config",
    "SamplingConfig",
    "load_config",
    "ClassificationResult",
    "FramesResult",
    "BatchItem",
    "BatchResult",
    "UnitFailure",
    "NsfwSieveError",
    "InvalidConfiguration",
    "UnsupportedFormat",
    "RetrievalError",
    "InferenceError",
    "ImageClassifier",
    "PooledClassifier",
    "MediaPipeline",
]
