"""Core infrastructure modules."""
from .config import (
    Config,
    ModelConfig,
    SamplingConfig,
    ExecutorConfig,
    RetrievalConfig,
    SystemConfig,
    load_config,
    save_config,
)
from .errors import (
    NsfwSieveError,
    InvalidConfiguration,
    UnsupportedFormat,
    FrameDecodeError,
    RetrievalError,
    InferenceError,
)
from .models import (
    ClassificationResult,
    FramesResult,
    BatchItem,
    BatchResult,
    UnitFailure,
)
from .file_utils import FileTypeRegistry, ImageUtils
from .media_prep import FrameDecoder, AnimatedImageDecoder, VideoFrameDecoder
from .logging_config import (
    setup_logging,
    get_logger,
    setup_logging_from_config,
)

__all__ = [
    "Config",
    "ModelConfig",
    "SamplingConfig",
    "ExecutorConfig",
    "RetrievalConfig",
    "SystemConfig",
    "load_config",
    "save_config",
    "NsfwSieveError",
    "InvalidConfiguration",
    "UnsupportedFormat",
    "FrameDecodeError",
    "RetrievalError",
    "InferenceError",
    "ClassificationResult",
    "FramesResult",
    "BatchItem",
    "BatchResult",
    "UnitFailure",
    "FileTypeRegistry",
    "ImageUtils",
    "FrameDecoder",
    "AnimatedImageDecoder",
    "VideoFrameDecoder",
    "setup_logging",
    "get_logger",
    "setup_logging_from_config",
]
