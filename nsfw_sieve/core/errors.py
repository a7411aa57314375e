"""Error types raised by the classification pipeline."""


class NsfwSieveError(Exception):
    """Base class for all pipeline errors."""


class InvalidConfiguration(NsfwSieveError, ValueError):
    """Configuration rejected before any work starts."""


class UnsupportedFormat(NsfwSieveError):
    """The decoder cannot interpret the media container."""


class FrameDecodeError(UnsupportedFormat):
    """A single frame could not be decoded."""

    def __init__(self, index: int, reason: str):
        super().__init__(f"Failed to decode frame {index}: {reason}")
        self.index = index


class RetrievalError(NsfwSieveError, OSError):
    """Reading a file or downloading a URL failed."""


class InferenceError(NsfwSieveError):
    """The classifier failed on one unit of image bytes."""
