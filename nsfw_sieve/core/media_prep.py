"""Frame decoders for multi-frame media.

A decoder turns a gif or video byte stream into an ordered sequence of
per-frame image buffers that the classifier can read.
"""
import io
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from collections import abc
from typing import List, Optional, Sequence

from PIL import Image, UnidentifiedImageError

from .errors import FrameDecodeError, UnsupportedFormat
from .logging_config import get_logger

logger = get_logger(__name__)


class FrameDecoder(ABC):
    """Turns a container byte stream into ordered frame buffers."""

    @abstractmethod
    def decode(self, data: bytes) -> Sequence[bytes]:
        """
        Decode all frames of a container.

        Raises:
            UnsupportedFormat: If the container cannot be interpreted.
        """


class AnimatedFrames(abc.Sequence):
    """Lazily rendered frames of an animated image.

    Pillow image objects are not safe to seek from several threads, so
    frame access is serialized. Frames are rendered on first access only.
    """

    def __init__(self, image: Image.Image):
        self._image = image
        self._count = getattr(image, "n_frames", 1)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._count))]
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError(f"frame index {index} out of range")

        with self._lock:
            try:
                self._image.seek(index)
                # Pillow composites gif frames onto the previous canvas
                frame = self._image.convert("RGB")
            except (EOFError, OSError, ValueError) as e:
                raise FrameDecodeError(index, str(e)) from e

        buf = io.BytesIO()
        frame.save(buf, format="PNG")
        return buf.getvalue()

    def close(self):
        self._image.close()


class AnimatedImageDecoder(FrameDecoder):
    """Decoder for gif, animated png and animated webp via Pillow."""

    def decode(self, data: bytes) -> AnimatedFrames:
        try:
            image = Image.open(io.BytesIO(data))
        except (UnidentifiedImageError, OSError) as e:
            raise UnsupportedFormat(f"Cannot read animated image: {e}") from e

        frames = AnimatedFrames(image)
        logger.debug("Opened %s with %d frames", image.format, len(frames))
        return frames


class VideoFrames(abc.Sequence):
    """Encoded video frames, with None marking a frame that failed to encode.

    Accessing a failed frame raises FrameDecodeError, so the failure is
    reported against that frame only.
    """

    def __init__(self, encoded: List[Optional[bytes]]):
        self._encoded = encoded

    def __len__(self) -> int:
        return len(self._encoded)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self._encoded)))]
        if index < 0:
            index += len(self._encoded)
        if not 0 <= index < len(self._encoded):
            raise IndexError(f"frame index {index} out of range")
        data = self._encoded[index]
        if data is None:
            raise FrameDecodeError(index, "JPEG encoding failed")
        return data

    @property
    def failed_indices(self) -> List[int]:
        return [i for i, data in enumerate(self._encoded) if data is None]


class VideoFrameDecoder(FrameDecoder):
    """Decoder for video containers via OpenCV.

    Every frame is read in order and encoded to JPEG. A frame that fails
    to encode is kept as a gap in the returned sequence.
    """

    def __init__(self, jpeg_quality: int = 90):
        if not 1 <= jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be between 1 and 100, got {jpeg_quality}")
        self.jpeg_quality = jpeg_quality

    def decode(self, data: bytes) -> VideoFrames:
        import cv2

        if not data:
            raise UnsupportedFormat("Cannot read video: empty input")

        # OpenCV reads containers from disk only
        fd, tmp_path = tempfile.mkstemp(suffix=".video")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)

            cap = cv2.VideoCapture(tmp_path)
            if not cap.isOpened():
                cap.release()
                raise UnsupportedFormat("Cannot read video: container not recognized")

            encoded_frames: List[Optional[bytes]] = []
            params = [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality]
            try:
                while True:
                    ret, frame = cap.read()
                    if not ret:
                        break
                    try:
                        ok, encoded = cv2.imencode(".jpg", frame, params)
                    except cv2.error as e:
                        logger.debug("JPEG encoding raised for frame %d: %s", len(encoded_frames), e)
                        ok = False
                    encoded_frames.append(encoded.tobytes() if ok else None)
            finally:
                cap.release()
        finally:
            os.unlink(tmp_path)

        if not encoded_frames:
            raise UnsupportedFormat("Cannot read video: no decodable frames")

        frames = VideoFrames(encoded_frames)
        if frames.failed_indices:
            logger.warning(
                "Failed to encode %d of %d video frames", len(frames.failed_indices), len(frames)
            )
        logger.debug("Decoded %d video frames", len(frames))
        return frames
