"""File utilities for media handling."""
import io
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import UnsupportedFormat

# Pillow signals damaged or hostile input with any of these.
_PILLOW_ERRORS = (OSError, ValueError, SyntaxError, Image.DecompressionBombError)


class FileTypeRegistry:
    """Registry of supported file types."""

    # Still images, classified once
    IMAGE_EXTENSIONS = {
        ".jpg", ".jpeg", ".png", ".webp", ".bmp", ".tif", ".tiff"
    }

    # Multi-frame images, classified frame by frame
    ANIMATED_EXTENSIONS = {".gif"}

    VIDEO_EXTENSIONS = {
        ".mp4", ".mov", ".avi", ".mkv", ".m4v",
        ".3gp", ".wmv", ".flv", ".webm"
    }

    @classmethod
    def is_image(cls, path: Path) -> bool:
        """
        Check if file is a still image.

        Args:
            path: Path to file.

        Returns:
            True if image, False otherwise.
        """
        return Path(path).suffix.lower() in cls.IMAGE_EXTENSIONS

    @classmethod
    def is_animated(cls, path: Path) -> bool:
        """Check if file is an animated image (gif)."""
        return Path(path).suffix.lower() in cls.ANIMATED_EXTENSIONS

    @classmethod
    def is_video(cls, path: Path) -> bool:
        """Check if file is a video."""
        return Path(path).suffix.lower() in cls.VIDEO_EXTENSIONS

    @classmethod
    def is_media(cls, path: Path) -> bool:
        return cls.is_image(path) or cls.is_animated(path) or cls.is_video(path)

    @classmethod
    def list_images(cls, directory: Path, recursive: bool = False) -> List[Path]:
        """
        List all still images in directory.

        Args:
            directory: Directory to search.
            recursive: Search recursively.

        Returns:
            Sorted list of image paths.

        Raises:
            FileNotFoundError: If directory doesn't exist.
            NotADirectoryError: If path is not a directory.
        """
        directory = Path(directory)

        if not directory.exists():
            raise FileNotFoundError(f"Directory not found: {directory}")

        if not directory.is_dir():
            raise NotADirectoryError(f"Path is not a directory: {directory}")

        pattern = "**/*" if recursive else "*"

        images = []
        for path in directory.glob(pattern):
            if path.is_file() and cls.is_image(path):
                images.append(path)

        return sorted(images)


class ImageUtils:
    """Utilities for preparing image bytes for inference."""

    @staticmethod
    def detect_format(data: bytes) -> Optional[str]:
        """
        Identify the image format of a byte buffer.

        Args:
            data: Raw image bytes.

        Returns:
            Pillow format name (e.g. "PNG", "WEBP") or None if unrecognized.

        Raises:
            UnsupportedFormat: If the declared dimensions exceed Pillow's pixel limit.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                return img.format
        except Image.DecompressionBombError as e:
            raise UnsupportedFormat(f"Image too large to decode: {e}") from e
        except (UnidentifiedImageError, OSError):
            return None

    @staticmethod
    def normalize_for_inference(data: bytes) -> bytes:
        """
        Re-encode formats the model cannot read.

        WebP is converted to PNG; every other format passes through
        unchanged, including bytes Pillow does not recognize (the
        classifier reports those).

        Args:
            data: Raw image bytes.

        Returns:
            Bytes ready for the classifier.

        Raises:
            UnsupportedFormat: If a WebP header is present but the image
                cannot be decoded.
        """
        if ImageUtils.detect_format(data) != "WEBP":
            return data

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGBA")
                buf = io.BytesIO()
                img.save(buf, format="PNG")
                return buf.getvalue()
        except _PILLOW_ERRORS as e:
            raise UnsupportedFormat(f"Cannot convert WebP image: {e}") from e

    @staticmethod
    def to_model_input(
        data: bytes,
        size: Tuple[int, int] = (224, 224),
        scale: float = 1.0 / 255.0
    ) -> np.ndarray:
        """
        Decode image bytes into a float32 HxWx3 array.

        Helper for scoring sessions backed by array-input models.

        Args:
            data: Raw image bytes.
            size: Target (width, height).
            scale: Multiplier applied to 0-255 pixel values.

        Returns:
            Array of shape (height, width, 3).
        """
        with Image.open(io.BytesIO(data)) as img:
            img = img.convert("RGB").resize(size, Image.Resampling.BILINEAR)
            return np.asarray(img, dtype=np.float32) * scale
