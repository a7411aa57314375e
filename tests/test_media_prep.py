"""Tests for frame decoders and file helpers."""
import io
import sys
import types

import numpy as np
import pytest
from PIL import Image, features

from nsfw_sieve.core.config import SamplingConfig
from nsfw_sieve.core.errors import FrameDecodeError, UnsupportedFormat
from nsfw_sieve.core.file_utils import FileTypeRegistry, ImageUtils
from nsfw_sieve.core.media_prep import AnimatedImageDecoder, VideoFrameDecoder
from nsfw_sieve.pipelines.media_pipeline import MediaPipeline

from conftest import frame


def make_gif(colors):
    images = [Image.new("RGB", (12, 12), c) for c in colors]
    buf = io.BytesIO()
    images[0].save(buf, format="GIF", save_all=True, append_images=images[1:], duration=40, loop=0)
    return buf.getvalue()


def fake_cv2(frame_count, failing=(), raises=False):
    """Minimal OpenCV stand-in whose JPEG encoder fails on chosen frames.

    Encoded frame i is frame("Neutral", i).
    """

    class CvError(Exception):
        pass

    class Capture:
        def __init__(self, path):
            self.position = 0

        def isOpened(self):
            return True

        def read(self):
            if self.position >= frame_count:
                return False, None
            self.position += 1
            return True, np.full((2, 2, 3), self.position - 1, dtype=np.uint8)

        def release(self):
            pass

    def imencode(ext, image, params):
        index = int(image[0, 0, 0])
        if index in failing:
            if raises:
                raise CvError("encoder error")
            return False, None
        return True, np.frombuffer(frame("Neutral", index), dtype=np.uint8)

    return types.SimpleNamespace(
        VideoCapture=Capture,
        imencode=imencode,
        error=CvError,
        IMWRITE_JPEG_QUALITY=1,
    )


class TestAnimatedImageDecoder:

    def test_frame_count(self):
        frames = AnimatedImageDecoder().decode(make_gif([(255, 0, 0), (0, 255, 0), (0, 0, 255)]))
        assert len(frames) == 3
        frames.close()

    def test_frames_are_png(self):
        frames = AnimatedImageDecoder().decode(make_gif([(255, 0, 0), (0, 255, 0)]))
        data = frames[1]
        assert data.startswith(b"\x89PNG")
        with Image.open(io.BytesIO(data)) as img:
            assert img.size == (12, 12)
            r, g, b = img.convert("RGB").getpixel((6, 6))
            assert g > 200 and r < 50

    def test_random_access(self):
        frames = AnimatedImageDecoder().decode(make_gif([(255, 0, 0), (0, 255, 0), (0, 0, 255)]))
        assert frames[2] == frames[-1]
        assert frames[0] != frames[2]

    def test_index_out_of_range(self):
        frames = AnimatedImageDecoder().decode(make_gif([(255, 0, 0), (0, 255, 0)]))
        with pytest.raises(IndexError):
            frames[5]

    def test_still_image_is_one_frame(self):
        buf = io.BytesIO()
        Image.new("RGB", (4, 4)).save(buf, format="PNG")
        assert len(AnimatedImageDecoder().decode(buf.getvalue())) == 1

    def test_garbage(self):
        with pytest.raises(UnsupportedFormat):
            AnimatedImageDecoder().decode(b"definitely not a gif")


class TestVideoFrameDecoder:

    def test_garbage(self):
        pytest.importorskip("cv2")
        with pytest.raises(UnsupportedFormat):
            VideoFrameDecoder().decode(b"\x00" * 512)

    def test_empty(self):
        pytest.importorskip("cv2")
        with pytest.raises(UnsupportedFormat):
            VideoFrameDecoder().decode(b"")

    def test_quality_range(self):
        with pytest.raises(ValueError):
            VideoFrameDecoder(jpeg_quality=0)

    def test_encode_failure_affects_only_that_frame(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "cv2", fake_cv2(frame_count=4, failing={1}))

        frames = VideoFrameDecoder().decode(b"video")

        assert len(frames) == 4
        assert frames.failed_indices == [1]
        assert frames[0] == frame("Neutral", 0)
        assert frames[3] == frame("Neutral", 3)
        with pytest.raises(FrameDecodeError):
            frames[1]

    def test_encode_exception_affects_only_that_frame(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "cv2", fake_cv2(frame_count=3, failing={2}, raises=True))

        frames = VideoFrameDecoder().decode(b"video")

        assert frames.failed_indices == [2]
        with pytest.raises(FrameDecodeError):
            frames[2]

    def test_pipeline_reports_unencodable_frame(self, classifier, config, monkeypatch):
        monkeypatch.setitem(sys.modules, "cv2", fake_cv2(frame_count=5, failing={2}))
        pipeline = MediaPipeline(classifier, config, video_decoder=VideoFrameDecoder())

        result = pipeline.classify_video(
            b"video", SamplingConfig(stride=1, early_stop_on_nsfw=False)
        )

        assert list(result.frames) == [0, 1, 3, 4]
        assert list(result.failures) == [2]
        assert result.failures[2].error_type == "FrameDecodeError"
        assert result.is_nsfw is False


class TestFileTypeRegistry:

    def test_kinds(self):
        assert FileTypeRegistry.is_image("a.JPG")
        assert FileTypeRegistry.is_animated("a.gif")
        assert not FileTypeRegistry.is_image("a.gif")
        assert FileTypeRegistry.is_video("a.mp4")
        assert not FileTypeRegistry.is_media("a.txt")

    def test_list_images(self, tmp_path):
        (tmp_path / "b.png").write_bytes(b"x")
        (tmp_path / "a.jpg").write_bytes(b"x")
        (tmp_path / "c.mp4").write_bytes(b"x")
        sub = tmp_path / "sub"
        sub.mkdir()
        (sub / "d.webp").write_bytes(b"x")

        assert [p.name for p in FileTypeRegistry.list_images(tmp_path)] == ["a.jpg", "b.png"]
        assert len(FileTypeRegistry.list_images(tmp_path, recursive=True)) == 3

    def test_list_images_missing_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            FileTypeRegistry.list_images(tmp_path / "nope")

    def test_list_images_not_dir(self, tmp_path):
        path = tmp_path / "a.jpg"
        path.write_bytes(b"x")
        with pytest.raises(NotADirectoryError):
            FileTypeRegistry.list_images(path)


class TestImageUtils:

    def test_detect_format(self):
        buf = io.BytesIO()
        Image.new("RGB", (4, 4)).save(buf, format="JPEG")
        assert ImageUtils.detect_format(buf.getvalue()) == "JPEG"
        assert ImageUtils.detect_format(b"nope") is None

    def test_detect_format_oversized(self, monkeypatch):
        buf = io.BytesIO()
        Image.new("RGB", (8, 8)).save(buf, format="PNG")
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
        with pytest.raises(UnsupportedFormat):
            ImageUtils.detect_format(buf.getvalue())

    def test_normalize_leaves_png(self):
        buf = io.BytesIO()
        Image.new("RGB", (4, 4)).save(buf, format="PNG")
        assert ImageUtils.normalize_for_inference(buf.getvalue()) == buf.getvalue()

    def test_normalize_leaves_unknown(self):
        assert ImageUtils.normalize_for_inference(b"raw") == b"raw"

    def test_normalize_webp(self):
        if not features.check("webp"):
            pytest.skip("Pillow built without WebP")
        buf = io.BytesIO()
        Image.new("RGB", (6, 6), (1, 2, 3)).save(buf, format="WEBP")
        converted = ImageUtils.normalize_for_inference(buf.getvalue())
        assert ImageUtils.detect_format(converted) == "PNG"

    def test_normalize_undecodable_webp(self, monkeypatch):
        if not features.check("webp"):
            pytest.skip("Pillow built without WebP")
        buf = io.BytesIO()
        Image.new("RGB", (6, 6), (1, 2, 3)).save(buf, format="WEBP")

        def broken_save(self, *args, **kwargs):
            raise OSError("image file is truncated")

        monkeypatch.setattr(Image.Image, "save", broken_save)
        with pytest.raises(UnsupportedFormat) as exc_info:
            ImageUtils.normalize_for_inference(buf.getvalue())
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_to_model_input(self):
        buf = io.BytesIO()
        Image.new("RGB", (30, 20), (255, 0, 0)).save(buf, format="PNG")
        arr = ImageUtils.to_model_input(buf.getvalue(), size=(8, 4))
        assert arr.shape == (4, 8, 3)
        assert arr.dtype == np.float32
        assert arr[..., 0].max() == pytest.approx(1.0)
