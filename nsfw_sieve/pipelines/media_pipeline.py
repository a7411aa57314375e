"""Pipeline facade: images, gifs, videos and batches of images."""
import asyncio
import time
from pathlib import Path
from typing import Callable, Iterable, Optional

import httpx

from ..core.config import Config, SamplingConfig
from ..core.errors import UnsupportedFormat
from ..core.file_utils import FileTypeRegistry, ImageUtils
from ..core.logging_config import get_logger
from ..core.media_prep import AnimatedImageDecoder, FrameDecoder, VideoFrameDecoder
from ..core.models import ClassificationResult, BatchResult, FramesResult
from ..core.retrieval import (
    MediaSource,
    fetch_bytes,
    fetch_bytes_async,
    get_default_client,
    source_id,
)
from ..classification.aggregator import aggregate_batch, aggregate_frames
from ..classification.classifier import ImageClassifier
from ..classification.executor import ClassificationExecutor
from ..classification.sampler import sample_frame_indices

logger = get_logger(__name__)

ItemCallback = Callable[[str, ClassificationResult], None]


class MediaPipeline:
    """
    Classifies still images, animated images, videos and image batches.

    The classifier is created by the caller and shared read-only by every
    worker for the lifetime of the pipeline.
    """

    def __init__(
        self,
        classifier: ImageClassifier,
        config: Optional[Config] = None,
        animated_decoder: Optional[FrameDecoder] = None,
        video_decoder: Optional[FrameDecoder] = None,
        http_client: Optional[httpx.Client] = None,
        async_http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize pipeline.

        Args:
            classifier: Shared classifier capability.
            config: Configuration. Defaults to Config().
            animated_decoder: Decoder for gifs. Defaults to Pillow.
            video_decoder: Decoder for videos. Defaults to OpenCV.
            http_client: Client for URL sources. Defaults to the shared client
                for config.retrieval.
            async_http_client: Client for async URL sources. Without one, each
                async call opens a short-lived client from config.retrieval,
                since an AsyncClient cannot be shared across event loops.
        """
        self.classifier = classifier
        self.config = config or Config()
        self.animated_decoder = animated_decoder or AnimatedImageDecoder()
        self.video_decoder = video_decoder or VideoFrameDecoder()
        self.http_client = http_client or get_default_client(self.config.retrieval)
        self.async_http_client = async_http_client
        self.executor = ClassificationExecutor(
            classifier,
            max_workers=self.config.executor.resolve_workers(),
            show_progress=self.config.executor.show_progress,
        )

    # ── Single image ─────────────────────────────────────────────────

    def _infer(self, data: bytes) -> ClassificationResult:
        return self.classifier.infer(ImageUtils.normalize_for_inference(data))

    def classify_image(self, source: MediaSource) -> ClassificationResult:
        """
        Classify one still image.

        Args:
            source: Image bytes, a local path, or an http(s) URL.

        Raises:
            RetrievalError: If the source cannot be read.
            InferenceError: If the classifier fails.
        """
        data = fetch_bytes(source, self.http_client)
        return self._infer(data)

    async def classify_image_async(self, source: MediaSource) -> ClassificationResult:
        """Classify one still image without blocking the event loop."""
        data = await fetch_bytes_async(source, self.async_http_client, self.config.retrieval)
        return await asyncio.to_thread(self._infer, data)

    # ── Batch ────────────────────────────────────────────────────────

    def classify_images(
        self,
        sources: Iterable[MediaSource],
        callback: Optional[ItemCallback] = None,
    ) -> BatchResult:
        """
        Classify independent images concurrently.

        An item that cannot be read or classified is reported in
        BatchResult.failures; the rest of the batch continues.

        Args:
            sources: Image bytes, paths or URLs.
            callback: Called as callback(item_id, result) once per completed
                item. Calls are serialized across workers.

        Returns:
            BatchResult in completion order.
        """
        sources = list(sources)
        ids = [source_id(source) for source in sources]

        def load(key: int) -> bytes:
            return ImageUtils.normalize_for_inference(fetch_bytes(sources[key], self.http_client))

        on_result = None
        if callback is not None:
            def on_result(key: int, result: ClassificationResult):
                callback(ids[key], result)

        start = time.time()
        outcome = self.executor.run(
            list(range(len(sources))), load, on_result=on_result, desc="Classifying images"
        )
        batch = aggregate_batch(outcome, ids)
        logger.info(
            "Batch of %d: %d classified, %d failed in %.1fs",
            len(sources), len(batch.items), len(batch.failures), time.time() - start,
        )
        return batch

    def classify_folder(
        self,
        directory: Path,
        recursive: bool = False,
        callback: Optional[ItemCallback] = None,
    ) -> BatchResult:
        """Classify every still image in a directory."""
        return self.classify_images(FileTypeRegistry.list_images(directory, recursive), callback)

    # ── Multi-frame media ────────────────────────────────────────────

    def _resolve_sampling(self, sampling: Optional[SamplingConfig]) -> SamplingConfig:
        sampling = sampling or self.config.sampling
        sampling.validate()
        return sampling

    def _classify_frames(
        self,
        data: bytes,
        decoder: FrameDecoder,
        sampling: SamplingConfig,
        media_label: str,
    ) -> FramesResult:
        frames = decoder.decode(data)
        try:
            indices = sample_frame_indices(len(frames), sampling.stride)

            def load(index: int) -> bytes:
                return ImageUtils.normalize_for_inference(frames[index])

            outcome = self.executor.run(
                list(indices),
                load,
                early_stop_on_nsfw=sampling.early_stop_on_nsfw,
                desc=f"Classifying {media_label} frames",
            )
        finally:
            close = getattr(frames, "close", None)
            if close is not None:
                close()

        result = aggregate_frames(outcome)
        logger.info(
            "%s: %d/%d frames sampled, %d classified, %d failed, nsfw=%s%s",
            media_label.capitalize(), len(indices), len(frames), result.frame_count,
            len(result.failures), result.is_nsfw,
            " (stopped early)" if outcome.stopped_early else "",
        )
        return result

    def classify_gif(
        self,
        source: MediaSource,
        sampling: Optional[SamplingConfig] = None,
    ) -> FramesResult:
        """
        Classify the frames of a gif or other animated image.

        Args:
            source: Gif bytes, a local path, or an http(s) URL.
            sampling: Frame sampling. Defaults to config.sampling.

        Raises:
            InvalidConfiguration: If stride < 1. Nothing is fetched or classified.
            UnsupportedFormat: If the container cannot be decoded.
            RetrievalError: If the source cannot be read.
        """
        sampling = self._resolve_sampling(sampling)
        data = fetch_bytes(source, self.http_client)
        return self._classify_frames(data, self.animated_decoder, sampling, "gif")

    async def classify_gif_async(
        self,
        source: MediaSource,
        sampling: Optional[SamplingConfig] = None,
    ) -> FramesResult:
        sampling = self._resolve_sampling(sampling)
        data = await fetch_bytes_async(source, self.async_http_client, self.config.retrieval)
        return await asyncio.to_thread(
            self._classify_frames, data, self.animated_decoder, sampling, "gif"
        )

    def classify_video(
        self,
        source: MediaSource,
        sampling: Optional[SamplingConfig] = None,
    ) -> FramesResult:
        """
        Classify the frames of a video.

        Args:
            source: Video bytes, a local path, or an http(s) URL.
            sampling: Frame sampling. Defaults to config.sampling.

        Raises:
            InvalidConfiguration: If stride < 1. Nothing is fetched or classified.
            UnsupportedFormat: If the container cannot be decoded.
            RetrievalError: If the source cannot be read.
        """
        sampling = self._resolve_sampling(sampling)
        data = fetch_bytes(source, self.http_client)
        return self._classify_frames(data, self.video_decoder, sampling, "video")

    async def classify_video_async(
        self,
        source: MediaSource,
        sampling: Optional[SamplingConfig] = None,
    ) -> FramesResult:
        sampling = self._resolve_sampling(sampling)
        data = await fetch_bytes_async(source, self.async_http_client, self.config.retrieval)
        return await asyncio.to_thread(
            self._classify_frames, data, self.video_decoder, sampling, "video"
        )

    def classify_file(self, path: Path, sampling: Optional[SamplingConfig] = None):
        """
        Classify a local file, choosing the entry point by extension.

        Returns:
            ClassificationResult for still images, FramesResult for gifs and videos.

        Raises:
            UnsupportedFormat: If the extension is not a known media type.
        """
        path = Path(path)
        if FileTypeRegistry.is_animated(path):
            return self.classify_gif(path, sampling)
        if FileTypeRegistry.is_video(path):
            return self.classify_video(path, sampling)
        if FileTypeRegistry.is_image(path):
            return self.classify_image(path)
        raise UnsupportedFormat(f"Unsupported file type: {path.suffix or path.name}")
