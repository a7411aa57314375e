"""Resolve media sources (bytes, paths, URLs) into raw bytes."""
import asyncio
import threading
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import httpx

from .config import RetrievalConfig
from .errors import RetrievalError
from .logging_config import get_logger

logger = get_logger(__name__)

MediaSource = Union[bytes, bytearray, str, Path]

# httpx.Client is thread-safe; one pooled client per retrieval config serves every worker.
_client_lock = threading.Lock()
_shared_clients: Dict[Tuple, httpx.Client] = {}

# Path(...) raises ValueError for embedded NUL bytes; reads raise OSError.
_PATH_ERRORS = (OSError, ValueError)


def is_url(source: MediaSource) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


def _client_key(config: RetrievalConfig) -> Tuple:
    return (
        config.user_agent,
        config.timeout_seconds,
        config.max_connections,
        config.follow_redirects,
    )


def build_client(config: Optional[RetrievalConfig] = None) -> httpx.Client:
    """Create a synchronous client carrying the configured identity header."""
    config = config or RetrievalConfig()
    return httpx.Client(
        headers={"User-Agent": config.user_agent},
        timeout=config.timeout_seconds,
        follow_redirects=config.follow_redirects,
        limits=httpx.Limits(max_connections=config.max_connections),
    )


def build_async_client(config: Optional[RetrievalConfig] = None) -> httpx.AsyncClient:
    config = config or RetrievalConfig()
    return httpx.AsyncClient(
        headers={"User-Agent": config.user_agent},
        timeout=config.timeout_seconds,
        follow_redirects=config.follow_redirects,
        limits=httpx.Limits(max_connections=config.max_connections),
    )


def get_default_client(config: Optional[RetrievalConfig] = None) -> httpx.Client:
    """
    Return (or lazily create) the shared client for a retrieval config.

    Pipelines built with equal retrieval settings share one connection pool.
    """
    config = config or RetrievalConfig()
    key = _client_key(config)
    client = _shared_clients.get(key)
    if client is None:
        with _client_lock:
            client = _shared_clients.get(key)
            if client is None:  # double-checked locking
                client = build_client(config)
                _shared_clients[key] = client
    return client


def source_id(source: MediaSource) -> str:
    """Identifier used for a source in batch results."""
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return str(source)


def _read_path(source: MediaSource) -> bytes:
    try:
        return Path(source).read_bytes()
    except _PATH_ERRORS as e:
        raise RetrievalError(f"Failed to read {source!r}: {e}") from e


def fetch_bytes(source: MediaSource, client: Optional[httpx.Client] = None) -> bytes:
    """
    Resolve a media source to bytes.

    Args:
        source: Raw bytes, a local path, or an http(s) URL.
        client: Optional client for URL downloads. Defaults to the shared
            client for the default retrieval settings.

    Returns:
        The source content.

    Raises:
        RetrievalError: If the path is invalid or unreadable, or the download fails.
    """
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if is_url(source):
        client = client or get_default_client()
        try:
            response = client.get(source)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Download failed for %s: %s", source, e)
            raise RetrievalError(f"Failed to download {source}: {e}") from e
        return response.content

    return _read_path(source)


async def fetch_bytes_async(
    source: MediaSource,
    client: Optional[httpx.AsyncClient] = None,
    config: Optional[RetrievalConfig] = None,
) -> bytes:
    """
    Non-blocking variant of fetch_bytes.

    Without a client, a short-lived AsyncClient built from ``config`` is
    opened for each URL source. An AsyncClient is bound to the event loop it
    first runs on, so no process-wide async client is kept. Callers that
    download many URLs on one loop should pass their own client.

    Raises:
        RetrievalError: If the path is invalid or unreadable, or the download fails.
    """
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)

    if is_url(source):
        try:
            if client is not None:
                response = await client.get(source)
            else:
                async with build_async_client(config) as owned:
                    response = await owned.get(source)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Download failed for %s: %s", source, e)
            raise RetrievalError(f"Failed to download {source}: {e}") from e
        return response.content

    return await asyncio.to_thread(_read_path, source)
