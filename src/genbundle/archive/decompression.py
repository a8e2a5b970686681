"""Bounded-time streaming gzip decompression.

The compressed buffer is pushed through a stream by a writer task while a
reader task drains decompressed chunks. Both tasks share one deadline; when
either misses it, or the stream fails, the stream is aborted and any task
still pending is cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol
import zlib

from genbundle.archive.errors import DecompressionError, DecompressionTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_DECOMPRESS_TIMEOUT_SECONDS = 30.0
DEFAULT_CHUNK_SIZE = 64 * 1024

_GZIP_WBITS = 16 + zlib.MAX_WBITS


class DecompressionStream(Protocol):
    """Write side accepts compressed bytes; read side yields output until None."""

    async def write(self, data: bytes) -> None:
        """Feed compressed bytes into the stream."""

    async def close(self) -> None:
        """Signal end of input; the read side finishes after draining."""

    async def read(self) -> bytes | None:
        """Return the next decompressed chunk, or None once the stream is done."""

    def abort(self) -> None:
        """Tear the stream down without waiting for pending output."""


class GzipDecompressionStream:
    """zlib-backed gzip stream with an asyncio queue between the two sides."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._chunk_size = chunk_size
        self._decompressor = zlib.decompressobj(_GZIP_WBITS)
        self._output: asyncio.Queue[bytes | BaseException | None] = asyncio.Queue()
        self._closed = False

    async def write(self, data: bytes) -> None:
        if self._closed:
            raise ValueError("Cannot write to a closed decompression stream")
        view = memoryview(data)
        try:
            for start in range(0, len(view), self._chunk_size):
                self._feed(bytes(view[start : start + self._chunk_size]))
                await asyncio.sleep(0)
        except zlib.error as exc:
            self._fail(exc)
            raise

    async def close(self) -> None:
        if self._closed:
            return
        try:
            tail = self._decompressor.flush()
            if tail:
                self._output.put_nowait(tail)
            if not self._decompressor.eof:
                raise zlib.error("gzip stream ended before the end-of-stream marker")
        except zlib.error as exc:
            self._fail(exc)
            raise
        self._closed = True
        self._output.put_nowait(None)

    async def read(self) -> bytes | None:
        item = await self._output.get()
        if isinstance(item, BaseException):
            raise item
        return item

    def abort(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._output.put_nowait(None)

    def _feed(self, data: bytes) -> None:
        while data:
            if self._decompressor.eof:
                # Trailing NUL padding after the last member is ignored.
                if not data.strip(b"\x00"):
                    return
                # Concatenated gzip members decode as one payload.
                self._decompressor = zlib.decompressobj(_GZIP_WBITS)
            produced = self._decompressor.decompress(data)
            if produced:
                self._output.put_nowait(produced)
            data = self._decompressor.unused_data if self._decompressor.eof else b""

    def _fail(self, exc: BaseException) -> None:
        self._closed = True
        self._output.put_nowait(exc)


StreamFactory = Callable[[], DecompressionStream]


async def _await_until(task: asyncio.Task, deadline: float):
    remaining = max(0.0, deadline - asyncio.get_running_loop().time())
    return await asyncio.wait_for(task, timeout=remaining)


async def decompress_to_bytes(
    data: bytes,
    *,
    timeout_seconds: float = DEFAULT_DECOMPRESS_TIMEOUT_SECONDS,
    stream_factory: StreamFactory | None = None,
    source_name: str = "<memory>",
) -> bytes:
    """Decompress a gzip buffer, failing after ``timeout_seconds``."""

    if timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be > 0")

    try:
        stream = stream_factory() if stream_factory is not None else GzipDecompressionStream()
    except Exception as exc:
        logger.error("Could not open decompression stream for %s: %s", source_name, exc)
        raise DecompressionError(source_name, f"Failed to start gzip decompression: {exc}") from exc

    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_seconds
    logger.debug("Starting decompression of %d bytes from %s", len(data), source_name)

    async def _write() -> None:
        await stream.write(data)
        await stream.close()

    async def _read() -> list[bytes]:
        chunks: list[bytes] = []
        while True:
            chunk = await stream.read()
            if chunk is None:
                return chunks
            chunks.append(chunk)

    write_task = asyncio.create_task(_write())
    read_task = asyncio.create_task(_read())

    try:
        await _await_until(write_task, deadline)
        chunks = await _await_until(read_task, deadline)
    except asyncio.TimeoutError as exc:
        stream.abort()
        logger.error("Decompression of %s timed out after %.1fs", source_name, timeout_seconds)
        raise DecompressionTimeoutError(
            source_name,
            f"Decompression timed out after {timeout_seconds:g}s",
        ) from exc
    except Exception as exc:
        stream.abort()
        logger.error("Decompression of %s failed: %s", source_name, exc)
        raise DecompressionError(source_name, f"Failed to decompress gzip data: {exc}") from exc
    finally:
        for task in (write_task, read_task):
            if not task.done():
                task.cancel()
            elif not task.cancelled():
                task.exception()

    payload = b"".join(chunks)
    logger.debug(
        "Decompression complete for %s: %d -> %d bytes in %d chunks",
        source_name,
        len(data),
        len(payload),
        len(chunks),
    )
    return payload


def decode_document(payload: bytes) -> str:
    """UTF-8 decode with BOM removal and replacement of invalid sequences."""

    return payload.decode("utf-8-sig", errors="replace")


async def decompress_to_text(
    data: bytes,
    *,
    timeout_seconds: float = DEFAULT_DECOMPRESS_TIMEOUT_SECONDS,
    stream_factory: StreamFactory | None = None,
    source_name: str = "<memory>",
) -> str:
    payload = await decompress_to_bytes(
        data,
        timeout_seconds=timeout_seconds,
        stream_factory=stream_factory,
        source_name=source_name,
    )
    return decode_document(payload)
