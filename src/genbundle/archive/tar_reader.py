"""Lenient reader for POSIX tar buffers.

Only the fields needed to pull regular files out of an export bundle are
decoded: name, size and type flag. Checksums are not verified, and a
malformed header never aborts the walk; the entry is logged and skipped.
"""

from __future__ import annotations

import logging
from typing import Iterator

from genbundle.archive.models import TarEntry

logger = logging.getLogger(__name__)

BLOCK_SIZE = 512

_NAME_END = 100
_SIZE_START = 124
_SIZE_END = 136
_TYPE_FLAG_OFFSET = 156
_REGULAR_TYPE_FLAGS = (0, ord("0"))


def padded_size(size: int) -> int:
    """Round a payload size up to the next whole tar block."""

    if size <= 0:
        return 0
    return -(-size // BLOCK_SIZE) * BLOCK_SIZE


def _parse_name(header: bytes) -> str:
    raw = header[:_NAME_END]
    nul = raw.find(b"\x00")
    if nul != -1:
        raw = raw[:nul]
    return raw.decode("utf-8", errors="replace")


def _parse_size(header: bytes) -> int:
    digits = bytearray()
    for byte in header[_SIZE_START:_SIZE_END]:
        if byte in (0, 0x20):
            break
        digits.append(byte)

    text = digits.decode("ascii", errors="replace").strip()
    if not text:
        return 0
    try:
        return int(text, 8)
    except ValueError:
        logger.debug("Unparseable tar size field %r, treating as 0", text)
        return 0


def iter_tar_entries(data: bytes) -> Iterator[TarEntry]:
    """Yield every header in the buffer, regular file or not."""

    view = memoryview(data)
    cursor = 0

    while len(view) - cursor >= BLOCK_SIZE:
        header = bytes(view[cursor : cursor + BLOCK_SIZE])
        if not any(header):
            break

        name = _parse_name(header)
        size = _parse_size(header)
        type_flag = header[_TYPE_FLAG_OFFSET]
        header_offset = cursor

        cursor += BLOCK_SIZE
        content = bytes(view[cursor : cursor + size])
        cursor += padded_size(size)

        if len(content) != size:
            logger.warning(
                "Tar entry %r declares %d bytes but only %d remain; skipping",
                name,
                size,
                len(content),
            )
            continue

        yield TarEntry(
            name=name,
            size=size,
            is_regular_file=type_flag in _REGULAR_TYPE_FLAGS,
            content=content,
            offset=header_offset,
        )


def read_tar(data: bytes) -> dict[str, bytes]:
    """Return name -> payload for regular, non-empty, named entries."""

    files: dict[str, bytes] = {}
    for entry in iter_tar_entries(data):
        if not entry.is_regular_file or entry.size == 0 or not entry.name:
            logger.debug(
                "Skipping tar entry %r (regular=%s, size=%d)",
                entry.name,
                entry.is_regular_file,
                entry.size,
            )
            continue
        files[entry.name] = entry.content
    return files
