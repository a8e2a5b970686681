"""Error types raised while unpacking export bundles."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class ArchiveError(Exception):
    """Domain error for bundle detection, unpacking and decompression failures."""

    source_name: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (source={self.source_name})"


class UnsupportedFormatError(ArchiveError):
    """Input carries neither a ZIP nor a gzip signature."""


class DocumentNotFoundError(ArchiveError):
    """A container was opened but holds no primary document candidate."""


class DecompressionError(ArchiveError):
    """The gzip stream failed (corrupt, truncated or otherwise unreadable)."""


class DecompressionTimeoutError(ArchiveError):
    """The gzip stream did not finish within the configured time budget."""
