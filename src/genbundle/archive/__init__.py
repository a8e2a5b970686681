"""Bundle detection, decompression and extraction interfaces."""

from .errors import (
    ArchiveError,
    DecompressionError,
    DecompressionTimeoutError,
    DocumentNotFoundError,
    UnsupportedFormatError,
)
from .extractor import BundleExtractor, extract_archive, extract_archive_file
from .models import ArchiveExtractionResult, TarEntry
from .sniffing import ContainerFormat, classify

__all__ = [
    "ArchiveError",
    "ArchiveExtractionResult",
    "BundleExtractor",
    "ContainerFormat",
    "DecompressionError",
    "DecompressionTimeoutError",
    "DocumentNotFoundError",
    "TarEntry",
    "UnsupportedFormatError",
    "classify",
    "extract_archive",
    "extract_archive_file",
]
