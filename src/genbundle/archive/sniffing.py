"""Magic-byte classification and attachment extension helpers."""

from __future__ import annotations

from enum import Enum

ZIP_MAGIC = b"PK"
GZIP_MAGIC = b"\x1f\x8b"
TAR_MAGIC = b"ustar"
TAR_MAGIC_OFFSET = 257

DOCUMENT_SUFFIXES = (".gramps", ".xml")

_MEDIA_MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "tif": "image/tiff",
    "tiff": "image/tiff",
    "svg": "image/svg+xml",
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

MEDIA_EXTENSIONS = frozenset(_MEDIA_MIME_TYPES)
DEFAULT_MIME_TYPE = "application/octet-stream"


class ContainerFormat(str, Enum):
    ZIP = "zip"
    GZIP = "gzip"
    UNKNOWN = "unknown"


def classify(blob: bytes) -> ContainerFormat:
    """Classify a blob from its first two bytes; never raises."""

    prefix = bytes(blob[:2])
    if prefix == ZIP_MAGIC:
        return ContainerFormat.ZIP
    if prefix == GZIP_MAGIC:
        return ContainerFormat.GZIP
    return ContainerFormat.UNKNOWN


def is_gzip(data: bytes) -> bool:
    return classify(data) is ContainerFormat.GZIP


def is_zip(data: bytes) -> bool:
    return classify(data) is ContainerFormat.ZIP


def is_tar(data: bytes) -> bool:
    """Return True when the ustar magic sits at its header offset."""

    end = TAR_MAGIC_OFFSET + len(TAR_MAGIC)
    if len(data) < end:
        return False
    return bytes(data[TAR_MAGIC_OFFSET:end]) == TAR_MAGIC


def is_document_path(path: str) -> bool:
    return path.lower().endswith(DOCUMENT_SUFFIXES)


def media_extension(path: str) -> str:
    """Lower-cased extension without the dot, or an empty string."""

    name = path.rsplit("/", 1)[-1]
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_media_path(path: str) -> bool:
    return media_extension(path) in MEDIA_EXTENSIONS


def media_mime_type(extension: str) -> str:
    return _MEDIA_MIME_TYPES.get(extension.lower().lstrip("."), DEFAULT_MIME_TYPE)
