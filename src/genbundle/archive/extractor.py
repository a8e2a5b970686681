"""Resolve a primary document and attachments from an export bundle.

Bundles arrive in three shapes, told apart only by magic bytes:

* gzip wrapping a tar archive holding the document and media files;
* gzip wrapping the bare document, with no media;
* a ZIP archive holding the document (itself possibly gzip-compressed)
  and media files at any depth.
"""

from __future__ import annotations

from io import BytesIO
import logging
from pathlib import Path
from zipfile import BadZipFile, ZipFile, ZipInfo
import zlib

from genbundle.archive.decompression import (
    DEFAULT_DECOMPRESS_TIMEOUT_SECONDS,
    StreamFactory,
    decode_document,
    decompress_to_bytes,
)
from genbundle.archive.errors import ArchiveError, DocumentNotFoundError, UnsupportedFormatError
from genbundle.archive.models import ArchiveExtractionResult
from genbundle.archive.sniffing import (
    ContainerFormat,
    classify,
    is_document_path,
    is_gzip,
    is_media_path,
    is_tar,
)
from genbundle.archive.tar_reader import read_tar

logger = logging.getLogger(__name__)

PREFERRED_DOCUMENT_NAME = "data.gramps"
_LOGGED_NAME_LIMIT = 20


def _preview_names(names: list[str]) -> str:
    shown = ", ".join(names[:_LOGGED_NAME_LIMIT])
    return shown + ("..." if len(names) > _LOGGED_NAME_LIMIT else "")


def _is_preferred_document(path: str) -> bool:
    return path.lower() == PREFERRED_DOCUMENT_NAME or "/" not in path


class BundleExtractor:
    """Unpack bundles with a fixed decompression budget and stream source."""

    def __init__(
        self,
        *,
        timeout_seconds: float = DEFAULT_DECOMPRESS_TIMEOUT_SECONDS,
        stream_factory: StreamFactory | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")
        self._timeout_seconds = timeout_seconds
        self._stream_factory = stream_factory

    async def extract(self, blob: bytes, source_name: str) -> ArchiveExtractionResult:
        """Return the bundle's document and attachments or raise ``ArchiveError``."""

        logger.info("Starting extraction of %s (%d bytes)", source_name, len(blob))
        container = classify(blob)

        if container is ContainerFormat.GZIP:
            return await self._extract_gzip(blob, source_name)
        if container is ContainerFormat.ZIP:
            return await self._extract_zip(blob, source_name)
        raise UnsupportedFormatError(source_name, "File is not a valid ZIP or gzip archive")

    async def extract_file(self, path: str | Path) -> ArchiveExtractionResult:
        source = Path(path)
        try:
            blob = source.read_bytes()
        except OSError as exc:
            raise ArchiveError(str(source), f"Failed to read bundle: {exc}") from exc
        return await self.extract(blob, source.name)

    async def _decompress(self, data: bytes, source_name: str) -> bytes:
        return await decompress_to_bytes(
            data,
            timeout_seconds=self._timeout_seconds,
            stream_factory=self._stream_factory,
            source_name=source_name,
        )

    async def _decode_entry(self, content: bytes, entry_name: str, source_name: str) -> str:
        if is_gzip(content):
            logger.debug("Document %s is gzip compressed, decompressing", entry_name)
            content = await self._decompress(content, f"{source_name}:{entry_name}")
        return decode_document(content)

    async def _extract_gzip(self, blob: bytes, source_name: str) -> ArchiveExtractionResult:
        logger.debug("%s is gzip compressed, decompressing", source_name)
        decompressed = await self._decompress(blob, source_name)

        if not is_tar(decompressed):
            logger.info("%s is a gzip-compressed document with no bundled media", source_name)
            return ArchiveExtractionResult(
                primary_document=decode_document(decompressed),
                source_name=source_name,
                container=ContainerFormat.GZIP,
            )

        entries = read_tar(decompressed)
        logger.debug("Tar in %s holds %d entries: %s", source_name, len(entries), _preview_names(list(entries)))

        document_path: str | None = None
        attachments: dict[str, bytes] = {}

        # Later document candidates replace earlier ones.
        for path, content in entries.items():
            if is_document_path(path):
                if document_path is not None:
                    logger.debug("Document candidate %s replaces %s", path, document_path)
                document_path = path
            elif is_media_path(path):
                attachments[path] = content
                logger.debug("Extracted attachment from tar: %s", path)

        if document_path is None:
            raise DocumentNotFoundError(source_name, "No Gramps XML file found in tar archive")

        logger.debug("Found document in tar: %s", document_path)
        document = await self._decode_entry(entries[document_path], document_path, source_name)

        logger.info("Tar extraction of %s complete: %d attachments", source_name, len(attachments))
        return ArchiveExtractionResult(
            primary_document=document,
            source_name=source_name,
            attachments=attachments,
            document_path=document_path,
            container=ContainerFormat.GZIP,
        )

    async def _extract_zip(self, blob: bytes, source_name: str) -> ArchiveExtractionResult:
        try:
            archive = ZipFile(BytesIO(blob), "r")
        except BadZipFile as exc:
            raise UnsupportedFormatError(source_name, f"File is not a valid ZIP archive: {exc}") from exc

        with archive:
            members = [info for info in archive.infolist() if not info.is_dir()]
            logger.debug(
                "ZIP %s holds %d entries: %s",
                source_name,
                len(members),
                _preview_names([info.filename for info in members]),
            )

            chosen = self._choose_zip_document(members)
            if chosen is None:
                raise DocumentNotFoundError(
                    source_name,
                    "No Gramps XML file found in package. Expected .gramps or .xml file.",
                )
            logger.debug("Found document in ZIP: %s", chosen.filename)

            try:
                document = await self._decode_entry(
                    archive.read(chosen), chosen.filename, source_name
                )
                attachments: dict[str, bytes] = {}
                for info in members:
                    if info.filename == chosen.filename or not is_media_path(info.filename):
                        continue
                    attachments[info.filename] = archive.read(info)
                    logger.debug("Extracted attachment: %s", info.filename)
            except (BadZipFile, OSError, EOFError, RuntimeError, zlib.error) as exc:
                raise UnsupportedFormatError(source_name, f"Corrupt ZIP entry: {exc}") from exc

        logger.info("ZIP extraction of %s complete: %d attachments", source_name, len(attachments))
        return ArchiveExtractionResult(
            primary_document=document,
            source_name=source_name,
            attachments=attachments,
            document_path=chosen.filename,
            container=ContainerFormat.ZIP,
        )

    @staticmethod
    def _choose_zip_document(members: list[ZipInfo]) -> ZipInfo | None:
        # First preferred candidate in entry order, else first candidate overall.
        fallback: ZipInfo | None = None
        for info in members:
            if not is_document_path(info.filename):
                continue
            if _is_preferred_document(info.filename):
                return info
            if fallback is None:
                fallback = info
        return fallback


async def extract_archive(
    blob: bytes,
    source_name: str,
    *,
    timeout_seconds: float = DEFAULT_DECOMPRESS_TIMEOUT_SECONDS,
    stream_factory: StreamFactory | None = None,
) -> ArchiveExtractionResult:
    extractor = BundleExtractor(timeout_seconds=timeout_seconds, stream_factory=stream_factory)
    return await extractor.extract(blob, source_name)


async def extract_archive_file(
    path: str | Path,
    *,
    timeout_seconds: float = DEFAULT_DECOMPRESS_TIMEOUT_SECONDS,
) -> ArchiveExtractionResult:
    extractor = BundleExtractor(timeout_seconds=timeout_seconds)
    return await extractor.extract_file(path)
