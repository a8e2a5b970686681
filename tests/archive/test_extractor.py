from __future__ import annotations

import asyncio
import gzip
import io
from pathlib import Path
import tarfile
import zipfile

import pytest

from genbundle.archive.errors import (
    ArchiveError,
    DecompressionError,
    DecompressionTimeoutError,
    DocumentNotFoundError,
    UnsupportedFormatError,
)
from genbundle.archive.extractor import BundleExtractor, extract_archive, extract_archive_file
from genbundle.archive.sniffing import ContainerFormat

GRAMPS_XML = '<?xml version="1.0" encoding="UTF-8"?>\n<database xmlns="http://gramps-project.org/xml/1.7.1/"/>\n'
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF" + bytes(range(64))


def _tar_gz(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w", format=tarfile.USTAR_FORMAT) as archive:
        for name, payload in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(payload)
            archive.addfile(info, io.BytesIO(payload))
    return gzip.compress(buffer.getvalue())


def _zip(entries: dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for name, payload in entries.items():
            archive.writestr(name, payload)
    return buffer.getvalue()


def _extract(blob: bytes, name: str = "family.gpkg", **kwargs):
    return asyncio.run(extract_archive(blob, name, **kwargs))


def test_tar_gz_bundle_yields_document_and_attachments() -> None:
    blob = _tar_gz({"data.gramps": GRAMPS_XML.encode("utf-8"), "photo1.jpg": JPEG_BYTES})

    result = _extract(blob)

    assert result.primary_document == GRAMPS_XML
    assert result.attachments == {"photo1.jpg": JPEG_BYTES}
    assert result.source_name == "family.gpkg"
    assert result.document_path == "data.gramps"
    assert result.container is ContainerFormat.GZIP


def test_tar_gz_bundle_decompresses_nested_gzip_document() -> None:
    blob = _tar_gz(
        {
            "data.gramps": gzip.compress(GRAMPS_XML.encode("utf-8")),
            "media/scans/census.PDF": b"%PDF-1.4 census",
            "notes.txt": b"not an attachment",
        }
    )

    result = _extract(blob)

    assert result.primary_document == GRAMPS_XML
    assert result.attachments == {"media/scans/census.PDF": b"%PDF-1.4 census"}


def test_tar_gz_bundle_keeps_last_document_candidate() -> None:
    blob = _tar_gz({"old.xml": b"<first/>", "data.gramps": b"<second/>", "photo.gif": b"GIF89a"})

    result = _extract(blob)

    assert result.primary_document == "<second/>"
    assert result.document_path == "data.gramps"
    assert result.attachments == {"photo.gif": b"GIF89a"}


def test_tar_gz_without_document_fails() -> None:
    blob = _tar_gz({"photo1.jpg": JPEG_BYTES})

    with pytest.raises(DocumentNotFoundError, match="No Gramps XML file found in tar archive"):
        _extract(blob)


def test_bare_gzip_document_has_no_attachments() -> None:
    result = _extract(gzip.compress(GRAMPS_XML.encode("utf-8")), "family.gramps")

    assert result.primary_document == GRAMPS_XML
    assert result.attachments == {}
    assert result.document_path is None
    assert result.container is ContainerFormat.GZIP


def test_zip_bundle_collects_media_at_any_depth() -> None:
    blob = _zip(
        {
            "data.gramps": gzip.compress(GRAMPS_XML.encode("utf-8")),
            "media/": b"",
            "media/people/portrait.PNG": b"\x89PNG portrait",
            "letters/letter.docx": b"docx bytes",
            "readme.txt": b"ignored",
        }
    )

    result = _extract(blob)

    assert result.primary_document == GRAMPS_XML
    assert result.document_path == "data.gramps"
    assert result.container is ContainerFormat.ZIP
    assert result.attachments == {
        "media/people/portrait.PNG": b"\x89PNG portrait",
        "letters/letter.docx": b"docx bytes",
    }


def test_zip_prefers_root_level_document_over_nested_one() -> None:
    blob = _zip({"backup/old.gramps": b"<old/>", "family.gramps": b"<current/>"})

    result = _extract(blob)

    assert result.primary_document == "<current/>"
    assert result.document_path == "family.gramps"


def test_zip_keeps_first_root_level_candidate() -> None:
    blob = _zip({"first.xml": b"<first/>", "data.gramps": b"<data/>"})

    result = _extract(blob)

    assert result.document_path == "first.xml"


def test_zip_falls_back_to_first_nested_document() -> None:
    blob = _zip({"export/one.xml": b"<one/>", "export/two.xml": b"<two/>", "photo.gif": b"GIF89a"})

    result = _extract(blob)

    assert result.document_path == "export/one.xml"
    assert result.attachments == {"photo.gif": b"GIF89a"}


def test_zip_without_document_fails() -> None:
    blob = _zip({"media/photo.jpg": JPEG_BYTES})

    with pytest.raises(DocumentNotFoundError, match="Expected .gramps or .xml file"):
        _extract(blob)


def test_unknown_signature_fails_without_partial_result() -> None:
    with pytest.raises(UnsupportedFormatError, match="not a valid ZIP or gzip archive"):
        _extract(GRAMPS_XML.encode("utf-8"))

    with pytest.raises(UnsupportedFormatError):
        _extract(b"")


def test_zip_signature_with_corrupt_body_is_a_format_error() -> None:
    with pytest.raises(UnsupportedFormatError):
        _extract(b"PK\x03\x04 definitely not a zip archive")


def test_corrupt_gzip_is_a_decompression_error() -> None:
    with pytest.raises(DecompressionError) as excinfo:
        _extract(b"\x1f\x8b\x08garbage-garbage")

    assert excinfo.value.source_name == "family.gpkg"


def test_decompression_timeout_surfaces_from_extractor() -> None:
    class _NeverDone:
        def __init__(self) -> None:
            self._never = asyncio.Event()

        async def write(self, data: bytes) -> None:
            return None

        async def close(self) -> None:
            return None

        async def read(self) -> bytes | None:
            await self._never.wait()
            return None

        def abort(self) -> None:
            return None

    with pytest.raises(DecompressionTimeoutError):
        _extract(gzip.compress(b"<x/>"), timeout_seconds=0.05, stream_factory=_NeverDone)


def test_all_failures_share_archive_error_base() -> None:
    for error_type in (UnsupportedFormatError, DocumentNotFoundError, DecompressionError, DecompressionTimeoutError):
        assert issubclass(error_type, ArchiveError)

    error = DocumentNotFoundError("family.gpkg", "No document")
    assert str(error) == "No document (source=family.gpkg)"


def test_extract_file_reads_path_and_labels_with_file_name(tmp_path: Path) -> None:
    bundle = tmp_path / "smith-family.gpkg"
    bundle.write_bytes(_tar_gz({"data.gramps": b"<database/>"}))

    result = asyncio.run(extract_archive_file(bundle))

    assert result.source_name == "smith-family.gpkg"
    assert result.primary_document == "<database/>"


def test_extract_file_reports_unreadable_path(tmp_path: Path) -> None:
    extractor = BundleExtractor()

    with pytest.raises(ArchiveError, match="Failed to read bundle"):
        asyncio.run(extractor.extract_file(tmp_path / "missing.gpkg"))


def test_extractor_rejects_non_positive_timeout() -> None:
    with pytest.raises(ValueError):
        BundleExtractor(timeout_seconds=0)
