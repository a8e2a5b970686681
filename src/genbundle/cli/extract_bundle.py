"""CLI command for bundle extraction with attachment export reporting."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from genbundle.archive.errors import ArchiveError
from genbundle.archive.extractor import BundleExtractor
from genbundle.automation.config import ImportSettings
from genbundle.records.attachments import write_attachments
from genbundle.records.store import FolderRecordStore


load_dotenv()

LOGGER = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".gpkg", ".gramps", ".zip", ".gz", ".tgz"}


def _is_supported(path: Path) -> bool:
    suffixes = [part.lower() for part in path.suffixes]
    return bool(suffixes) and suffixes[-1] in _SUPPORTED_SUFFIXES


def _collect_inputs(target: Path) -> list[Path]:
    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(path for path in target.rglob("*") if path.is_file() and _is_supported(path))
    return []


def _document_output_path(document_dir: Path, bundle: Path, source_root: Path) -> Path:
    """Mirror the bundle's path below ``source_root``, keeping its full file name.

    ``smith.gpkg`` and ``smith.zip`` become ``smith.gpkg.xml`` and
    ``smith.zip.xml``.
    """

    relative = bundle.relative_to(source_root) if source_root.is_dir() else Path(bundle.name)
    return document_dir / relative.parent / f"{relative.name}.xml"


def _write_document(output: Path, document: str) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(document, encoding="utf-8")


async def _process(
    files: list[Path],
    *,
    extractor: BundleExtractor,
    store: FolderRecordStore,
    media_folder: str,
    document_dir: Path | None,
    source_root: Path,
    overwrite: bool,
) -> tuple[list[dict[str, object]], list[dict[str, str]]]:
    results: list[dict[str, object]] = []
    errors: list[dict[str, str]] = []

    for file_path in files:
        try:
            extracted = await extractor.extract_file(file_path)
        except ArchiveError as exc:
            errors.append({"source_path": str(file_path), "kind": type(exc).__name__, "error": str(exc)})
            continue

        exported = write_attachments(store, extracted.attachments, media_folder, overwrite=overwrite)
        for failure in exported.errors:
            errors.append({"source_path": str(file_path), "kind": "AttachmentWriteError", **failure})

        document_output: str | None = None
        if document_dir is not None:
            output = _document_output_path(document_dir, file_path, source_root)
            try:
                _write_document(output, extracted.primary_document)
            except OSError as exc:
                LOGGER.error("Failed to write document %s: %s", output, exc)
                errors.append(
                    {"source_path": str(file_path), "kind": "DocumentWriteError", "error": str(exc)}
                )
            else:
                document_output = str(output)

        results.append(
            {
                "source_path": str(file_path),
                "container": extracted.container.value,
                "document_path": extracted.document_path,
                "document_chars": len(extracted.primary_document),
                "document_output": document_output,
                "attachment_count": len(extracted.attachments),
                "attachment_bytes": extracted.attachment_bytes,
                "attachments_written": len(exported.written),
                "attachments_skipped": len(exported.skipped),
            }
        )

    return results, errors


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Extract genealogy bundles and export their attachments")
    parser.add_argument("--path", required=True, help="Bundle file or directory of bundles")
    parser.add_argument("--vault", default=None, help="Vault root receiving attachments")
    parser.add_argument("--media-folder", default=None, help="Vault folder for extracted attachments")
    parser.add_argument("--document-dir", default=None, help="Directory receiving extracted documents")
    parser.add_argument("--timeout", type=float, default=None, help="Decompression timeout in seconds")
    parser.add_argument("--overwrite", action="store_true", help="Replace attachments that already exist")
    args = parser.parse_args(argv)

    try:
        settings = ImportSettings.from_env()
    except ValueError as error:
        LOGGER.error("Configuration error: %s", error)
        return 2

    source_path = Path(args.path)
    files = _collect_inputs(source_path)
    store = FolderRecordStore(Path(args.vault) if args.vault else settings.vault_path)
    timeout_seconds = args.timeout if args.timeout is not None else settings.decompress_timeout_seconds
    if timeout_seconds <= 0:
        LOGGER.error("--timeout must be > 0")
        return 2

    results, errors = asyncio.run(
        _process(
            files,
            extractor=BundleExtractor(timeout_seconds=timeout_seconds),
            store=store,
            media_folder=args.media_folder or settings.media_folder,
            document_dir=Path(args.document_dir) if args.document_dir else None,
            source_root=source_path,
            overwrite=args.overwrite or settings.overwrite_existing,
        )
    )

    payload = {
        "path": str(source_path),
        "processed": len(results),
        "results": results,
        "errors": errors,
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if not errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
