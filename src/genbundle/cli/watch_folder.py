"""CLI entrypoint that imports export bundles as they land in a folder."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

from genbundle.automation.config import ImportSettings
from genbundle.automation.import_service import DEFAULT_IMPORT_TIMEOUT_SECONDS, run_bundle_import
from genbundle.automation.watcher import DEFAULT_SETTLE_SECONDS, BundleFolderWatcher


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import genealogy export bundles dropped into a folder")
    parser.add_argument("--watch-dir", required=True, help="Folder receiving exported bundles")
    parser.add_argument("--vault", default=None, help="Vault root receiving attachments")
    parser.add_argument("--media-folder", default=None, help="Vault folder for extracted attachments")
    parser.add_argument("--document-dir", default=None, help="Directory receiving extracted documents")
    parser.add_argument(
        "--settle",
        type=float,
        default=DEFAULT_SETTLE_SECONDS,
        help="Seconds a bundle must stay unchanged before import",
    )
    parser.add_argument(
        "--import-timeout",
        type=float,
        default=DEFAULT_IMPORT_TIMEOUT_SECONDS,
        help="Seconds allowed for one bundle import",
    )
    return parser.parse_args(argv)


def _make_importer(args: argparse.Namespace, settings: ImportSettings):
    vault_path = str(args.vault or settings.vault_path)
    media_folder = args.media_folder or settings.media_folder

    async def _import_bundle(file_path: Path) -> None:
        result = await run_bundle_import(
            file_path,
            vault_path=vault_path,
            media_folder=media_folder,
            document_dir=args.document_dir,
            timeout_seconds=args.import_timeout,
        )
        if not result.success:
            LOGGER.error("Import of %s failed at %s: %s", file_path, result.stage, result.error or "unknown error")
            return
        LOGGER.info(
            "Imported '%s': %d document chars, %d of %d attachments written to %s/%s",
            result.source_name,
            result.document_chars,
            result.attachments_written,
            result.attachment_count,
            vault_path,
            media_folder,
        )

    return _import_bundle


async def _watch(args: argparse.Namespace, settings: ImportSettings) -> int:
    watch_dir = Path(args.watch_dir)
    try:
        watcher = BundleFolderWatcher(watch_dir, _make_importer(args, settings), settle_seconds=args.settle)
        await watcher.start()
    except ValueError as error:
        LOGGER.error("%s", error)
        return 2

    LOGGER.info("Watching %s for bundles (settle %.1fs)", watch_dir, args.settle)
    try:
        await asyncio.Event().wait()
    finally:
        watcher.stop()
        LOGGER.info("Watcher stopped")
    return 0


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = _parse_args(argv)
    try:
        settings = ImportSettings.from_env()
    except ValueError as error:
        LOGGER.error("Configuration error: %s", error)
        return 2
    if args.import_timeout <= 0:
        LOGGER.error("--import-timeout must be > 0")
        return 2
    try:
        return asyncio.run(_watch(args, settings))
    except KeyboardInterrupt:
        LOGGER.info("Shutdown requested")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
