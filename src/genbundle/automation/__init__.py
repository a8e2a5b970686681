"""Automation services for folder-based bundle import workflows."""

from genbundle.automation.import_service import BundleImportResult, run_bundle_import
from genbundle.automation.watcher import BundleEventHandler, BundleFolderWatcher

__all__ = [
    "BundleEventHandler",
    "BundleFolderWatcher",
    "BundleImportResult",
    "run_bundle_import",
]
