"""Export extracted attachments into a store's media folder."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Mapping

from genbundle.records.naming import join_path
from genbundle.records.store import AttachmentStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AttachmentExportSummary:
    written: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


def write_attachments(
    store: AttachmentStore,
    attachments: Mapping[str, bytes],
    media_folder: str,
    *,
    overwrite: bool = False,
) -> AttachmentExportSummary:
    """Write each attachment under ``media_folder`` keeping its archive path.

    Existing files are skipped unless ``overwrite`` is set. Failures are
    collected per file and never raised.
    """

    summary = AttachmentExportSummary()
    for archive_path, payload in attachments.items():
        target = join_path(media_folder, archive_path)
        try:
            if store.exists(target):
                if not overwrite:
                    summary.skipped.append(target)
                    continue
                store.modify_binary(target, payload)
            else:
                store.create_binary(target, payload)
        except Exception as exc:
            logger.error("Failed to write attachment %s: %s", target, exc)
            summary.errors.append({"path": target, "error": str(exc)})
            continue
        summary.written.append(target)

    logger.info(
        "Attachment export complete: %d written, %d skipped, %d failed",
        len(summary.written),
        len(summary.skipped),
        len(summary.errors),
    )
    return summary
