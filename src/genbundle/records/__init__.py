"""Note materialization interfaces."""

from .aliases import PropertyAliases
from .attachments import AttachmentExportSummary, write_attachments
from .models import (
    EntityKind,
    EntityReference,
    GedcomNoteRecord,
    MaterializedRecord,
    NoteImportSummary,
    NoteRecord,
    NoteWriteResult,
)
from .references import build_gedcom_reference_map, build_reference_map
from .store import AttachmentStore, FolderRecordStore, RecordStore
from .writer import NoteMaterializer, NoteWriteOptions

__all__ = [
    "AttachmentExportSummary",
    "AttachmentStore",
    "EntityKind",
    "EntityReference",
    "FolderRecordStore",
    "GedcomNoteRecord",
    "MaterializedRecord",
    "NoteImportSummary",
    "NoteMaterializer",
    "NoteRecord",
    "NoteWriteOptions",
    "NoteWriteResult",
    "PropertyAliases",
    "RecordStore",
    "build_gedcom_reference_map",
    "build_reference_map",
    "write_attachments",
]
