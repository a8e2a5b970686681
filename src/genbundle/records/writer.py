"""Materialize parsed notes as uniquely named records in a store."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
from typing import Callable, Iterable, Mapping

from genbundle.records.aliases import PropertyAliases
from genbundle.records.body import BodyConverter, note_to_markdown
from genbundle.records.identifiers import generate_record_id, note_record_id
from genbundle.records.models import (
    EntityReference,
    GedcomNoteRecord,
    MaterializedRecord,
    NoteImportSummary,
    NoteRecord,
    NoteWriteResult,
)
from genbundle.records.naming import (
    RECORD_SUFFIX,
    clean_gedcom_id,
    gedcom_note_display_name,
    join_path,
    normalize_path,
    note_display_name,
    resolve_unique_path,
    sanitize_filename,
)
from genbundle.records.store import RecordStore

logger = logging.getLogger(__name__)

NOTE_RECORD_TYPE = "note"

_RecordBuilder = Callable[[str, str], MaterializedRecord]


@dataclass(frozen=True, slots=True)
class NoteWriteOptions:
    notes_folder: str
    property_aliases: PropertyAliases = field(default_factory=PropertyAliases)
    referencing_entity_name: str | None = None
    overwrite_existing: bool = False


class NoteMaterializer:
    """Derive ids, names and content for notes and write them to a store."""

    def __init__(
        self,
        store: RecordStore,
        *,
        body_converter: BodyConverter = note_to_markdown,
        id_factory: Callable[[], str] = generate_record_id,
    ) -> None:
        self._store = store
        self._body_converter = body_converter
        self._id_factory = id_factory

    def materialize(self, note: NoteRecord, options: NoteWriteOptions) -> MaterializedRecord:
        """Build the record for a Gramps note without writing it."""

        record_id, base_name = self._note_identity(note, options)
        filename, path = self._resolve_path(base_name, options)
        return self._build_note(note, options, record_id, filename, path)

    def materialize_gedcom(self, note: GedcomNoteRecord, options: NoteWriteOptions) -> MaterializedRecord:
        """Build the record for a GEDCOM note without writing it."""

        record_id, base_name = self._gedcom_identity(note, options)
        filename, path = self._resolve_path(base_name, options)
        return self._build_gedcom_note(note, options, record_id, filename, path)

    def write_note(self, note: NoteRecord, options: NoteWriteOptions) -> NoteWriteResult:
        record_id, base_name = self._note_identity(note, options)
        return self._write(
            record_id,
            base_name,
            options,
            lambda filename, path: self._build_note(note, options, record_id, filename, path),
        )

    def write_gedcom_note(self, note: GedcomNoteRecord, options: NoteWriteOptions) -> NoteWriteResult:
        record_id, base_name = self._gedcom_identity(note, options)
        return self._write(
            record_id,
            base_name,
            options,
            lambda filename, path: self._build_gedcom_note(note, options, record_id, filename, path),
        )

    def write_notes(
        self,
        notes: Iterable[NoteRecord],
        options: NoteWriteOptions,
        references: Mapping[str, EntityReference] | None = None,
    ) -> NoteImportSummary:
        """Write a batch of notes; one failure does not stop the rest."""

        summary = NoteImportSummary()
        lookup = references or {}
        for note in notes:
            reference = lookup.get(note.handle)
            if reference is None and note.id:
                reference = lookup.get(note.id)
            note_options = replace(
                options,
                referencing_entity_name=reference.entity_name if reference else None,
            )
            summary.record(self.write_note(note, note_options))

        logger.info(
            "Note import complete: %d created, %d updated, %d failed",
            summary.created,
            summary.updated,
            summary.failed,
        )
        return summary

    def _note_identity(self, note: NoteRecord, options: NoteWriteOptions) -> tuple[str, str]:
        record_id = note_record_id(note.id, id_factory=self._id_factory)
        base_name = sanitize_filename(note_display_name(note, options.referencing_entity_name))
        return record_id, base_name

    def _gedcom_identity(self, note: GedcomNoteRecord, options: NoteWriteOptions) -> tuple[str, str]:
        record_id = note_record_id(clean_gedcom_id(note.id), id_factory=self._id_factory)
        base_name = sanitize_filename(gedcom_note_display_name(note.id, options.referencing_entity_name))
        return record_id, base_name

    def _resolve_path(self, base_name: str, options: NoteWriteOptions) -> tuple[str, str]:
        return resolve_unique_path(
            self._store.exists,
            options.notes_folder,
            base_name,
            overwrite=options.overwrite_existing,
        )

    def _build_note(
        self,
        note: NoteRecord,
        options: NoteWriteOptions,
        record_id: str,
        filename: str,
        path: str,
    ) -> MaterializedRecord:
        fields: list[tuple[str, str]] = [
            ("cr_type", NOTE_RECORD_TYPE),
            ("cr_id", record_id),
        ]
        if note.id:
            fields.append(("gramps_id", note.id))
        fields.append(("gramps_handle", note.handle))
        if note.note_type:
            fields.append(("cr_note_type", note.note_type))
        if note.private:
            fields.append(("private", "true"))

        return MaterializedRecord(
            record_id=record_id,
            display_name=filename,
            path=path,
            header_fields=options.property_aliases.apply(fields),
            body=self._body_converter(note) if note.text else "",
        )

    def _build_gedcom_note(
        self,
        note: GedcomNoteRecord,
        options: NoteWriteOptions,
        record_id: str,
        filename: str,
        path: str,
    ) -> MaterializedRecord:
        fields = [
            ("cr_type", NOTE_RECORD_TYPE),
            ("cr_id", record_id),
            ("gedcom_id", note.id),
        ]
        return MaterializedRecord(
            record_id=record_id,
            display_name=filename,
            path=path,
            header_fields=options.property_aliases.apply(fields),
            body=note.text or "",
        )

    def _write(
        self,
        record_id: str,
        base_name: str,
        options: NoteWriteOptions,
        build: _RecordBuilder,
    ) -> NoteWriteResult:
        filename = base_name
        path = join_path(options.notes_folder, f"{base_name}{RECORD_SUFFIX}")

        try:
            filename, path = self._resolve_path(base_name, options)
            record = build(filename, path)
            updated = self._persist(record, options)
        except Exception as exc:
            logger.error("Failed to write note %s: %s", path, exc)
            return NoteWriteResult(
                success=False,
                path=path,
                record_id=record_id,
                wikilink=f"[[{filename}]]",
                filename=filename,
                error=str(exc),
            )

        logger.debug("%s note %s (%s)", "Updated" if updated else "Created", record.path, record_id)
        return NoteWriteResult(
            success=True,
            path=record.path,
            record_id=record_id,
            wikilink=record.wikilink,
            filename=record.display_name,
            updated=updated,
        )

    def _persist(self, record: MaterializedRecord, options: NoteWriteOptions) -> bool:
        folder = normalize_path(options.notes_folder)
        if folder and not self._store.exists(folder):
            self._store.create_folder(folder)

        content = record.render()
        if options.overwrite_existing and self._store.exists(record.path):
            self._store.modify(record.path, content)
            return True
        self._store.create(record.path, content)
        return False
