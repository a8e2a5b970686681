"""CLI command that writes parsed notes into a vault folder.

Input is the JSON emitted by a domain parser::

    {
      "notes": [{"handle": "_a1", "id": "N0001", "type": "Research", "text": "..."}],
      "gedcom_notes": [{"id": "@N1@", "text": "..."}],
      "persons": {"_p1": {"name": "John Smith", "note_refs": ["_a1"]}},
      "events": {"_e1": {"type": "Birth", "description": "...", "note_refs": []}},
      "places": {"_l1": {"name": "Boston", "note_refs": []}}
    }
"""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from genbundle.automation.config import ImportSettings
from genbundle.records.models import (
    EventSummary,
    GedcomNoteRecord,
    NoteRecord,
    PersonSummary,
    PlaceSummary,
)
from genbundle.records.references import build_gedcom_reference_map, build_reference_map
from genbundle.records.store import FolderRecordStore
from genbundle.records.writer import NoteMaterializer, NoteWriteOptions


load_dotenv()

LOGGER = logging.getLogger(__name__)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _note_refs(raw: dict[str, Any]) -> list[str]:
    refs = raw.get("note_refs") or []
    if not isinstance(refs, list):
        raise ValueError("note_refs must be a list")
    return [str(ref) for ref in refs]


def _private_flag(raw: dict[str, Any]) -> bool:
    value = raw.get("private", False)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"private must be true or false, got {value!r}")
    return value


def _parse_notes(payload: dict[str, Any]) -> list[NoteRecord]:
    notes: list[NoteRecord] = []
    for raw in payload.get("notes", []):
        handle = _optional_str(raw.get("handle"))
        if not handle:
            raise ValueError("Every note requires a handle")
        notes.append(
            NoteRecord(
                handle=handle,
                id=_optional_str(raw.get("id")),
                note_type=_optional_str(raw.get("type")),
                private=_private_flag(raw),
                text=raw.get("text"),
                format=_optional_str(raw.get("format")) or "flowed",
            )
        )
    return notes


def _parse_gedcom_notes(payload: dict[str, Any]) -> list[GedcomNoteRecord]:
    return [
        GedcomNoteRecord(id=str(raw.get("id") or ""), text=raw.get("text"))
        for raw in payload.get("gedcom_notes", [])
    ]


def _parse_entities(payload: dict[str, Any]) -> tuple[
    dict[str, PersonSummary], dict[str, EventSummary], dict[str, PlaceSummary]
]:
    persons = {
        key: PersonSummary(name=_optional_str(raw.get("name")), note_refs=_note_refs(raw))
        for key, raw in (payload.get("persons") or {}).items()
    }
    events = {
        key: EventSummary(
            type=_optional_str(raw.get("type")),
            description=_optional_str(raw.get("description")),
            note_refs=_note_refs(raw),
        )
        for key, raw in (payload.get("events") or {}).items()
    }
    places = {
        key: PlaceSummary(name=_optional_str(raw.get("name")), note_refs=_note_refs(raw))
        for key, raw in (payload.get("places") or {}).items()
    }
    return persons, events, places


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Write parsed genealogy notes into a vault folder")
    parser.add_argument("--input", required=True, help="JSON file produced by a domain parser")
    parser.add_argument("--vault", default=None, help="Vault root receiving the notes")
    parser.add_argument("--notes-folder", default=None, help="Vault folder for note records")
    parser.add_argument("--overwrite", action="store_true", help="Replace notes that already exist")
    args = parser.parse_args(argv)

    try:
        settings = ImportSettings.from_env()
    except ValueError as error:
        LOGGER.error("Configuration error: %s", error)
        return 2

    input_path = Path(args.input)
    try:
        payload = json.loads(input_path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("Parsed input must be a JSON object")
        notes = _parse_notes(payload)
        gedcom_notes = _parse_gedcom_notes(payload)
        persons, events, places = _parse_entities(payload)
    except (OSError, ValueError, AttributeError) as error:
        LOGGER.error("Failed to load parsed input %s: %s", input_path, error)
        return 2

    store = FolderRecordStore(Path(args.vault) if args.vault else settings.vault_path)
    materializer = NoteMaterializer(store)
    options = NoteWriteOptions(
        notes_folder=args.notes_folder or settings.notes_folder,
        property_aliases=settings.property_aliases,
        overwrite_existing=args.overwrite or settings.overwrite_existing,
    )

    summary = materializer.write_notes(notes, options, build_reference_map(persons, events, places))

    gedcom_references = build_gedcom_reference_map(persons)
    for gedcom_note in gedcom_notes:
        note_options = replace(options, referencing_entity_name=gedcom_references.get(gedcom_note.id))
        summary.record(materializer.write_gedcom_note(gedcom_note, note_options))

    output = {
        "input": str(input_path),
        "created": summary.created,
        "updated": summary.updated,
        "failed": summary.failed,
        "results": [
            {
                "path": result.path,
                "record_id": result.record_id,
                "wikilink": result.wikilink,
                "updated": result.updated,
            }
            for result in summary.results
            if result.success
        ],
        "errors": summary.errors,
    }
    print(json.dumps(output, ensure_ascii=True, indent=2))
    return 0 if summary.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
