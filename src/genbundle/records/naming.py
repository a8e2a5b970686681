"""Display-name derivation, sanitizing and collision-free path resolution."""

from __future__ import annotations

import re
from typing import Callable

from genbundle.records.models import NoteRecord

RECORD_SUFFIX = ".md"
SHORT_HANDLE_LENGTH = 8

_INVALID_FILENAME_CHARS_RE = re.compile(r'[<>:"/\\|?*]')
_WHITESPACE_RE = re.compile(r"\s+")
_SLASHES_RE = re.compile(r"/+")


def normalize_path(path: str) -> str:
    """Return a relative POSIX vault path without duplicate or edge slashes."""

    cleaned = _SLASHES_RE.sub("/", path.replace("\\", "/"))
    return cleaned.strip("/")


def join_path(folder: str, name: str) -> str:
    return normalize_path(f"{folder}/{name}")


def sanitize_filename(name: str) -> str:
    replaced = _INVALID_FILENAME_CHARS_RE.sub("-", name)
    return _WHITESPACE_RE.sub(" ", replaced).strip()


def note_display_name(note: NoteRecord, referencing_entity_name: str | None = None) -> str:
    """Name a note after its type and first referencing entity.

    "Research on John Smith" when both are known, "Research N0001" with only
    a type, otherwise "Note N0001".
    """

    short_id = note.id or note.handle[:SHORT_HANDLE_LENGTH]
    if note.note_type and referencing_entity_name:
        return f"{note.note_type} on {referencing_entity_name}"
    if note.note_type:
        return f"{note.note_type} {short_id}"
    return f"Note {short_id}"


def clean_gedcom_id(xref: str) -> str:
    return xref.replace("@", "")


def gedcom_note_display_name(xref: str, referencing_person_name: str | None = None) -> str:
    if referencing_person_name:
        return f"Note on {referencing_person_name}"
    return f"GEDCOM Note {clean_gedcom_id(xref)}"


def resolve_unique_path(
    exists: Callable[[str], bool],
    folder: str,
    base_name: str,
    *,
    overwrite: bool = False,
) -> tuple[str, str]:
    """Return ``(filename, path)`` that ``exists`` does not report as taken.

    Collisions get " (2)", " (3)", ... appended. The existence check is not atomic with
    any later write; concurrent writers to one folder must be serialized.
    """

    filename = base_name
    path = join_path(folder, f"{filename}{RECORD_SUFFIX}")
    if overwrite:
        return filename, path

    suffix = 1
    while exists(path):
        suffix += 1
        filename = f"{base_name} ({suffix})"
        path = join_path(folder, f"{filename}{RECORD_SUFFIX}")
    return filename, path
