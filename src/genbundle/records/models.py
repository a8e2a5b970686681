"""Record shapes consumed and produced by note materialization."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class EntityKind(str, Enum):
    PERSON = "person"
    EVENT = "event"
    PLACE = "place"
    SOURCE = "source"


@dataclass(frozen=True, slots=True)
class EntityReference:
    """The entity that first referenced a note, used for naming."""

    entity_name: str
    entity_kind: EntityKind


@dataclass(slots=True)
class NoteRecord:
    """A parsed Gramps note.

    ``handle`` is always present; ``id`` only when the export carries
    explicit Gramps IDs.
    """

    handle: str
    id: str | None = None
    note_type: str | None = None
    private: bool = False
    text: str | None = None
    format: str = "flowed"


@dataclass(slots=True)
class GedcomNoteRecord:
    """A top-level GEDCOM ``NOTE`` record keyed by its xref (``@N1@``)."""

    id: str
    text: str | None = None


@dataclass(slots=True)
class PersonSummary:
    name: str | None = None
    note_refs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class EventSummary:
    type: str | None = None
    description: str | None = None
    note_refs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class PlaceSummary:
    name: str | None = None
    note_refs: list[str] = field(default_factory=list)


@dataclass(slots=True)
class MaterializedRecord:
    """Identifier, unique name and serialized form of one output record."""

    record_id: str
    display_name: str
    path: str
    header_fields: list[tuple[str, str]]
    body: str = ""

    @property
    def wikilink(self) -> str:
        return f"[[{self.display_name}]]"

    def render(self) -> str:
        lines = ["---"]
        lines.extend(f"{key}: {value}" for key, value in self.header_fields)
        lines.append("---")
        return "\n".join(lines) + "\n\n" + self.body


@dataclass(slots=True)
class NoteWriteResult:
    """Outcome of writing one record; failures carry the collaborator's message."""

    success: bool
    path: str
    record_id: str
    wikilink: str
    filename: str
    updated: bool = False
    error: str | None = None


@dataclass(slots=True)
class NoteImportSummary:
    """Counts and messages for a batch of note writes."""

    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    results: list[NoteWriteResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    def record(self, result: NoteWriteResult) -> None:
        self.results.append(result)
        if not result.success:
            self.failed += 1
            self.errors.append(f"Failed to write {result.filename}: {result.error}")
        elif result.updated:
            self.updated += 1
        else:
            self.created += 1
