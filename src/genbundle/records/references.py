"""Note-to-entity reference maps used for human-friendly note names."""

from __future__ import annotations

from typing import Mapping

from genbundle.records.models import (
    EntityKind,
    EntityReference,
    EventSummary,
    PersonSummary,
    PlaceSummary,
)

UNKNOWN_PERSON = "Unknown Person"
UNKNOWN_EVENT = "Unknown Event"
UNKNOWN_PLACE = "Unknown Place"


def build_reference_map(
    persons: Mapping[str, PersonSummary],
    events: Mapping[str, EventSummary] | None = None,
    places: Mapping[str, PlaceSummary] | None = None,
) -> dict[str, EntityReference]:
    """Map each note key to the first entity referencing it.

    Persons are scanned first, then events, then places; a key already
    mapped is never replaced.
    """

    references: dict[str, EntityReference] = {}

    def _claim(note_refs: list[str], label: str, kind: EntityKind) -> None:
        for note_ref in note_refs:
            if note_ref not in references:
                references[note_ref] = EntityReference(entity_name=label, entity_kind=kind)

    for person in persons.values():
        _claim(person.note_refs, person.name or UNKNOWN_PERSON, EntityKind.PERSON)

    for event in (events or {}).values():
        _claim(event.note_refs, event.description or event.type or UNKNOWN_EVENT, EntityKind.EVENT)

    for place in (places or {}).values():
        _claim(place.note_refs, place.name or UNKNOWN_PLACE, EntityKind.PLACE)

    return references


def build_gedcom_reference_map(individuals: Mapping[str, PersonSummary]) -> dict[str, str]:
    """Map each GEDCOM note xref to the first individual's name."""

    references: dict[str, str] = {}
    for individual in individuals.values():
        for note_ref in individual.note_refs:
            references.setdefault(note_ref, individual.name or UNKNOWN_PERSON)
    return references
