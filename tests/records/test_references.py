from __future__ import annotations

from genbundle.records.models import EntityKind, EventSummary, PersonSummary, PlaceSummary
from genbundle.records.references import (
    UNKNOWN_EVENT,
    UNKNOWN_PERSON,
    build_gedcom_reference_map,
    build_reference_map,
)


def test_person_reference_wins_over_later_event() -> None:
    references = build_reference_map(
        {"_p1": PersonSummary(name="John Smith", note_refs=["N1"])},
        {"_e1": EventSummary(type="Birth", description="Birth of John", note_refs=["N1", "N2"])},
    )

    assert references["N1"].entity_name == "John Smith"
    assert references["N1"].entity_kind is EntityKind.PERSON
    assert references["N2"].entity_name == "Birth of John"
    assert references["N2"].entity_kind is EntityKind.EVENT


def test_first_person_keeps_shared_note() -> None:
    references = build_reference_map(
        {
            "_p1": PersonSummary(name="Alice", note_refs=["N1"]),
            "_p2": PersonSummary(name="Bob", note_refs=["N1"]),
        }
    )

    assert references["N1"].entity_name == "Alice"


def test_fallback_labels_for_unnamed_entities() -> None:
    references = build_reference_map(
        {"_p1": PersonSummary(note_refs=["N1"])},
        {
            "_e1": EventSummary(type="Census", note_refs=["N2"]),
            "_e2": EventSummary(note_refs=["N3"]),
        },
        {"_l1": PlaceSummary(name="Boston", note_refs=["N4"])},
    )

    assert references["N1"].entity_name == UNKNOWN_PERSON
    assert references["N2"].entity_name == "Census"
    assert references["N3"].entity_name == UNKNOWN_EVENT
    assert references["N4"].entity_name == "Boston"
    assert references["N4"].entity_kind is EntityKind.PLACE


def test_gedcom_reference_map_uses_first_individual() -> None:
    references = build_gedcom_reference_map(
        {
            "@I1@": PersonSummary(name="Mary Jones", note_refs=["@N1@"]),
            "@I2@": PersonSummary(name="Tom Jones", note_refs=["@N1@", "@N2@"]),
        }
    )

    assert references == {"@N1@": "Mary Jones", "@N2@": "Tom Jones"}
