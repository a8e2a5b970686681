"""Default note-body conversion."""

from __future__ import annotations

from typing import Callable

from genbundle.records.models import NoteRecord

BodyConverter = Callable[[NoteRecord], str]

PREFORMATTED = "preformatted"


def note_to_markdown(note: NoteRecord) -> str:
    """Render note text as Markdown; preformatted notes are fenced."""

    text = (note.text or "").replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.rstrip() for line in text.split("\n")]
    body = "\n".join(lines).strip("\n")
    if not body:
        return ""
    if note.format == PREFORMATTED:
        return f"```\n{body}\n```\n"
    return body + "\n"
