"""Record identifier generation and validation.

Generated ids follow the ``abc-123-def-456`` shape: three lowercase letters,
three digits, three letters, three digits.
"""

from __future__ import annotations

import random
import re
import string

NOTE_ID_PREFIX = "note_"

_RECORD_ID_RE = re.compile(r"^[a-z]{3}-\d{3}-[a-z]{3}-\d{3}$")


def _letters(count: int) -> str:
    return "".join(random.choices(string.ascii_lowercase, k=count))


def _digits(count: int) -> str:
    return "".join(random.choices(string.digits, k=count))


def generate_record_id() -> str:
    return f"{_letters(3)}-{_digits(3)}-{_letters(3)}-{_digits(3)}"


def validate_record_id(record_id: str) -> bool:
    return bool(_RECORD_ID_RE.match(record_id))


def note_record_id(source_id: str | None, *, id_factory=generate_record_id) -> str:
    """Prefix the source id; without one a fresh random id is used."""

    return f"{NOTE_ID_PREFIX}{source_id or id_factory()}"
