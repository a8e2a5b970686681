"""Canonical-to-user property name lookup for record headers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping


@dataclass(frozen=True, slots=True)
class PropertyAliases:
    """Maps canonical header keys to the names a user wants written.

    Users configure aliases as ``user name -> canonical name``; when several
    user names point at one canonical key, the first configured one is used.
    """

    write_names: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_user_mapping(cls, aliases: Mapping[str, str] | None) -> "PropertyAliases":
        write_names: dict[str, str] = {}
        for user_name, canonical in (aliases or {}).items():
            user_name = user_name.strip()
            canonical = canonical.strip()
            if not user_name or not canonical:
                raise ValueError("Property aliases cannot contain empty names")
            write_names.setdefault(canonical, user_name)
        return cls(write_names=write_names)

    def write_name(self, canonical: str) -> str:
        return self.write_names.get(canonical, canonical)

    def apply(self, fields: Iterable[tuple[str, str]]) -> list[tuple[str, str]]:
        return [(self.write_name(key), value) for key, value in fields]
