"""Runtime configuration for bundle import workflows."""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import os
from pathlib import Path
from typing import Mapping

from genbundle.archive.decompression import DEFAULT_DECOMPRESS_TIMEOUT_SECONDS
from genbundle.records.aliases import PropertyAliases


DEFAULT_VAULT_PATH = "."
DEFAULT_NOTES_FOLDER = "Notes"
DEFAULT_MEDIA_FOLDER = "Media"

_TRUE_WORDS = {"1", "true", "yes", "on"}
_FALSE_WORDS = {"0", "false", "no", "off"}


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_bool(*, name: str, raw_value: str) -> bool:
    lowered = raw_value.lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise ValueError(f"{name} must be one of: {', '.join(sorted(_TRUE_WORDS | _FALSE_WORDS))}")


def _parse_aliases(*, name: str, raw_value: str) -> PropertyAliases:
    if not raw_value:
        return PropertyAliases()
    try:
        payload = json.loads(raw_value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{name} must be a JSON object") from exc
    if not isinstance(payload, dict) or not all(
        isinstance(key, str) and isinstance(value, str) for key, value in payload.items()
    ):
        raise ValueError(f"{name} must map property names to canonical names")
    return PropertyAliases.from_user_mapping(payload)


@dataclass(frozen=True, slots=True)
class ImportSettings:
    """Validated settings shared by the bundle CLIs and watcher."""

    vault_path: Path
    notes_folder: str = DEFAULT_NOTES_FOLDER
    media_folder: str = DEFAULT_MEDIA_FOLDER
    decompress_timeout_seconds: float = DEFAULT_DECOMPRESS_TIMEOUT_SECONDS
    overwrite_existing: bool = False
    property_aliases: PropertyAliases = field(default_factory=PropertyAliases)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ImportSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        vault_raw = source.get("GENBUNDLE_VAULT_PATH", DEFAULT_VAULT_PATH).strip()
        notes_raw = source.get("GENBUNDLE_NOTES_FOLDER", DEFAULT_NOTES_FOLDER).strip()
        media_raw = source.get("GENBUNDLE_MEDIA_FOLDER", DEFAULT_MEDIA_FOLDER).strip()
        timeout_raw = source.get(
            "GENBUNDLE_DECOMPRESS_TIMEOUT_SECONDS", str(DEFAULT_DECOMPRESS_TIMEOUT_SECONDS)
        ).strip()
        overwrite_raw = source.get("GENBUNDLE_OVERWRITE_EXISTING", "").strip() or "false"
        aliases_raw = source.get("GENBUNDLE_PROPERTY_ALIASES", "").strip()

        if not vault_raw:
            raise ValueError("GENBUNDLE_VAULT_PATH cannot be empty")
        if not notes_raw:
            raise ValueError("GENBUNDLE_NOTES_FOLDER cannot be empty")
        if not media_raw:
            raise ValueError("GENBUNDLE_MEDIA_FOLDER cannot be empty")
        if not timeout_raw:
            raise ValueError("GENBUNDLE_DECOMPRESS_TIMEOUT_SECONDS cannot be empty")

        return cls(
            vault_path=Path(vault_raw),
            notes_folder=notes_raw,
            media_folder=media_raw,
            decompress_timeout_seconds=_parse_positive_float(
                name="GENBUNDLE_DECOMPRESS_TIMEOUT_SECONDS",
                raw_value=timeout_raw,
                minimum=0.1,
            ),
            overwrite_existing=_parse_bool(name="GENBUNDLE_OVERWRITE_EXISTING", raw_value=overwrite_raw),
            property_aliases=_parse_aliases(name="GENBUNDLE_PROPERTY_ALIASES", raw_value=aliases_raw),
        )
