from __future__ import annotations

from pathlib import Path

import pytest

from genbundle.automation.config import ImportSettings


def test_settings_defaults() -> None:
    settings = ImportSettings.from_env({})

    assert settings.vault_path == Path(".")
    assert settings.notes_folder == "Notes"
    assert settings.media_folder == "Media"
    assert settings.decompress_timeout_seconds == 30.0
    assert settings.overwrite_existing is False
    assert settings.property_aliases.write_name("cr_id") == "cr_id"


def test_settings_load_from_env() -> None:
    settings = ImportSettings.from_env(
        {
            "GENBUNDLE_VAULT_PATH": "/vaults/family",
            "GENBUNDLE_NOTES_FOLDER": "Genealogy/Notes",
            "GENBUNDLE_MEDIA_FOLDER": "Genealogy/Media",
            "GENBUNDLE_DECOMPRESS_TIMEOUT_SECONDS": "5",
            "GENBUNDLE_OVERWRITE_EXISTING": "yes",
            "GENBUNDLE_PROPERTY_ALIASES": '{"uid": "cr_id"}',
        }
    )

    assert settings.vault_path == Path("/vaults/family")
    assert settings.notes_folder == "Genealogy/Notes"
    assert settings.media_folder == "Genealogy/Media"
    assert settings.decompress_timeout_seconds == 5.0
    assert settings.overwrite_existing is True
    assert settings.property_aliases.write_name("cr_id") == "uid"


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("GENBUNDLE_VAULT_PATH", " "),
        ("GENBUNDLE_NOTES_FOLDER", ""),
        ("GENBUNDLE_DECOMPRESS_TIMEOUT_SECONDS", "soon"),
        ("GENBUNDLE_DECOMPRESS_TIMEOUT_SECONDS", "0"),
        ("GENBUNDLE_OVERWRITE_EXISTING", "maybe"),
        ("GENBUNDLE_PROPERTY_ALIASES", "[1, 2]"),
        ("GENBUNDLE_PROPERTY_ALIASES", "{not json"),
    ],
)
def test_settings_reject_invalid_values(name: str, value: str) -> None:
    with pytest.raises(ValueError, match=name):
        ImportSettings.from_env({name: value})
