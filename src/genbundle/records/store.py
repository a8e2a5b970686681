"""Persistence collaborators used by the materializer and attachment export."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from genbundle.records.naming import normalize_path


@runtime_checkable
class RecordStore(Protocol):
    """Existence checks and text writes against a vault-like folder tree."""

    def exists(self, path: str) -> bool:
        """Return True when a file or folder lives at ``path``."""

    def create_folder(self, path: str) -> None:
        """Create ``path`` and any missing parents."""

    def create(self, path: str, content: str) -> None:
        """Create a new record; fails when one already exists."""

    def modify(self, path: str, content: str) -> None:
        """Replace the content of an existing record."""


@runtime_checkable
class AttachmentStore(Protocol):
    """Binary writes for extracted attachments."""

    def exists(self, path: str) -> bool:
        """Return True when a file or folder lives at ``path``."""

    def create_binary(self, path: str, data: bytes) -> None:
        """Create a new binary file, creating parent folders as needed."""

    def modify_binary(self, path: str, data: bytes) -> None:
        """Replace the content of an existing binary file."""


class FolderRecordStore:
    """Record and attachment store rooted at a local directory."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path:
        relative = normalize_path(path)
        target = (self._root / relative).resolve()
        if target != self._root and self._root not in target.parents:
            raise ValueError(f"Path escapes store root: {path}")
        return target

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def create_folder(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def create(self, path: str, content: str) -> None:
        target = self._resolve(path)
        if not target.parent.is_dir():
            raise FileNotFoundError(f"Folder does not exist: {target.parent}")
        with target.open("x", encoding="utf-8", newline="\n") as handle:
            handle.write(content)

    def modify(self, path: str, content: str) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"Record does not exist: {path}")
        target.write_text(content, encoding="utf-8", newline="\n")

    def create_binary(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("xb") as handle:
            handle.write(data)

    def modify_binary(self, path: str, data: bytes) -> None:
        target = self._resolve(path)
        if not target.is_file():
            raise FileNotFoundError(f"Attachment does not exist: {path}")
        target.write_bytes(data)
