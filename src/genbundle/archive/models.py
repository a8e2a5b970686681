"""Data structures produced by bundle extraction."""

from __future__ import annotations

from dataclasses import dataclass, field

from genbundle.archive.sniffing import ContainerFormat


@dataclass(slots=True)
class TarEntry:
    """One header plus payload read from a tar buffer."""

    name: str
    size: int
    is_regular_file: bool
    content: bytes
    offset: int = 0


@dataclass(slots=True)
class ArchiveExtractionResult:
    """Primary document text plus attachment payloads resolved from one bundle."""

    primary_document: str
    source_name: str
    attachments: dict[str, bytes] = field(default_factory=dict)
    document_path: str | None = None
    container: ContainerFormat = ContainerFormat.UNKNOWN

    @property
    def attachment_bytes(self) -> int:
        return sum(len(payload) for payload in self.attachments.values())
