from __future__ import annotations

import asyncio
import json
from pathlib import Path

from genbundle.automation.import_service import BundleImportResult, run_bundle_import


class _DummyProc:
    def __init__(self, *, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0, delay_seconds: float = 0.0) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self.returncode = returncode
        self._delay_seconds = delay_seconds
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        if self._delay_seconds:
            await asyncio.sleep(self._delay_seconds)
        return self._stdout, self._stderr

    def kill(self) -> None:
        self.killed = True


def test_bundle_import_result_defaults() -> None:
    result = BundleImportResult(success=False, source_name="family.gpkg")

    assert result.stage == "unknown"
    assert result.attachment_count == 0
    assert result.error is None


def test_run_bundle_import_success(monkeypatch) -> None:
    payload = {
        "path": "exports/family.gpkg",
        "processed": 1,
        "results": [
            {
                "source_path": "exports/family.gpkg",
                "container": "gzip",
                "document_path": "data.gramps",
                "document_chars": 2048,
                "attachment_count": 3,
                "attachments_written": 2,
                "attachments_skipped": 1,
            }
        ],
        "errors": [],
    }
    calls: list[tuple[object, ...]] = []

    async def _fake_create_subprocess_exec(*args, **kwargs):
        calls.append(args)
        return _DummyProc(stdout=json.dumps(payload).encode("utf-8"))

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _fake_create_subprocess_exec)

    result = asyncio.run(
        run_bundle_import(
            Path("exports/family.gpkg"),
            vault_path="vault",
            media_folder="Media",
            document_dir="documents",
        )
    )

    assert result.success is True
    assert result.stage == "done"
    assert result.source_name == "family.gpkg"
    assert result.document_chars == 2048
    assert result.attachment_count == 3
    assert result.attachments_written == 2
    assert len(calls) == 1
    call = calls[0]
    assert "genbundle.cli.extract_bundle" in call
    assert call[call.index("--vault") + 1] == "vault"
    assert call[call.index("--media-folder") + 1] == "Media"
    assert call[call.index("--document-dir") + 1] == "documents"


def test_run_bundle_import_reports_extraction_error(monkeypatch) -> None:
    payload = {
        "path": "exports/broken.gpkg",
        "processed": 0,
        "results": [],
        "errors": [
            {
                "source_path": "exports/broken.gpkg",
                "kind": "UnsupportedFormatError",
                "error": "File is not a valid ZIP or gzip archive (source=broken.gpkg)",
            }
        ],
    }

    async def _fake_create_subprocess_exec(*args, **kwargs):
        return _DummyProc(stdout=json.dumps(payload).encode("utf-8"), returncode=1)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _fake_create_subprocess_exec)

    result = asyncio.run(run_bundle_import(Path("exports/broken.gpkg"), vault_path="vault", media_folder="Media"))

    assert result.success is False
    assert result.stage == "extract"
    assert result.error is not None
    assert "not a valid ZIP or gzip archive" in result.error


def test_run_bundle_import_failure_uses_stderr(monkeypatch) -> None:
    async def _fake_create_subprocess_exec(*args, **kwargs):
        return _DummyProc(stderr=b"extract crashed", returncode=1)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _fake_create_subprocess_exec)

    result = asyncio.run(run_bundle_import(Path("exports/family.gpkg"), vault_path="vault", media_folder="Media"))

    assert result.success is False
    assert result.error == "extract crashed"


def test_run_bundle_import_timeout_kills_process(monkeypatch) -> None:
    proc = _DummyProc(delay_seconds=0.2)

    async def _fake_create_subprocess_exec(*args, **kwargs):
        return proc

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _fake_create_subprocess_exec)

    result = asyncio.run(
        run_bundle_import(
            Path("exports/family.gpkg"),
            vault_path="vault",
            media_folder="Media",
            timeout_seconds=0.01,
        )
    )

    assert result.success is False
    assert result.error is not None
    assert "Timed out" in result.error
    assert proc.killed is True


def test_run_bundle_import_malformed_output(monkeypatch) -> None:
    async def _fake_create_subprocess_exec(*args, **kwargs):
        return _DummyProc(stdout=b"not json")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _fake_create_subprocess_exec)

    result = asyncio.run(run_bundle_import(Path("exports/family.gpkg"), vault_path="vault", media_folder="Media"))

    assert result.success is False
    assert result.error == "extract_bundle returned malformed JSON"


def test_run_bundle_import_reports_configuration_stage(monkeypatch) -> None:
    stderr = (
        b"2026-10-19 10:00:00 INFO starting\n"
        b"2026-10-19 10:00:00 ERROR Configuration error: GENBUNDLE_MEDIA_FOLDER cannot be empty\n"
    )

    async def _fake_create_subprocess_exec(*args, **kwargs):
        return _DummyProc(stderr=stderr, returncode=2)

    monkeypatch.setattr(asyncio, "create_subprocess_exec", _fake_create_subprocess_exec)

    result = asyncio.run(run_bundle_import(Path("exports/family.gpkg"), vault_path="vault", media_folder="Media"))

    assert result.success is False
    assert result.stage == "config"
    assert result.error is not None
    assert result.error.endswith("GENBUNDLE_MEDIA_FOLDER cannot be empty")
