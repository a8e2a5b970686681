"""Async subprocess bundle import for automation workflows."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
from pathlib import Path
import sys


DEFAULT_IMPORT_TIMEOUT_SECONDS = 120.0
EXTRACT_MODULE = "genbundle.cli.extract_bundle"
CONFIG_ERROR_EXIT_CODE = 2


@dataclass(frozen=True, slots=True)
class BundleImportResult:
    success: bool
    source_name: str
    document_chars: int = 0
    attachment_count: int = 0
    attachments_written: int = 0
    stage: str = "unknown"
    error: str | None = None


@dataclass(frozen=True, slots=True)
class _ExtractRun:
    returncode: int | None
    stdout: str = ""
    stderr: str = ""

    @property
    def timed_out(self) -> bool:
        return self.returncode is None


async def _run_extract_cli(args: list[str], timeout_seconds: float) -> _ExtractRun:
    proc = await asyncio.create_subprocess_exec(
        sys.executable,
        "-m",
        EXTRACT_MODULE,
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(proc.communicate(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.communicate()
        return _ExtractRun(returncode=None)

    return _ExtractRun(
        returncode=proc.returncode,
        stdout=stdout_bytes.decode("utf-8", errors="replace"),
        stderr=stderr_bytes.decode("utf-8", errors="replace").strip(),
    )


def _last_line(text: str) -> str:
    lines = [line for line in text.splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""


def _failure(source_name: str, error: str, *, stage: str = "extract") -> BundleImportResult:
    return BundleImportResult(success=False, source_name=source_name, stage=stage, error=error)


def _parse_extract_payload(stdout_text: str, source_name: str) -> BundleImportResult:
    try:
        payload = json.loads(stdout_text)
    except json.JSONDecodeError:
        return _failure(source_name, "extract_bundle returned malformed JSON")

    if not isinstance(payload, dict):
        return _failure(source_name, "extract_bundle payload is not an object")

    errors = payload.get("errors", [])
    if isinstance(errors, list) and errors:
        first_error = errors[0]
        if isinstance(first_error, dict) and "error" in first_error:
            error_text = str(first_error.get("error") or "Unknown extraction error")
        else:
            error_text = str(first_error)
        return _failure(source_name, error_text)

    results = payload.get("results", [])
    if not isinstance(results, list) or not results:
        return _failure(source_name, "No extraction result returned for file")

    first = results[0]
    if not isinstance(first, dict):
        return _failure(source_name, "extract_bundle result entry is invalid")

    return BundleImportResult(
        success=True,
        source_name=source_name,
        document_chars=int(first.get("document_chars") or 0),
        attachment_count=int(first.get("attachment_count") or 0),
        attachments_written=int(first.get("attachments_written") or 0),
        stage="done",
    )


async def run_bundle_import(
    file_path: Path,
    *,
    vault_path: str,
    media_folder: str,
    document_dir: str | None = None,
    timeout_seconds: float = DEFAULT_IMPORT_TIMEOUT_SECONDS,
) -> BundleImportResult:
    """Extract one bundle in a child process and summarize its JSON report."""

    source_name = file_path.name
    args = ["--path", str(file_path), "--vault", vault_path, "--media-folder", media_folder]
    if document_dir:
        args.extend(["--document-dir", document_dir])

    run = await _run_extract_cli(args, timeout_seconds)
    if run.timed_out:
        return _failure(source_name, f"Timed out after {timeout_seconds:g}s extracting {file_path}")
    if run.returncode == CONFIG_ERROR_EXIT_CODE:
        return _failure(
            source_name,
            _last_line(run.stderr) or "Invalid import configuration",
            stage="config",
        )
    if not run.stdout.strip():
        return _failure(source_name, run.stderr or f"{EXTRACT_MODULE} exited with code {run.returncode}")

    return _parse_extract_payload(run.stdout, source_name)
