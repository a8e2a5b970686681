"""Folder watcher that hands settled export bundles to an async callback.

Export tools write bundles incrementally, so a file is only reported once
its size and modification time have stayed unchanged for ``settle_seconds``
and its first bytes carry a ZIP or gzip signature. A bundle that was already
reported is reported again only after its content changes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from genbundle.archive.sniffing import ContainerFormat, classify


LOGGER = logging.getLogger(__name__)

SIGNATURE_BYTES = 4
DEFAULT_SETTLE_SECONDS = 2.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.25

_TEMPORARY_SUFFIXES = (".tmp", ".part", ".crdownload", "~")

_FileState = tuple[int, int]


def read_container_format(path: Path) -> ContainerFormat:
    with path.open("rb") as handle:
        return classify(handle.read(SIGNATURE_BYTES))


def _is_temporary(path: Path) -> bool:
    return path.name.startswith(".") or path.name.lower().endswith(_TEMPORARY_SUFFIXES)


@dataclass(slots=True)
class _Observation:
    state: _FileState
    unchanged_since: float


class BundleEventHandler(FileSystemEventHandler):
    """Forwards paths of created, modified or moved-in files to ``notify``.

    ``notify`` is called from the observer thread.
    """

    def __init__(self, notify: Callable[[Path], None]) -> None:
        super().__init__()
        self._notify = notify

    def _forward(self, raw_path: str | bytes) -> None:
        path = Path(os.fsdecode(raw_path))
        if not _is_temporary(path):
            self._notify(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.dest_path)


class BundleFolderWatcher:
    def __init__(
        self,
        watch_dir: str | Path,
        callback: Callable[[Path], Awaitable[None]],
        settle_seconds: float = DEFAULT_SETTLE_SECONDS,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ) -> None:
        if settle_seconds < 0 or poll_interval_seconds <= 0:
            raise ValueError("settle_seconds must be >= 0 and poll_interval_seconds > 0")
        self._watch_dir = Path(watch_dir)
        self._callback = callback
        self._settle_seconds = settle_seconds
        self._poll_interval_seconds = poll_interval_seconds
        self._pending: dict[Path, _Observation | None] = {}
        self._reported: dict[Path, _FileState] = {}
        self._observer: Observer | None = None
        self._settle_task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> list[Path]:
        return sorted(self._pending)

    def mark_candidate(self, path: Path) -> None:
        """Restart the settle window for ``path``; must run on the event loop."""

        self._pending[path] = None

    def _observe(self, path: Path, now: float) -> _FileState | None:
        try:
            stat = path.stat()
        except FileNotFoundError:
            self._pending.pop(path, None)
            return None

        state = (stat.st_size, stat.st_mtime_ns)
        previous = self._pending.get(path)
        if previous is None or previous.state != state:
            self._pending[path] = _Observation(state=state, unchanged_since=now)
            return None
        if now - previous.unchanged_since < self._settle_seconds:
            return None

        del self._pending[path]
        return state

    async def _report(self, path: Path, state: _FileState) -> None:
        if self._reported.get(path) == state:
            LOGGER.debug("Skipping %s: unchanged since last import", path)
            return
        try:
            container = read_container_format(path)
        except OSError as exc:
            LOGGER.warning("Could not read %s: %s", path, exc)
            return
        if container is ContainerFormat.UNKNOWN:
            LOGGER.debug("Ignoring %s: no ZIP or gzip signature", path)
            return

        self._reported[path] = state
        LOGGER.info("Bundle settled: %s (%s, %d bytes)", path, container.value, state[0])
        try:
            await self._callback(path)
        except Exception:
            LOGGER.exception("Watcher callback failed for %s", path)

    async def poll_once(self) -> None:
        now = asyncio.get_running_loop().time()
        for path in list(self._pending):
            if path not in self._pending:
                continue
            state = self._observe(path, now)
            if state is not None:
                await self._report(path, state)

    async def _settle_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval_seconds)
            await self.poll_once()

    async def start(self) -> None:
        if self._observer is not None:
            return
        if not self._watch_dir.is_dir():
            raise ValueError(f"Watch directory does not exist or is not a directory: {self._watch_dir}")

        loop = asyncio.get_running_loop()
        handler = BundleEventHandler(lambda path: loop.call_soon_threadsafe(self.mark_candidate, path))

        observer = Observer()
        observer.schedule(handler, str(self._watch_dir), recursive=False)
        observer.start()
        self._observer = observer
        self._settle_task = asyncio.create_task(self._settle_loop())

    def stop(self) -> None:
        observer = self._observer
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            self._observer = None

        if self._settle_task is not None:
            self._settle_task.cancel()
            self._settle_task = None
        self._pending.clear()
