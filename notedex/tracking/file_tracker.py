"""
Vault File Tracker

Enumerates the documents of a vault and watches it for changes using the
watchdog library.

Enumeration honours the configured file type classes, hidden files and nested
ignore files. Watching runs on watchdog's observer thread, which only ever
puts FileEvents into a bounded queue. The owner of the tracker drains that
queue whenever it likes; draining never blocks.

Architecture:
    FileTracker (enumeration, tracking check, lifecycle)
        └── VaultEventHandler (translation of watchdog events)
                └── watchdog.Observer (OS-level file monitoring)

Watching is activated separately from construction, so that the initial
indexing does not flood the queue with events it caused itself.

Usage:
    tracker = FileTracker(vault_path, file_types=["markdown"])
    paths = list(tracker.walk())
    tracker.start_watching()
    ...
    for event in tracker.drain_events():
        ...
    tracker.stop_watching()
"""

from __future__ import annotations

import os
import queue
from pathlib import Path
from typing import Iterator, Optional

from loguru import logger
from watchdog.events import (
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver
from watchdog.observers.polling import PollingObserver

from notedex.errors import VaultIOError

from .events import EventKind, FileEvent
from .file_types import FileTypes
from .ignore_rules import IgnoreRules

DEFAULT_QUEUE_SIZE = 65536

_KIND_BY_EVENT_TYPE = {
    "created": EventKind.CREATE,
    "deleted": EventKind.REMOVE,
    "modified": EventKind.MODIFY,
}


class VaultEventHandler(FileSystemEventHandler):
    """
    Translates watchdog events into FileEvents and deposits them in a queue.

    Runs on the observer thread. It never touches the document index; the
    queue is the only state shared with the consumer.

    A move becomes a RENAME_FROM event for the source followed by a RENAME_TO
    event for the destination. Directory events and open/close notifications
    become OTHER events, which the index ignores.

    Attributes:
        events: Queue receiving the translated events
        overflowed: Set when an event had to be dropped because the queue was full
    """

    def __init__(self, events: queue.Queue[FileEvent], ignore_filenames: list[str]):
        self.events = events
        self.ignore_filenames = set(ignore_filenames)
        self.ignore_files_changed = False
        self.overflowed = False

    def on_any_event(self, event: FileSystemEvent):
        for file_event in self.translate(event):
            self._put(file_event)

    def translate(self, event: FileSystemEvent) -> list[FileEvent]:
        src_path = Path(os.fsdecode(event.src_path))
        if src_path.name in self.ignore_filenames:
            self.ignore_files_changed = True

        if event.is_directory:
            return [FileEvent(kind=EventKind.OTHER, paths=[src_path])]

        if event.event_type == "moved":
            dest_path = Path(os.fsdecode(event.dest_path))
            if dest_path.name in self.ignore_filenames:
                self.ignore_files_changed = True
            return [
                FileEvent(kind=EventKind.RENAME_FROM, paths=[src_path]),
                FileEvent(kind=EventKind.RENAME_TO, paths=[dest_path]),
            ]

        kind = _KIND_BY_EVENT_TYPE.get(event.event_type, EventKind.OTHER)
        return [FileEvent(kind=kind, paths=[src_path])]

    def _put(self, file_event: FileEvent):
        try:
            self.events.put_nowait(file_event)
        except queue.Full:
            self.overflowed = True
            logger.warning(f"Event queue full, dropping {file_event.kind.value} event for {file_event.paths}")


class FileTracker:
    """
    Enumerates and watches the files of a vault.

    Args:
        vault_path: Root directory of the vault
        file_types: Type classes of files to track (see DEFAULT_TYPES)
        ignore_filenames: Names of per-directory ignore files to honour
        queue_size: Maximum number of undrained events
        use_polling: Use watchdog's polling observer instead of the native one
        poll_interval: Seconds between polls of the polling observer
    """

    def __init__(
        self,
        vault_path: Path | str,
        file_types: list[str] | tuple[str, ...] = ("markdown",),
        ignore_filenames: list[str] | tuple[str, ...] = (".gitignore", ".ignore"),
        queue_size: int = DEFAULT_QUEUE_SIZE,
        use_polling: bool = False,
        poll_interval: float = 2.0,
    ):
        self.vault_path = Path(vault_path).expanduser().resolve()
        self.file_types = FileTypes(file_types)
        self.ignore_rules = IgnoreRules(self.vault_path, ignore_filenames)
        self.use_polling = use_polling
        self.poll_interval = poll_interval

        self._events: queue.Queue[FileEvent] = queue.Queue(maxsize=queue_size)
        self.handler = VaultEventHandler(self._events, list(ignore_filenames))
        self._observer: Optional[BaseObserver] = None

    @classmethod
    def from_settings(cls, settings) -> FileTracker:
        return cls(
            settings.vault_path,
            file_types=settings.file_types,
            ignore_filenames=settings.ignore_filenames,
            queue_size=settings.event_queue_size,
            use_polling=settings.use_polling,
            poll_interval=settings.poll_interval,
        )

    def walk(self) -> Iterator[Path]:
        """
        Lazily yield every tracked file of the vault.

        Hidden entries and ignored directories are pruned without descending
        into them. Each call starts a fresh walk.
        """
        for dirpath, dirnames, filenames in os.walk(self.vault_path):
            directory = Path(dirpath)
            relative_dir = directory.relative_to(self.vault_path)

            dirnames[:] = sorted(
                d
                for d in dirnames
                if not d.startswith(".")
                and not self.ignore_rules.is_ignored(relative_dir / d, is_dir=True)
            )

            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                if not self.file_types.matches(Path(filename)):
                    continue
                if self.ignore_rules.is_ignored(relative_dir / filename):
                    continue
                yield directory / filename

    def is_tracked(self, path: Path | str) -> bool:
        """
        Whether the given path is a document of this vault.

        Applies the same rules as walk(): the file has to exist, lie inside
        the vault, not be hidden, match a selected file type and not be
        excluded by an ignore file.
        """
        path = Path(path)
        try:
            canonical = path.resolve(strict=True)
        except (OSError, RuntimeError):
            return False
        if not canonical.is_file():
            return False

        try:
            relative = canonical.relative_to(self.vault_path)
        except ValueError:
            return False

        if any(part.startswith(".") for part in relative.parts):
            return False
        if not self.file_types.matches(canonical):
            return False
        return not self.ignore_rules.is_excluded(relative)

    def start_watching(self):
        """
        Start watching the vault for file changes in a background thread.

        Safe to call multiple times; subsequent calls are no-ops.

        Raises:
            VaultIOError: If the observer cannot be started
        """
        if self._observer is not None:
            logger.warning("Vault watcher already running")
            return

        if self.use_polling:
            observer: BaseObserver = PollingObserver(timeout=self.poll_interval)
        else:
            observer = Observer()

        try:
            observer.schedule(self.handler, str(self.vault_path), recursive=True)
            observer.start()
        except OSError as e:
            raise VaultIOError(
                f"Failed to watch {self.vault_path}: {e}", stage="watch", path=self.vault_path
            ) from e

        self._observer = observer
        logger.info(f"Started vault watcher: {self.vault_path}")

    def stop_watching(self):
        """Stop the observer thread. Safe to call even if not running."""
        if self._observer:
            self._observer.stop()
            self._observer.join(timeout=5)
            self._observer = None
            logger.info("Stopped vault watcher")

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def take_overflow(self) -> bool:
        """
        Whether events were dropped since the last call.

        Once events were dropped the queue no longer describes every change on
        disk, so the consumer has to rescan the vault.
        """
        overflowed = self.handler.overflowed
        self.handler.overflowed = False
        return overflowed

    def drain_events(self) -> list[FileEvent]:
        """
        Return all events observed since the last call, oldest first.

        Never blocks: an empty queue yields an empty list.
        """
        if self.handler.ignore_files_changed:
            self.handler.ignore_files_changed = False
            self.ignore_rules.invalidate()

        drained = []
        while True:
            try:
                drained.append(self._events.get_nowait())
            except queue.Empty:
                return drained

    def __enter__(self) -> FileTracker:
        return self

    def __exit__(self, *exc_info):
        self.stop_watching()
