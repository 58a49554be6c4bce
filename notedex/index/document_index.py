"""In-memory index of the documents of a vault, kept in sync with disk."""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Iterator, NamedTuple

from notedex.domain.document import Document
from notedex.errors import DocumentParseError, IndexStateError
from notedex.ingestion.document_loader import canonical_path, load_document
from notedex.tracking.events import EventKind, FileEvent
from notedex.tracking.file_tracker import FileTracker

logger = logging.getLogger(__name__)


class IndexState(str, Enum):
    UNINITIALIZED = "uninitialized"
    BULK_BUILT = "bulk_built"
    WATCHING = "watching"


class ReconcileResult(NamedTuple):
    changed: bool
    removed: list[str]


class ParseDiagnostic(NamedTuple):
    path: Path
    message: str


class DocumentIndex:
    """Map of identifier to Document for a single vault.

    The index is the only owner of the documents. Readers, the reconciliation
    loop and the file manager all go through ``lock``, which is re-entrant so
    that a caller holding it can use the other methods freely.

    Args:
        tracker: File tracker of the vault to index
    """

    def __init__(self, tracker: FileTracker) -> None:
        self.tracker = tracker
        self.lock = threading.RLock()
        self.state = IndexState.UNINITIALIZED
        self._documents: dict[str, Document] = {}

    @property
    def vault_path(self) -> Path:
        return self.tracker.vault_path

    def build(self) -> list[ParseDiagnostic]:
        """Parse every tracked file of the vault into the index.

        Documents whose identifiers collide overwrite each other, the file
        enumerated last wins. Files that fail to parse are reported and left
        out; they never abort the build.

        Returns:
            One diagnostic per file that could not be parsed
        """
        with self.lock:
            self._documents, diagnostics = self._load_all()
            self.state = IndexState.BULK_BUILT

        logger.info(f"Indexed {len(self._documents)} documents in {self.vault_path}")
        return diagnostics

    def _load_all(self) -> tuple[dict[str, Document], list[ParseDiagnostic]]:
        documents: dict[str, Document] = {}
        diagnostics = []
        for path in self.tracker.walk():
            try:
                document = load_document(path)
            except DocumentParseError as e:
                logger.warning(f"Skipping {path}: {e}")
                diagnostics.append(ParseDiagnostic(path=path, message=str(e)))
                continue
            documents[document.id] = document
        return documents, diagnostics

    def start_watching(self) -> None:
        """Activate the file watcher.

        Raises:
            IndexStateError: If the index has not been built yet or is already watching
        """
        with self.lock:
            if self.state != IndexState.BULK_BUILT:
                raise IndexStateError(f"Cannot start watching an index in state '{self.state.value}'")
            self.tracker.start_watching()
            self.state = IndexState.WATCHING

    def stop_watching(self) -> None:
        with self.lock:
            self.tracker.stop_watching()
            if self.state == IndexState.WATCHING:
                self.state = IndexState.BULK_BUILT

    def reconcile(self) -> ReconcileResult:
        """Apply every pending file event to the index, in arrival order.

        Never blocks waiting for events. Created and renamed-to files are
        parsed if they are tracked, files that cannot be parsed are skipped.
        Removed and renamed-from paths drop the document stored under that
        path. Modified files are parsed again and replace their entry.

        If the tracker had to drop events because its queue was full, the
        pending events are discarded and the index is rebuilt from disk
        instead.

        Returns:
            Whether the index changed, and the identifiers that were removed
        """
        with self.lock:
            missed_events = self.tracker.take_overflow()
            events = self.tracker.drain_events()
            if missed_events:
                return self._resync()

            changed = False
            removed: list[str] = []
            for event in events:
                changed = self._apply(event, removed) or changed

        return ReconcileResult(changed=changed or bool(removed), removed=removed)

    def _resync(self) -> ReconcileResult:
        logger.warning(f"File events were dropped, rebuilding the index of {self.vault_path}")
        previous = self._documents
        self._documents, _ = self._load_all()
        removed = sorted(set(previous) - set(self._documents))
        return ReconcileResult(changed=self._documents != previous, removed=removed)

    def _apply(self, event: FileEvent, removed: list[str]) -> bool:
        changed = False
        if event.kind in (EventKind.CREATE, EventKind.RENAME_TO):
            for path in event.paths:
                if not self.tracker.is_tracked(path):
                    continue
                try:
                    document = load_document(path)
                except DocumentParseError as e:
                    logger.debug(f"Ignoring new file {path}: {e}")
                    continue
                changed = self._store(document) or changed

        elif event.kind in (EventKind.REMOVE, EventKind.RENAME_FROM):
            for path in event.paths:
                doc_id = self._find_by_path(canonical_path(path))
                if doc_id is not None:
                    del self._documents[doc_id]
                    removed.append(doc_id)
                    logger.info(f"Removed {doc_id} ({path})")

        elif event.kind == EventKind.MODIFY:
            for path in event.paths:
                target = canonical_path(path)
                if self._find_by_path(target) is None:
                    continue
                try:
                    document = load_document(target)
                except DocumentParseError as e:
                    logger.debug(f"Ignoring change to {path}: {e}")
                    continue
                changed = self._store(document) or changed

        return changed

    def _store(self, document: Document) -> bool:
        """Insert a freshly parsed document, returning whether anything changed.

        Re-parsing a file the index already reflects, e.g. after a rename
        performed through the file manager, is not a change.
        """
        if self._documents.get(document.id) == document:
            return False
        self._documents[document.id] = document
        logger.info(f"Updated {document.id} ({document.path})")
        return True

    def _find_by_path(self, path: Path) -> str | None:
        for doc_id, document in self._documents.items():
            if document.path == path:
                return doc_id
        return None

    def get(self, doc_id: str) -> Document | None:
        with self.lock:
            return self._documents.get(doc_id)

    def __contains__(self, doc_id: object) -> bool:
        with self.lock:
            return doc_id in self._documents

    def __len__(self) -> int:
        with self.lock:
            return len(self._documents)

    def ids(self) -> list[str]:
        with self.lock:
            return sorted(self._documents)

    def documents(self) -> Iterator[Document]:
        """Snapshot of all documents, ordered by identifier."""
        with self.lock:
            snapshot = [self._documents[doc_id] for doc_id in sorted(self._documents)]
        return iter(snapshot)

    def links_of(self, doc_id: str) -> list[tuple[str, str]]:
        """Documents the given document links to.

        Link targets without a document in the index are left out.

        Returns:
            (identifier, name) pairs sorted by identifier, empty for unknown documents
        """
        with self.lock:
            document = self._documents.get(doc_id)
            if document is None:
                return []
            targets = {link for link in document.links if link in self._documents}
            return [(target, self._documents[target].name) for target in sorted(targets)]

    def backlinks_of(self, doc_id: str) -> list[tuple[str, str]]:
        """Documents linking to the given identifier, found by a full scan.

        The identifier does not have to exist in the index.

        Returns:
            (identifier, name) pairs sorted by identifier
        """
        with self.lock:
            return sorted(
                (other_id, document.name)
                for other_id, document in self._documents.items()
                if document.links_to(doc_id)
            )

    def insert(self, document: Document) -> None:
        with self.lock:
            self._documents[document.id] = document

    def remove(self, doc_id: str) -> Document | None:
        with self.lock:
            return self._documents.pop(doc_id, None)

    def register(self, path: Path) -> Document | None:
        """Parse the file at the given path and insert it.

        Returns:
            The new Document, or None if the file could not be parsed
        """
        try:
            document = load_document(path)
        except DocumentParseError as e:
            logger.debug(f"Not registering {path}: {e}")
            return None

        with self.lock:
            self._documents[document.id] = document
        logger.info(f"Registered {document.id} ({path})")
        return document
