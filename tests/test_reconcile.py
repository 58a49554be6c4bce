import os
import time
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from notedex.index.document_index import DocumentIndex, ReconcileResult
from notedex.tracking.file_tracker import FileTracker


def _emit(index: DocumentIndex, event) -> None:
    index.tracker.handler.dispatch(event)


def test_reconcile_without_events(index: DocumentIndex) -> None:
    assert index.reconcile() == ReconcileResult(changed=False, removed=[])


def test_create_tracked_file(index: DocumentIndex, vault: Path) -> None:
    path = vault / "math" / "Vector Field.md"
    path.write_text("# Vector Field\n\n#diffgeo\n\nLives on a [[Manifold]].\n")
    _emit(index, FileCreatedEvent(str(path)))

    result = index.reconcile()

    assert result.changed
    assert result.removed == []
    assert index.get("vector-field").links == ["manifold"]
    assert ("vector-field", "Vector Field") in index.backlinks_of("manifold")


def test_create_untracked_file(index: DocumentIndex, vault: Path) -> None:
    before = index.ids()
    (vault / "notes.txt").write_text("#tag [[Books]]\n")
    (vault / ".gitignore").write_text("Ignored.md\n")
    (vault / "Ignored.md").write_text("# Ignored\n")
    _emit(index, FileModifiedEvent(str(vault / ".gitignore")))
    _emit(index, FileCreatedEvent(str(vault / "notes.txt")))
    _emit(index, FileCreatedEvent(str(vault / "Ignored.md")))

    assert index.reconcile() == ReconcileResult(changed=False, removed=[])
    assert index.ids() == before


def test_create_event_for_vanished_file(index: DocumentIndex, vault: Path) -> None:
    _emit(index, FileCreatedEvent(str(vault / "Gone.md")))
    assert not index.reconcile().changed


def test_remove_file(index: DocumentIndex, vault: Path) -> None:
    """Test that a removed document is reported once."""
    path = vault / "math" / "Atlas.md"
    path.unlink()
    _emit(index, FileDeletedEvent(str(path)))

    result = index.reconcile()

    assert result == ReconcileResult(changed=True, removed=["atlas"])
    assert "atlas" not in index
    assert index.reconcile() == ReconcileResult(changed=False, removed=[])


def test_remove_unknown_path(index: DocumentIndex, vault: Path) -> None:
    _emit(index, FileDeletedEvent(str(vault / "Unknown.md")))
    assert index.reconcile() == ReconcileResult(changed=False, removed=[])


def test_modify_file(index: DocumentIndex, vault: Path) -> None:
    path = vault / "Books.md"
    path.write_text("# Books\n\n#reading #library\n\nOnly [[Topology]] now.\n")
    _emit(index, FileModifiedEvent(str(path)))

    result = index.reconcile()

    assert result.changed
    books = index.get("books")
    assert books.tags == ["#reading", "#library"]
    assert books.links == ["topology"]
    assert ("books", "Books") not in index.backlinks_of("operating-systems")


def test_modify_without_change(index: DocumentIndex, vault: Path) -> None:
    _emit(index, FileModifiedEvent(str(vault / "Books.md")))
    assert not index.reconcile().changed


def test_rename_events(index: DocumentIndex, vault: Path) -> None:
    old = vault / "math" / "Chart.md"
    new = vault / "math" / "Coordinate Chart.md"
    os.rename(old, new)
    _emit(index, FileMovedEvent(str(old), str(new)))

    result = index.reconcile()

    assert result.changed
    assert result.removed == ["chart"]
    assert "chart" not in index
    assert index.get("coordinate-chart").path == new.resolve()


def test_events_apply_in_arrival_order(index: DocumentIndex, vault: Path) -> None:
    """Test that a create followed by a delete leaves no entry."""
    path = vault / "Later.md"
    path.write_text("# Later\n")
    _emit(index, FileCreatedEvent(str(path)))
    _emit(index, FileDeletedEvent(str(path)))

    result = index.reconcile()

    assert result.removed == ["later"]
    assert "later" not in index


def test_directory_events_are_ignored(index: DocumentIndex, vault: Path) -> None:
    (vault / "new-dir").mkdir()
    _emit(index, DirCreatedEvent(str(vault / "new-dir")))
    assert not index.reconcile().changed


def test_watching_picks_up_changes(vault: Path) -> None:
    with FileTracker(vault, use_polling=True, poll_interval=0.1) as tracker:
        index = DocumentIndex(tracker)
        index.build()
        index.start_watching()

        (vault / "Watched.md").write_text("# Watched\n\n[[Books]]\n")

        deadline = time.monotonic() + 10
        while "watched" not in index and time.monotonic() < deadline:
            index.reconcile()
            time.sleep(0.1)

        assert index.get("watched").links == ["books"]


def test_dropped_events_trigger_rescan(vault: Path) -> None:
    """Test that changes whose events were dropped still reach the index."""
    index = DocumentIndex(FileTracker(vault, queue_size=1))
    index.build()

    first = vault / "First.md"
    second = vault / "Second.md"
    first.write_text("# First\n")
    second.write_text("# Second\n\n[[Books]]\n")
    (vault / "math" / "Atlas.md").unlink()
    _emit(index, FileCreatedEvent(str(first)))
    _emit(index, FileCreatedEvent(str(second)))
    _emit(index, FileDeletedEvent(str(vault / "math" / "Atlas.md")))

    result = index.reconcile()

    assert result == ReconcileResult(changed=True, removed=["atlas"])
    assert "first" in index
    assert index.get("second").links == ["books"]
    assert "atlas" not in index
    assert index.reconcile() == ReconcileResult(changed=False, removed=[])
