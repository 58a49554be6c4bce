from pathlib import Path

import pytest
from watchdog.events import FileModifiedEvent, FileMovedEvent

from notedex.errors import (
    DocumentNotFoundError,
    InvalidInputError,
    LinkRewriteError,
    VaultIOError,
)
from notedex.files.file_manager import FileManager, rewrite_links
from notedex.index.document_index import DocumentIndex
from notedex.ingestion.document_loader import parse_document


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def test_rewrite_links_keeps_alias_and_heading() -> None:
    content = "[[Books]] [[books|my books]] [[Books#Intro]] [[Bookshelf]] [[ Books ]] `[[Other]]`"
    assert rewrite_links(content, "books", "Library") == (
        "[[Library]] [[Library|my books]] [[Library#Intro]] [[Bookshelf]] [[ Library ]] `[[Other]]`"
    )


def test_rewrite_links_matches_extracted_links() -> None:
    """Test that every link counted as a backlink is rewritten, block references included."""
    content = "[[Books^summary]] [[Books#Intro^para]] [[Books|shelf]]"
    document = parse_document(content, Path("note.md"))
    assert document.links == ["books"]

    rewritten = rewrite_links(content, "books", "Library")

    assert rewritten == "[[Library^summary]] [[Library#Intro^para]] [[Library|shelf]]"
    assert parse_document(rewritten, Path("note.md")).links == ["library"]


def test_rename_propagates_to_backlinks(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    """Test that links in referring documents follow a renamed document."""
    document = file_manager.rename(index, "books", "Library")

    assert document.id == "library"
    assert document.name == "Library"
    assert document.path == vault / "Library.md"
    assert document.links == ["operating-systems", "computer-science"]
    assert (vault / "Library.md").exists()
    assert not (vault / "Books.md").exists()

    for referrer in ["Operating Systems.md", "note25.md"]:
        content = _read(vault / referrer)
        assert "[[Library]]" in content
        assert "[[Books]]" not in content

    assert "books" not in index
    assert index.get("library") == document
    assert [doc_id for doc_id, _ in index.backlinks_of("library")] == ["note25", "operating-systems"]
    assert index.backlinks_of("books") == []
    assert index.links_of("operating-systems") == [("library", "Library")]


def test_rename_keeps_aliases(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    file_manager.rename(index, "chart", "Coordinate Chart")

    assert "[[Coordinate Chart|charts]]" in _read(vault / "math" / "Manifold.md")
    assert "[[Coordinate Chart|charts]]" in _read(vault / "math" / "Atlas.md")
    assert "[[Coordinate Chart]]" in _read(vault / "math" / "Smooth Map.md")
    assert [doc_id for doc_id, _ in index.backlinks_of("coordinate-chart")] == [
        "atlas",
        "manifold",
        "smooth-map",
    ]
    assert "coordinate-chart" in index.get("manifold").links


def test_rename_round_trip(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    original = index.get("lie-group")

    file_manager.rename(index, "lie-group", "Lie Algebra")
    assert "[[Lie Algebra]]" in _read(vault / "math" / "Manifold.md")

    restored = file_manager.rename(index, "lie-algebra", "Lie Group")

    assert restored.id == "lie-group"
    assert restored.path == original.path
    assert (vault / "math" / "Lie Group.md").exists()
    assert "lie-algebra" not in index
    assert "[[Lie Group]]" in _read(vault / "math" / "Manifold.md")
    assert index.backlinks_of("lie-group") == [("manifold", "Manifold")]


def test_rename_self_reference(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    path = vault / "Loop.md"
    path.write_text("# Loop\n\nSee [[Loop]] and [[Books]].\n")
    index.register(path)

    document = file_manager.rename(index, "loop", "Cycle")

    assert _read(vault / "Cycle.md") == "# Loop\n\nSee [[Cycle]] and [[Books]].\n"
    assert document.links == ["cycle", "books"]


def test_rename_keeps_extension(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    file_manager.rename(index, "books", "Library.markdown")
    assert index.get("library").path == vault / "Library.markdown"


def test_rename_without_extension_when_allowed(index: DocumentIndex, vault: Path) -> None:
    file_manager = FileManager(vault, allow_extensionless=True)
    file_manager.rename(index, "books", "Library")
    assert index.get("library").path == vault / "Library"


@pytest.mark.parametrize("new_name", ["", "   ", "math/Books", "..", "."])
def test_rename_rejects_invalid_names(index: DocumentIndex, file_manager: FileManager, new_name: str) -> None:
    with pytest.raises(InvalidInputError):
        file_manager.rename(index, "books", new_name)
    assert "books" in index


def test_rename_unknown_document(index: DocumentIndex, file_manager: FileManager) -> None:
    with pytest.raises(DocumentNotFoundError):
        file_manager.rename(index, "missing", "Anything")


def test_rename_refuses_existing_target(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    with pytest.raises(InvalidInputError):
        file_manager.rename(index, "books", "Computer Science")

    assert _read(vault / "Books.md").startswith("# Books")
    assert index.get("books").path == vault / "Books.md"


def test_failed_move_leaves_index_untouched(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    """Test that a move failing on disk changes neither the index nor other files."""
    (vault / "Books.md").unlink()

    with pytest.raises(VaultIOError) as exc_info:
        file_manager.rename(index, "books", "Library")

    assert exc_info.value.stage == "move"
    assert "books" in index
    assert "library" not in index
    assert "[[Books]]" in _read(vault / "Operating Systems.md")


def test_partial_rewrite_failure(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    """Test that an unreadable referrer is reported while the others are rewritten."""
    broken = vault / "Operating Systems.md"
    broken.write_bytes(b"[[Books]] \xff\n")

    with pytest.raises(LinkRewriteError) as exc_info:
        file_manager.rename(index, "books", "Library")

    assert exc_info.value.failed == [broken]
    assert exc_info.value.rewritten == [vault / "note25.md"]
    assert "library" in index
    assert "[[Library]]" in _read(vault / "note25.md")


def test_move_to_directory_keeps_name(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    document = file_manager.move(index, "books", "math")

    assert document.id == "books"
    assert document.path == vault / "math" / "Books.md"
    assert not (vault / "Books.md").exists()
    assert "[[Books]]" in _read(vault / "Operating Systems.md")


def test_move_to_new_directory(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    document = file_manager.move(index, "books", "archive/2024/")
    assert document.path == vault / "archive" / "2024" / "Books.md"


def test_move_with_full_path(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    document = file_manager.move(index, "books", "archive/Reading List")

    assert document.id == "reading-list"
    assert document.path == vault / "archive" / "Reading List.md"
    assert "[[Reading List]]" in _read(vault / "Operating Systems.md")
    assert index.links_of("note25") == [("reading-list", "Reading List")]


def test_move_applies_default_extension(index: DocumentIndex, vault: Path) -> None:
    path = vault / "Plain"
    path.write_text("# Plain\n")
    index.register(path)

    document = FileManager(vault, default_extension="txt").move(index, "plain", "archive/Plain Text")
    assert document.path == vault / "archive" / "Plain Text.txt"


def test_move_outside_vault(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    with pytest.raises(InvalidInputError):
        file_manager.move(index, "books", "../Escaped.md")
    assert (vault / "Books.md").exists()


def test_rename_leaves_steady_state(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    """Test that the watcher events caused by a rename are not reported as changes."""
    file_manager.rename(index, "books", "Library")

    handler = index.tracker.handler
    handler.dispatch(FileMovedEvent(str(vault / "Books.md"), str(vault / "Library.md")))
    handler.dispatch(FileModifiedEvent(str(vault / "Operating Systems.md")))
    handler.dispatch(FileModifiedEvent(str(vault / "note25.md")))

    result = index.reconcile()

    assert not result.changed
    assert result.removed == []


def test_create_document(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    document = file_manager.create(index, "math/Vector Field")

    assert document.id == "vector-field"
    assert _read(vault / "math" / "Vector Field.md") == "# Vector Field\n"
    assert index.get("vector-field") == document

    with pytest.raises(InvalidInputError):
        file_manager.create(index, "math/Vector Field.md")


def test_delete_document(index: DocumentIndex, file_manager: FileManager, vault: Path) -> None:
    file_manager.delete(index, "atlas")

    assert not (vault / "math" / "Atlas.md").exists()
    assert "atlas" not in index
    assert "atlas" in index.get("chart").links

    with pytest.raises(DocumentNotFoundError):
        file_manager.delete(index, "atlas")


def test_from_settings(vault: Path) -> None:
    from notedex.config import Settings

    settings = Settings(vault_path=vault, file_types=["all"], default_extension=".txt")
    file_manager = FileManager.from_settings(settings)

    assert file_manager.vault_path == vault
    assert file_manager.default_extension == "txt"
    assert file_manager.allow_extensionless
