import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from notedex.api import create_app
from notedex.files.file_manager import FileManager
from notedex.index.document_index import DocumentIndex
from notedex.tracking.file_tracker import FileTracker

FIXTURE_VAULT = Path(__file__).parent / "fixtures" / "vault"


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture
def vault(temp_dir: Path) -> Path:
    """A writable copy of the fixture vault."""
    vault_dir = temp_dir / "vault"
    shutil.copytree(FIXTURE_VAULT, vault_dir)
    return vault_dir


@pytest.fixture
def empty_vault(temp_dir: Path) -> Path:
    vault_dir = temp_dir / "empty"
    vault_dir.mkdir()
    return vault_dir


@pytest.fixture
def tracker(vault: Path) -> Generator[FileTracker, None, None]:
    with FileTracker(vault) as tracker:
        yield tracker


@pytest.fixture
def index(tracker: FileTracker) -> DocumentIndex:
    """Bulk built index over the copy of the fixture vault."""
    index = DocumentIndex(tracker)
    index.build()
    return index


@pytest.fixture
def file_manager(vault: Path) -> FileManager:
    return FileManager(vault)


@pytest.fixture
def test_client(index: DocumentIndex, file_manager: FileManager) -> TestClient:
    app = create_app(index=index, file_manager=file_manager)
    return TestClient(app)
