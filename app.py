import sys

from loguru import logger

from notedex.api import create_app
from notedex.config import settings
from notedex.files.file_manager import FileManager
from notedex.index.document_index import DocumentIndex
from notedex.tracking.file_tracker import FileTracker

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info(f"Indexing vault at {settings.vault_path}")
tracker = FileTracker.from_settings(settings)
index = DocumentIndex(tracker)
for diagnostic in index.build():
    logger.warning(f"Could not parse {diagnostic.path}: {diagnostic.message}")
index.start_watching()

file_manager = FileManager.from_settings(settings)
app = create_app(index=index, file_manager=file_manager)

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
