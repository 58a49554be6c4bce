from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notedex.api.endpoints import get_endpoints_router
from notedex.files.file_manager import FileManager
from notedex.index.document_index import DocumentIndex


def create_app(*, index: DocumentIndex, file_manager: FileManager) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI(title="notedex")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router=get_endpoints_router(index=index, file_manager=file_manager))

    return app
