from fastapi import APIRouter, HTTPException
from loguru import logger

from notedex.api.schemas import (
    CreateRequest,
    DocumentLink,
    DocumentSummary,
    MoveRequest,
    RenameRequest,
    ScoredDocument,
)
from notedex.errors import DocumentNotFoundError, InvalidInputError, VaultError
from notedex.files.file_manager import FileManager
from notedex.index.document_index import DocumentIndex
from notedex.query.filter import Filter, FilterMode, rank
from notedex.query.statistics import EnvironmentStats


def _http_error(e: VaultError, action: str) -> HTTPException:
    """Map a vault error to an HTTP error, logging it."""
    if isinstance(e, DocumentNotFoundError):
        logger.warning(f"Error {action}: {e}")
        return HTTPException(status_code=404, detail="Document not found")
    if isinstance(e, InvalidInputError):
        logger.warning(f"Error {action}: {e}")
        return HTTPException(status_code=400, detail=str(e))
    logger.error(f"Error {action}: {e}")
    return HTTPException(status_code=500, detail="Internal server error")


def _create_document_endpoints(index: DocumentIndex, file_manager: FileManager) -> APIRouter:
    """Create the handlers for reading and changing single documents."""
    router = APIRouter(prefix="/api/documents")

    def require(doc_id: str):
        document = index.get(doc_id)
        if document is None:
            logger.warning(f"Document not found: {doc_id}")
            raise HTTPException(status_code=404, detail="Document not found")
        return document

    @router.get("")
    def search_documents(q: str = "", mode: FilterMode = FilterMode.ALL) -> list[ScoredDocument]:
        """Rank the documents matching a query like ``manifold #diffgeo !>chart``."""
        index.reconcile()
        query_filter = Filter.parse(q, mode=mode)
        results = []
        for doc_id, score in rank(index, query_filter):
            document = index.get(doc_id)
            if document is not None:
                results.append(ScoredDocument(id=doc_id, name=document.name, score=score))
        return results

    @router.get("/{doc_id}")
    def get_document(doc_id: str) -> DocumentSummary:
        index.reconcile()
        return DocumentSummary.from_document(require(doc_id), index.vault_path)

    @router.get("/{doc_id}/links")
    def get_links(doc_id: str) -> list[DocumentLink]:
        index.reconcile()
        require(doc_id)
        return [DocumentLink(id=i, name=name) for i, name in index.links_of(doc_id)]

    @router.get("/{doc_id}/backlinks")
    def get_backlinks(doc_id: str) -> list[DocumentLink]:
        index.reconcile()
        return [DocumentLink(id=i, name=name) for i, name in index.backlinks_of(doc_id)]

    @router.post("", status_code=201)
    def create_document(request: CreateRequest) -> DocumentSummary:
        index.reconcile()
        try:
            document = file_manager.create(index, request.path)
        except VaultError as e:
            raise _http_error(e, f"creating '{request.path}'") from e
        return DocumentSummary.from_document(document, index.vault_path)

    @router.post("/{doc_id}/rename")
    def rename_document(doc_id: str, request: RenameRequest) -> DocumentSummary:
        index.reconcile()
        try:
            document = file_manager.rename(index, doc_id, request.new_name)
        except VaultError as e:
            raise _http_error(e, f"renaming '{doc_id}'") from e
        return DocumentSummary.from_document(document, index.vault_path)

    @router.post("/{doc_id}/move")
    def move_document(doc_id: str, request: MoveRequest) -> DocumentSummary:
        index.reconcile()
        try:
            document = file_manager.move(index, doc_id, request.new_path)
        except VaultError as e:
            raise _http_error(e, f"moving '{doc_id}'") from e
        return DocumentSummary.from_document(document, index.vault_path)

    @router.delete("/{doc_id}", status_code=204)
    def delete_document(doc_id: str) -> None:
        index.reconcile()
        try:
            file_manager.delete(index, doc_id)
        except VaultError as e:
            raise _http_error(e, f"deleting '{doc_id}'") from e

    return router


def get_endpoints_router(*, index: DocumentIndex, file_manager: FileManager) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy", "documents": len(index), "state": index.state.value}

    @router.get("/api/stats")
    def get_stats(q: str = "", mode: FilterMode = FilterMode.ALL) -> EnvironmentStats:
        index.reconcile()
        return EnvironmentStats.from_filter(index, Filter.parse(q, mode=mode))

    router.include_router(_create_document_endpoints(index, file_manager))

    return router
