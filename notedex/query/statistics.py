"""Statistics over the subset of a vault selected by a filter (an "environment")."""

from pydantic import BaseModel

from notedex.query.filter import Filter


class DocumentStats(BaseModel):
    """Link statistics of a single document relative to an environment.

    Attributes:
        id: Identifier of the document
        score: Fuzzy score of the document under the environment's filter
        inlinks_global: Links from any document to this one
        inlinks_local: Links from documents of the environment to this one
        outlinks_global: Links from this document to existing documents
        outlinks_local: Links from this document to documents of the environment
        broken_links: Links from this document to identifiers without a document
    """

    id: str
    score: float
    inlinks_global: int = 0
    inlinks_local: int = 0
    outlinks_global: int = 0
    outlinks_local: int = 0
    broken_links: int = 0


class EnvironmentStats(BaseModel):
    word_count_total: int = 0
    char_count_total: int = 0
    document_count_total: int = 0
    tag_count_total: int = 0  # unique tags
    local_local_links: int = 0
    local_global_links: int = 0
    global_local_links: int = 0
    broken_links: int = 0
    documents: list[DocumentStats] = []

    @classmethod
    def from_filter(cls, index, query_filter: Filter) -> "EnvironmentStats":
        """Collect statistics for the documents of an index admitted by a filter.

        Args:
            index: DocumentIndex to collect from
            query_filter: Filter selecting the environment

        Returns:
            Totals over the environment and per-document statistics, sorted
            by score descending, then identifier
        """
        with index.lock:
            all_documents = {document.id: document for document in index.documents()}

        local = {}
        for doc_id, document in all_documents.items():
            score = query_filter.apply(document)
            if score is not None:
                local[doc_id] = DocumentStats(id=doc_id, score=score)

        for doc_id, document in all_documents.items():
            source = local.get(doc_id)
            global_targets = 0
            local_targets = 0
            for link in document.links:
                if link not in all_documents:
                    continue
                global_targets += 1
                target = local.get(link)
                if target is not None:
                    target.inlinks_global += 1
                    local_targets += 1
                    if source is not None:
                        target.inlinks_local += 1

            if source is not None:
                source.outlinks_global = global_targets
                source.outlinks_local = local_targets
                source.broken_links = len(document.links) - global_targets

        local_documents = [all_documents[doc_id] for doc_id in local]
        stats = sorted(local.values(), key=lambda s: (-s.score, s.id))
        return cls(
            word_count_total=sum(d.word_count for d in local_documents),
            char_count_total=sum(d.char_count for d in local_documents),
            document_count_total=len(local),
            tag_count_total=len({tag for d in local_documents for tag in d.tags}),
            local_local_links=sum(s.outlinks_local for s in stats),
            local_global_links=sum(s.outlinks_global for s in stats),
            global_local_links=sum(s.inlinks_global for s in stats),
            broken_links=sum(s.broken_links for s in stats),
            documents=stats,
        )
