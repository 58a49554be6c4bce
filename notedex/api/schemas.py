from pydantic import BaseModel, Field

from notedex.domain.document import Document


class DocumentSummary(BaseModel):
    """A document as returned by the API"""

    id: str = Field(..., description="Identifier of the document")
    name: str = Field(..., description="File name without extension")
    display_name: str = Field(..., description="Frontmatter title, or the name")
    path: str = Field(..., description="Path relative to the vault root")
    tags: list[str] = Field(default_factory=list)
    links: list[str] = Field(default_factory=list, description="Identifiers of linked documents")
    word_count: int = 0
    char_count: int = 0

    @classmethod
    def from_document(cls, document: Document, vault_path) -> "DocumentSummary":
        try:
            path = document.path.relative_to(vault_path).as_posix()
        except ValueError:
            path = document.path.as_posix()
        return cls(
            id=document.id,
            name=document.name,
            display_name=document.display_name,
            path=path,
            tags=document.tags,
            links=document.links,
            word_count=document.word_count,
            char_count=document.char_count,
        )


class DocumentLink(BaseModel):
    id: str
    name: str


class ScoredDocument(BaseModel):
    id: str
    name: str
    score: float


class CreateRequest(BaseModel):
    path: str = Field(..., description="Path of the new document relative to the vault root")


class RenameRequest(BaseModel):
    new_name: str = Field(..., description="New file name, without directories")


class MoveRequest(BaseModel):
    new_path: str = Field(
        ..., description="Target relative to the vault root, a directory keeps the file name"
    )
