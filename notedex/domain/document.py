"""Document domain models."""

from pathlib import Path

from pydantic import BaseModel

from notedex.domain.identity import normalize

TAG_MARKER = "#"
TAG_SEPARATOR = "/"


class Document(BaseModel):
    """Metadata of a single document in the vault, without its full text.

    Attributes:
        name: File stem in its original casing, the source of the identifier
        display_name: Title from the YAML frontmatter, or the name
        path: Canonical absolute path of the backing file
        tags: Tag tokens including the marker, in order of appearance.
            Body tags come first, frontmatter tags are appended.
        links: Identifiers of all linked documents, de-duplicated, in order of
            first appearance. Targets need not exist.
        word_count: Number of whitespace separated words
        char_count: Number of characters
        modified: File modification timestamp (seconds since epoch)
        frontmatter_end: Offset at which the content after the frontmatter
            starts, None if the document has no valid frontmatter
    """

    name: str
    display_name: str
    path: Path
    tags: list[str] = []
    links: list[str] = []
    word_count: int = 0
    char_count: int = 0
    modified: float | None = None
    frontmatter_end: int | None = None

    @property
    def id(self) -> str:
        return normalize(self.name)

    def has_tag(self, tag: str, hierarchical: bool = True) -> bool:
        """Check if the document carries a tag.

        Args:
            tag: Tag including the marker, e.g. "#math"
            hierarchical: Also match when the tag is an ancestor of one of the
                document's tags ("#math" matches "#math/topology")

        Returns:
            True if the tag is present
        """
        if not hierarchical:
            return tag in self.tags
        return any(tag in tag_prefixes(own) for own in self.tags)

    def links_to(self, target_id: str) -> bool:
        return target_id in self.links


def tag_prefixes(tag: str) -> list[str]:
    """Return a hierarchical tag and all its ancestors.

    Examples:
        tag_prefixes("#a/b/c")  # ["#a/b/c", "#a/b", "#a"]
    """
    parts = tag.split(TAG_SEPARATOR)
    return [TAG_SEPARATOR.join(parts[:i]) for i in range(len(parts), 0, -1)]
