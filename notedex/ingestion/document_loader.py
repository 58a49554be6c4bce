"""Reading a single file from disk into a Document."""

import logging
from pathlib import Path

from notedex.domain.document import Document
from notedex.domain.identity import normalize
from notedex.errors import DocumentParseError

from .content_extractor import ContentExtractor

logger = logging.getLogger(__name__)


def canonical_path(path: Path) -> Path:
    """Absolute path with symlinks resolved. Works for paths that no longer exist."""
    return Path(path).expanduser().resolve(strict=False)


def parse_document(content: str, path: Path, modified: float | None = None) -> Document:
    """Build a Document from already loaded content.

    Args:
        content: Full text of the file
        path: Location of the file, used for the name and stored as is
        modified: Modification timestamp to record

    Returns:
        The parsed Document
    """
    name = path.stem
    if not name:
        raise DocumentParseError(f"Document name cannot be read from {path}", path=path)

    extractor = ContentExtractor()
    frontmatter, body_start = extractor.split_frontmatter(content)
    body = extractor.strip_code(content[body_start or 0 :])

    links = []
    for target in extractor.extract_wikilinks(body):
        link_id = normalize(target)
        # blank targets such as [[ ]] link nowhere
        if link_id and link_id not in links:
            links.append(link_id)

    return Document(
        name=name,
        display_name=extractor.frontmatter_title(frontmatter) or name,
        path=path,
        tags=extractor.extract_tags(body) + extractor.frontmatter_tags(frontmatter),
        links=links,
        word_count=len(content.split()),
        char_count=len(content),
        modified=modified,
        frontmatter_end=body_start,
    )


def load_document(path: Path) -> Document:
    """Open the file at the given path and extract its metadata.

    Args:
        path: Path of a tracked file

    Returns:
        Document whose path is the canonical form of the given path

    Raises:
        DocumentParseError: If the file cannot be read or is not valid UTF-8
    """
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            content = f.read()
        modified = Path(path).stat().st_mtime
    except (OSError, UnicodeDecodeError) as e:
        raise DocumentParseError(f"Failed to read {path}: {e}", path=Path(path)) from e

    logger.debug(f"Parsed {path}")
    return parse_document(content, canonical_path(path), modified)
