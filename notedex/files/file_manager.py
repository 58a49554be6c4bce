"""
Vault File Manager

Renames, moves, creates and deletes documents on disk while keeping the
document index and the links between documents consistent.

A rename or move runs in this order, all under the index lock:

    1. move the file on disk (nothing else is touched if this fails)
    2. derive the new identifier from the new file name
    3. collect the backlinks of the old identifier
    4. rewrite the link tokens in every backlinking file
    5. replace the index entry and re-parse the rewritten files

Rewriting is done file by file. If one file cannot be rewritten, the others
keep their new content and LinkRewriteError reports both sets.

Two renames whose backlink sets overlap see each other's results only
through the index, so referenced documents have to be renamed before the
documents whose link text is expected to carry the final names.
"""

import os
from pathlib import Path

from loguru import logger

from notedex.domain.document import Document
from notedex.domain.identity import normalize
from notedex.errors import (
    DocumentNotFoundError,
    DocumentParseError,
    InvalidInputError,
    LinkRewriteError,
    VaultIOError,
)
from notedex.index.document_index import DocumentIndex
from notedex.ingestion.content_extractor import LINK_TOKEN_PATTERN
from notedex.ingestion.document_loader import canonical_path, load_document

SEPARATORS = {sep for sep in (os.sep, os.altsep, "/") if sep}


def rewrite_links(content: str, old_id: str, new_name: str) -> str:
    """Point every link token targeting ``old_id`` at ``new_name``.

    Only the target is replaced; heading fragments, block references and
    aliases stay as they are.

    Examples:
        rewrite_links("See [[Books#Intro|my books]]", "books", "Library")
        # "See [[Library#Intro|my books]]"
    """

    def replace(match):
        target = match.group(2)
        if normalize(target.strip()) != old_id:
            return match.group(0)
        stripped = target.strip()
        leading = target[: len(target) - len(target.lstrip())]
        trailing = target[len(leading) + len(stripped) :]
        return f"{match.group(1)}{leading}{new_name}{trailing}{match.group(3)}"

    return LINK_TOKEN_PATTERN.sub(replace, content)


class FileManager:
    """
    Performs file operations on the documents of a vault.

    Args:
        vault_path: Root directory of the vault
        default_extension: Extension given to new file names without one
        allow_extensionless: Keep file names without an extension as they are
    """

    def __init__(
        self,
        vault_path: Path | str,
        default_extension: str = "md",
        allow_extensionless: bool = False,
    ):
        self.vault_path = canonical_path(Path(vault_path))
        self.default_extension = default_extension.lstrip(".")
        self.allow_extensionless = allow_extensionless

    @classmethod
    def from_settings(cls, settings) -> "FileManager":
        return cls(
            settings.vault_path,
            default_extension=settings.default_extension,
            allow_extensionless=settings.allows_extensionless,
        )

    def ensure_extension(self, path: Path, fallback: str | None = None) -> Path:
        """Append an extension to a path that has none.

        Args:
            path: Path to check
            fallback: Extension (with dot) to prefer over the default one

        Returns:
            The path unchanged if it has an extension or extension-less files
            are allowed, otherwise the path with an extension
        """
        if path.suffix or self.allow_extensionless:
            return path
        suffix = fallback or f".{self.default_extension}"
        return path.with_name(path.name + suffix)

    def rename(self, index: DocumentIndex, doc_id: str, new_name: str) -> Document:
        """Give a document a new file name in its current directory.

        Args:
            index: Index holding the document
            doc_id: Identifier of the document
            new_name: Bare file name, with or without extension

        Returns:
            The document as stored under its new identifier

        Raises:
            DocumentNotFoundError: If no document has the identifier
            InvalidInputError: If the name is empty or contains a path separator
            VaultIOError: If the file cannot be moved
            LinkRewriteError: If some backlinking files could not be rewritten
        """
        if not new_name or not new_name.strip():
            raise InvalidInputError("New name cannot be empty")
        if any(sep in new_name for sep in SEPARATORS) or new_name in (".", ".."):
            raise InvalidInputError(f"New name '{new_name}' must be a file name, not a path")

        with index.lock:
            document = self._get(index, doc_id)
            new_path = self.ensure_extension(
                document.path.parent / new_name, fallback=document.path.suffix
            )
            return self._relocate(index, document, new_path)

    def move(self, index: DocumentIndex, doc_id: str, new_relative_path: str | Path) -> Document:
        """Move a document to another place inside the vault.

        A target that is an existing directory, or that ends with a path
        separator, keeps the document's file name. Otherwise the last
        component is the new file name. Missing directories are created.

        Args:
            index: Index holding the document
            doc_id: Identifier of the document
            new_relative_path: Target relative to the vault root

        Returns:
            The document as stored under its new identifier

        Raises:
            DocumentNotFoundError: If no document has the identifier
            InvalidInputError: If the target lies outside the vault
            VaultIOError: If the file cannot be moved
            LinkRewriteError: If some backlinking files could not be rewritten
        """
        raw = str(new_relative_path)
        target = self.vault_path / raw

        with index.lock:
            document = self._get(index, doc_id)
            if not raw or raw[-1] in SEPARATORS or target.is_dir():
                target = target / document.path.name
            else:
                target = self.ensure_extension(target, fallback=document.path.suffix)

            new_path = self._inside_vault(target)
            return self._relocate(index, document, new_path)

    def create(self, index: DocumentIndex, relative_path: str | Path) -> Document:
        """Create a new document with a heading carrying its name.

        Raises:
            InvalidInputError: If the path lies outside the vault or the file exists
            VaultIOError: If the file cannot be written
        """
        path = self._inside_vault(self.ensure_extension(self.vault_path / relative_path))
        if path == self.vault_path or not path.stem:
            raise InvalidInputError(f"Cannot create a document at '{relative_path}'")

        with index.lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "x", encoding="utf-8", newline="") as f:
                    f.write(f"# {path.stem}\n")
            except FileExistsError as e:
                raise InvalidInputError(f"File already exists: {path}") from e
            except OSError as e:
                raise VaultIOError(f"Failed to create {path}: {e}", stage="create", path=path) from e

            try:
                document = load_document(path)
            except DocumentParseError as e:
                raise VaultIOError(str(e), stage="create", path=path) from e
            index.insert(document)

        logger.info(f"Created {document.id} at {path}")
        return document

    def delete(self, index: DocumentIndex, doc_id: str) -> Document:
        """Delete a document's file, then drop it from the index.

        Links pointing to the document are left as they are.

        Raises:
            DocumentNotFoundError: If no document has the identifier
            VaultIOError: If the file cannot be removed
        """
        with index.lock:
            document = self._get(index, doc_id)
            try:
                document.path.unlink()
            except FileNotFoundError:
                logger.warning(f"File of {doc_id} was already gone: {document.path}")
            except OSError as e:
                raise VaultIOError(
                    f"Failed to delete {document.path}: {e}", stage="delete", path=document.path
                ) from e
            index.remove(doc_id)

        logger.info(f"Deleted {doc_id} ({document.path})")
        return document

    def _get(self, index: DocumentIndex, doc_id: str) -> Document:
        document = index.get(doc_id)
        if document is None:
            raise DocumentNotFoundError(doc_id)
        return document

    def _inside_vault(self, path: Path) -> Path:
        canonical = canonical_path(path)
        try:
            canonical.relative_to(self.vault_path)
        except ValueError as e:
            raise InvalidInputError(f"Path '{path}' lies outside the vault") from e
        return canonical

    def _relocate(self, index: DocumentIndex, document: Document, new_path: Path) -> Document:
        old_id = document.id
        old_path = document.path
        new_path = canonical_path(new_path)
        if new_path == old_path:
            return document
        if new_path.exists() and not _same_file(old_path, new_path):
            raise InvalidInputError(f"File already exists: {new_path}")

        try:
            new_path.parent.mkdir(parents=True, exist_ok=True)
            os.rename(old_path, new_path)
        except OSError as e:
            raise VaultIOError(
                f"Failed to move {old_path} to {new_path}: {e}", stage="move", path=old_path
            ) from e
        logger.info(f"Moved {old_path} to {new_path}")

        new_name = new_path.stem
        new_id = normalize(new_name)
        referrers = [ref_id for ref_id, _ in index.backlinks_of(old_id)]

        rewritten: list[Path] = []
        failed: list[Path] = []
        if new_name != document.name:
            for ref_id in referrers:
                ref_path = new_path if ref_id == old_id else index.get(ref_id).path
                try:
                    if self._rewrite_file(ref_path, old_id, new_name):
                        rewritten.append(ref_path)
                except (OSError, UnicodeError) as e:
                    logger.error(f"Failed to rewrite links in {ref_path}: {e}")
                    failed.append(ref_path)

        links = []
        for link in document.links:
            link = new_id if link == old_id else link
            if link not in links:
                links.append(link)
        display_name = new_name if document.display_name == document.name else document.display_name
        moved = document.model_copy(
            update={"name": new_name, "display_name": display_name, "path": new_path, "links": links}
        )
        index.remove(old_id)
        index.insert(moved)
        for path in rewritten:
            index.register(path)

        if failed:
            raise LinkRewriteError(
                f"Moved {old_id} to {new_id} but failed to rewrite links in {len(failed)} file(s)",
                rewritten=rewritten,
                failed=failed,
            )

        logger.info(f"Renamed {old_id} to {new_id}, rewrote links in {len(rewritten)} file(s)")
        return index.get(new_id) or moved

    def _rewrite_file(self, path: Path, old_id: str, new_name: str) -> bool:
        with open(path, "r", encoding="utf-8", newline="") as f:
            content = f.read()

        updated = rewrite_links(content, old_id, new_name)
        if updated == content:
            return False

        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(updated)
        logger.debug(f"Rewrote links to {old_id} in {path}")
        return True


def _same_file(first: Path, second: Path) -> bool:
    try:
        return os.path.samefile(first, second)
    except OSError:
        return False
