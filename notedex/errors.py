"""Exceptions raised by the vault index and its file operations."""

from pathlib import Path


class VaultError(Exception):
    """Base class for all errors raised by notedex."""


class VaultIOError(VaultError):
    """A disk operation failed.

    Attributes:
        stage: Name of the step that failed (e.g. "move", "rewrite", "delete")
        path: Path the failing operation was working on
    """

    def __init__(self, message: str, *, stage: str, path: Path | None = None):
        super().__init__(message)
        self.stage = stage
        self.path = path


class LinkRewriteError(VaultIOError):
    """Rewriting links in a referring document failed after the file was moved.

    Documents listed in ``rewritten`` already carry the new link text, the ones
    in ``failed`` do not. There is no rollback across files.
    """

    def __init__(self, message: str, *, rewritten: list[Path], failed: list[Path]):
        super().__init__(message, stage="rewrite", path=failed[0] if failed else None)
        self.rewritten = rewritten
        self.failed = failed


class InvalidInputError(VaultError, ValueError):
    """User supplied input (a name or a path) cannot be used."""


class DocumentNotFoundError(VaultError, LookupError):
    """No document with the given identifier is indexed."""

    def __init__(self, doc_id: str):
        super().__init__(f"Failed to find a document with id '{doc_id}'")
        self.doc_id = doc_id


class DocumentParseError(VaultError):
    """A single document could not be read or parsed."""

    def __init__(self, message: str, *, path: Path):
        super().__init__(message)
        self.path = path


class IndexStateError(VaultError, RuntimeError):
    """An index operation was called in the wrong lifecycle state."""
