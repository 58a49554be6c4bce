"""File system events as seen by the document index."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class EventKind(str, Enum):
    CREATE = "create"
    REMOVE = "remove"
    MODIFY = "modify"
    RENAME_FROM = "rename_from"
    RENAME_TO = "rename_to"
    OTHER = "other"


class FileEvent(BaseModel):
    """A single change in the vault, in the order it was observed."""

    kind: EventKind
    paths: list[Path] = []
