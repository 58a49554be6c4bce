"""Canonical identifiers for documents and link targets."""

import re
import unicodedata

_SUFFIX_PATTERN = re.compile(r"[#.]")


def normalize(raw: str) -> str:
    """Map a document name or a raw link target to its identifier.

    The name is brought into composed Unicode form, cut at the first ``#`` or
    ``.`` (dropping heading fragments and file extensions), lowercased and
    spaces are replaced by dashes.

    Args:
        raw: Display name, file stem or link target

    Returns:
        The identifier used as key of the document index

    Examples:
        normalize("Lie Group")           # "lie-group"
        normalize("Lie Group#Examples")  # "lie-group"
        normalize("Books.md")            # "books"
    """
    composed = unicodedata.normalize("NFC", raw)
    composed = _SUFFIX_PATTERN.split(composed, maxsplit=1)[0]
    # lowercasing can produce combining characters, compose again
    return unicodedata.normalize("NFC", composed.lower().replace(" ", "-"))
