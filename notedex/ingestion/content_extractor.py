"""Content extraction service for document text."""

import logging
import re
from typing import Any, List

import yaml

from notedex.domain.document import TAG_MARKER, TAG_SEPARATOR

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---\n"

# Fenced code blocks (``` or ~~~) and inline code spans
CODE_PATTERN = re.compile(r"^(`{3,}|~{3,})[^\n]*\n.*?^\1[ \t]*$|`[^`\n]+`", re.MULTILINE | re.DOTALL)

# A link target ends at a heading (#), block (^) or alias (|) suffix
LINK_TARGET = r"[^\]|#^]+"

# [[target]], [[target|alias]], [[target#heading|alias]], [[target^block]]
WIKILINK_PATTERN = re.compile(rf"\[\[({LINK_TARGET})[^\]]*\]\]")

# Rewritable link token: target, then the suffix kept verbatim
LINK_TOKEN_PATTERN = re.compile(rf"(\[\[)({LINK_TARGET})([^\]]*\]\])")

TRAILING_PUNCTUATION = ".,;:!?"


class ContentExtractor:
    """Service for extracting tags, links and frontmatter from document text."""

    @staticmethod
    def split_frontmatter(content: str) -> tuple[dict[str, Any] | None, int | None]:
        """Parse leading YAML frontmatter.

        The document must start with ``---`` on its own line and the
        frontmatter ends at the next ``---`` line.

        Args:
            content: Full document content

        Returns:
            Tuple of (parsed mapping, offset of the content after the
            frontmatter), or (None, None) if there is no valid frontmatter.
        """
        if not content.startswith(FRONTMATTER_DELIMITER):
            return None, None

        break_position = content.find("\n" + FRONTMATTER_DELIMITER, len(FRONTMATTER_DELIMITER) - 1)
        if break_position == -1:
            return None, None

        raw = content[len(FRONTMATTER_DELIMITER) : break_position]
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            logger.debug(f"Ignoring invalid frontmatter: {e}")
            return None, None

        if data is None:
            data = {}
        if not isinstance(data, dict):
            return None, None

        return data, break_position + len(FRONTMATTER_DELIMITER) + 1

    @staticmethod
    def frontmatter_title(frontmatter: dict[str, Any] | None) -> str | None:
        if not frontmatter:
            return None
        title = frontmatter.get("title")
        return str(title) if title is not None else None

    @staticmethod
    def frontmatter_tags(frontmatter: dict[str, Any] | None) -> List[str]:
        """Convert the ``tags`` entry of a frontmatter mapping into tag tokens.

        Supports a list of names, a comma or whitespace separated string, and
        nested mappings for hierarchical tags::

            tags:
              - test
              - files:
                  - yaml

        yields ``["#test", "#files/yaml"]``.
        """
        if not frontmatter:
            return []

        def flatten(value: Any, prefix: str = "") -> List[str]:
            if value is None:
                return []
            if isinstance(value, str):
                names = [part for part in re.split(r"[,\s]+", value) if part]
                return [prefix + name.lstrip(TAG_MARKER) for name in names]
            if isinstance(value, dict):
                result = []
                for key, sub in value.items():
                    parent = prefix + str(key).lstrip(TAG_MARKER)
                    children = flatten(sub, parent + TAG_SEPARATOR)
                    result.extend(children or [parent])
                return result
            if isinstance(value, list):
                return [tag for item in value for tag in flatten(item, prefix)]
            return [prefix + str(value)]

        return [TAG_MARKER + tag for tag in flatten(frontmatter.get("tags"))]

    @staticmethod
    def strip_code(content: str) -> str:
        """Blank out code blocks and inline code, which carry neither tags nor links."""
        return CODE_PATTERN.sub(" ", content)

    @staticmethod
    def extract_tags(content: str) -> List[str]:
        """Extract inline tags in order of appearance.

        A tag is a whitespace delimited word starting with ``#`` that contains
        something besides markers, so heading markers like ``##`` are skipped.
        Trailing sentence punctuation is not part of the tag.

        Args:
            content: Text with code already stripped

        Returns:
            Tag tokens including the marker, duplicates kept
        """
        tags = []
        for word in content.split():
            if not word.startswith(TAG_MARKER):
                continue
            tag = word.rstrip(TRAILING_PUNCTUATION)
            if tag.strip(TAG_MARKER):
                tags.append(tag)
        return tags

    @staticmethod
    def extract_wikilinks(content: str) -> List[str]:
        """Extract wikilink targets in the form of [[target]], [[target#heading]] or [[target|alias]].

        Args:
            content: Text with code already stripped

        Returns:
            List of link targets without their heading, block or alias suffix
        """
        return [target.strip() for target in WIKILINK_PATTERN.findall(content)]
