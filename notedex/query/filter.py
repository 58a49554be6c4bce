"""Tag, link and fuzzy title filtering of documents."""

import re
from enum import Enum
from typing import NamedTuple

from rapidfuzz import fuzz, utils

from notedex.domain.document import TAG_MARKER, Document
from notedex.domain.identity import normalize

EXCLUDE_MARKER = "!"
LINK_MARKER = ">"

# [[...]] link targets may contain spaces, everything else splits on whitespace
QUERY_TOKEN_PATTERN = re.compile(r"!?>\[\[[^\]]+\]\]|\S+")


class FilterMode(str, Enum):
    ALL = "all"
    ANY = "any"


class TagClause(NamedTuple):
    """Requires (or with ``exclude`` forbids) a tag.

    Hierarchical clauses also match documents carrying a descendant of the
    tag, so ``#cs`` matches ``#cs/theory``.
    """

    tag: str
    exclude: bool = False
    hierarchical: bool = True

    def is_satisfied(self, document: Document) -> bool:
        return document.has_tag(self.tag, hierarchical=self.hierarchical) != self.exclude


class LinkClause(NamedTuple):
    """Requires (or with ``exclude`` forbids) a link to the given identifier."""

    target: str
    exclude: bool = False

    def is_satisfied(self, document: Document) -> bool:
        return document.links_to(self.target) != self.exclude


def fuzzy_score(fragment: str, name: str) -> float:
    """Closeness of a query fragment to a document name, from 0 to 100.

    Weighted so that a prefix or a word of a long name scores high.
    An empty fragment matches every name perfectly.
    """
    if not fragment:
        return 100.0
    return float(fuzz.WRatio(fragment, name, processor=utils.default_process))


class Filter:
    """A query over the documents of an index.

    Args:
        title: Fragment scored against the document names
        tags: Tag clauses
        links: Link clauses
        mode: Whether all clauses or any clause must hold
    """

    def __init__(
        self,
        title: str = "",
        tags: list[TagClause] | None = None,
        links: list[LinkClause] | None = None,
        mode: FilterMode = FilterMode.ALL,
    ) -> None:
        self.title = title
        self.tags = list(tags or [])
        self.links = list(links or [])
        self.mode = FilterMode(mode)

    @classmethod
    def parse(cls, query: str, mode: FilterMode = FilterMode.ALL) -> "Filter":
        """Build a filter from a query string.

        Words of the form ``#tag`` and ``>target`` add tag and link clauses,
        prefixing them with ``!`` turns them into exclusions. Link targets
        may be written as ``[[Target]]``. All other words form the title
        fragment.

        Examples:
            Filter.parse("manifold #diffgeo !#algebra >[[Chart]]")
        """
        title_words = []
        tags = []
        links = []
        for word in QUERY_TOKEN_PATTERN.findall(query):
            exclude = word.startswith(EXCLUDE_MARKER)
            term = word[len(EXCLUDE_MARKER) :] if exclude else word

            if term.startswith(TAG_MARKER) and term.strip(TAG_MARKER):
                tags.append(TagClause(tag=term, exclude=exclude))
            elif term.startswith(LINK_MARKER) and len(term) > len(LINK_MARKER):
                target = term[len(LINK_MARKER) :]
                if target.startswith("[[") and target.endswith("]]"):
                    target = target[2:-2]
                links.append(LinkClause(target=normalize(target), exclude=exclude))
            else:
                title_words.append(word)

        return cls(title=" ".join(title_words), tags=tags, links=links, mode=mode)

    @property
    def clauses(self) -> list[TagClause | LinkClause]:
        return [*self.tags, *self.links]

    def matches(self, document: Document) -> bool:
        """Whether the boolean clauses admit the document, ignoring the title."""
        clauses = self.clauses
        if not clauses:
            return True
        satisfied = (clause.is_satisfied(document) for clause in clauses)
        if self.mode == FilterMode.ALL:
            return all(satisfied)
        return any(satisfied)

    def apply(self, document: Document) -> float | None:
        """Score a document.

        Returns:
            None if the clauses exclude the document, otherwise the fuzzy
            score of the title fragment against the document name
        """
        if not self.matches(document):
            return None
        return fuzzy_score(self.title, document.name)

    def __repr__(self) -> str:
        return f"Filter(title={self.title!r}, tags={self.tags!r}, links={self.links!r}, mode={self.mode.value})"


def rank(index, query_filter: Filter) -> list[tuple[str, float]]:
    """Score every document of an index.

    Returns:
        (identifier, score) pairs of the admitted documents, best score
        first, ties ordered by identifier
    """
    scored = []
    for document in index.documents():
        score = query_filter.apply(document)
        if score is not None:
            scored.append((document.id, score))
    return sorted(scored, key=lambda item: (-item[1], item[0]))
