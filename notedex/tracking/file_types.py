"""Type classes of files that can be tracked as documents."""

from fnmatch import fnmatch
from pathlib import Path

WILDCARD_TYPES = frozenset({"all", "*"})

# Subset of the type table ripgrep and friends ship with
DEFAULT_TYPES: dict[str, list[str]] = {
    "markdown": ["*.markdown", "*.md", "*.mdown", "*.mdwn", "*.mkd", "*.mkdn", "*.mdx"],
    "md": ["*.markdown", "*.md", "*.mdown", "*.mdwn", "*.mkd", "*.mkdn", "*.mdx"],
    "txt": ["*.txt"],
    "org": ["*.org", "*.org_archive"],
    "rst": ["*.rst"],
    "asciidoc": ["*.adoc", "*.asc", "*.asciidoc"],
    "tex": ["*.tex", "*.ltx", "*.cls", "*.sty", "*.bib"],
    "html": ["*.htm", "*.html", "*.ejs"],
    "json": ["*.json", "*.jsonl"],
    "yaml": ["*.yaml", "*.yml"],
    "toml": ["*.toml"],
    "py": ["*.py", "*.pyi"],
    "rust": ["*.rs"],
}


class FileTypes:
    """Matches file names against a selection of type classes.

    Args:
        selected: Names of type classes, see DEFAULT_TYPES. "all" or "*"
            selects every file, including files without an extension.

    Raises:
        ValueError: If an unknown type class is selected
    """

    def __init__(self, selected: list[str] | tuple[str, ...]):
        self.selected = list(selected)
        self.match_all = any(name in WILDCARD_TYPES for name in self.selected)

        unknown = [n for n in self.selected if n not in DEFAULT_TYPES and n not in WILDCARD_TYPES]
        if unknown:
            raise ValueError(f"Unknown file types: {', '.join(unknown)}")

        self.globs = sorted(
            {glob for name in self.selected if name in DEFAULT_TYPES for glob in DEFAULT_TYPES[name]}
        )

    def matches(self, path: Path) -> bool:
        if self.match_all:
            return True
        name = path.name.lower()
        return any(fnmatch(name, glob) for glob in self.globs)

    def allows_extensionless(self) -> bool:
        return self.match_all
