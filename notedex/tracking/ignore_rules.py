"""Nested ignore files (.gitignore style) for the vault."""

from functools import lru_cache
from pathlib import Path

import pathspec
from loguru import logger


class IgnoreRules:
    """Evaluates ignore files found in every directory between the vault root and a path.

    Each ignore file applies to its own directory and everything below it, with
    patterns relative to that directory. Deeper files are consulted later, so
    their negations (``!pattern``) override rules from above, as git does.

    Args:
        root: Vault root directory
        filenames: Names of ignore files to honour, e.g. [".gitignore", ".ignore"]
    """

    def __init__(self, root: Path, filenames: list[str] | tuple[str, ...]):
        self.root = root
        self.filenames = list(filenames)
        self._spec_for = lru_cache(maxsize=None)(self._load_spec)

    def _load_spec(self, directory: Path) -> pathspec.GitIgnoreSpec | None:
        lines: list[str] = []
        for filename in self.filenames:
            ignore_file = directory / filename
            if not ignore_file.is_file():
                continue
            try:
                lines.extend(ignore_file.read_text(encoding="utf-8").splitlines())
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Could not read ignore file {ignore_file}: {e}")
        if not lines:
            return None
        return pathspec.GitIgnoreSpec.from_lines(lines)

    def invalidate(self) -> None:
        """Forget cached ignore files, e.g. after one of them changed."""
        self._spec_for.cache_clear()

    def is_ignored(self, relative: Path, is_dir: bool = False) -> bool:
        """Check a path given relative to the vault root.

        Args:
            relative: Path relative to the root
            is_dir: Whether the path is a directory, so patterns like "drafts/" apply

        Returns:
            True if the path itself is ignored by some ignore file above it
        """
        ignored = False
        parents = list(reversed(relative.parents))
        for depth, directory in enumerate(parents):
            spec = self._spec_for(self.root / directory)
            if spec is None:
                continue
            sub_path = Path(*relative.parts[depth:]).as_posix()
            if is_dir:
                sub_path += "/"
            # later (deeper) files decide for the paths they match
            for pattern in spec.patterns:
                if pattern.include is not None and pattern.match_file(sub_path) is not None:
                    ignored = pattern.include
        return ignored

    def is_excluded(self, relative: Path) -> bool:
        """Check a path and all its parent directories.

        A file inside an ignored directory is excluded even if no pattern
        matches the file itself.
        """
        parts = relative.parts
        for i in range(1, len(parts)):
            if self.is_ignored(Path(*parts[:i]), is_dir=True):
                return True
        return self.is_ignored(relative)
