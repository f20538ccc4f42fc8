"""Path filters shared by the scanner and the linter.

Exclude globs, `.gitignore` lines and the linter's doc ignore list are all
gitignore-style patterns compiled into a `pathspec.GitIgnoreSpec`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

import pathspec

logger = logging.getLogger(__name__)


def compile_patterns(patterns: Iterable[str]) -> pathspec.GitIgnoreSpec:
    """Compile .gitignore-style patterns (blank lines and comments are ignored)."""
    return pathspec.GitIgnoreSpec.from_lines(list(patterns))


class IgnoreMatcher:
    """
    Decide which workspace files the scanner skips.

    Attributes:
        root: Workspace root; paths are matched relative to it.
        patterns: Exclude globs followed by `.gitignore` lines.
    """

    def __init__(self, root: Path, patterns: List[str]) -> None:
        self.root = root
        self.patterns = list(patterns)
        self._spec = compile_patterns(self.patterns)

    def matches(self, path: Path) -> bool:
        """Return True if `path` (under `root`) is excluded."""
        return self._spec.match_file(path.relative_to(self.root).as_posix())


def load_gitignore(root: Path) -> List[str]:
    """Lines of `<root>/.gitignore`, or [] if it is missing or unreadable."""
    gi = root / ".gitignore"
    if not gi.is_file():
        return []
    try:
        return gi.read_text(encoding="utf-8", errors="ignore").splitlines()
    except OSError as e:
        logger.warning("Could not read %s: %s", gi, e)
        return []


def build_ignore_matcher(root: Path, exclude_globs: List[str], use_gitignore: bool = True) -> IgnoreMatcher:
    """
    Create the IgnoreMatcher for a workspace.

    Args:
        root: Workspace root.
        exclude_globs: Configured exclude patterns.
        use_gitignore: Also honour the root `.gitignore`.
    """
    patterns = list(exclude_globs)
    if use_gitignore:
        patterns.extend(load_gitignore(root))
    return IgnoreMatcher(root, patterns)
