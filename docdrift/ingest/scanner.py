"""Workspace scanner.

This module provides:
  - candidate file listing (fast pass) for progress bars
  - document loading with hashing and mtime for indexing

Notes:
  - Uses IgnoreMatcher (default excludes + optional .gitignore)
  - Filters by extension
  - Skips large files
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..config import IndexOptions
from .ignore_rules import build_ignore_matcher
from .loaders import read_text_file

logger = logging.getLogger(__name__)


@dataclass
class Document:
    """A source document loaded from disk."""

    path: Path
    rel_path: str
    content: str
    encoding: str
    sha256: str
    mtime: float


def sha256_text(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8", errors="ignore")).hexdigest()


def relative_path(root: Path, path: Path) -> str:
    """Workspace-relative POSIX path, or the absolute path if outside `root`."""
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return path.resolve().as_posix()


def list_candidate_files(root: Path, opts: IndexOptions) -> List[Path]:
    """List indexable candidate files quickly for progress reporting.

    Args:
        root: Workspace root folder.
        opts: Index options.

    Returns:
        Sorted list of file paths that *might* be indexed; empty if `root`
        does not exist.
    """
    if not root.is_dir():
        logger.warning("Workspace %s does not exist", root)
        return []

    matcher = build_ignore_matcher(root, opts.exclude_globs, use_gitignore=opts.use_gitignore)
    include_set = {e.lower().lstrip(".") for e in opts.include_ext}
    max_bytes = int(opts.max_file_mb * 1024 * 1024)

    files: List[Path] = []
    for p in root.rglob("*"):
        try:
            if p.is_dir():
                continue
            if (not opts.follow_symlinks) and p.is_symlink():
                continue
            if p.suffix.lower().lstrip(".") not in include_set:
                continue
            if matcher.matches(p):
                continue
            if p.stat().st_size > max_bytes:
                continue
        except OSError as e:
            logger.debug("Skipping %s: %s", p, e)
            continue
        files.append(p)
    return sorted(files)


def load_document(root: Path, path: Path, opts: IndexOptions) -> Document:
    """Load one file.

    Raises:
        OSError: If the file is missing or unreadable.
        ValueError: If the file looks binary or exceeds `max_file_mb`.
    """
    max_bytes = int(opts.max_file_mb * 1024 * 1024)
    size = path.stat().st_size
    if size > max_bytes:
        raise ValueError(f"File too large ({size} bytes > {max_bytes}): {path}")
    content, enc = read_text_file(path, max_bytes)
    return Document(
        path=path,
        rel_path=relative_path(root, path),
        content=content,
        encoding=enc,
        sha256=sha256_text(content),
        mtime=path.stat().st_mtime,
    )
