"""Chunking: file content to ordered chunks.

`chunk_document` classifies a file by extension and dispatches to the
Markdown chunker or the structure-aware code chunker.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import List, Optional, Sequence

from ..config import CODE_EXTENSIONS, DOC_EXTENSIONS, IndexOptions
from .base import Chunk, ChunkKind, Chunker, Declaration, StructuredParser
from .code import CodeChunker
from .fallback import LineWindowChunker
from .markdown import MarkdownChunker

__all__ = [
    "Chunk",
    "ChunkKind",
    "Chunker",
    "CodeChunker",
    "Declaration",
    "LineWindowChunker",
    "MarkdownChunker",
    "StructuredParser",
    "chunk_document",
    "classify",
]


def classify(file_path: str) -> tuple[Optional[ChunkKind], Optional[str]]:
    """Return (kind, language) for a path, or (None, None) if not indexable."""
    suffix = PurePosixPath(file_path).suffix.lower().lstrip(".")
    if suffix in CODE_EXTENSIONS:
        return ChunkKind.CODE, CODE_EXTENSIONS[suffix]
    if suffix in DOC_EXTENSIONS:
        return ChunkKind.DOC, "markdown"
    return None, None


def make_chunker(
    file_path: str,
    opts: Optional[IndexOptions] = None,
    parsers: Optional[Sequence[StructuredParser]] = None,
) -> Optional[Chunker]:
    """Build the chunker for a path, or None if the path is not indexable."""
    opts = opts or IndexOptions()
    kind, language = classify(file_path)
    if kind is ChunkKind.DOC:
        return MarkdownChunker()
    if kind is ChunkKind.CODE:
        return CodeChunker(
            language=language,
            parsers=parsers,
            chunk_lines=opts.chunk_lines,
            chunk_overlap=opts.chunk_overlap,
            min_chars=opts.min_chunk_chars,
        )
    return None


def chunk_document(
    content: str,
    file_path: str,
    last_modified: float = 0.0,
    opts: Optional[IndexOptions] = None,
    parsers: Optional[Sequence[StructuredParser]] = None,
) -> List[Chunk]:
    """Chunk a file's content according to its kind.

    Args:
        content: Full file text.
        file_path: Workspace-relative path; its extension decides the kind.
        last_modified: File mtime stamped on every chunk.
        opts: Index options (window size, overlap, minimum length).
        parsers: Parser strategies for code (defaults to ast + tree-sitter).

    Returns:
        Ordered chunks; empty for empty or non-indexable files.
    """
    chunker = make_chunker(file_path, opts, parsers)
    if chunker is None:
        return []
    return chunker.chunk(content, file_path, last_modified)
