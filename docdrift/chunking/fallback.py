"""Fallback chunker (language-agnostic)."""

from __future__ import annotations

from typing import List, Optional

from .base import Chunk, ChunkKind, Chunker, line_slice, split_lines


class LineWindowChunker(Chunker):
    """
    Chunker that slices text into fixed-size line windows.

    Windows start every `chunk_lines - chunk_overlap` lines. There is no
    minimum-length filter, only whitespace-only windows are dropped.

    Attributes:
        chunk_lines: Window size in lines.
        chunk_overlap: Lines shared by consecutive windows.
        kind: Kind stamped on produced chunks.
        language: Language stamped on produced chunks.
    """

    def __init__(
        self,
        chunk_lines: int = 500,
        chunk_overlap: int = 50,
        kind: ChunkKind = ChunkKind.CODE,
        language: Optional[str] = None,
    ) -> None:
        self.chunk_lines = max(1, int(chunk_lines))
        self.chunk_overlap = min(max(0, int(chunk_overlap)), self.chunk_lines - 1)
        self.kind = kind
        self.language = language

    @property
    def step(self) -> int:
        return self.chunk_lines - self.chunk_overlap

    def chunk(self, content: str, file_path: str, last_modified: float = 0.0) -> List[Chunk]:
        """
        Split text into line windows.

        Args:
            content: Full file text.
            file_path: Workspace-relative path (used for ids).
            last_modified: File mtime.

        Returns:
            List of chunks in file order.
        """
        if not content.strip():
            return []

        lines = split_lines(content)
        total = len(lines)
        chunks: List[Chunk] = []
        for start in range(0, total, self.step):
            end = min(total, start + self.chunk_lines)
            text = line_slice(lines, start + 1, end)
            if text.strip():
                chunks.append(
                    Chunk(
                        id=f"{file_path}#L{start + 1}",
                        text=text,
                        kind=self.kind,
                        file_path=file_path,
                        start_line=start + 1,
                        end_line=end,
                        language=self.language,
                        last_modified=last_modified,
                    )
                )
            if end >= total:
                break
        return chunks
