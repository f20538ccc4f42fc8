"""Markdown chunker: one chunk per heading section."""

from __future__ import annotations

import re
from typing import List, Optional

from .base import Chunk, ChunkKind, Chunker, line_slice, split_lines

HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)")


class MarkdownChunker(Chunker):
    """
    Split Markdown at heading lines (`#` to `######`).

    Each section runs from its heading to the line before the next heading
    (or EOF). Text before the first heading becomes its own chunk with no
    symbol.
    """

    def chunk(self, content: str, file_path: str, last_modified: float = 0.0) -> List[Chunk]:
        if not content.strip():
            return []

        lines = split_lines(content)
        # (start_line, heading) per section
        sections: List[tuple[int, Optional[str]]] = []
        for i, line in enumerate(lines, start=1):
            m = HEADING_RE.match(line)
            if m:
                sections.append((i, m.group(2).strip()))
            elif not sections:
                sections.append((i, None))

        chunks: List[Chunk] = []
        for n, (start, heading) in enumerate(sections):
            end = sections[n + 1][0] - 1 if n + 1 < len(sections) else len(lines)
            text = line_slice(lines, start, end)
            if heading is None and not text.strip():
                continue
            chunks.append(
                Chunk(
                    id=f"{file_path}#{start}",
                    text=text,
                    kind=ChunkKind.DOC,
                    file_path=file_path,
                    start_line=start,
                    end_line=end,
                    language="markdown",
                    symbol=heading,
                    last_modified=last_modified,
                )
            )
        return chunks
