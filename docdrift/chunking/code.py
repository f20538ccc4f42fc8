"""Structure-aware code chunker with line-window fallback."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..errors import ChunkingError
from .base import Chunk, ChunkKind, Chunker, Declaration, StructuredParser, line_slice, split_lines
from .fallback import LineWindowChunker
from .parsers import PythonAstParser, TreeSitterParser

logger = logging.getLogger(__name__)


def default_parsers() -> List[StructuredParser]:
    return [PythonAstParser(), TreeSitterParser()]


class CodeChunker(Chunker):
    """
    Chunk code along top-level declarations.

    The parser strategy is picked per language. When no parser supports the
    language, or the selected one raises, or it finds no
    declarations, the file is cut into line windows instead.

    Attributes:
        language: Source language of the files this chunker handles.
        parsers: Candidate parser strategies, first match wins.
        min_chars: Declarations with less stripped text are dropped.
    """

    def __init__(
        self,
        language: Optional[str],
        parsers: Optional[Sequence[StructuredParser]] = None,
        chunk_lines: int = 500,
        chunk_overlap: int = 50,
        min_chars: int = 10,
    ) -> None:
        self.language = language
        self.parsers = list(parsers) if parsers is not None else default_parsers()
        self.min_chars = min_chars
        self.fallback = LineWindowChunker(
            chunk_lines=chunk_lines,
            chunk_overlap=chunk_overlap,
            kind=ChunkKind.CODE,
            language=language,
        )

    def select_parser(self) -> Optional[StructuredParser]:
        for parser in self.parsers:
            if parser.supports(self.language):
                return parser
        return None

    def chunk(self, content: str, file_path: str, last_modified: float = 0.0) -> List[Chunk]:
        if not content.strip():
            return []

        parser = self.select_parser()
        if parser is None:
            return self.fallback.chunk(content, file_path, last_modified)

        try:
            declarations = parser.parse(content, self.language)
        except ChunkingError as e:
            logger.debug("Falling back to line windows for %s: %s", file_path, e)
            return self.fallback.chunk(content, file_path, last_modified)
        except Exception as e:
            logger.warning("Parser %s crashed on %s, using line windows: %s", type(parser).__name__, file_path, e)
            return self.fallback.chunk(content, file_path, last_modified)

        if not declarations:
            return self.fallback.chunk(content, file_path, last_modified)
        return self._from_declarations(declarations, content, file_path, last_modified)

    def _from_declarations(
        self,
        declarations: List[Declaration],
        content: str,
        file_path: str,
        last_modified: float,
    ) -> List[Chunk]:
        lines = split_lines(content)
        seen: Dict[str, int] = {}
        chunks: List[Chunk] = []
        for decl in declarations:
            text = line_slice(lines, decl.start_line, decl.end_line)
            if len(text.strip()) < self.min_chars:
                continue
            base_id = f"{file_path}#{decl.type}#{decl.name or decl.start_line}"
            n = seen.get(base_id, 0)
            seen[base_id] = n + 1
            chunk_id = base_id if n == 0 else f"{base_id}~{n}"
            chunks.append(
                Chunk(
                    id=chunk_id,
                    text=text,
                    kind=ChunkKind.CODE,
                    file_path=file_path,
                    start_line=decl.start_line,
                    end_line=decl.end_line,
                    language=self.language,
                    symbol=decl.name,
                    last_modified=last_modified,
                )
            )
        return chunks
