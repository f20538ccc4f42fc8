"""Chunking interfaces."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class ChunkKind(str, Enum):
    """What a chunk was cut from."""

    CODE = "code"
    DOC = "doc"


@dataclass
class Chunk:
    """A chunk of text extracted from a file.

    Attributes:
        id: Stable identifier, unique per file position or symbol.
        text: Chunk content, exactly lines `start_line..end_line` of the file.
        kind: `ChunkKind.CODE` or `ChunkKind.DOC`.
        file_path: Workspace-relative path of the source file.
        start_line: 1-based first line (inclusive).
        end_line: 1-based last line (inclusive).
        language: Source language for code chunks.
        symbol: Declaration name or Markdown heading, if any.
        last_modified: File modification time (epoch seconds).
    """

    id: str
    text: str
    kind: ChunkKind
    file_path: str
    start_line: int
    end_line: int
    language: Optional[str] = None
    symbol: Optional[str] = None
    last_modified: float = 0.0

    def __post_init__(self) -> None:
        self.kind = ChunkKind(self.kind)
        if not self.id:
            raise ValueError("Chunk id must not be empty")
        if self.start_line < 1:
            raise ValueError(f"start_line must be >= 1, got {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(f"end_line {self.end_line} precedes start_line {self.start_line}")


@dataclass
class Declaration:
    """A top-level declaration found by a structured parser.

    Attributes:
        type: function | class | method | interface | type | variable | import | other
        start_line: 1-based first line.
        end_line: 1-based last line.
        name: Identifier, when the declaration has one.
    """

    type: str
    start_line: int
    end_line: int
    name: Optional[str] = None


def split_lines(content: str) -> List[str]:
    """Split file content into lines the way every chunker counts them."""
    return content.split("\n")


def line_slice(lines: List[str], start_line: int, end_line: int) -> str:
    """Return the text of 1-based inclusive lines `start_line..end_line`."""
    return "\n".join(lines[start_line - 1:end_line])


class Chunker:
    """Chunker interface."""

    def chunk(self, content: str, file_path: str, last_modified: float = 0.0) -> List[Chunk]:
        """Split file content into chunks."""
        raise NotImplementedError


class StructuredParser:
    """Parser strategy interface.

    Implementations raise `ChunkingError` when they cannot handle the input.
    """

    def supports(self, language: Optional[str]) -> bool:
        """Return True if this parser handles `language`."""
        raise NotImplementedError

    def parse(self, content: str, language: str) -> List[Declaration]:
        """Return top-level declarations in source order."""
        raise NotImplementedError
