"""Vector store interfaces.

A vector store is responsible for:
  - Storing chunks (text + metadata) and their embeddings, keyed by chunk id
  - Searching for the most similar chunks for a query embedding
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from ..chunking.base import Chunk, ChunkKind


@dataclass
class IndexEntry:
    """A chunk and the embedding it owns."""

    chunk: Chunk
    vector: List[float]


@dataclass
class SearchHit:
    """A retrieved chunk with similarity score."""

    chunk: Chunk
    score: float

    @property
    def path(self) -> str:
        return self.chunk.file_path


class VectorStore:
    """Vector store interface."""

    def upsert(self, chunk: Chunk, vector: Sequence[float]) -> None:
        """Insert an entry, or replace the entry with the same chunk id."""
        self.upsert_batch([IndexEntry(chunk=chunk, vector=list(vector))])

    def upsert_batch(self, entries: List[IndexEntry]) -> int:
        """Upsert entries all-or-nothing.

        Returns:
            Number of entries written.
        """
        raise NotImplementedError

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 10,
        kind: Optional[ChunkKind] = None,
        min_score: float = 0.0,
    ) -> List[SearchHit]:
        """Search similar chunks for a query embedding."""
        raise NotImplementedError

    def delete_by_file_path(self, file_path: str) -> int:
        """Delete every entry of a file; returns how many were removed."""
        raise NotImplementedError

    def get_item_count(self, file_path: Optional[str] = None) -> int:
        raise NotImplementedError

    def iter_entries(self, kind: Optional[ChunkKind] = None) -> Iterator[IndexEntry]:
        """Iterate a snapshot of stored entries in insertion order."""
        raise NotImplementedError

    def list_file_paths(self) -> List[str]:
        raise NotImplementedError

    def stats(self) -> dict:
        """Return basic stats about the store."""
        raise NotImplementedError

    def clear(self) -> None:
        """Drop all entries and recreate an empty store."""
        raise NotImplementedError

    def close(self) -> None:
        pass
