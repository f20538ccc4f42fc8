"""Vector stores."""

from .base import IndexEntry, SearchHit, VectorStore
from .sqlite_numpy import SQLiteNumpyVectorStore

__all__ = ["IndexEntry", "SearchHit", "SQLiteNumpyVectorStore", "VectorStore"]
