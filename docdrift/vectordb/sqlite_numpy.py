"""SQLite + NumPy vector store (local-first, zero extra services).

Storage:
  - Metadata, chunk text and the float32 embedding (as a BLOB) in one SQLite
    row per chunk id, so a batch write is a single SQLite transaction.
  - An AUTOINCREMENT `seq` column records insertion order; replacing an
    entry gives it a fresh position.
  - The vector dimension is pinned in `store_meta` by the first write.

Retrieval:
  - Loads the (kind-filtered) vectors and computes cosine similarity in NumPy.
  - For very large workspaces, consider an ANN backend in the future.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import numpy as np

from ..chunking.base import Chunk, ChunkKind
from ..errors import DimensionMismatchError, StoreWriteError
from .base import IndexEntry, SearchHit, VectorStore

logger = logging.getLogger(__name__)

_COLUMNS = "chunk_id, file_path, start_line, end_line, kind, language, symbol, last_modified, text, embedding"


def _ensure_db(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS chunks (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            chunk_id TEXT NOT NULL UNIQUE,
            file_path TEXT NOT NULL,
            start_line INTEGER NOT NULL,
            end_line INTEGER NOT NULL,
            kind TEXT NOT NULL,
            language TEXT,
            symbol TEXT,
            last_modified REAL NOT NULL,
            text TEXT NOT NULL,
            embedding BLOB NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_chunks_file ON chunks(file_path);")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_chunks_kind ON chunks(kind);")
    conn.execute("CREATE TABLE IF NOT EXISTS store_meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);")


def _row_to_chunk(row: tuple) -> Chunk:
    chunk_id, file_path, start_line, end_line, kind, language, symbol, last_modified, text = row[:9]
    return Chunk(
        id=chunk_id,
        text=text,
        kind=ChunkKind(kind),
        file_path=file_path,
        start_line=int(start_line),
        end_line=int(end_line),
        language=language,
        symbol=symbol,
        last_modified=float(last_modified),
    )


class SQLiteNumpyVectorStore(VectorStore):
    """Vector store implementation backed by a single SQLite database.

    All access goes through one connection guarded by a re-entrant lock, so
    the store can be shared by indexing worker threads. Readers see either
    the state before or after a batch, never half of it.
    """

    def __init__(self, store_dir: Optional[Path] = None) -> None:
        """
        Args:
            store_dir: Directory for `chunks.sqlite3`; None keeps the store in memory.
        """
        self.store_dir = store_dir
        if store_dir is None:
            self.db_path = ":memory:"
        else:
            store_dir.mkdir(parents=True, exist_ok=True)
            self.db_path = str(store_dir / "chunks.sqlite3")
        self._lock = threading.RLock()
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False, isolation_level=None)
        _ensure_db(self._conn)
        self._dimension = self._load_dimension()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _load_dimension(self) -> Optional[int]:
        row = self._conn.execute("SELECT value FROM store_meta WHERE key='dimension'").fetchone()
        return int(row[0]) if row else None

    @property
    def dimension(self) -> Optional[int]:
        return self._dimension

    def _as_vector(self, vector: Sequence[float]) -> np.ndarray:
        v = np.asarray(vector, dtype=np.float32).reshape(-1)
        if self._dimension is not None and v.size != self._dimension:
            raise DimensionMismatchError(expected=self._dimension, actual=int(v.size))
        return v

    def _write_entry(self, entry: IndexEntry) -> None:
        v = self._as_vector(entry.vector)
        if v.size == 0 or not np.all(np.isfinite(v)):
            raise StoreWriteError(f"Invalid embedding for chunk {entry.chunk.id}")
        if self._dimension is None:
            self._conn.execute(
                "INSERT OR REPLACE INTO store_meta(key, value) VALUES('dimension', ?)", (str(v.size),)
            )
            self._dimension = int(v.size)

        ch = entry.chunk
        self._conn.execute("DELETE FROM chunks WHERE chunk_id = ?", (ch.id,))
        self._conn.execute(
            f"INSERT INTO chunks({_COLUMNS}) VALUES(?,?,?,?,?,?,?,?,?,?)",
            (
                ch.id,
                ch.file_path,
                int(ch.start_line),
                int(ch.end_line),
                ch.kind.value,
                ch.language,
                ch.symbol,
                float(ch.last_modified),
                ch.text,
                v.tobytes(),
            ),
        )

    def upsert_batch(self, entries: List[IndexEntry]) -> int:
        """Upsert entries in one transaction.

        If any entry fails, every write of this batch is rolled back and the
        error is raised; earlier batches stay committed.

        Args:
            entries: Chunks with their vectors.

        Returns:
            Number of entries written.

        Raises:
            DimensionMismatchError: If a vector does not match the store dimension.
            StoreWriteError: If SQLite rejects a write or a vector is invalid.
        """
        if not entries:
            return 0
        with self._lock:
            dim_before = self._dimension
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                for entry in entries:
                    self._write_entry(entry)
            except sqlite3.Error as e:
                self._rollback(dim_before)
                raise StoreWriteError(f"Batch write failed: {e}") from e
            except BaseException:
                self._rollback(dim_before)
                raise
            self._conn.execute("COMMIT")
        return len(entries)

    def _rollback(self, dimension: Optional[int]) -> None:
        self._conn.execute("ROLLBACK")
        self._dimension = dimension
        logger.debug("Rolled back vector store batch")

    def search(
        self,
        query_vector: Sequence[float],
        top_k: int = 10,
        kind: Optional[ChunkKind] = None,
        min_score: float = 0.0,
    ) -> List[SearchHit]:
        """Rank stored chunks by cosine similarity to `query_vector`.

        Results are sorted by descending score; equal scores keep insertion
        order. Only hits with `score >= min_score` are returned, at most `top_k`.

        Raises:
            DimensionMismatchError: If the query dimension differs from the store's.
        """
        if top_k <= 0:
            return []
        with self._lock:
            if self._dimension is None:
                return []
            q = self._as_vector(query_vector)
            rows = self._select_rows(kind)
        if not rows:
            return []

        mat = np.vstack([np.frombuffer(r[9], dtype=np.float32) for r in rows])
        norms = np.linalg.norm(mat, axis=1) * np.linalg.norm(q)
        dots = mat @ q
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        order = np.argsort(-scores, kind="stable")
        hits: List[SearchHit] = []
        for i in order:
            score = float(scores[i])
            if score < min_score:
                break
            hits.append(SearchHit(chunk=_row_to_chunk(rows[i]), score=score))
            if len(hits) >= top_k:
                break
        return hits

    def _select_rows(self, kind: Optional[ChunkKind]) -> List[tuple]:
        if kind is None:
            cur = self._conn.execute(f"SELECT {_COLUMNS} FROM chunks ORDER BY seq")
        else:
            cur = self._conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE kind = ? ORDER BY seq", (ChunkKind(kind).value,)
            )
        return cur.fetchall()

    def iter_entries(self, kind: Optional[ChunkKind] = None) -> Iterator[IndexEntry]:
        with self._lock:
            rows = self._select_rows(kind)
        for row in rows:
            vec = np.frombuffer(row[9], dtype=np.float32)
            yield IndexEntry(chunk=_row_to_chunk(row), vector=vec.tolist())

    def get_item(self, chunk_id: str) -> Optional[IndexEntry]:
        with self._lock:
            row = self._conn.execute(f"SELECT {_COLUMNS} FROM chunks WHERE chunk_id = ?", (chunk_id,)).fetchone()
        if row is None:
            return None
        return IndexEntry(chunk=_row_to_chunk(row), vector=np.frombuffer(row[9], dtype=np.float32).tolist())

    def find_by_file_path(self, file_path: str) -> List[Chunk]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM chunks WHERE file_path = ? ORDER BY seq", (file_path,)
            ).fetchall()
        return [_row_to_chunk(r) for r in rows]

    def delete_by_file_path(self, file_path: str) -> int:
        with self._lock:
            cur = self._conn.execute("DELETE FROM chunks WHERE file_path = ?", (file_path,))
            return cur.rowcount

    def list_file_paths(self) -> List[str]:
        with self._lock:
            rows = self._conn.execute("SELECT DISTINCT file_path FROM chunks ORDER BY file_path").fetchall()
        return [r[0] for r in rows]

    def get_item_count(self, file_path: Optional[str] = None) -> int:
        with self._lock:
            if file_path is None:
                row = self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()
            else:
                row = self._conn.execute("SELECT COUNT(*) FROM chunks WHERE file_path = ?", (file_path,)).fetchone()
        return int(row[0])

    def stats(self) -> dict:
        with self._lock:
            by_kind = dict(self._conn.execute("SELECT kind, COUNT(*) FROM chunks GROUP BY kind").fetchall())
            files = self._conn.execute("SELECT COUNT(DISTINCT file_path) FROM chunks").fetchone()[0]
        return {
            "chunks": int(sum(by_kind.values())),
            "code_chunks": int(by_kind.get(ChunkKind.CODE.value, 0)),
            "doc_chunks": int(by_kind.get(ChunkKind.DOC.value, 0)),
            "files": int(files),
            "dimension": self._dimension,
            "db_path": self.db_path,
        }

    def clear(self) -> None:
        with self._lock:
            self._conn.execute("DROP TABLE IF EXISTS chunks")
            self._conn.execute("DROP TABLE IF EXISTS store_meta")
            _ensure_db(self._conn)
            self._dimension = None
