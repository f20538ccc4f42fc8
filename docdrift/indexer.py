"""Indexer: files -> chunks -> embeddings -> vector store.

Per file the pipeline is: read content and mtime, classify kind by
extension, delete the file's old entries, chunk, embed (batched) and
`upsert_batch`. Files are processed in fixed-size batches; inside a batch
up to `concurrency` files run on a thread pool. Progress is reported and
the cancellation token checked between batches only, so a cancelled pass
keeps every batch it already committed.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .chunking import chunk_document, classify
from .chunking.base import Chunk, StructuredParser
from .config import IndexOptions
from .embeddings.base import Embedder
from .ingest.scanner import list_candidate_files, load_document, relative_path
from .vectordb.base import IndexEntry, VectorStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]
PathLike = Union[str, Path]


class CancellationToken:
    """Cooperative cancellation flag shared between a caller and a pass."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class IndexStats:
    """Aggregate outcome of an index pass.

    Attributes:
        indexed: Chunks written.
        skipped: Files that produced no chunks (empty, unsupported or deleted).
        errors: Files whose pipeline raised.
        files: Files processed before the pass ended.
        removed: Paths whose entries were pruned because they left the file set.
        cancelled: True if the pass stopped on the cancellation token.
        failed: Relative paths of the files counted in `errors`.
    """

    indexed: int = 0
    skipped: int = 0
    errors: int = 0
    files: int = 0
    removed: int = 0
    cancelled: bool = False
    failed: List[str] = field(default_factory=list)


class Indexer:
    """
    Build and maintain the semantic index of one workspace.

    Attributes:
        root: Workspace root; stored paths are relative to it.
        store: Vector store receiving the entries.
        embedder: Long-lived embedding backend.
        options: Chunking, batching and concurrency options.
    """

    def __init__(
        self,
        root: Path,
        store: VectorStore,
        embedder: Embedder,
        options: Optional[IndexOptions] = None,
        parsers: Optional[Sequence[StructuredParser]] = None,
    ) -> None:
        self.root = Path(root)
        self.store = store
        self.embedder = embedder
        self.options = options or IndexOptions()
        self.parsers = parsers

    def _resolve(self, path: PathLike) -> Path:
        p = Path(path)
        return p if p.is_absolute() else self.root / p

    def _embed(self, chunks: List[Chunk]) -> List[List[float]]:
        size = max(1, self.options.embed_batch_size)
        vectors: List[List[float]] = []
        for i in range(0, len(chunks), size):
            vectors.extend(self.embedder.embed_batch([c.text for c in chunks[i:i + size]]))
        return vectors

    def index_file(self, path: PathLike) -> int:
        """
        Run the full pipeline for one file.

        A file that no longer exists has its entries removed.

        Args:
            path: Absolute path, or a path relative to the workspace root.

        Returns:
            Number of chunks written (0 means the file was skipped).

        Raises:
            EmbeddingBackendError, StoreWriteError, DimensionMismatchError,
            OSError, ValueError: propagated to the caller.
        """
        full = self._resolve(path)
        rel = relative_path(self.root, full)
        if not full.is_file():
            removed = self.store.delete_by_file_path(rel)
            if removed:
                logger.info("Removed %d entries for missing file %s", removed, rel)
            return 0

        kind, _ = classify(rel)
        if kind is None:
            return 0

        doc = load_document(self.root, full, self.options)
        self.store.delete_by_file_path(rel)
        chunks = chunk_document(doc.content, rel, doc.mtime, self.options, self.parsers)
        if not chunks:
            return 0

        vectors = self._embed(chunks)
        entries = [IndexEntry(chunk=c, vector=v) for c, v in zip(chunks, vectors)]
        return self.store.upsert_batch(entries)

    def _index_one(self, path: Path) -> Tuple[str, int, Optional[BaseException]]:
        rel = relative_path(self.root, self._resolve(path))
        try:
            return rel, self.index_file(path), None
        except Exception as e:
            logger.warning("Error indexing %s: %s", rel, e)
            return rel, 0, e

    def _run(
        self,
        files: Sequence[PathLike],
        progress: Optional[ProgressCallback],
        cancel: Optional[CancellationToken],
    ) -> Tuple[IndexStats, Set[str]]:
        stats = IndexStats()
        seen: Set[str] = set()
        paths = [Path(f) for f in files]
        total = len(paths)
        batch_size = max(1, self.options.batch_size)

        with ThreadPoolExecutor(max_workers=max(1, self.options.concurrency)) as pool:
            for start in range(0, total, batch_size):
                if cancel is not None and cancel.is_cancelled:
                    logger.info("Index pass cancelled after %d/%d files", stats.files, total)
                    stats.cancelled = True
                    break

                batch = paths[start:start + batch_size]
                for rel, written, error in pool.map(self._index_one, batch):
                    seen.add(rel)
                    stats.files += 1
                    if error is not None:
                        stats.errors += 1
                        stats.failed.append(rel)
                    elif written > 0:
                        stats.indexed += written
                    else:
                        stats.skipped += 1

                if progress is not None:
                    progress(stats.files, total)

        return stats, seen

    def index_workspace(
        self,
        files: Optional[Iterable[PathLike]] = None,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> IndexStats:
        """
        Index a file set, defaulting to every candidate file of the workspace.

        After a pass that was not cancelled, entries of paths outside the
        file set are deleted.

        Args:
            files: Files to index; None scans the workspace.
            progress: Called with (processed, total) after every batch.
            cancel: Checked before every batch.

        Returns:
            Aggregate stats; all zero if the workspace does not exist.
        """
        if files is None:
            if not self.root.is_dir():
                return IndexStats()
            files = list_candidate_files(self.root, self.options)

        stats, seen = self._run(list(files), progress, cancel)
        if not stats.cancelled:
            for stale in self.store.list_file_paths():
                if stale not in seen:
                    stats.removed += 1
                    self.store.delete_by_file_path(stale)
                    logger.info("Pruned entries for %s", stale)
        return stats

    def index_incremental(
        self,
        changed_files: Iterable[PathLike],
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> IndexStats:
        """
        Re-run the per-file pipeline for changed files only.

        Args:
            changed_files: Files reported by a change detector; deleted files
                have their entries removed and count as skipped.
            progress: Called with (processed, total) after every batch.
            cancel: Checked before every batch.

        Returns:
            Aggregate stats for the supplied files.
        """
        stats, _ = self._run(list(changed_files), progress, cancel)
        return stats
