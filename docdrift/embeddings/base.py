# docdrift/embeddings/base.py
"""Embedding interfaces."""

from __future__ import annotations

import logging
import threading
from typing import List, Optional, Sequence

import numpy as np

from ..errors import DimensionMismatchError, EmbeddingBackendError

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity `dot(a, b) / (|a| * |b|)`.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Similarity in [-1, 1]; 0.0 if either vector has zero norm.

    Raises:
        DimensionMismatchError: If the vectors differ in length.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(expected=int(va.size), actual=int(vb.size))
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)


def _sanitize_text(s: str) -> str:
    """
    Sanitize text to reduce embedding backend crashes.

    Args:
        s: Any object convertible to str.

    Returns:
        Cleaned string.
    """
    if not isinstance(s, str):
        s = str(s)

    # Remove NULs (can crash tokenizers)
    s = s.replace("\x00", "")

    # Normalize newlines
    return s.replace("\r\n", "\n").replace("\r", "\n")


class Embedder:
    """
    Embedder interface for turning text into fixed-dimension vectors.

    One instance is meant to live for the whole process and be handed to
    the indexer and linter. Subclasses implement `_load` (called once,
    lazily, under a lock) and `_embed_many`.

    Attributes:
        max_chars: Inputs are truncated to this many characters (0 disables).
        name: Backend name used in error messages.
    """

    name = "embedder"

    def __init__(self, max_chars: int = 512) -> None:
        self.max_chars = int(max_chars)
        self._dimension: Optional[int] = None
        self._loaded = False
        self._load_lock = threading.Lock()

    @property
    def dimension(self) -> Optional[int]:
        """Vector length, known once the backend has produced (or declared) one."""
        return self._dimension

    def _load(self) -> None:
        """Initialize the backend (model load, connection checks)."""

    def _embed_many(self, texts: List[str]) -> List[Sequence[float]]:
        raise NotImplementedError

    def ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._load_lock:
            if self._loaded:
                return
            try:
                self._load()
            except EmbeddingBackendError:
                raise
            except Exception as e:
                raise EmbeddingBackendError(f"Failed to initialize {self.name}: {e}", backend=self.name) from e
            self._loaded = True

    def prepare(self, text: str) -> str:
        t = _sanitize_text(text)
        if self.max_chars > 0 and len(t) > self.max_chars:
            t = t[: self.max_chars]
        return t

    def _check(self, vectors: List[Sequence[float]], expected: int) -> List[List[float]]:
        if len(vectors) != expected:
            raise EmbeddingBackendError(
                f"{self.name} returned {len(vectors)} vectors for {expected} inputs", backend=self.name
            )
        out: List[List[float]] = []
        for vec in vectors:
            v = [float(x) for x in vec]
            if not v:
                raise EmbeddingBackendError(f"{self.name} returned an empty vector", backend=self.name)
            if self._dimension is None:
                self._dimension = len(v)
            elif len(v) != self._dimension:
                raise EmbeddingBackendError(
                    f"{self.name} returned a {len(v)}-dim vector, expected {self._dimension}", backend=self.name
                )
            out.append(v)
        return out

    def embed(self, text: str) -> List[float]:
        """Embed a single text."""
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts, preserving input order.

        Args:
            texts: Input strings.

        Returns:
            One vector per input, aligned to `texts`.

        Raises:
            EmbeddingBackendError: If the backend fails or misbehaves.
        """
        if not texts:
            return []
        self.ensure_loaded()
        prepared = [self.prepare(t) for t in texts]
        try:
            vectors = self._embed_many(prepared)
        except EmbeddingBackendError:
            raise
        except Exception as e:
            raise EmbeddingBackendError(f"{self.name} inference failed: {e}", backend=self.name) from e
        return self._check(vectors, len(prepared))
