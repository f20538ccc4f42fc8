"""Exceptions raised by docdrift."""


class DocdriftError(Exception):
    """Base exception for all docdrift errors."""


class ChunkingError(DocdriftError):
    """
    A structured parser is unavailable or failed on a file.

    Chunkers catch this and fall back to line windows; it never reaches
    indexer callers.
    """


class EmbeddingBackendError(DocdriftError):
    """
    The embedding backend failed to load or to produce vectors.

    Raised when:
    - The model or HTTP backend cannot be reached or loaded
    - Inference fails or returns malformed/empty vectors
    - A vector comes back with an unexpected dimension
    """

    def __init__(self, message: str, backend: str = None):
        super().__init__(message)
        self.backend = backend


class DimensionMismatchError(DocdriftError):
    """Two vectors (or a vector and a store) disagree on dimension."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class StoreWriteError(DocdriftError):
    """A vector store write failed; the enclosing batch was rolled back."""
