"""SentenceTransformers embedding backend."""

from __future__ import annotations

import logging
from typing import Any, List, Sequence

from ..errors import EmbeddingBackendError
from .base import Embedder

logger = logging.getLogger(__name__)


class SentenceTransformersEmbedder(Embedder):
    """
    Embeddings via `sentence-transformers`.

    The model is loaded on the first embed call (this can take seconds and
    may download weights) and then reused for the lifetime of the instance.
    """

    name = "sentence-transformers"

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", max_chars: int = 512) -> None:
        """
        Initialize the embedder.

        Args:
            model_name: HuggingFace model id.
            max_chars: Truncation budget per input.
        """
        super().__init__(max_chars=max_chars)
        self.model_name = model_name
        self._model: Any = None

    def _load(self) -> None:
        try:
            from sentence_transformers import SentenceTransformer  # type: ignore
        except ImportError as e:
            raise EmbeddingBackendError(
                "sentence-transformers is not installed. Install with `pip install sentence-transformers`.",
                backend=self.name,
            ) from e
        logger.info("Loading embedding model %s", self.model_name)
        self._model = SentenceTransformer(self.model_name)
        dim = self._model.get_sentence_embedding_dimension()
        if dim:
            self._dimension = int(dim)

    def _embed_many(self, texts: List[str]) -> List[Sequence[float]]:
        """
        Embed texts into vectors.

        Args:
            texts: Input strings.

        Returns:
            Normalized embeddings aligned to input.
        """
        return self._model.encode(texts, normalize_embeddings=True, show_progress_bar=False).tolist()
