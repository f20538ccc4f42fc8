"""Embedding backends."""

from __future__ import annotations

from ..config import BackendOptions
from .base import Embedder, cosine_similarity
from .ollama import OllamaEmbedder
from .sbert import SentenceTransformersEmbedder

__all__ = [
    "Embedder",
    "OllamaEmbedder",
    "SentenceTransformersEmbedder",
    "cosine_similarity",
    "make_embedder",
]


def make_embedder(opts: BackendOptions) -> Embedder:
    """
    Create an embedding backend from options.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if opts.embedder == "sbert":
        return SentenceTransformersEmbedder(model_name=opts.embed_model, max_chars=opts.max_chars)
    if opts.embedder == "ollama":
        return OllamaEmbedder(host=opts.ollama_host, model=opts.embed_model, max_chars=opts.max_chars)
    raise ValueError(f"Unknown embedder: {opts.embedder}")
