# docdrift/embeddings/ollama.py
"""
Ollama embedding backend.

This embedder calls the local Ollama HTTP API to produce embeddings.

It is intentionally defensive:
  - truncates very long inputs (configurable)
  - retries with smaller inputs if Ollama returns 5xx
  - supports both new and legacy Ollama embedding endpoints

Env vars:
  - DOCDRIFT_EMBED_MAX_CHARS (overrides max_chars)
  - DOCDRIFT_EMBED_MIN_CHARS (default 200)
  - DOCDRIFT_EMBED_TIMEOUT   (default 180)
"""

from __future__ import annotations

import logging
import os
import time
from typing import Any, List, Optional, Sequence

import requests

from ..errors import EmbeddingBackendError
from .base import Embedder

logger = logging.getLogger(__name__)


class OllamaEmbedder(Embedder):
    """
    Compute embeddings via Ollama's HTTP API.

    Newer Ollama endpoint:
      - POST /api/embed with {"model": "...", "input": ["...","..."]}
      - Response: {"embeddings": [[...], ...]}

    Legacy endpoint:
      - POST /api/embeddings with {"model": "...", "input": "..."} (or "prompt")
      - Response: {"embedding": [...]}

    Attributes:
        host: Ollama base URL.
        model: Embedding model name.
        min_chars: Minimum characters when shrinking on retries.
        timeout: HTTP timeout seconds.
    """

    name = "ollama"

    def __init__(self, host: str, model: str, max_chars: int = 512):
        super().__init__(max_chars=int(os.getenv("DOCDRIFT_EMBED_MAX_CHARS", str(max_chars))))
        self.host = host.rstrip("/")
        self.model = model
        self.min_chars = int(os.getenv("DOCDRIFT_EMBED_MIN_CHARS", "200"))
        self.timeout = int(os.getenv("DOCDRIFT_EMBED_TIMEOUT", "180"))
        self._batch_supported = True

    def _post_embed(self, inputs: List[str]) -> requests.Response:
        payload = {"model": self.model, "input": inputs}
        return requests.post(f"{self.host}/api/embed", json=payload, timeout=self.timeout)

    def _post_embeddings_legacy(self, text: str) -> requests.Response:
        payload = {"model": self.model, "input": text}
        r = requests.post(f"{self.host}/api/embeddings", json=payload, timeout=self.timeout)
        if r.status_code == 404:
            payload = {"model": self.model, "prompt": text}
            r = requests.post(f"{self.host}/api/embeddings", json=payload, timeout=self.timeout)
        return r

    @staticmethod
    def _extract_embeddings(data: Any) -> Optional[List[List[float]]]:
        """
        Extract embeddings from Ollama response JSON.

        Args:
            data: Parsed JSON.

        Returns:
            List of embeddings or None.
        """
        if not isinstance(data, dict):
            return None

        embs = data.get("embeddings")
        if isinstance(embs, list) and embs and all(isinstance(x, list) for x in embs):
            return embs  # type: ignore[return-value]

        one = data.get("embedding")
        if isinstance(one, list) and one:
            return [one]  # type: ignore[return-value]

        return None

    def _embed_batch_endpoint(self, texts: List[str]) -> Optional[List[List[float]]]:
        """Try /api/embed; None means the endpoint is missing or misbehaved."""
        try:
            r = self._post_embed(texts)
        except requests.RequestException as e:
            raise EmbeddingBackendError(f"Ollama unreachable at {self.host}: {e}", backend=self.name) from e
        if r.status_code == 404:
            self._batch_supported = False
            logger.debug("Ollama /api/embed not available, using legacy endpoint")
            return None
        if not 200 <= r.status_code < 300:
            return None
        embs = self._extract_embeddings(r.json())
        if embs and len(embs) == len(texts) and all(len(v) > 0 for v in embs):
            return embs
        return None

    def _embed_one_legacy(self, text: str) -> List[float]:
        attempt = 0
        cur = text
        while True:
            attempt += 1
            try:
                r = self._post_embeddings_legacy(cur)
            except requests.RequestException as e:
                raise EmbeddingBackendError(f"Ollama unreachable at {self.host}: {e}", backend=self.name) from e

            if 200 <= r.status_code < 300:
                embs = self._extract_embeddings(r.json())
                if not embs or not embs[0]:
                    raise EmbeddingBackendError("Ollama returned an empty embedding vector.", backend=self.name)
                return embs[0]

            if r.status_code >= 500 and len(cur) > self.min_chars and attempt <= 4:
                time.sleep(0.5 * attempt)
                cur = cur[: max(self.min_chars, len(cur) // 2)]
                continue

            raise EmbeddingBackendError(
                f"Ollama embeddings failed (status={r.status_code}).\n"
                f"Model: {self.model}\n"
                f"Host: {self.host}\n"
                f"Response: {r.text[:800]}",
                backend=self.name,
            )

    def _embed_many(self, texts: List[str]) -> List[Sequence[float]]:
        """
        Strategy:
          1) Try /api/embed as a batch.
          2) If unavailable or malformed, fall back to /api/embeddings per item.
          3) Shrink inputs on 5xx errors.
        """
        if self._batch_supported:
            embs = self._embed_batch_endpoint(texts)
            if embs is not None:
                return embs
        return [self._embed_one_legacy(t) for t in texts]
