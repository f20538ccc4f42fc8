"""Tests for embedding backends and cosine similarity."""

import threading
import time

import pytest

from docdrift.config import BackendOptions
from docdrift.embeddings import (
    Embedder,
    OllamaEmbedder,
    SentenceTransformersEmbedder,
    cosine_similarity,
    make_embedder,
)
from docdrift.errors import DimensionMismatchError, EmbeddingBackendError

from conftest import DIM, KeywordEmbedder


class TestCosineSimilarity:
    def test_identical_and_orthogonal(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 1.0], [5.0, 5.0]) == pytest.approx(1.0)

    def test_zero_norm_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError) as exc:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
        assert exc.value.expected == 2
        assert exc.value.actual == 3


class TestEmbedderContract:
    def test_batch_preserves_order(self, embedder):
        texts = ["invoice total", "printer render", "invoice total"]
        vectors = embedder.embed_batch(texts)

        assert len(vectors) == 3
        assert vectors[0] == vectors[2]
        assert vectors[0] != vectors[1]
        assert all(len(v) == DIM for v in vectors)
        assert embedder.dimension == DIM

    def test_empty_batch(self, embedder):
        assert embedder.embed_batch([]) == []
        assert embedder.load_calls == 0

    def test_single_embed_matches_batch(self, embedder):
        assert embedder.embed("alpha beta") == embedder.embed_batch(["alpha beta"])[0]

    def test_inputs_are_truncated(self):
        e = KeywordEmbedder(max_chars=5)
        e.embed("abcdefghij")
        assert e.seen == ["abcde"]

    def test_nul_bytes_removed(self, embedder):
        embedder.embed("a\x00b\r\nc")
        assert embedder.seen == ["ab\nc"]

    def test_inconsistent_dimension_is_backend_error(self):
        class Shifty(Embedder):
            name = "shifty"

            def _embed_many(self, texts):
                return [[1.0] * (i + 2) for i in range(len(texts))]

        with pytest.raises(EmbeddingBackendError):
            Shifty().embed_batch(["a", "b"])

    def test_wrong_vector_count_is_backend_error(self):
        class Short(Embedder):
            def _embed_many(self, texts):
                return [[1.0, 0.0]]

        with pytest.raises(EmbeddingBackendError):
            Short().embed_batch(["a", "b"])

    def test_inference_errors_are_wrapped(self):
        class Broken(Embedder):
            name = "broken"

            def _embed_many(self, texts):
                raise RuntimeError("CUDA out of memory")

        with pytest.raises(EmbeddingBackendError) as exc:
            Broken().embed("x")
        assert exc.value.backend == "broken"
        assert "CUDA out of memory" in str(exc.value)

    def test_load_failure_is_wrapped(self):
        class NoModel(Embedder):
            def _load(self):
                raise OSError("model files missing")

        with pytest.raises(EmbeddingBackendError):
            NoModel().embed("x")

    def test_load_runs_once_across_threads(self):
        class SlowLoad(KeywordEmbedder):
            def _load(self):
                time.sleep(0.05)
                super()._load()

        e = SlowLoad()
        threads = [threading.Thread(target=e.embed, args=(f"text {i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert e.load_calls == 1
        assert len(e.seen) == 8


class FakeResponse:
    def __init__(self, status_code, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(payload)

    def json(self):
        return self._payload


class TestOllamaEmbedder:
    def test_batch_endpoint(self, monkeypatch):
        calls = []

        def fake_post(url, json=None, timeout=None):
            calls.append((url, json))
            return FakeResponse(200, {"embeddings": [[1.0, 0.0], [0.0, 1.0]]})

        monkeypatch.setattr("docdrift.embeddings.ollama.requests.post", fake_post)
        e = OllamaEmbedder(host="http://ollama:11434/", model="nomic-embed-text")

        assert e.embed_batch(["a", "b"]) == [[1.0, 0.0], [0.0, 1.0]]
        assert calls == [("http://ollama:11434/api/embed", {"model": "nomic-embed-text", "input": ["a", "b"]})]

    def test_legacy_fallback_on_404(self, monkeypatch):
        urls = []

        def fake_post(url, json=None, timeout=None):
            urls.append(url)
            if url.endswith("/api/embed"):
                return FakeResponse(404)
            return FakeResponse(200, {"embedding": [float(len(json["input"])), 1.0]})

        monkeypatch.setattr("docdrift.embeddings.ollama.requests.post", fake_post)
        e = OllamaEmbedder(host="http://localhost:11434", model="m")

        assert e.embed_batch(["a", "bbb"]) == [[1.0, 1.0], [3.0, 1.0]]
        assert e.embed("cc") == [2.0, 1.0]
        # the batch endpoint is not retried once it returned 404
        assert urls.count("http://localhost:11434/api/embed") == 1

    def test_client_error_raises(self, monkeypatch):
        def fake_post(url, json=None, timeout=None):
            if url.endswith("/api/embed"):
                return FakeResponse(404)
            return FakeResponse(400, {"error": "model not found"})

        monkeypatch.setattr("docdrift.embeddings.ollama.requests.post", fake_post)
        with pytest.raises(EmbeddingBackendError):
            OllamaEmbedder(host="http://localhost:11434", model="missing").embed("x")

    def test_max_chars_env_override(self, monkeypatch):
        monkeypatch.setenv("DOCDRIFT_EMBED_MAX_CHARS", "42")
        assert OllamaEmbedder(host="http://h", model="m").max_chars == 42


class TestMakeEmbedder:
    def test_known_backends(self):
        sbert = make_embedder(BackendOptions(embedder="sbert", embed_model="all-MiniLM-L6-v2"))
        assert isinstance(sbert, SentenceTransformersEmbedder)
        assert sbert.model_name == "all-MiniLM-L6-v2"

        ollama = make_embedder(BackendOptions(embedder="ollama", embed_model="nomic-embed-text"))
        assert isinstance(ollama, OllamaEmbedder)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            make_embedder(BackendOptions(embedder="word2vec"))
