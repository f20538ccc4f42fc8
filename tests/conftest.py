"""
Shared test fixtures.

Tests never download a model: `KeywordEmbedder` hashes word tokens into a
small vector, so texts sharing vocabulary come out similar.
"""

import hashlib
import math
import re
from pathlib import Path
from typing import List, Sequence

import numpy as np
import pytest

from docdrift.chunking.base import Chunk, ChunkKind, StructuredParser
from docdrift.embeddings.base import Embedder
from docdrift.vectordb.base import IndexEntry
from docdrift.vectordb.sqlite_numpy import SQLiteNumpyVectorStore

DIM = 64


class KeywordEmbedder(Embedder):
    """Deterministic bag-of-words embedder."""

    name = "keyword"

    def __init__(self, max_chars: int = 2000):
        super().__init__(max_chars=max_chars)
        self.load_calls = 0
        self.seen: List[str] = []

    def _load(self) -> None:
        self.load_calls += 1

    def _embed_many(self, texts: List[str]) -> List[Sequence[float]]:
        out = []
        for text in texts:
            self.seen.append(text)
            vec = np.zeros(DIM, dtype=np.float64)
            for tok in re.findall(r"[a-z_]+", text.lower()):
                idx = int(hashlib.md5(tok.encode("utf-8")).hexdigest(), 16) % DIM
                vec[idx] += 1.0
            vec[DIM - 1] += 0.01
            out.append(vec.tolist())
        return out


class FailingEmbedder(KeywordEmbedder):
    """Fails on any text containing EXPLODE."""

    def _embed_many(self, texts: List[str]) -> List[Sequence[float]]:
        if any("EXPLODE" in t for t in texts):
            raise RuntimeError("model crashed")
        return super()._embed_many(texts)


class CrashingParser(StructuredParser):
    """Claims every language, then blows up with a non-chunking error."""

    def supports(self, language):
        return True

    def parse(self, content, language):
        raise RuntimeError("parser crashed")


def unit(cos: float) -> List[float]:
    """2-d unit vector whose cosine with [1, 0] is `cos`."""
    return [cos, math.sqrt(max(0.0, 1.0 - cos * cos))]


def make_chunk(chunk_id: str, kind: ChunkKind, path: str, symbol: str = None, text: str = None) -> Chunk:
    return Chunk(
        id=chunk_id,
        text=text or f"text of {chunk_id}",
        kind=kind,
        file_path=path,
        start_line=1,
        end_line=1,
        language="python" if kind is ChunkKind.CODE else "markdown",
        symbol=symbol,
    )


def entry(chunk_id: str, vector, kind: ChunkKind = ChunkKind.CODE, path: str = "src/a.py", symbol: str = None) -> IndexEntry:
    return IndexEntry(chunk=make_chunk(chunk_id, kind, path, symbol), vector=list(vector))


@pytest.fixture
def store():
    s = SQLiteNumpyVectorStore()
    yield s
    s.close()


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "ws"
    (root / "src").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / "src" / "billing.py").write_text(
        "import math\n"
        "\n"
        "\n"
        "def compute_invoice_total(items, tax_rate):\n"
        "    subtotal = sum(item.price for item in items)\n"
        "    return math.ceil(subtotal * (1 + tax_rate))\n"
        "\n"
        "\n"
        "class InvoicePrinter:\n"
        "    def render(self, invoice):\n"
        "        return f'Invoice {invoice.number}'\n",
        encoding="utf-8",
    )
    (root / "docs" / "billing.md").write_text(
        "# Billing\n"
        "The invoice total is computed from items and tax rate.\n"
        "\n"
        "## Printing\n"
        "InvoicePrinter renders an invoice number.\n",
        encoding="utf-8",
    )
    (root / "README.md").write_text("Intro paragraph before any heading.\n\n# Project\nSee docs.\n", encoding="utf-8")
    (root / "docs" / "empty.md").write_text("", encoding="utf-8")
    (root / "notes.txt").write_text("not indexed", encoding="utf-8")
    return root
