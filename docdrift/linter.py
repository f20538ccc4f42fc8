"""Linter: check documentation for staleness.

Every indexed documentation chunk is compared with its nearest code chunks.
The best similarity is the chunk's score: low scores mean the prose no
longer resembles any code and has probably drifted. Docs with no related
code at all are reported as orphaned (`info`), never as errors.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence

from .chunking.base import Chunk, ChunkKind
from .config import StalenessOptions
from .embeddings.base import Embedder
from .ingest.ignore_rules import compile_patterns
from .vectordb.base import SearchHit, VectorStore

logger = logging.getLogger(__name__)

ORPHAN_SUGGESTION = "No related code found. This documentation may be orphaned or covering external topics."


class Severity(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    HEALTHY = "healthy"
    INFO = "info"


@dataclass
class RelatedCode:
    path: str
    symbol: Optional[str]
    similarity: float
    chunk_id: str


@dataclass
class StalenessItem:
    """One documentation chunk flagged by the linter."""

    chunk_id: str
    doc_path: str
    doc_section: str
    start_line: int
    end_line: int
    severity: Severity
    score: float
    related_code: List[RelatedCode] = field(default_factory=list)
    suggestion: str = ""

    @property
    def orphaned(self) -> bool:
        return self.severity is Severity.INFO


@dataclass
class StalenessReport:
    """Aggregated result of a check."""

    overall: Severity
    score: float
    items: List[StalenessItem]
    summary: Dict[str, int]

    def to_dict(self) -> dict:
        data = asdict(self)
        data["overall"] = self.overall.value
        for item in data["items"]:
            item["severity"] = Severity(item["severity"]).value
        return data


def build_report(items: List[StalenessItem]) -> StalenessReport:
    """Aggregate items into a report.

    `overall` is critical if any item is critical, else warning if any item
    is a warning, else healthy. The score is `1 - critical/total` with
    critical items, `1 - 0.5 * warning/total` with only warnings, else 1.
    """
    summary = {"total": len(items), "critical": 0, "warning": 0, "healthy": 0, "info": 0}
    for item in items:
        summary[item.severity.value] += 1

    total = summary["total"]
    if summary["critical"] > 0:
        overall = Severity.CRITICAL
        score = 1 - summary["critical"] / total
    elif summary["warning"] > 0:
        overall = Severity.WARNING
        score = 1 - 0.5 * summary["warning"] / total
    else:
        overall = Severity.HEALTHY
        score = 1.0
    return StalenessReport(overall=overall, score=score, items=items, summary=summary)


class StalenessLinter:
    """
    Score documentation chunks against related code.

    The linter keeps no state between checks: each call reads a fresh
    snapshot of the store's doc entries.

    Attributes:
        store: Vector store holding code and doc entries.
        options: Thresholds, neighbour count and ignore patterns.
        embedder: Optional backend, only needed by `check_text`.
    """

    def __init__(
        self,
        store: VectorStore,
        options: Optional[StalenessOptions] = None,
        embedder: Optional[Embedder] = None,
    ) -> None:
        self.store = store
        self.options = options or StalenessOptions()
        self.embedder = embedder
        self._ignore = compile_patterns(self.options.ignore_paths)

    def should_ignore(self, path: str) -> bool:
        return self._ignore.match_file(path)

    def classify(self, score: float) -> Severity:
        """Map a best-match similarity to a severity tier."""
        if score < self.options.critical:
            return Severity.CRITICAL
        if score < self.options.warning:
            return Severity.WARNING
        return Severity.HEALTHY

    @staticmethod
    def suggestion(severity: Severity, related: Sequence[SearchHit]) -> str:
        refs = ", ".join(h.chunk.symbol or h.chunk.file_path for h in related[:3])
        if severity is Severity.CRITICAL:
            return f"Documentation appears significantly outdated. Review and update to match current implementation in: {refs}"
        if severity is Severity.WARNING:
            return f"Documentation may need updates. Compare with: {refs}"
        return f"Minor drift detected. Consider reviewing: {refs}"

    def score_vector(self, doc: Chunk, vector: Sequence[float]) -> Optional[StalenessItem]:
        """
        Score one doc chunk given its embedding.

        Returns:
            A StalenessItem, or None when the doc is healthy enough to drop.
        """
        related = self.store.search(
            vector,
            top_k=self.options.top_k,
            kind=ChunkKind.CODE,
            min_score=self.options.min_score,
        )
        section = doc.symbol or "Unknown section"
        if not related:
            return StalenessItem(
                chunk_id=doc.id,
                doc_path=doc.file_path,
                doc_section=section,
                start_line=doc.start_line,
                end_line=doc.end_line,
                severity=Severity.INFO,
                score=0.0,
                suggestion=ORPHAN_SUGGESTION,
            )

        best = max(h.score for h in related)
        severity = self.classify(best)
        if severity is Severity.HEALTHY and best >= self.options.healthy_threshold:
            return None

        return StalenessItem(
            chunk_id=doc.id,
            doc_path=doc.file_path,
            doc_section=section,
            start_line=doc.start_line,
            end_line=doc.end_line,
            severity=severity,
            score=best,
            related_code=[
                RelatedCode(path=h.chunk.file_path, symbol=h.chunk.symbol, similarity=h.score, chunk_id=h.chunk.id)
                for h in related
            ],
            suggestion=self.suggestion(severity, related),
        )

    def _check(self, path_filter: Optional[str]) -> StalenessReport:
        items: List[StalenessItem] = []
        checked = 0
        for entry in self.store.iter_entries(kind=ChunkKind.DOC):
            doc = entry.chunk
            if path_filter is not None and path_filter not in doc.file_path:
                continue
            if self.should_ignore(doc.file_path):
                continue
            checked += 1
            item = self.score_vector(doc, entry.vector)
            if item is not None:
                items.append(item)
        logger.debug("Checked %d doc chunks, %d reported", checked, len(items))
        return build_report(items)

    def check_all(self) -> StalenessReport:
        """Check every indexed documentation chunk."""
        return self._check(None)

    def check_path(self, path_filter: str) -> StalenessReport:
        """Check documentation chunks whose path contains `path_filter`."""
        return self._check(path_filter)

    def check_text(self, text: str, doc_path: str = "<text>") -> Optional[StalenessItem]:
        """
        Score an arbitrary documentation snippet that is not in the index.

        Raises:
            RuntimeError: If the linter was built without an embedder.
        """
        if self.embedder is None:
            raise RuntimeError("check_text needs an embedder")
        vector = self.embedder.embed(text)
        line_count = max(1, len(text.split("\n")))
        doc = Chunk(
            id=f"{doc_path}#1",
            text=text,
            kind=ChunkKind.DOC,
            file_path=doc_path,
            start_line=1,
            end_line=line_count,
        )
        return self.score_vector(doc, vector)
