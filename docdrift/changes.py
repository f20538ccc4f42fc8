"""Change detection for incremental indexing.

Two detectors supply the "changed files" list consumed by
`Indexer.index_incremental`:
  - ManifestChangeDetector compares content hashes with a manifest.json
    written after the previous pass.
  - GitChangeDetector asks git which files the last commit (or the staging
    area) touched.
"""

from __future__ import annotations

import json
import logging
import subprocess
from pathlib import Path
from typing import Dict, List

from .config import IndexOptions
from .ingest.loaders import read_text_file
from .ingest.scanner import relative_path, sha256_text

logger = logging.getLogger(__name__)


class ManifestChangeDetector:
    """
    Track file hashes between passes.

    Attributes:
        root: Workspace root.
        manifest_path: JSON file mapping relative path -> {"sha256": ...}.
    """

    def __init__(self, root: Path, manifest_path: Path, options: IndexOptions = None) -> None:
        self.root = root
        self.manifest_path = manifest_path
        self.options = options or IndexOptions()
        self.manifest: Dict[str, dict] = self._load()
        self._pending: Dict[str, dict] = {}

    def _load(self) -> Dict[str, dict]:
        if not self.manifest_path.exists():
            return {}
        try:
            data = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable manifest %s: %s", self.manifest_path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _hash(self, path: Path) -> str:
        content, _ = read_text_file(path, int(self.options.max_file_mb * 1024 * 1024))
        return sha256_text(content)

    def changed_files(self, files: List[Path]) -> List[Path]:
        """
        Return new or modified files, plus recorded files that disappeared.

        Unreadable files are reported as changed so the indexer can count them.
        """
        changed: List[Path] = []
        current: Dict[str, dict] = {}
        for p in files:
            rel = relative_path(self.root, p)
            try:
                digest = self._hash(p)
            except (OSError, ValueError):
                changed.append(p)
                continue
            current[rel] = {"sha256": digest}
            prev = self.manifest.get(rel)
            if not prev or prev.get("sha256") != digest:
                changed.append(p)

        for rel in sorted(set(self.manifest) - set(current)):
            changed.append(self.root / rel)

        self._pending = current
        return changed

    def forget(self, rel_paths: List[str]) -> None:
        """Leave failed files out of the next `record` so they count as changed again."""
        for rel in rel_paths:
            self._pending.pop(rel, None)

    def record(self) -> None:
        """Persist the state computed by the last `changed_files` call."""
        self.manifest = dict(self._pending)
        self.manifest_path.parent.mkdir(parents=True, exist_ok=True)
        self.manifest_path.write_text(json.dumps(self.manifest, indent=2, sort_keys=True), encoding="utf-8")


class GitChangeDetector:
    """Files changed according to `git diff`."""

    def __init__(self, root: Path, timeout: int = 5) -> None:
        self.root = root
        self.timeout = timeout

    def _diff(self, *args: str) -> List[str]:
        try:
            out = subprocess.run(
                ["git", "diff", "--name-only", *args],
                cwd=str(self.root),
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            ).stdout
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("git diff %s failed: %s", " ".join(args), e)
            return []
        return [line.strip() for line in out.splitlines() if line.strip()]

    def changed_files(self) -> List[Path]:
        names = self._diff("HEAD~1") or self._diff("--cached")
        return [self.root / n for n in names]
