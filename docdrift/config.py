"""Configuration models and path helpers.

This module centralizes:
  - Workspace identification
  - Storage layout
  - Default ignore patterns / file extensions
  - Index, staleness and backend options

Terminology:
  - Workspace: a folder you want docdrift to watch.
  - Index: local data produced by docdrift (chunks + embeddings).
  - Chunk: a fragment of a file (a declaration, a Markdown section or a line window).
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)


CODE_EXTENSIONS: Dict[str, str] = {
    "py": "python",
    "js": "javascript",
    "jsx": "javascript",
    "mjs": "javascript",
    "cjs": "javascript",
    "ts": "typescript",
    "tsx": "tsx",
}

DOC_EXTENSIONS: List[str] = ["md", "markdown"]

DEFAULT_INCLUDE_EXT: List[str] = list(CODE_EXTENSIONS) + DOC_EXTENSIONS

DEFAULT_EXCLUDE_GLOBS: List[str] = [
    "**/node_modules/**", "**/dist/**", "**/build/**", "**/out/**",
    "**/.venv/**", "**/venv/**", "**/__pycache__/**", "**/.pytest_cache/**",
    "**/.git/**", "**/.docdrift/**",
    "**/*.min.js", "**/*.map",
]

DEFAULT_IGNORE_DOCS: List[str] = ["docs/gallery/**", "CHANGELOG.md"]

STORE_DIRNAME = ".docdrift"
DEFAULT_SETTINGS_FILE = Path(STORE_DIRNAME) / "settings.json"


@dataclass(frozen=True)
class Workspace:
    """Represents a folder to index.

    Attributes:
        root: Absolute, normalized path to the workspace root.
        name: Optional friendly name for display.
    """

    root: Path
    name: Optional[str] = None

    @staticmethod
    def from_path(path: str, name: Optional[str] = None) -> "Workspace":
        """Create a workspace from a user-provided path."""
        p = Path(path).expanduser().resolve()
        return Workspace(root=p, name=name)

    @property
    def id(self) -> str:
        """Stable workspace id derived from absolute path."""
        h = hashlib.sha1(str(self.root).encode("utf-8")).hexdigest()
        return h[:16]


@dataclass
class StoreLayout:
    """Defines where docdrift stores its local index data."""

    base_dir: Path

    def workspace_dir(self, ws: Workspace) -> Path:
        """Return the directory holding data for a workspace."""
        return self.base_dir / "workspaces" / ws.id

    def ensure(self, ws: Workspace) -> Path:
        """Create required directories and return workspace dir."""
        wdir = self.workspace_dir(ws)
        wdir.mkdir(parents=True, exist_ok=True)
        return wdir


def default_store_dir(local_store: bool, workspace_root: Path) -> Path:
    """Compute default storage directory.

    Args:
        local_store: If True, store the index inside the workspace under `.docdrift/`.
            If False, store it under the user's home directory `~/.docdrift/`.
        workspace_root: Workspace path.

    Returns:
        A path to the storage root directory.
    """
    if local_store:
        return workspace_root / STORE_DIRNAME
    return Path.home() / STORE_DIRNAME


@dataclass
class IndexOptions:
    """Indexing options for scanning and chunking."""

    include_ext: List[str] = field(default_factory=lambda: list(DEFAULT_INCLUDE_EXT))
    exclude_globs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_GLOBS))
    max_file_mb: float = 2.0
    follow_symlinks: bool = False
    use_gitignore: bool = True
    chunk_lines: int = 500
    chunk_overlap: int = 50
    min_chunk_chars: int = 10
    batch_size: int = 10
    concurrency: int = 10
    embed_batch_size: int = 32


@dataclass
class StalenessOptions:
    """Thresholds and filters for the staleness linter.

    Attributes:
        critical: Scores below this are critical.
        warning: Scores below this (and >= critical) are warnings.
        healthy_threshold: Healthy items scoring at or above this are dropped.
        top_k: Code neighbours fetched per doc chunk.
        min_score: Minimum similarity for a code chunk to count as related.
        ignore_paths: .gitignore-style patterns of doc paths to skip.
    """

    critical: float = 0.5
    warning: float = 0.7
    healthy_threshold: float = 0.85
    top_k: int = 5
    min_score: float = 0.3
    ignore_paths: List[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_DOCS))


@dataclass
class BackendOptions:
    """Backend selection for embeddings."""

    embedder: str = "sbert"  # "sbert" | "ollama"
    embed_model: str = "all-MiniLM-L6-v2"
    ollama_host: str = "http://localhost:11434"
    max_chars: int = 512


@dataclass
class Settings:
    """All options loaded for a workspace."""

    index: IndexOptions = field(default_factory=IndexOptions)
    staleness: StalenessOptions = field(default_factory=StalenessOptions)
    backend: BackendOptions = field(default_factory=BackendOptions)


def _apply(target: Any, payload: Any) -> None:
    """Copy recognised keys from `payload` onto a dataclass, keeping types."""
    if not isinstance(payload, dict):
        return
    for key, value in payload.items():
        if not hasattr(target, key):
            logger.debug("Ignoring unknown setting %r", key)
            continue
        current = getattr(target, key)
        if isinstance(current, bool):
            if isinstance(value, bool):
                setattr(target, key, value)
        elif isinstance(current, (int, float)):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                setattr(target, key, type(current)(value))
        elif isinstance(current, list):
            if isinstance(value, list) and all(isinstance(x, str) for x in value):
                setattr(target, key, list(value))
        elif isinstance(current, str):
            if isinstance(value, str):
                setattr(target, key, value)


def load_settings(workspace_root: Path) -> Settings:
    """Load options from .docdrift/settings.json if present.

    The file may hold `index`, `staleness` and `backend` objects; unknown
    keys and wrongly typed values are ignored.

    Args:
        workspace_root: Workspace root directory.

    Returns:
        Settings with defaults overridden by any settings file values.
    """
    settings = Settings()
    settings_path = workspace_root / DEFAULT_SETTINGS_FILE
    if not settings_path.exists():
        return settings

    try:
        payload = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", settings_path, e)
        return settings

    if isinstance(payload, dict):
        _apply(settings.index, payload.get("index"))
        _apply(settings.staleness, payload.get("staleness"))
        _apply(settings.backend, payload.get("backend"))

    return settings
