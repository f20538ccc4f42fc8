# docdrift/cli_actions.py
"""
Reusable CLI actions.

The main CLI (`docdrift.cli`) calls these functions. They wire the config,
embedder, vector store, indexer and linter together and render results
with rich.
"""

from __future__ import annotations

import datetime
import json
import signal
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from .changes import GitChangeDetector, ManifestChangeDetector
from .chunking.base import ChunkKind
from .config import (
    BackendOptions,
    Settings,
    StoreLayout,
    Workspace,
    default_store_dir,
    load_settings,
)
from .embeddings import make_embedder
from .errors import DocdriftError
from .indexer import CancellationToken, Indexer, IndexStats
from .ingest.scanner import list_candidate_files
from .linter import Severity, StalenessLinter, StalenessReport
from .vectordb.sqlite_numpy import SQLiteNumpyVectorStore

console = Console()

DEFAULT_EMBED_MODELS = {"sbert": "all-MiniLM-L6-v2", "ollama": "nomic-embed-text"}

SEVERITY_STYLES = {
    Severity.CRITICAL: "bold red",
    Severity.WARNING: "yellow",
    Severity.HEALTHY: "green",
    Severity.INFO: "dim",
}


def _workspace_and_layout(path: str, name: Optional[str], local_store: bool) -> tuple[Workspace, StoreLayout, Path]:
    """
    Build a workspace model and its store layout.

    Args:
        path: Workspace root path (string).
        name: Optional friendly name.
        local_store: Storage mode.

    Returns:
        (workspace, layout, workspace_store_dir)
    """
    ws = Workspace.from_path(path, name=name)
    layout = StoreLayout(base_dir=default_store_dir(local_store=local_store, workspace_root=ws.root))
    wdir = layout.ensure(ws)
    return ws, layout, wdir


def write_workspace_json(wdir: Path, ws: Workspace, backend: BackendOptions) -> None:
    """
    Write a small JSON descriptor for the workspace index.

    Args:
        wdir: Workspace store directory.
        ws: Workspace metadata.
        backend: Backend options used to build the index.
    """
    data = {
        "name": ws.name,
        "root": str(ws.root),
        "workspace_id": ws.id,
        "indexed_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "backend": asdict(backend),
    }
    (wdir / "workspace.json").write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_workspace_backend(wdir: Path) -> Optional[BackendOptions]:
    """Backend recorded by the last index pass, if any."""
    p = wdir / "workspace.json"
    if not p.exists():
        return None
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
        return BackendOptions(**data["backend"])
    except (OSError, ValueError, KeyError, TypeError):
        return None


def _resolve_backend(
    settings: Settings,
    wdir: Path,
    embedder: Optional[str],
    embed_model: Optional[str],
    ollama_host: Optional[str],
) -> BackendOptions:
    """
    Merge backend choices: CLI flags > workspace.json > settings.json.

    A query must embed with the backend that built the index, otherwise
    vector dimensions will not match.
    """
    backend = read_workspace_backend(wdir) or settings.backend
    if embedder and embedder != backend.embedder:
        backend.embedder = embedder
        backend.embed_model = DEFAULT_EMBED_MODELS.get(embedder, backend.embed_model)
    if embed_model:
        backend.embed_model = embed_model
    if ollama_host:
        backend.ollama_host = ollama_host
    return backend


def _print_index_stats(ws: Workspace, wdir: Path, stats: IndexStats, store: SQLiteNumpyVectorStore) -> None:
    console.print(f"\n[bold green]Indexed workspace:[/bold green] {ws.root}")
    console.print(f"Store: {wdir}")
    console.print(f"Files processed: {stats.files}")
    console.print(f"Chunks written (this run): {stats.indexed}")
    console.print(f"Skipped files: {stats.skipped}")
    if stats.removed:
        console.print(f"Pruned files: {stats.removed}")
    if stats.errors:
        console.print(f"[red]Errors: {stats.errors}[/red]")
        for rel in stats.failed[:10]:
            console.print(f"  [red]-[/red] {rel}")
    if stats.cancelled:
        console.print("[yellow]Cancelled: remaining files were not indexed.[/yellow]")
    console.print(f"Total chunks in index: {store.get_item_count()}")


def do_index(
    path: str,
    local_store: bool,
    incremental: bool,
    use_git: bool,
    embedder: Optional[str],
    embed_model: Optional[str],
    ollama_host: Optional[str],
    name: Optional[str] = None,
) -> IndexStats:
    """
    Index or update a workspace folder with progress bars.

    Args:
        path: Workspace root folder path.
        local_store: Store in <workspace>/.docdrift if True, else ~/.docdrift.
        incremental: Only re-index files that changed since the last pass.
        use_git: With `incremental`, take the changed files from `git diff`.
        embedder: Embedding backend ("sbert" or "ollama").
        embed_model: Embedding model name.
        ollama_host: Ollama base URL.
        name: Optional friendly workspace name.
    """
    ws, layout, wdir = _workspace_and_layout(path, name, local_store)
    settings = load_settings(ws.root)
    backend = _resolve_backend(settings, wdir, embedder, embed_model, ollama_host)

    store = SQLiteNumpyVectorStore(store_dir=wdir)
    indexer = Indexer(ws.root, store, make_embedder(backend), settings.index)
    manifest = ManifestChangeDetector(ws.root, wdir / "manifest.json", settings.index)

    console.print("[dim]Scanning workspace for candidate files...[/dim]")
    candidates = list_candidate_files(ws.root, settings.index)
    if incremental and use_git:
        wanted = set(candidates)
        files = [p for p in GitChangeDetector(ws.root).changed_files() if p in wanted or not p.exists()]
    elif incremental:
        files = manifest.changed_files(candidates)
    else:
        files = candidates

    token = CancellationToken()
    previous = signal.signal(signal.SIGINT, lambda *_: token.cancel())

    progress = Progress(
        SpinnerColumn(),
        TextColumn("{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
    )
    try:
        with progress:
            task = progress.add_task("Indexing files", total=len(files))

            def report(done: int, total: int) -> None:
                progress.update(task, completed=done, total=total)

            if incremental:
                stats = indexer.index_incremental(files, progress=report, cancel=token)
            else:
                stats = indexer.index_workspace(files, progress=report, cancel=token)
    finally:
        signal.signal(signal.SIGINT, previous)

    if not stats.cancelled:
        if not (incremental and use_git):
            if not incremental:
                manifest.changed_files(candidates)
            manifest.forget(stats.failed)
            manifest.record()
        write_workspace_json(wdir, ws, backend)

    _print_index_stats(ws, wdir, stats, store)
    store.close()
    return stats


def render_report(report: StalenessReport) -> None:
    """Print a staleness report as a rich table."""
    style = SEVERITY_STYLES[report.overall]
    console.print(f"\n[bold]Documentation health:[/bold] [{style}]{report.overall.value}[/{style}]  score={report.score:.2f}")
    s = report.summary
    console.print(
        f"{s['total']} item(s): {s['critical']} critical, {s['warning']} warning, "
        f"{s['healthy']} minor drift, {s['info']} orphaned"
    )
    if not report.items:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Severity")
    table.add_column("Score", justify="right")
    table.add_column("Doc")
    table.add_column("Suggestion")
    for item in report.items:
        st = SEVERITY_STYLES[item.severity]
        table.add_row(
            f"[{st}]{item.severity.value}[/{st}]",
            f"{item.score:.3f}",
            f"{item.doc_path}:{item.start_line}-{item.end_line}\n[dim]{item.doc_section}[/dim]",
            item.suggestion,
        )
    console.print(table)


def do_check(
    path: str,
    local_store: bool,
    path_filter: Optional[str],
    as_json: bool,
    fail_on: Optional[str],
) -> int:
    """
    Run the staleness linter over an indexed workspace.

    Returns:
        Process exit code: 1 when `fail_on` matches the report, else 0.
    """
    ws, layout, wdir = _workspace_and_layout(path, name=None, local_store=local_store)
    settings = load_settings(ws.root)
    store = SQLiteNumpyVectorStore(store_dir=wdir)
    linter = StalenessLinter(store, settings.staleness)

    report = linter.check_path(path_filter) if path_filter else linter.check_all()
    store.close()

    if as_json:
        typer.echo(json.dumps(report.to_dict(), indent=2))
    else:
        render_report(report)

    if fail_on == Severity.CRITICAL.value and report.summary["critical"] > 0:
        return 1
    if fail_on == Severity.WARNING.value and report.overall in (Severity.CRITICAL, Severity.WARNING):
        return 1
    return 0


def do_query(
    path: str,
    text: str,
    local_store: bool,
    kind: Optional[str],
    top_k: int,
    min_score: float,
    embedder: Optional[str] = None,
    embed_model: Optional[str] = None,
    ollama_host: Optional[str] = None,
) -> None:
    """
    Semantic search over an indexed workspace.

    Args:
        path: Workspace root path.
        text: Query text.
        local_store: Storage mode.
        kind: "code", "doc" or None for both.
        top_k: Maximum number of hits.
        min_score: Minimum similarity.
    """
    ws, layout, wdir = _workspace_and_layout(path, name=None, local_store=local_store)
    settings = load_settings(ws.root)
    backend = _resolve_backend(settings, wdir, embedder, embed_model, ollama_host)
    store = SQLiteNumpyVectorStore(store_dir=wdir)
    try:
        qvec = make_embedder(backend).embed(text)
        hits = store.search(qvec, top_k=top_k, kind=ChunkKind(kind) if kind else None, min_score=min_score)
    except DocdriftError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        store.close()

    if not hits:
        console.print("[yellow]No matching chunks found in the index.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Kind")
    table.add_column("Source")
    table.add_column("Symbol")
    for h in hits:
        table.add_row(
            f"{h.score:.3f}",
            h.chunk.kind.value,
            f"{h.chunk.file_path}:{h.chunk.start_line}-{h.chunk.end_line}",
            h.chunk.symbol or "",
        )
    console.print(table)


def do_status(path: str, local_store: bool) -> None:
    """
    Show vector index statistics for a workspace.

    Args:
        path: Workspace root path.
        local_store: Storage mode.
    """
    ws, layout, wdir = _workspace_and_layout(path, name=None, local_store=local_store)
    store = SQLiteNumpyVectorStore(store_dir=wdir)
    stats = store.stats()
    console.print(f"Workspace: {ws.root}")
    for k, v in stats.items():
        console.print(f"- {k}: {v}")
    backend = read_workspace_backend(wdir)
    if backend is not None:
        console.print(f"- embedder: {backend.embedder} ({backend.embed_model})")
    store.close()


def do_reset(path: str, local_store: bool) -> None:
    """
    Delete index data and manifest for a workspace.

    Args:
        path: Workspace root.
        local_store: Storage mode.
    """
    ws, layout, wdir = _workspace_and_layout(path, name=None, local_store=local_store)
    store = SQLiteNumpyVectorStore(store_dir=wdir)
    store.clear()
    store.close()

    for leftover in ("manifest.json", "workspace.json"):
        (wdir / leftover).unlink(missing_ok=True)

    console.print(f"[bold yellow]Index reset for workspace[/bold yellow] {ws.root}")
