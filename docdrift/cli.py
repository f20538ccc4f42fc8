"""docdrift CLI.

Commands:
  - index: scan a workspace folder and build/update the embeddings index
  - check: report documentation sections that drifted from the code
  - query: semantic search over the index
  - status: show index stats
  - reset: delete index
"""

from __future__ import annotations

import logging
from typing import Optional

import typer

from .cli_actions import do_check, do_index, do_query, do_reset, do_status

app = typer.Typer(add_completion=False, help="docdrift: find documentation that no longer matches the code.")


@app.callback()
def main_options(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """Global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@app.command()
def index(
    path: str = typer.Argument(..., help="Workspace folder path to index."),
    name: Optional[str] = typer.Option(None, "--name", help="Optional friendly workspace name."),
    local_store: bool = typer.Option(False, "--local-store", help="Store index inside workspace under .docdrift/"),
    incremental: bool = typer.Option(False, "--incremental", help="Only re-index files changed since the last pass."),
    git: bool = typer.Option(False, "--git", help="With --incremental, take changed files from `git diff`."),
    embedder: Optional[str] = typer.Option(None, "--embedder", help="Embedding backend: sbert|ollama"),
    embed_model: Optional[str] = typer.Option(None, "--embed-model", help="Embedding model name."),
    ollama_host: Optional[str] = typer.Option(None, "--ollama-host", help="Ollama host URL."),
):
    """Index or update a workspace folder."""
    stats = do_index(
        path=path,
        name=name,
        local_store=local_store,
        incremental=incremental,
        use_git=git,
        embedder=embedder,
        embed_model=embed_model,
        ollama_host=ollama_host,
    )
    if stats.errors:
        raise typer.Exit(code=1)


@app.command()
def check(
    path: str = typer.Argument(..., help="Workspace folder path (must be indexed first)."),
    path_filter: Optional[str] = typer.Option(None, "--filter", help="Only check docs whose path contains this."),
    local_store: bool = typer.Option(False, "--local-store", help="Use local .docdrift/ store inside workspace."),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
    fail_on: Optional[str] = typer.Option(None, "--fail-on", help="Exit 1 on: critical|warning"),
):
    """Check indexed documentation for staleness."""
    if fail_on not in (None, "critical", "warning"):
        raise typer.BadParameter("--fail-on must be critical or warning")
    code = do_check(path=path, local_store=local_store, path_filter=path_filter, as_json=as_json, fail_on=fail_on)
    if code:
        raise typer.Exit(code=code)


@app.command()
def query(
    path: str = typer.Argument(..., help="Workspace folder path (must be indexed first)."),
    text: str = typer.Argument(..., help="Text to search for."),
    local_store: bool = typer.Option(False, "--local-store", help="Use local .docdrift/ store inside workspace."),
    kind: Optional[str] = typer.Option(None, "--kind", help="Restrict to code|doc chunks."),
    top_k: int = typer.Option(10, "--top-k", help="How many chunks to return."),
    min_score: float = typer.Option(0.0, "--min-score", help="Minimum cosine similarity."),
    embedder: Optional[str] = typer.Option(None, "--embedder", help="Embedding backend: sbert|ollama"),
    embed_model: Optional[str] = typer.Option(None, "--embed-model", help="Embedding model name."),
    ollama_host: Optional[str] = typer.Option(None, "--ollama-host", help="Ollama host URL."),
):
    """Semantic search over an indexed workspace."""
    if kind not in (None, "code", "doc"):
        raise typer.BadParameter("--kind must be code or doc")
    do_query(
        path=path,
        text=text,
        local_store=local_store,
        kind=kind,
        top_k=top_k,
        min_score=min_score,
        embedder=embedder,
        embed_model=embed_model,
        ollama_host=ollama_host,
    )


@app.command()
def status(
    path: str = typer.Argument(..., help="Workspace folder path."),
    local_store: bool = typer.Option(False, "--local-store", help="Use local .docdrift/ store inside workspace."),
):
    """Show index stats for a workspace."""
    do_status(path=path, local_store=local_store)


@app.command()
def reset(
    path: str = typer.Argument(..., help="Workspace folder path."),
    local_store: bool = typer.Option(False, "--local-store", help="Use local .docdrift/ store inside workspace."),
):
    """Reset (delete) index data for a workspace."""
    do_reset(path=path, local_store=local_store)


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
