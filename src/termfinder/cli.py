"""Command line interface for TermFinder."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from termfinder.config import AppConfig
from termfinder.index.indexer import Indexer
from termfinder.index.search import Searcher
from termfinder.index.storage import SQLiteTermStore
from termfinder.utils.names import display_name
from termfinder.utils.text import Normalizer, get_normalizer


console = Console()
app = typer.Typer(help="TermFinder - TF-IDF search for local text files")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _ensure_db_parent(db_path: Path) -> None:
    db_path.parent.mkdir(parents=True, exist_ok=True)


def _resolve_db(db: Optional[Path]) -> Path:
    config = AppConfig(db_path=db if db is not None else AppConfig().db_path)
    return config.resolve_db_path(Path.cwd())


def _load_normalizer(name: str) -> Normalizer:
    try:
        return get_normalizer(name)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _open_store(db_path: Path) -> SQLiteTermStore:
    try:
        return SQLiteTermStore(db_path)
    except sqlite3.Error as exc:
        console.print(f"[red]Cannot open database {db_path}: {exc}[/red]")
        raise typer.Exit(code=1) from exc


@app.command()
def index(
    root: Path = typer.Argument(..., help="Directory with documents to index."),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    normalizer: str = typer.Option(AppConfig().normalizer, help="Term normalizer: identity or stem"),
    workers: int = typer.Option(AppConfig().workers, help="Number of indexing workers"),
    ext: Optional[List[str]] = typer.Option(None, "--ext", help="Only index files with this suffix"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Index every file under a directory."""
    _setup_logging(verbose)
    try:
        config = AppConfig(
            db_path=db if db is not None else AppConfig().db_path,
            normalizer=normalizer,
            workers=workers,
            extensions=tuple(ext or ()),
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--workers") from exc
    term_normalizer = _load_normalizer(config.normalizer)

    if not root.is_dir():
        raise typer.BadParameter(f"Not a directory: {root}")

    resolved_db = config.resolve_db_path(Path.cwd())
    _ensure_db_parent(resolved_db)
    store = _open_store(resolved_db)
    indexer = Indexer(
        store, term_normalizer, workers=config.workers, extensions=config.extensions
    )

    console.print(f"Indexing [bold]{root}[/bold] into [bold]{resolved_db}[/bold]...")
    try:
        report = indexer.index(root)
    finally:
        store.close()

    if not report.discovered:
        console.print("[yellow]No files found.[/yellow]")
        return

    console.print(
        f"Indexed: {report.indexed}, failed: {len(report.failed)}, skipped: {report.skipped}"
    )
    if not report.corpus_saved:
        console.print("[red]Corpus term table could not be saved.[/red]")
    if report.failed:
        console.print("[red]The following files could not be indexed:[/red]")
        for path in report.failed:
            console.print(f"  - {path}")


@app.command()
def search(
    terms: List[str] = typer.Argument(..., help="Query terms"),
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    normalizer: Optional[str] = typer.Option(
        None, help="Term normalizer, defaults to the one used for indexing"
    ),
    root: Optional[str] = typer.Option(None, "--root", help="Prefix to strip from results"),
    limit: int = typer.Option(20, help="Number of results to display"),
    scores: bool = typer.Option(False, "--scores", help="Show combined scores for multi-term queries"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Rank documents matching all query terms."""
    _setup_logging(verbose)
    resolved_db = _resolve_db(db)

    if not resolved_db.exists():
        raise typer.BadParameter(f"Database not found: {resolved_db}")

    store = _open_store(resolved_db)
    try:
        indexed_with = store.get_meta("normalizer")
        name = normalizer or indexed_with or AppConfig().normalizer
        if indexed_with and name != indexed_with:
            console.print(
                f"[yellow]Index was built with the '{indexed_with}' normalizer, "
                f"querying with '{name}'.[/yellow]"
            )
        searcher = Searcher(store, _load_normalizer(name))

        if len(terms) == 1:
            results = searcher.score(terms[0])
            if not results:
                console.print("[yellow]No matches found.[/yellow]")
                return
            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("Rank")
            table.add_column("Score")
            table.add_column("Document")
            for rank, result in enumerate(results[:limit], start=1):
                table.add_row(str(rank), f"{result.score:.4f}", display_name(result.document, root))
            console.print(table)
            return

        ranked = searcher.rank_many(terms)
        if not ranked:
            console.print("[yellow]No matches found.[/yellow]")
            return
        console.print(f"Number of results: {len(ranked)}")
        for rank, result in enumerate(ranked[:limit], start=1):
            line = f"  {rank}. {display_name(result.document, root)}"
            if scores:
                line += f" ({result.score:.4f})"
            console.print(line)
    finally:
        store.close()


@app.command()
def stats(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
    limit: int = typer.Option(10, help="Number of top terms to display"),
) -> None:
    """Show corpus-wide term statistics."""
    resolved_db = _resolve_db(db)
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing indexed yet.[/yellow]")
        return

    store = _open_store(resolved_db)
    try:
        console.print(
            f"Documents: {store.document_count()}, distinct terms: {store.corpus_term_count()}"
        )
        top = store.top_terms(limit)
    finally:
        store.close()

    if not top:
        return
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Term")
    table.add_column("Frequency")
    for term, frequency in top:
        table.add_row(term, str(frequency))
    console.print(table)


@app.command()
def migrate(
    db: Path = typer.Option(None, "--db", help="SQLite database path"),
) -> None:
    """Import an index written with one table per document."""
    resolved_db = _resolve_db(db)
    if not resolved_db.exists():
        console.print("[yellow]Database not found, nothing to migrate.[/yellow]")
        return

    store = _open_store(resolved_db)
    try:
        migrated = store.migrate_legacy_tables()
    finally:
        store.close()
    console.print(f"Migrated {migrated} legacy documents.")
