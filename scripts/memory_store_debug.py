"""
Quick CLI helpers for inspecting a memory store.

Examples:
  # List collections in the configured database
  python scripts/memory_store_debug.py collections

  # Show one record with its embedding
  python scripts/memory_store_debug.py get my_collection some-key --embedding

  # Vector search with a literal query vector
  python scripts/memory_store_debug.py search my_collection "0.1,0.2,0.3" --top-k 5
"""

from __future__ import annotations

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from atlas_memory.config import Config
from atlas_memory.logging_utils import configure_logging
from atlas_memory.memory_store import MongoDBMemoryStore


app = typer.Typer(help="Debug utilities for memory stores.")
console = Console()


def _load_config(backend: Optional[str]) -> Config:
    cfg = Config()
    if backend:
        cfg.backend = backend
    cfg.validate()
    configure_logging(cfg.log_level)
    return cfg


def _parse_vector(raw: str) -> List[float]:
    try:
        return [float(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise typer.BadParameter("Vector must be a comma-separated list of numbers.")


def _preview(text: str, width: int = 50) -> str:
    return text[:width] + "..." if len(text) > width else text


async def _list_collections(cfg: Config) -> List[str]:
    async with MongoDBMemoryStore.from_config(cfg) as store:
        return [name async for name in store.get_collections()]


@app.command("collections")
def collections(
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="mongodb|inmemory"),
) -> None:
    """
    List the collections in the configured database.
    """
    cfg = _load_config(backend)
    names = asyncio.run(_list_collections(cfg))

    table = Table(title=f"Collections in '{cfg.mongodb_database_name}'")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    for idx, name in enumerate(names, start=1):
        table.add_row(str(idx), name)
    console.print(table)


@app.command("get")
def get(
    collection: str = typer.Argument(..., help="Collection name."),
    key: str = typer.Argument(..., help="Record key."),
    with_embedding: bool = typer.Option(False, "--embedding/--no-embedding", help="Fetch the embedding too."),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="mongodb|inmemory"),
) -> None:
    """
    Display a single record.
    """
    cfg = _load_config(backend)

    async def _get():
        async with MongoDBMemoryStore.from_config(cfg) as store:
            return await store.get(collection, key, with_embedding=with_embedding)

    record = asyncio.run(_get())
    if record is None:
        console.print(f"[yellow]No record with key '{key}' in '{collection}'.[/yellow]")
        raise typer.Exit(1)

    meta = record.metadata
    console.print(f"\n[bold cyan]Record {record.key}[/bold cyan]")
    console.print(f"  [yellow]Text:[/yellow] {_preview(meta.text, 100)}")
    console.print(f"  [yellow]Description:[/yellow] {meta.description}")
    console.print(f"  [yellow]Reference:[/yellow] {meta.is_reference} {meta.external_source_name}")
    console.print(f"  [yellow]Timestamp:[/yellow] {record.timestamp}")
    if with_embedding:
        console.print(f"  [yellow]Embedding shape:[/yellow] {record.embedding.shape}")
        console.print(f"  [yellow]First 5 values:[/yellow] {record.embedding[:5]}")


@app.command("search")
def search(
    collection: str = typer.Argument(..., help="Collection name."),
    vector: str = typer.Argument(..., help="Comma-separated query vector."),
    top_k: int = typer.Option(5, "--top-k", "-k", help="Number of results to return."),
    min_score: float = typer.Option(0.0, "--min-score", "-m", help="Minimum relevance score."),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="mongodb|inmemory"),
) -> None:
    """
    Run a vector search against the configured store.
    """
    cfg = _load_config(backend)
    query = _parse_vector(vector)

    async def _search():
        async with MongoDBMemoryStore.from_config(cfg) as store:
            return [
                match
                async for match in store.get_nearest_matches(
                    collection, query, limit=top_k, min_relevance_score=min_score
                )
            ]

    matches = asyncio.run(_search())

    table = Table(title=f"Top {len(matches)} results (backend={cfg.backend})")
    table.add_column("#", justify="right")
    table.add_column("Key", style="cyan")
    table.add_column("Score", style="yellow")
    table.add_column("Description", style="green", max_width=30)
    table.add_column("Text", overflow="fold", max_width=50)

    for idx, (record, score) in enumerate(matches, start=1):
        table.add_row(
            str(idx),
            record.key,
            f"{score:.4f}",
            _preview(record.metadata.description, 30),
            _preview(record.metadata.text),
        )

    console.print(table)


@app.command("drop")
def drop(
    collection: str = typer.Argument(..., help="Collection to drop."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
    backend: Optional[str] = typer.Option(None, "--backend", "-b", help="mongodb|inmemory"),
) -> None:
    """
    Drop a collection. Dropping a missing collection does nothing.
    """
    cfg = _load_config(backend)
    if not yes:
        typer.confirm(f"Drop collection '{collection}'?", abort=True)

    async def _drop():
        async with MongoDBMemoryStore.from_config(cfg) as store:
            await store.delete_collection(collection)

    asyncio.run(_drop())
    console.print(f"[green]Dropped collection:[/green] {collection}")


if __name__ == "__main__":
    app()
