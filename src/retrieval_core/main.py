import logging
from pathlib import Path
from typing import Annotated, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from typer import Argument, Exit, Option, Typer

from .config import Backend, duckdb_path, resolve_index_dir
from .engine import RetrievalEngine
from .errors import RetrievalError
from .search import SearchHit, format_context
from .storage import DuckDBIndexStore, IndexBackend, JsonIndexStore

app = Typer(help="Train and query hash-embedding retrieval collections.")
console = Console()


@app.callback()
def configure(
    verbose: Annotated[
        bool,
        Option("--verbose", "-v", help="Show engine log output."),
    ] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def open_backend(index_dir: str | None, backend: Backend) -> IndexBackend:
    resolved = resolve_index_dir(index_dir)
    if backend == "duckdb":
        return DuckDBIndexStore(str(duckdb_path(resolved)))
    return JsonIndexStore(resolved)


def _close(backend: IndexBackend) -> None:
    if isinstance(backend, DuckDBIndexStore):
        backend.close()


def _fail(exc: Exception) -> None:
    console.print(f"[bold red]Error:[/] {exc}")
    raise Exit(code=1)


def _results_table(hits: list[SearchHit]) -> Table:
    table = Table(title="Search Results", show_lines=True)
    table.add_column("#", justify="right")
    table.add_column("Seq", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Passage")
    for rank, hit in enumerate(hits, start=1):
        table.add_row(str(rank), str(hit.sequence_id), f"{hit.score:.3f}", hit.text)
    return table


IndexDirOption = Annotated[
    Optional[str],
    Option("--index-dir", help="Directory holding persisted collections."),
]
BackendOption = Annotated[
    str,
    Option("--backend", "-b", help="Persistence backend: json or duckdb."),
]


def _backend_name(raw: str) -> Backend:
    if raw not in ("json", "duckdb"):
        _fail(ValueError(f"Unknown backend {raw!r}; expected json or duckdb"))
    return "duckdb" if raw == "duckdb" else "json"


@app.command()
def train(
    collection_id: Annotated[str, Argument(help="Collection to (re)build.")],
    source: Annotated[Path, Argument(help="UTF-8 text file to train on.")],
    index_dir: IndexDirOption = None,
    backend: BackendOption = "json",
) -> None:
    """Chunk, embed and persist a text file as a collection."""
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _fail(exc)

    store = open_backend(index_dir, _backend_name(backend))
    engine = RetrievalEngine()
    try:
        result = engine.train(collection_id, text)
        engine.persist(collection_id, store)
    except RetrievalError as exc:
        _fail(exc)
    finally:
        _close(store)

    content = (
        f"**Collection:** `{result.collection_id}`\n\n"
        f"**Documents Indexed:** {result.documents_count}\n\n"
        f"**Average Chunk Length:** {result.avg_chunk_length} words\n\n"
        f"**Skipped Chunks:** {result.skipped_chunks}"
    )
    console.print(
        Panel(
            Markdown(content),
            title_align="left",
            title="Training Complete",
            border_style="bold green",
        )
    )


@app.command()
def search(
    collection_id: Annotated[str, Argument(help="Collection to query.")],
    query: Annotated[str, Argument(help="Query text.")],
    top_k: Annotated[int, Option("--top-k", "-k", help="Maximum results.")] = 5,
    min_score: Annotated[
        Optional[float],
        Option("--min-score", help="Drop results scoring at or below this value."),
    ] = None,
    context: Annotated[
        bool,
        Option("--context", help="Print results as prompt context blocks."),
    ] = False,
    index_dir: IndexDirOption = None,
    backend: BackendOption = "json",
) -> None:
    """Rank a collection's passages against a query."""
    store = open_backend(index_dir, _backend_name(backend))
    engine = RetrievalEngine()
    try:
        engine.restore(collection_id, store)
        hits = engine.search(collection_id, query, top_k)
    except RetrievalError as exc:
        _fail(exc)
    finally:
        _close(store)

    if min_score is not None:
        hits = [hit for hit in hits if hit.score > min_score]
    if not hits:
        console.print("[yellow]No matching passages.[/]")
        return
    if context:
        console.print(format_context(hits), markup=False, highlight=False)
        return
    console.print(_results_table(hits))


@app.command()
def status(
    collection_id: Annotated[str, Argument(help="Collection to inspect.")],
    index_dir: IndexDirOption = None,
    backend: BackendOption = "json",
) -> None:
    """Show whether a collection is trained and how many documents it holds."""
    store = open_backend(index_dir, _backend_name(backend))
    engine = RetrievalEngine()
    try:
        if collection_id in store.list_collections():
            engine.restore(collection_id, store)
    except RetrievalError as exc:
        _fail(exc)
    finally:
        _close(store)

    info = engine.status(collection_id)
    console.print(f"Collection: {info.collection_id}")
    console.print(f"Exists: {info.exists}")
    console.print(f"Documents: {info.document_count}")


@app.command("list")
def list_collections(
    index_dir: IndexDirOption = None,
    backend: BackendOption = "json",
) -> None:
    """List persisted collections."""
    store = open_backend(index_dir, _backend_name(backend))
    try:
        collection_ids = store.list_collections()
    finally:
        _close(store)

    if not collection_ids:
        console.print("[yellow]No collections found.[/]")
        return
    for collection_id in collection_ids:
        console.print(collection_id)


@app.command()
def drop(
    collection_id: Annotated[str, Argument(help="Collection to delete.")],
    index_dir: IndexDirOption = None,
    backend: BackendOption = "json",
) -> None:
    """Delete a persisted collection."""
    store = open_backend(index_dir, _backend_name(backend))
    try:
        removed = store.delete_collection(collection_id)
    finally:
        _close(store)

    if removed:
        console.print(f"Dropped {collection_id}")
    else:
        console.print(f"[yellow]No collection named {collection_id}.[/]")
