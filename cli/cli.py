"""CLI for the swim menu generator.

Developer CLI that runs the same generation pipeline as the HTTP API against
the configured database, plus history lookup and export helpers.
"""

import asyncio
import json
import os
from pathlib import Path

import typer
import uvicorn
from loguru import logger
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table

from swim_menu.config.settings import settings
from swim_menu.core.logger import setup_logger
from swim_menu.db.menu_repository import SqlMenuStore
from swim_menu.db.session import init_db
from swim_menu.menus.errors import InvalidMenuResponseError, MenuGenerationError
from swim_menu.menus.export import menu_to_csv, menu_to_text
from swim_menu.menus.service import MenuGenerator
from swim_menu.menus.types import GeneratedMenu, GenerationRequest, GenerationResult, LoadLevel

# Initialize Rich console for output
console = Console()

# Initialize Typer app
app = typer.Typer(
    name="swim-menu",
    help="Swim Menu CLI - generate and inspect swim training menus",
    add_completion=False,
)

DEFAULT_HOST = os.getenv("SERVER_HOST", "127.0.0.1")


def _setup_logging(debug: bool = False) -> None:
    setup_logger(
        level="DEBUG" if debug else settings.log_level,
        log_file=settings.log_file or None,
        json_logs=settings.log_json,
    )


def _write_file_sync(file_path: Path, content: str) -> None:
    """Write file synchronously (acceptable for CLI)."""
    file_path.write_text(content, encoding="utf-8")


def _render_menu(result: GenerationResult, duration: int) -> None:
    menu = result.menu
    table = Table(title=f"{menu.title} ({menu.total_time}/{duration} min)")
    table.add_column("Section", style="cyan")
    table.add_column("Description")
    table.add_column("Distance", justify="right")
    table.add_column("Sets", justify="right")
    table.add_column("Circle", justify="right")
    table.add_column("Time", justify="right")

    for section in menu.sections:
        for item in section.items:
            table.add_row(section.name, item.description, str(item.distance), str(item.sets), item.circle, str(item.time))

    console.print(table)
    if not result.within_duration:
        console.print(f"[yellow]Menu could not be trimmed below {duration} min ({menu.total_time} min)[/yellow]")
    if not result.saved:
        console.print("[yellow]Menu was generated but could not be saved[/yellow]")


@app.command()
def server(
    host: str = typer.Option(DEFAULT_HOST, "--host", "-h", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload"),
) -> None:
    """Run the FastAPI server."""
    logger.info(f"Starting FastAPI server on {host}:{port} (reload={reload})")
    uvicorn.run("swim_menu.main:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_db_command() -> None:
    """Create the menu tables if they do not exist."""
    _setup_logging()
    try:
        init_db()
    except Exception as e:
        console.print(f"[bold red]✗ Database initialization failed:[/bold red] {e}")
        logger.exception("Database initialization failed")
        raise typer.Exit(code=1) from e
    console.print("[bold green]✓ Database tables ready[/bold green]")


@app.command()
def generate(
    duration: int = typer.Option(..., "--duration", "-d", help="Target duration in minutes"),
    load: list[LoadLevel] = typer.Option([LoadLevel.MEDIUM], "--load", "-l", help="Load level (repeatable)"),
    model: str = typer.Option("openai", "--model", "-m", help="AI provider: openai, google or anthropic"),
    api_key: str | None = typer.Option(None, "--api-key", envvar="SWIM_MENU_API_KEY", help="Provider API key"),
    notes: str | None = typer.Option(None, "--notes", "-n", help="Free-form notes for the menu"),
    use_rag: bool = typer.Option(False, "--rag/--no-rag", help="Use similar stored menus as context"),
    openai_api_key: str | None = typer.Option(None, "--openai-api-key", help="OpenAI key for retrieval embeddings"),
    output_file: str | None = typer.Option(None, "--output", "-o", help="Write the menu JSON to file"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Generate a training menu and store it."""
    _setup_logging(debug)

    credentials = api_key or (settings.openai_api_key if model == "openai" else "")
    request = GenerationRequest(
        load_levels=load,
        duration=duration,
        notes=notes,
        model=model,
        credentials=credentials,
        use_retrieval=use_rag,
        retrieval_credentials=openai_api_key or settings.openai_api_key or None,
    )

    try:
        result = asyncio.run(MenuGenerator().generate_menu(request))
    except InvalidMenuResponseError as e:
        console.print(f"[red]Error:[/red] {e} ({e.details})", style="bold red")
        raise typer.Exit(1) from e
    except MenuGenerationError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e

    _render_menu(result, duration)
    console.print(f"[green]Menu id:[/green] {result.menu_id}")

    if output_file:
        document = {"menuId": result.menu_id, **result.menu.to_wire()}
        _write_file_sync(Path(output_file), json.dumps(document, indent=2, ensure_ascii=False))
        console.print(f"[green]Wrote menu to {output_file}[/green]")


@app.command()
def history(limit: int = typer.Option(20, "--limit", help="Number of menus to list")) -> None:
    """List stored menus, newest first."""
    _setup_logging()
    rows = SqlMenuStore().list_history(limit=limit)
    if not rows:
        console.print("[yellow]No menus stored yet[/yellow]")
        return

    table = Table(title="Menu history")
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Description")
    table.add_column("Created")
    for row in rows:
        table.add_row(row["id"], row["title"], row["description"], row["createdAt"] or "")
    console.print(table)


def _load_menu(menu_id: str) -> dict:
    document = SqlMenuStore().get_menu(menu_id)
    if document is None:
        console.print(f"[red]Error:[/red] Menu {menu_id} not found", style="bold red")
        raise typer.Exit(1)
    return document


@app.command()
def show(menu_id: str = typer.Argument(..., help="Stored menu id")) -> None:
    """Print a stored menu document."""
    _setup_logging()
    document = _load_menu(menu_id)
    console.print(Panel(JSON(json.dumps(document, ensure_ascii=False)), title=menu_id))


@app.command()
def export(
    menu_id: str = typer.Argument(..., help="Stored menu id"),
    format: str = typer.Option("csv", "--format", "-f", help="Export format: csv or text"),
    output_dir: Path = typer.Option(Path(), "--output-dir", help="Directory to write the export to"),
) -> None:
    """Export a stored menu as CSV or plain text."""
    _setup_logging()
    if format not in {"csv", "text"}:
        console.print(f"[red]Error:[/red] Unsupported format {format!r}; use csv or text", style="bold red")
        raise typer.Exit(1)

    menu = GeneratedMenu.model_validate(_load_menu(menu_id))
    result = menu_to_csv(menu, menu_id) if format == "csv" else menu_to_text(menu, menu_id)
    target = output_dir / result.file_name
    _write_file_sync(target, result.content)
    console.print(f"[green]✓ Exported {menu_id} to {target}[/green]")


if __name__ == "__main__":
    app()
