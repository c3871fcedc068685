from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Settings, load_settings
from .errors import Top250Error
from .services import export as export_service
from .services import telemetry as telemetry_service
from .services.catalog import CatalogClient
from .services.films import RankedStore
from .services.managers import SYSTEM_PRINCIPAL, ManagerRegistry
from .storage import build_store

console = Console()

app = typer.Typer(
    help="Top-250 film catalog CLI.",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
films_app = typer.Typer(help="Read and export the ranked film list.", no_args_is_help=True)
catalog_app = typer.Typer(help="Sync with the upstream catalog.", no_args_is_help=True)
managers_app = typer.Typer(help="Manage API accounts.", no_args_is_help=True)

app.add_typer(films_app, name="films")
app.add_typer(catalog_app, name="catalog")
app.add_typer(managers_app, name="managers")


def get_state(ctx: typer.Context) -> Dict[str, Settings]:
    return ctx.ensure_object(dict)  # type: ignore[return-value]


def _fail(exc: Top250Error) -> None:
    console.print(f"[red]{exc.message}[/red]")
    raise typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to TOML config file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Application entry point: load configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    settings = load_settings(config_path=config)
    state = get_state(ctx)
    state["settings"] = settings
    console.log(f"Loaded configuration from {config or 'config/default.toml'}")


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, help="Bind address; overrides config."),
    port: Optional[int] = typer.Option(None, help="Port; overrides config."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_state(ctx)["settings"]
    uvicorn.run(
        "apps.api.main:app",
        host=host or settings.api.host,
        port=port or settings.api.port,
        reload=reload,
    )


@films_app.command("list")
def films_list(
    ctx: typer.Context,
    limit: int = typer.Option(25, "--limit", "-n", help="Number of rows to show."),
) -> None:
    """Print the ranked list."""
    settings = get_state(ctx)["settings"]
    films = RankedStore(build_store(settings))
    try:
        rows = films.list_all(principal=SYSTEM_PRINCIPAL)
    except Top250Error as exc:
        _fail(exc)
    table = Table(title=f"Top films ({len(rows)} total)")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Year", justify="right")
    table.add_column("Rating", justify="right")
    table.add_column("Id", justify="right")
    for film in rows[:limit]:
        table.add_row(str(film.position), film.title, str(film.year), film.rating, str(film.id))
    console.print(table)


@films_app.command("export")
def films_export(
    ctx: typer.Context,
    output: Path = typer.Option(Path("exports/top250.csv"), "--output", "-o", help="CSV path."),
) -> None:
    """Write the ranked list to CSV."""
    settings = get_state(ctx)["settings"]
    films = RankedStore(build_store(settings))
    try:
        rows = films.list_all(principal=SYSTEM_PRINCIPAL)
    except Top250Error as exc:
        _fail(exc)
    count = export_service.export_films_to_csv(rows, output_path=output)
    console.print(f"[green]Exported[/green] {count} films to {output}.")


@catalog_app.command("refresh")
def catalog_refresh(ctx: typer.Context) -> None:
    """Replace the stored list with the upstream top 250."""
    settings = get_state(ctx)["settings"]
    films = RankedStore(build_store(settings))
    client = CatalogClient(settings)
    try:
        with telemetry_service.timed_operation("catalog_refresh"):
            count = films.refresh_from_external_catalog(client, principal=SYSTEM_PRINCIPAL)
    except Top250Error as exc:
        _fail(exc)
    finally:
        client.close()
    console.print(f"[green]Stored[/green] {count} films from the catalog.")


@managers_app.command("list")
def managers_list(ctx: typer.Context) -> None:
    """Show registered managers."""
    settings = get_state(ctx)["settings"]
    registry = ManagerRegistry(build_store(settings), settings.auth)
    try:
        managers = registry.list_managers()
    except Top250Error as exc:
        _fail(exc)
    table = Table(title="Managers")
    table.add_column("Id", justify="right")
    table.add_column("Email")
    table.add_column("Super")
    for manager in managers:
        table.add_row(str(manager["id"]), manager["email"], "yes" if manager.get("super") else "no")
    console.print(table)


@managers_app.command("grant")
def managers_grant(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="Manager email."),
    revoke: bool = typer.Option(False, "--revoke", help="Remove read/write access instead."),
) -> None:
    """Give a manager read/write access to the film API."""
    settings = get_state(ctx)["settings"]
    registry = ManagerRegistry(build_store(settings), settings.auth)
    try:
        registry.grant(email, super_user=not revoke)
    except Top250Error as exc:
        _fail(exc)
    verb = "Revoked" if revoke else "Granted"
    console.print(f"[green]{verb}[/green] access for {email}.")


if __name__ == "__main__":
    app()
