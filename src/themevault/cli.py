"""
themevault CLI - operator interface for theme sync and versioning.

Every command runs against the database named by ``DATABASE_URL`` (or the
``POSTGRES_*`` settings) unless ``--database-url`` is given.
"""

import json
import sys
from typing import Any, Dict, List, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from themevault.exceptions import ThemeVaultError
from themevault.logging_config import setup_logging

app = typer.Typer(
    name="themevault",
    help="themevault - theme synchronization and versioning",
    no_args_is_help=True,
)

console = Console()

_state: Dict[str, Any] = {"themes_path": None}


@app.callback()
def main(
    database_url: Optional[str] = typer.Option(
        None, "--database-url", help="SQLAlchemy database URL (overrides DATABASE_URL)"
    ),
    themes_path: Optional[str] = typer.Option(
        None, "--themes-path", help="Directory holding one sub-directory per theme"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log to the console"),
) -> None:
    """Configure logging and the database before running a command."""
    try:
        setup_logging(context="cli", level="DEBUG" if verbose else None, console=verbose)
    except PermissionError:
        # Basic logging to stderr
        import logging

        logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    if database_url:
        from themevault.db.connection import configure

        configure(database_url)
    _state["themes_path"] = themes_path


def _service(actor: Optional[str] = None):
    from themevault.services.theme_service import ThemeService

    return ThemeService(themes_path=_state["themes_path"], actor=actor)


def _fail(error: ThemeVaultError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {escape(error.message)}")
    raise typer.Exit(1)


@app.command("init-db")
def init_db_command() -> None:
    """Create the database tables (development; use Alembic in production)."""
    from themevault.db.connection import init_db

    init_db()
    console.print("[green]✓ Database tables created[/green]")


@app.command()
def status() -> None:
    """Check the database connection and show the active theme."""
    from themevault.db.connection import check_connection

    if not check_connection():
        console.print("[bold red]✗ Database connection failed[/bold red]")
        raise typer.Exit(1)

    console.print("[green]✓ Database connection OK[/green]")
    try:
        active = _service().active_theme_name()
    except ThemeVaultError as e:
        _fail(e)
    console.print(f"  Active theme: {active or 'none'}")


@app.command()
def themes() -> None:
    """List tracked themes."""
    try:
        rows = _service().list_themes()
    except ThemeVaultError as e:
        _fail(e)

    if not rows:
        console.print("[yellow]No themes tracked yet[/yellow]")
        return

    table = Table(title="Themes")
    table.add_column("Name")
    table.add_column("Display name")
    table.add_column("Version")
    table.add_column("Active")
    table.add_column("Last synced")
    for theme in rows:
        table.add_row(
            theme.name,
            theme.display_name,
            theme.version,
            "✓" if theme.active else "",
            theme.last_synced_at.isoformat() if theme.last_synced_at else "-",
        )
    console.print(table)


@app.command()
def sync(
    theme: Optional[str] = typer.Argument(None, help="Theme to sync (default: all)"),
    actor: Optional[str] = typer.Option(None, help="Actor recorded on new versions"),
    summary: Optional[str] = typer.Option(None, help="Change summary for new versions"),
) -> None:
    """
    Sync theme directories into the version store.

    Exits with status 1 if any theme failed.
    """
    service = _service(actor)
    try:
        reports = [service.sync(theme, change_summary=summary)] if theme else (
            service.sync_all(change_summary=summary)
        )
    except ThemeVaultError as e:
        _fail(e)

    if not reports:
        console.print("[yellow]No themes found[/yellow]")
        return

    for report in reports:
        if not report.success:
            console.print(
                f"[red]✗ {report.theme_name}[/red] {escape(f'[{report.error_kind}] {report.error_message}')}"
            )
            continue
        if report.version_created:
            console.print(
                f"[green]✓ {report.theme_name}[/green] version {report.version_label}: "
                f"{report.files_created} new, {report.files_changed} changed, "
                f"{report.files_unchanged} unchanged"
            )
        else:
            console.print(
                f"[blue]= {report.theme_name}[/blue] unchanged "
                f"({report.files_scanned} files)"
            )
        if report.files_missing:
            console.print(
                f"  [yellow]⚠ {len(report.files_missing)} tracked files missing on disk[/yellow]"
            )

    failed = sum(1 for r in reports if not r.success)
    console.print()
    console.print("[bold]Summary:[/bold]")
    console.print(f"  Synced: {sum(1 for r in reports if r.status == 'synced')}")
    console.print(f"  Unchanged: {sum(1 for r in reports if r.status == 'unchanged')}")
    console.print(f"  Failed: {failed}")

    if failed:
        raise typer.Exit(1)


@app.command()
def check(theme: str = typer.Argument(..., help="Theme to check")) -> None:
    """Report whether a theme's files differ from its tracked history."""
    try:
        report = _service().drift(theme)
    except ThemeVaultError as e:
        _fail(e)

    if not report.has_drifted:
        console.print(f"[green]✓ {theme} is up to date[/green]")
    else:
        console.print(f"[yellow]⚠ {theme} has unsynced changes[/yellow]")
        for path in report.new_paths:
            console.print(f"  + {path}")
        for path in report.changed_paths:
            console.print(f"  ~ {path}")
    for path in report.missing_paths:
        console.print(f"  - {path} (missing on disk)")


@app.command()
def activate(
    theme: str = typer.Argument(..., help="Theme to activate"),
    actor: Optional[str] = typer.Option(None, help="Actor recorded in the log"),
) -> None:
    """Make a theme the active theme."""
    outcome = _service(actor).activate(theme)

    if outcome.status == "activated":
        previous = f" (was {outcome.previous_theme})" if outcome.previous_theme else ""
        console.print(f"[green]✓ Activated {theme}{previous}[/green]")
    elif outcome.status == "already_active":
        console.print(f"[blue]= {theme} is already active[/blue]")
    else:
        console.print(
            f"[bold red]Error:[/bold red] {escape(f'[{outcome.status}] {outcome.error_message}')}"
        )
        raise typer.Exit(1)


@app.command()
def publish(
    theme: str = typer.Argument(..., help="Theme to publish"),
    version: Optional[str] = typer.Option(None, "--version", help="Version label (default: newest)"),
    preview: bool = typer.Option(False, "--preview", help="Stage as preview instead of live"),
) -> None:
    """Promote a theme version to live (or preview)."""
    service = _service()
    try:
        if preview:
            result = service.stage_preview(theme, version)
        else:
            result = service.publish(theme, version)
    except ThemeVaultError as e:
        _fail(e)

    target = "preview" if preview else "live"
    console.print(f"[green]✓ {theme} {result.version_label} is now {target}[/green]")


@app.command()
def read(
    theme: str = typer.Argument(..., help="Theme name"),
    path: str = typer.Argument(..., help="File path relative to the theme"),
    revision: Optional[int] = typer.Option(None, "--revision", help="Historical version number"),
) -> None:
    """Print the tracked content of a file."""
    service = _service()
    try:
        if revision is None:
            content = service.read(theme, path)
        else:
            content = service.read_revision(theme, path, revision)
    except ThemeVaultError as e:
        _fail(e)

    try:
        typer.echo(content.decode("utf-8"), nl=False)
    except UnicodeDecodeError:
        console.print(f"[yellow]Binary content ({len(content)} bytes)[/yellow]")


def _add_nodes(branch: Tree, nodes: List[Dict[str, Any]]) -> None:
    for node in nodes:
        if node["type"] == "directory":
            _add_nodes(branch.add(f"[bold]{node['name']}/[/bold]"), node["children"])
        else:
            branch.add(f"{node['name']} [dim](v{node['current_version']})[/dim]")


@app.command()
def tree(
    theme: str = typer.Argument(..., help="Theme name"),
    as_json: bool = typer.Option(False, "--json", help="Print the tree as JSON"),
) -> None:
    """Show the tracked file tree of a theme."""
    try:
        nodes = _service().tree(theme)
    except ThemeVaultError as e:
        _fail(e)

    if as_json:
        typer.echo(json.dumps(nodes, indent=2))
        return

    root = Tree(f"[bold blue]{theme}[/bold blue]")
    _add_nodes(root, nodes)
    console.print(root)


@app.command()
def history(
    theme: str = typer.Argument(..., help="Theme name"),
    path: str = typer.Argument(..., help="File path relative to the theme"),
) -> None:
    """List the revisions of a file."""
    try:
        revisions = _service().history(theme, path)
    except ThemeVaultError as e:
        _fail(e)

    table = Table(title=f"{theme}/{path}")
    table.add_column("Version", justify="right")
    table.add_column("Checksum")
    table.add_column("Size", justify="right")
    table.add_column("Author")
    table.add_column("Created")
    for revision in revisions:
        table.add_row(
            str(revision.version_number),
            revision.file_checksum[:12],
            str(revision.file_size),
            revision.author or "-",
            revision.created_at.isoformat(),
        )
    console.print(table)


@app.command()
def versions(theme: str = typer.Argument(..., help="Theme name")) -> None:
    """List the versions (sync batches) of a theme."""
    try:
        rows = _service().list_versions(theme)
    except ThemeVaultError as e:
        _fail(e)

    if not rows:
        console.print(f"[yellow]{theme} has no versions yet[/yellow]")
        return

    table = Table(title=f"{theme} versions")
    table.add_column("Label")
    table.add_column("Live")
    table.add_column("Preview")
    table.add_column("Author")
    table.add_column("Summary")
    for version in rows:
        table.add_row(
            version.version_label,
            "✓" if version.is_live else "",
            "✓" if version.is_preview else "",
            version.author or "-",
            version.change_summary or "",
        )
    console.print(table)


@app.command()
def search(
    theme: str = typer.Argument(..., help="Theme name"),
    query: str = typer.Argument(..., help="Text to search for"),
    ignore_case: bool = typer.Option(False, "--ignore-case", "-i", help="Case-insensitive match"),
) -> None:
    """Search the tracked content of a theme's editable files."""
    try:
        hits = _service().search(theme, query, case_sensitive=not ignore_case)
    except ThemeVaultError as e:
        _fail(e)

    for hit in hits:
        console.print(f"{hit.file_path}:{hit.line_number}: {hit.line}", markup=False)
    console.print(f"[bold]{len(hits)} match(es)[/bold]")


if __name__ == "__main__":
    app()
