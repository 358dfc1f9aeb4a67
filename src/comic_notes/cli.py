"""
Command-line interface for comic-notes.

Usage:
    comic-notes search "uncanny x-men"            # Search issues and volumes
    comic-notes import-issue 12345 [--overwrite]  # Import one issue into the vault
    comic-notes import-volume 2133 [--limit 10]   # Import the issues of a volume

Ctrl-C cancels a running search or import; no notes are written for an
import that was cancelled before its write phase.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from comic_notes.cancellation import CancellationToken
from comic_notes.errors import Cancelled, ComicNotesError, NotConfigured
from comic_notes.importer import BatchReport, ComicImporter, ImportReport
from comic_notes.metadata.comicvine_client import ComicVineClient
from comic_notes.metadata.rate_limit import RateLimiter
from comic_notes.resolve.upsert import ResolutionState
from comic_notes.settings import Settings, get_settings
from comic_notes.vault.filesystem import FileSystemDocumentStore
from comic_notes.vault.store import Document

T = TypeVar("T")

logger = logging.getLogger("comic_notes")

app = typer.Typer(
    name="comic-notes",
    help="Build cross-linked comic notes from ComicVine metadata",
)
console = Console()


class ConsoleNotifier:
    def notify(self, message: str, *, error: bool = False) -> None:
        style = "red" if error else "green"
        console.print(f"[{style}]{escape(message)}[/{style}]")


def _configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=console, show_time=False, show_path=verbose, markup=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        handlers=[handler],
        format="[%(name)s] %(message)s",
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    vault: Optional[Path] = typer.Option(None, "--vault", help="Vault directory (overrides COMIC_NOTES_VAULT_DIR)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    _configure_logging(verbose)
    settings = get_settings()
    if vault is not None:
        settings = settings.model_copy(update={"vault_dir": vault})
    ctx.obj = settings


def _run(settings: Settings, action: Callable[[ComicImporter, CancellationToken], Awaitable[T]]) -> T:
    token = CancellationToken()

    async def runner() -> T:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, token.cancel, "Interrupted")
        except NotImplementedError:
            # no loop signal handlers on this platform; Ctrl-C raises KeyboardInterrupt instead
            logger.debug("Cancellation on Ctrl-C is not available on this platform")
        limiter = RateLimiter(settings.rate_limit_delay_s)
        async with ComicVineClient(
            settings.comicvine_api_key,
            rate_limiter=limiter,
            base_url=settings.comicvine_base_url,
            user_agent=settings.user_agent,
            timeout_s=settings.request_timeout_s,
        ) as client:
            store = FileSystemDocumentStore(settings.vault_dir)
            importer = ComicImporter(client, store, settings, notifier=ConsoleNotifier())
            return await action(importer, token)

    try:
        return asyncio.run(runner())
    except Cancelled:
        console.print("[yellow]Cancelled, nothing was written for the interrupted import[/yellow]")
        raise typer.Exit(130)
    except NotConfigured as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        console.print("Set COMIC_NOTES_COMICVINE_API_KEY or add it to .env")
        raise typer.Exit(2)
    except ComicNotesError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1)


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search text"),
    limit: int = typer.Option(10, help="Maximum results per resource type"),
):
    """Search ComicVine for issues and volumes."""
    settings: Settings = ctx.obj
    if not query.strip():
        console.print("[red]Search query must not be empty[/red]")
        raise typer.Exit(1)
    results = _run(settings, lambda importer, token: importer.search(query, limit=limit, token=token))

    if not results.issues and not results.volumes:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=f"Results for {query!r}")
    table.add_column("Kind", style="cyan")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Date / Year")
    table.add_column("Publisher / Volume")
    for volume in results.volumes:
        table.add_row(
            "volume",
            str(volume.id),
            volume.name,
            str(volume.start_year or ""),
            volume.publisher_name,
        )
    for issue in results.issues:
        volume_name = issue.volume.name if issue.volume else ""
        title = f"{volume_name} #{issue.issue_number}"
        if issue.name:
            title += f": {issue.name}"
        table.add_row("issue", str(issue.id), title, issue.cover_date or "", volume_name)
    console.print(table)


def _print_report(report: ImportReport) -> None:
    if report.skipped:
        return
    created = sum(1 for o in report.outcomes if o.outcome is ResolutionState.CREATED)
    updated = sum(1 for o in report.outcomes if o.outcome is ResolutionState.UPDATED)
    if report.issue_document is not None:
        console.print(f"  Issue note: {escape(report.issue_document.path)}")
    console.print(f"  Linked notes: {created} created, {updated} updated")
    if report.failures:
        console.print(f"  [yellow]{len(report.failures)} problem(s), see messages above[/yellow]")


@app.command("import-issue")
def import_issue(
    ctx: typer.Context,
    issue_id: int = typer.Argument(..., help="ComicVine issue id (the number after 4000-)"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing issue note"),
):
    """Import one issue with its creators, roles and volume."""
    settings: Settings = ctx.obj

    def confirm(document: Document) -> bool:
        if not overwrite:
            console.print(f"[yellow]{escape(document.path)} exists; pass --overwrite to replace it[/yellow]")
        return overwrite

    report = _run(
        settings,
        lambda importer, token: importer.import_issue(issue_id, token=token, confirm_overwrite=confirm),
    )
    _print_report(report)


@app.command("import-volume")
def import_volume(
    ctx: typer.Context,
    volume_id: int = typer.Argument(..., help="ComicVine volume id (the number after 4050-)"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Import at most this many issues"),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace existing issue notes"),
):
    """Import every issue of a volume."""
    settings: Settings = ctx.obj
    batch: BatchReport = _run(
        settings,
        lambda importer, token: importer.import_volume(
            volume_id,
            token=token,
            limit=limit,
            confirm_overwrite=lambda document: overwrite,
        ),
    )
    skipped = sum(1 for r in batch.reports if r.skipped)
    console.print(
        f"\n[bold]Volume {volume_id}:[/bold] {len(batch.imported)} imported, "
        f"{skipped} skipped, {len(batch.failures)} failed"
    )


if __name__ == "__main__":
    app()
