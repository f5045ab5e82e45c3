"""CLI interface for modsync using Typer."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from modsync import __version__
from modsync.config import Settings
from modsync.core.errors import CatalogUnavailable, ConfigurationError, StoreUnavailable
from modsync.core.models import CatalogItem
from modsync.orchestrator import SyncOrchestrator, build_orchestrator
from modsync.reporting.report import SyncResult

app = typer.Typer(
    name="modsync",
    help="Mirror Steam Workshop mods into a local catalog with translated metadata.",
    add_completion=False,
)
console = Console()

_verbose = False
_quiet = False
_config_path: Path | None = None


def _print(msg: str, *, verbose_only: bool = False) -> None:
    """Print unless --quiet is set; ``verbose_only`` messages also need --verbose."""
    if _quiet:
        return
    if verbose_only and not _verbose:
        return
    console.print(msg)


def _setup_logging() -> None:
    if _quiet:
        level = logging.ERROR
    elif _verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
        force=True,
    )


def _load_settings() -> Settings:
    try:
        return Settings.load(_config_path)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


def _open_orchestrator() -> SyncOrchestrator:
    settings = _load_settings()
    try:
        return build_orchestrator(settings)
    except (StoreUnavailable, ConfigurationError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def _items_table(title: str, items: list[CatalogItem]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim")
    table.add_column("Lang")
    table.add_column("Title")
    table.add_column("Updated")
    table.add_column("Translated", justify="center")
    for item in items:
        updated = item.time_updated.strftime("%Y-%m-%d") if item.time_updated else "-"
        translated = (
            "[green]yes[/green]"
            if item.translation is not None and item.translation.is_translated
            else "-"
        )
        table.add_row(
            item.id, item.language or "?", escape(item.display_title), updated, translated,
        )
    return table


def _print_result(result: SyncResult) -> None:
    summary = Table(title="Sync Summary")
    summary.add_column("Metric", style="bold")
    summary.add_column("Count", justify="right")
    summary.add_row("Scanned", str(result.scanned_count))
    summary.add_row("Synced", f"[green]{result.synced_count}[/green]")
    summary.add_row("Translated", f"[green]{result.translated_count}[/green]")
    summary.add_row("Errors", f"[red]{result.error_count}[/red]")
    summary.add_row("Duration", f"{result.duration_seconds:.1f}s")
    console.print(summary)

    if result.cancelled:
        console.print("[yellow]Sync was cancelled before finishing.[/yellow]")

    if result.errors:
        err_table = Table(title="Errors")
        err_table.add_column("Error", style="red")
        for err in result.errors:
            err_table.add_row(escape(err))
        console.print(err_table)


def _run_pass(task: Callable[..., SyncResult], report: Path | None) -> None:
    """Run a sync task in the background worker with a progress bar.

    Ctrl-C asks the worker to stop after the current item.
    """
    from modsync.worker import PassFailed, PassFinished, ProgressUpdate, SyncWorker

    worker = SyncWorker(task)
    worker.start()
    result: SyncResult | None = None

    with Progress(
        SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
        BarColumn(), MofNCompleteColumn(), TimeElapsedColumn(),
        console=console, transient=True, disable=_quiet,
    ) as progress:
        bar = progress.add_task("Syncing", total=None)
        while True:
            try:
                for event in worker.events():
                    if isinstance(event, ProgressUpdate):
                        progress.update(bar, completed=event.current, total=event.total)
                    elif isinstance(event, PassFinished):
                        result = event.result
                    elif isinstance(event, PassFailed):
                        if isinstance(event.error, CatalogUnavailable):
                            console.print(f"[red]Sync failed:[/red] {escape(str(event.error))}")
                        else:
                            console.print(f"[red]Unexpected error:[/red] {escape(event.details)}")
                        raise typer.Exit(1)
                break
            except KeyboardInterrupt:
                if worker.cancel_requested:
                    raise
                console.print("[yellow]Cancelling after the current item...[/yellow]")
                worker.cancel()

    if result is None:
        console.print("[red]Sync finished without a result.[/red]")
        raise typer.Exit(1)

    _print_result(result)
    if report is not None:
        from modsync.reporting.formatters import save_report
        save_report(result, report)
        _print(f"Report saved to [cyan]{report}[/cyan]")


def version_callback(value: bool) -> None:
    if value:
        console.print(f"modsync {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only show errors.",
    ),
    config: Path | None = typer.Option(
        None, "--config", "-c", help="TOML settings file ([modsync] table).",
    ),
) -> None:
    """modsync: keep a translated local catalog of Steam Workshop mods."""
    global _verbose, _quiet, _config_path
    _verbose = verbose
    _quiet = quiet
    _config_path = config
    _setup_logging()


@app.command()
def sync(
    report: Path | None = typer.Option(
        None, "--report", "-r", help="Write a report (.json, .md or .csv).",
    ),
) -> None:
    """Scan local mods, fetch their metadata and translate what is stale."""
    orch = _open_orchestrator()
    try:
        _run_pass(orch.sync, report)
    finally:
        orch.close()


@app.command(name="update-check")
def update_check(
    report: Path | None = typer.Option(
        None, "--report", "-r", help="Write a report (.json, .md or .csv).",
    ),
) -> None:
    """Re-sync every mod already in the catalog."""
    orch = _open_orchestrator()
    try:
        _run_pass(orch.check_for_updates, report)
    finally:
        orch.close()


@app.command()
def show(
    item_id: str = typer.Argument(..., help="Workshop item id."),
    no_translation: bool = typer.Option(
        False, "--no-translation", help="Show the original text only.",
    ),
) -> None:
    """Show one mod, fetching it remotely if it is not in the catalog."""
    orch = _open_orchestrator()
    try:
        item = orch.get_item(item_id, include_translation=not no_translation)
    finally:
        orch.close()

    if item is None:
        console.print(f"[red]Error:[/red] Mod not found: {item_id}")
        raise typer.Exit(1)

    console.print(f"[bold]{escape(item.display_title)}[/bold] [dim]({item.id})[/dim]")
    console.print(f"Creator: {escape(item.creator)}   Language: [cyan]{item.language or '?'}[/cyan]")
    console.print(f"Subscriptions: {item.subscriptions}   Rating: {item.rating:.1f}/5")
    if item.tags:
        console.print(f"Tags: {escape(', '.join(item.tags))}")
    if item.translation is not None and item.translation.is_translated:
        console.print(f"Original title: [dim]{escape(item.translation.original_title or '')}[/dim]")
        if item.translation.last_translated_at:
            console.print(
                f"Translated: {item.translation.last_translated_at:%Y-%m-%d %H:%M} UTC"
            )
    console.print()
    if item.display_description:
        console.print(escape(item.display_description))
    else:
        console.print("[dim](no description)[/dim]")


@app.command(name="list")
def list_mods(
    limit: int = typer.Option(100, "--limit", "-n", min=1),
    offset: int = typer.Option(0, "--offset", min=0),
) -> None:
    """List catalog mods, most recently updated first."""
    orch = _open_orchestrator()
    try:
        items = orch.list_items(limit, offset)
    finally:
        orch.close()
    if not items:
        console.print("[yellow]The catalog is empty. Run 'modsync sync' first.[/yellow]")
        return
    console.print(_items_table("Catalog", items))


@app.command()
def search(
    term: str = typer.Argument(..., help="Text to look for in titles and descriptions."),
    limit: int = typer.Option(50, "--limit", "-n", min=1),
) -> None:
    """Search original and translated titles and descriptions."""
    orch = _open_orchestrator()
    try:
        items = orch.search(term, limit)
    finally:
        orch.close()
    if not items:
        console.print(f"[yellow]No mods matching '{escape(term)}'.[/yellow]")
        return
    console.print(_items_table(f"Results for '{escape(term)}'", items))


@app.command()
def refresh(
    lang: str | None = typer.Option(
        None, "--lang", "-l", help="Only refresh mods in this language.",
    ),
) -> None:
    """Force re-translation of catalog mods."""
    orch = _open_orchestrator()
    try:
        result = orch.refresh_translations(lang)
    finally:
        orch.close()
    console.print(
        f"Refreshed [green]{result.success_count}[/green] mods, "
        f"[red]{result.error_count}[/red] errors."
    )
    if result.error_count:
        raise typer.Exit(1)


@app.command()
def stats() -> None:
    """Show catalog statistics."""
    orch = _open_orchestrator()
    try:
        statistics = orch.get_statistics()
    finally:
        orch.close()

    table = Table(title="Catalog Statistics")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total mods", str(statistics.total_items))
    table.add_row("Translated", f"[green]{statistics.translated_items}[/green]")
    table.add_row("Updated in the last 7 days", str(statistics.recent_update_count))
    console.print(table)

    if statistics.language_breakdown:
        langs = Table(title="Languages")
        langs.add_column("Language")
        langs.add_column("Mods", justify="right")
        for lang, count in sorted(
            statistics.language_breakdown.items(), key=lambda kv: (-kv[1], kv[0]),
        ):
            langs.add_row(lang, str(count))
        console.print(langs)


def _open_translation_cache():
    from modsync.translation.cache import TranslationCacheStore

    settings = _load_settings()
    try:
        return TranslationCacheStore(settings.cache_db_path)
    except StoreUnavailable as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command(name="cache-info")
def cache_info() -> None:
    """Show translation cache statistics."""
    cache = _open_translation_cache()
    try:
        count = cache.count()
        console.print(f"Cached translations: [green]{count}[/green]")
        console.print(f"Cache location: [dim]{cache.path}[/dim]")
    finally:
        cache.close()


@app.command(name="cache-clear")
def cache_clear() -> None:
    """Clear the translation cache."""
    cache = _open_translation_cache()
    try:
        deleted = cache.clear()
    finally:
        cache.close()
    console.print(f"Cleared [yellow]{deleted}[/yellow] cached translations.")


@app.command(name="cache-purge")
def cache_purge() -> None:
    """Delete expired entries from the translation cache."""
    cache = _open_translation_cache()
    try:
        purged = cache.purge_expired()
    finally:
        cache.close()
    console.print(f"Purged [yellow]{purged}[/yellow] expired translations.")


if __name__ == "__main__":
    app()
