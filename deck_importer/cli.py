"""Command-line interface for the deck importer."""

from __future__ import annotations

import asyncio
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from deck_importer.core.config import Settings, get_settings
from deck_importer.modules.importer.schemas import DeckImportResult
from deck_importer.modules.importer.service import DeckImportService
from deck_importer.modules.ledger import DeckDownloader, JobLedger, download_decks, import_decks
from deck_importer.services.firebase import FirestoreClient, StorageClient
from deck_importer.shared.logging import get_logger, setup_logger

app = typer.Typer(
    name="deck-importer",
    help="Migrate shared Anki decks into Firestore and Firebase Storage.",
    no_args_is_help=True,
)
console = Console()
logger = get_logger(__name__)


def _require_firebase(settings: Settings) -> None:
    missing = [
        name
        for name, value in (
            ("FIREBASE_PROJECT_ID", settings.firebase.project_id),
            ("FIREBASE_STORAGE_BUCKET", settings.firebase.storage_bucket),
            ("FIREBASE_ACCESS_TOKEN", settings.firebase.access_token),
        )
        if not value
    ]
    if missing:
        console.print(f"[red]Missing configuration: {', '.join(missing)}[/red]")
        raise typer.Exit(code=2)


def _firestore(settings: Settings) -> FirestoreClient:
    return FirestoreClient(
        settings.firebase.project_id,
        settings.firebase.access_token,
        timeout=settings.firebase.timeout,
    )


async def _download(settings: Settings, ledger: JobLedger) -> int:
    async with DeckDownloader(
        settings.importer.downloads_path,
        settings.download.url_template,
        timeout=settings.download.timeout,
    ) as downloader:
        return await download_decks(ledger, downloader)


async def _import(settings: Settings, ledger: JobLedger) -> list[DeckImportResult]:
    async with (
        _firestore(settings) as firestore,
        StorageClient(
            settings.firebase.storage_bucket,
            settings.firebase.access_token,
            timeout=settings.firebase.timeout,
        ) as storage,
    ):
        service = DeckImportService.from_settings(settings, firestore, storage, ledger)
        return await import_decks(ledger, service)


def _print_results(results: list[DeckImportResult]) -> None:
    table = Table(title="Imported decks", show_header=True, header_style="bold magenta")
    table.add_column("Deck", style="cyan")
    table.add_column("Status")
    table.add_column("Cards", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Sections", justify="right")
    table.add_column("Assets", justify="right")

    for result in results:
        status = "[green]ok[/green]" if result.succeeded else f"[red]{escape(result.error or 'failed')}[/red]"
        table.add_row(
            result.deck_id,
            status,
            str(result.cards_uploaded),
            str(result.cards_skipped),
            str(result.sections_created),
            f"{result.assets_uploaded} ({result.assets_failed} failed)",
        )

    console.print(table)


@app.callback()
def main(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)"),
    ] = None,
) -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    if log_level:
        settings.logging.level = log_level
    setup_logger()


@app.command()
def download() -> None:
    """Download every deck of the ledger that is not downloaded yet."""
    settings = get_settings()
    ledger = JobLedger(settings.importer.decks_path)

    count = asyncio.run(_download(settings, ledger))
    console.print(f"Downloaded [green]{count}[/green] decks")


@app.command(name="import")
def import_() -> None:
    """Import every downloaded deck into Firebase."""
    settings = get_settings()
    _require_firebase(settings)
    ledger = JobLedger(settings.importer.decks_path)

    _print_results(asyncio.run(_import(settings, ledger)))


@app.command()
def run() -> None:
    """Download pending decks, then import every downloaded deck."""
    settings = get_settings()
    _require_firebase(settings)
    ledger = JobLedger(settings.importer.decks_path)

    async def _run() -> list[DeckImportResult]:
        await _download(settings, ledger)
        return await _import(settings, ledger)

    _print_results(asyncio.run(_run()))


@app.command()
def sections(
    deck_id: Annotated[str, typer.Argument(help="Deck whose sections to list")],
) -> None:
    """List the sections created for an imported deck."""
    settings = get_settings()
    _require_firebase(settings)

    async def _query() -> list[dict]:
        async with _firestore(settings) as firestore:
            return await firestore.query_collection(f"decks/{deck_id}/sections", order_by="index")

    documents = asyncio.run(_query())
    logger.info(f"Found {len(documents)} sections for deck {deck_id}")

    table = Table(title=f"Sections of deck {deck_id}", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Id")
    table.add_column("Cards", justify="right")
    for document in documents:
        table.add_row(
            str(document.get("index", "")),
            document.get("name", ""),
            document["id"],
            str(document.get("cardCount", 0)),
        )
    console.print(table)


def cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    cli()
