"""cekatan CLI: due counts, auto-scan runs and checkpoints, config, server."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from cekatan.application.config import resolve_config

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="cekatan: spaced-repetition study engine and document-to-card scanner.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Subgroups
# ---------------------------------------------------------------------------

scan_app = typer.Typer(help="Run auto-scans and inspect their checkpoints.", no_args_is_help=True)
app.add_typer(scan_app, name="scan")

config_app = typer.Typer(help="Manage cekatan configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for cekatan."""
    ctx.ensure_object(dict)
    ctx.obj["verbose_bonus"] = verbose


def _resolve(ctx: typer.Context, overrides: dict | None = None):
    """Resolve config with the -v count applied, then set the log level from it."""
    overrides = dict(overrides or {})
    if ctx.obj:
        overrides.setdefault("verbose", ctx.obj.get("verbose_bonus"))
    config = resolve_config(overrides)

    if config.verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)
    elif config.verbose <= 0:
        logging.getLogger().setLevel(logging.WARNING)
    return config


# ---------------------------------------------------------------------------
# Root commands
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    snapshot: Annotated[
        Path,
        typer.Argument(
            help="JSON file with 'card_ids' and 'progress' records.",
            exists=True,
            dir_okay=False,
        ),
    ],
    collection: Annotated[
        str | None, typer.Option(help="Count only this collection. Defaults to all.")
    ] = None,
    batch: Annotated[int, typer.Option(help="Zero-based batch to list.")] = 0,
    json_output: Annotated[bool, typer.Option("--json", help="Print JSON.")] = False,
):
    """Show how many cards are [bold]due[/bold] and the next study batch."""
    from cekatan.application.scheduling.due_queue import (
        compute_due_count,
        compute_global_due_count,
        select_due_batch,
    )
    from cekatan.application.scheduling.records import ProgressSnapshot

    config = _resolve(ctx)
    try:
        data = ProgressSnapshot.model_validate_json(snapshot.read_text(encoding="utf-8"))
    except ValidationError as e:
        typer.secho(f"Invalid progress file: {e.error_count()} error(s)", fg="red", err=True)
        raise typer.Exit(1) from e

    now = datetime.now(timezone.utc)
    records = data.records()
    if collection:
        due_count = compute_due_count(records, collection, now)
    else:
        due_count = compute_global_due_count(records, now)

    result = select_due_batch(
        data.card_ids,
        data.progress_by_card(),
        now,
        page_size=config.batch_size,
        new_card_cap=config.new_cards_fallback_limit,
        interleave_ratio=config.interleave_ratio,
        batch_number=batch,
    )

    if json_output:
        typer.echo(
            json.dumps(
                {
                    "due_count": due_count,
                    "card_ids": result.card_ids,
                    "total_due": result.total_due,
                    "has_more_batches": result.has_more_batches,
                    "is_new_cards_fallback": result.is_new_cards_fallback,
                },
                indent=2,
            )
        )
        return

    typer.echo(f"Due cards: {due_count}")
    typer.echo(f"Batch {batch}: {len(result.card_ids)} of {result.total_due}")
    if result.is_new_cards_fallback:
        typer.echo("Nothing due; offering new cards.")
    for cid in result.card_ids:
        typer.echo(f"  {cid}")
    if result.has_more_batches:
        typer.echo(f"More batches available (next: --batch {batch + 1})")


@app.command()
def server(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8777,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP [bold]server[/bold] for exam sessions and due batches."""
    import uvicorn

    typer.secho(f"Starting cekatan server on http://{host}:{port}", fg="green")
    uvicorn.run("cekatan.server:app", host=host, port=port, reload=reload)


# ---------------------------------------------------------------------------
# Scan subgroup
# ---------------------------------------------------------------------------


def _load_checkpoint(ctx: typer.Context, deck: str, source: str):
    from cekatan.application.factory import get_checkpoint_store
    from cekatan.application.scan.checkpoint import checkpoint_key

    config = _resolve(ctx)
    state = get_checkpoint_store(config).load(checkpoint_key(deck, source))
    if state is None:
        typer.secho(f"No checkpoint for deck={deck} source={source}", fg="yellow", err=True)
        raise typer.Exit(1)
    return config, state


@scan_app.command("run")
def scan_run(
    ctx: typer.Context,
    document: Annotated[
        Path,
        typer.Argument(
            help="Plain-text document; pages separated by form feeds.",
            exists=True,
            dir_okay=False,
        ),
    ],
    deck: Annotated[str, typer.Option(help="Deck that receives the new cards.")],
    source: Annotated[
        str | None, typer.Option(help="Source id. Defaults to the file name.")
    ] = None,
    tag: Annotated[
        list[str] | None, typer.Option("--tag", "-t", help="Tag for every created card.")
    ] = None,
    start_page: Annotated[int, typer.Option(help="Page to start from.")] = 1,
    resume: Annotated[
        bool, typer.Option("--resume", help="Continue from the saved checkpoint.")
    ] = False,
    mode: Annotated[
        str | None,
        typer.Option(help="Extract existing questions or generate new ones."),
    ] = None,
    include_next_page: Annotated[
        bool | None,
        typer.Option("--include-next-page/--single-page", help="Send page N with N+1."),
    ] = None,
    drafter_url: Annotated[str | None, typer.Option(help="Drafting endpoint.")] = None,
    creator_url: Annotated[str | None, typer.Option(help="Card creation endpoint.")] = None,
    delay: Annotated[float | None, typer.Option(help="Seconds between pages.")] = None,
):
    """[bold green]Scan[/bold green] a document page by page into cards."""
    import asyncio

    from cekatan.application.factory import build_scanner, get_collaborators
    from cekatan.application.scan.transitions import progress_percent
    from cekatan.domain.scan.models import ScanOutcome

    overrides = {
        "ai_mode": mode,
        "include_next_page": include_next_page,
        "drafter_url": drafter_url,
        "creator_url": creator_url,
        "scan_delay_seconds": delay,
    }
    try:
        config = _resolve(ctx, overrides)
    except ValidationError as e:
        typer.secho(f"Invalid option: {e.errors()[0]['msg']}", fg="red", err=True)
        raise typer.Exit(2) from e

    drafter, creator = get_collaborators(config)
    scanner = build_scanner(
        config,
        document,
        deck_id=deck,
        source_id=source,
        session_tags=tag,
        drafter=drafter,
        creator=creator,
    )
    scanner.on_page_complete = lambda page, created: typer.echo(
        f"Page {page}/{scanner.state.total_pages}: {created} card(s)"
    )
    scanner.on_error = lambda page, reason: typer.secho(
        f"Page {page} skipped: {reason}", fg="yellow", err=True
    )

    async def run():
        try:
            if resume:
                if not scanner.has_resumable_state:
                    typer.secho("Nothing to resume.", fg="yellow", err=True)
                    return scanner.state
                return await scanner.resume()
            return await scanner.start(start_page)
        finally:
            await drafter.close()
            await creator.close()

    try:
        state = asyncio.run(run())
    except KeyboardInterrupt:
        # The checkpoint still reads as scanning, so --resume picks it up.
        typer.secho(
            f"Interrupted at page {scanner.state.current_page}; continue with --resume",
            fg="yellow",
            err=True,
        )
        raise typer.Exit(130) from None

    stats = state.stats
    typer.echo(
        f"{scanner.outcome.value}: {stats.pages_processed} pages, "
        f"{stats.cards_created} cards, {stats.errors_count} errors "
        f"({progress_percent(state):.0f}%)"
    )
    if scanner.outcome is ScanOutcome.SAFETY_STOPPED:
        raise typer.Exit(2)


@scan_app.command("status")
def scan_status(
    ctx: typer.Context,
    deck: Annotated[str, typer.Argument(help="Deck id.")],
    source: Annotated[str, typer.Argument(help="Source document id.")],
):
    """Show the saved checkpoint for a deck and source."""
    from cekatan.application.scan.transitions import progress_percent, scan_outcome
    from cekatan.domain.scan.models import SafetyPolicy

    config, state = _load_checkpoint(ctx, deck, source)
    outcome = scan_outcome(state, SafetyPolicy(config.max_consecutive_errors))
    typer.echo(
        json.dumps(
            {
                "outcome": outcome.value,
                "current_page": state.current_page,
                "total_pages": state.total_pages,
                "progress_percent": round(progress_percent(state), 1),
                "cards_created": state.stats.cards_created,
                "pages_processed": state.stats.pages_processed,
                "errors_count": state.stats.errors_count,
                "skipped_pages": [s.page_number for s in state.skipped_pages],
                "last_updated": state.last_updated.isoformat(),
            },
            indent=2,
        )
    )


@scan_app.command("export")
def scan_export(
    ctx: typer.Context,
    deck: Annotated[str, typer.Argument(help="Deck id.")],
    source: Annotated[str, typer.Argument(help="Source document id.")],
    out_dir: Annotated[
        Path | None, typer.Option(help="Write the log here instead of stdout.")
    ] = None,
):
    """Export the skip log and counters as JSON."""
    from cekatan.application.scan.export import export_filename, export_json

    _, state = _load_checkpoint(ctx, deck, source)
    payload = export_json(state, deck, source)
    if out_dir is None:
        typer.echo(payload)
        return

    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / export_filename()
    target.write_text(payload, encoding="utf-8")
    typer.echo(str(target))


@scan_app.command("reset")
def scan_reset(
    ctx: typer.Context,
    deck: Annotated[str, typer.Argument(help="Deck id.")],
    source: Annotated[str, typer.Argument(help="Source document id.")],
):
    """Delete the saved checkpoint so the next run starts at page 1."""
    from cekatan.application.factory import get_checkpoint_store
    from cekatan.application.scan.checkpoint import checkpoint_key

    config = _resolve(ctx)
    get_checkpoint_store(config).clear(checkpoint_key(deck, source))
    typer.echo(f"Cleared checkpoint for deck={deck} source={source}")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = _resolve(ctx)
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
