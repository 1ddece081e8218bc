#!/usr/bin/env python3
"""
Purchase-Order Wizard: CLI entry point.

Usage examples:
  python main.py check                              # Verify setup (data files, endpoint)
  python main.py next-number                        # Show the PO number the next order gets
  python main.py build order.json                   # Build + validate a PO from saved wizard state
  python main.py build order.json --po-number 42 --output po.json
  python main.py review order.json                  # Print the confirmation review
  python main.py submit order.json --email buyer@example.com
  python main.py serve --port 8000                  # Run the wizard API
"""
import json
import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from config import Config
from models.wizard import WizardState
from pipeline.errors import OrderFormError
from pipeline.processor import OrderProcessor
from pipeline.review import ReviewRenderer, summarize_order
from pipeline.submission import serialize_document


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _load_state(path: str) -> WizardState:
    """Read a saved wizard state JSON file, exiting with a message if it is invalid."""
    try:
        with open(path, encoding="utf-8") as f:
            return WizardState.model_validate(json.load(f))
    except json.JSONDecodeError as e:
        click.echo(f"Error: '{path}' is not valid JSON ({e}).", err=True)
        sys.exit(1)
    except ValidationError as e:
        click.echo(f"Error: '{path}' is not a valid wizard state:\n{e}", err=True)
        sys.exit(1)


def _fail(exc: OrderFormError) -> None:
    click.echo(f"\n✗ {exc}", err=True)
    for issue in getattr(exc, "issues", []):
        field = f" ({issue.field})" if issue.field else ""
        click.echo(f"    [{issue.severity.upper()}] {issue.description}{field}", err=True)
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Build, review and submit purchase orders."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Verify that the reference data files and the submission endpoint are ready."""
    processor = OrderProcessor(Config())
    status = processor.check_setup()

    click.echo("\n=== Order Wizard Setup Check ===\n")

    for name, info in status["reference_data"].items():
        label = Path(info["path"]).name
        if info.get("error"):
            click.echo(f"  {label:<30} ✗ unreadable ({info['error']})")
        elif info["exists"]:
            click.echo(f"  {label:<30} ✓ ({info['count']} loaded)")
        else:
            click.echo(f"  {label:<30} ✗ (file not found)")
            click.echo(f"     → Expected at: {info['path']}")

    click.echo()
    endpoint = status["endpoint"]
    if endpoint["ok"]:
        click.echo(f"  Submission endpoint:            ✓  {endpoint['url']}")
    else:
        click.echo("  Submission endpoint:            ✗  not configured")
        click.echo("  → Set API_ENDPOINT_POST in your environment")

    out = status["export_dir"]
    tick = "✓" if out["exists"] else "✗"
    state = "" if out["enabled"] else "  (downloads disabled)"
    click.echo(f"  Export directory:               {tick}  {out['path']}{state}")
    click.echo()


# --------------------------------------------------------------------
# next-number command
# --------------------------------------------------------------------

@cli.command("next-number")
def next_number() -> None:
    """Print the PO number the next submitted order will receive."""
    click.echo(OrderProcessor(Config()).next_po_number())


# --------------------------------------------------------------------
# build command
# --------------------------------------------------------------------

@cli.command()
@click.argument("state_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--po-number", default=None, help="Use this PO number instead of the next free one")
@click.option("--data-dir", default=None, type=click.Path(), help="Reference data directory")
@click.option("--output", "-o", default=None, type=click.Path(), help="Write the PO JSON here")
@click.option("--no-pretty", is_flag=True, help="Output compact (non-indented) JSON")
def build(
    state_file: str,
    po_number: str | None,
    data_dir: str | None,
    output: str | None,
    no_pretty: bool,
) -> None:
    """Build and validate a purchase order from STATE_FILE without sending it."""
    config = Config()
    if data_dir:
        config.data_dir = Path(data_dir)
    if no_pretty:
        config.pretty_json = False

    state = _load_state(state_file)
    try:
        document = OrderProcessor(config).build(state, po_number=po_number)
    except OrderFormError as e:
        _fail(e)
        return

    text = serialize_document(document, pretty=config.pretty_json)
    if output:
        Path(output).write_text(text, encoding="utf-8")
        click.echo(f"  PO {document.po_number} written to: {output}")
    else:
        click.echo(text)


# --------------------------------------------------------------------
# review command
# --------------------------------------------------------------------

@cli.command()
@click.argument("state_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--data-dir", default=None, type=click.Path(), help="Reference data directory")
def review(state_file: str, data_dir: str | None) -> None:
    """Print the confirmation review for STATE_FILE."""
    config = Config()
    if data_dir:
        config.data_dir = Path(data_dir)

    processor = OrderProcessor(config)
    state = _load_state(state_file)
    summary = summarize_order(state, processor.reference)
    click.echo(ReviewRenderer(config, processor.reference).render(state, summary))
    if summary.unknown_products:
        click.echo(
            f"⚠  {len(summary.unknown_products)} product(s) not in the catalog: "
            f"{', '.join(summary.unknown_products)}",
            err=True,
        )


# --------------------------------------------------------------------
# submit command
# --------------------------------------------------------------------

@cli.command()
@click.argument("state_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--email", "-e", default=None, help="Confirmation email (defaults to the one in STATE_FILE)")
@click.option("--data-dir", default=None, type=click.Path(), help="Reference data directory")
@click.option("--endpoint", default=None, help="Submission URL (default: API_ENDPOINT_POST)")
@click.option("--no-download", is_flag=True, help="Do not write PO_<number>.json")
def submit(
    state_file: str,
    email: str | None,
    data_dir: str | None,
    endpoint: str | None,
    no_download: bool,
) -> None:
    """Build, export, and submit the purchase order in STATE_FILE."""
    config = Config()
    if data_dir:
        config.data_dir = Path(data_dir)
    if endpoint:
        config.submission_url = endpoint
    if no_download:
        config.download_enabled = False

    state = _load_state(state_file)
    try:
        outcome = OrderProcessor(config).submit(state, email=email)
    except OrderFormError as e:
        _fail(e)
        return

    totals = outcome.document.summary_totals
    click.echo()
    click.echo(f"  PO number:   {outcome.po_number}")
    click.echo(f"  Lines:       {len(outcome.document.items)}")
    click.echo(f"  Bottles:     {totals.total_bottles}")
    click.echo(f"  Grand total: {totals.grand_total:.2f}")
    if outcome.download_path:
        click.echo(f"  Download:    {outcome.download_path}")
    click.echo()

    result = outcome.submission
    if result.ok:
        click.echo(f"  ✓ Order submitted successfully (HTTP {result.status_code})")
    else:
        detail = result.error or result.response_body or ""
        code = f"HTTP {result.status_code}" if result.status_code else "no response"
        click.echo(f"  ✗ Error submitting order. Please try again. ({code}) {detail}", err=True)
        sys.exit(2)


# --------------------------------------------------------------------
# serve command
# --------------------------------------------------------------------

@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", "-p", default=8000, type=int, show_default=True)
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the wizard API (FastAPI via uvicorn)."""
    import uvicorn

    click.echo(f"\n  Serving wizard API on http://{host}:{port}/api/health\n")
    uvicorn.run("webapp.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    cli()
