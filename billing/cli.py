"""CLI for the billing service using Typer."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .utils import setup_logging

# Load .env from project directory only
_env_path = Path(__file__).parent.parent / ".env"
load_dotenv(_env_path, override=False)

# CLI styles
STYLE_HEADER = "bold blue"
STYLE_SUCCESS = "bold green"
STYLE_WARNING = "bold yellow"
STYLE_ERROR = "bold red"

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="billing",
    help="Grow Bharat Vyapaar billing - packages, quotes and autopay from the command line.",
    add_completion=False,
)
console = Console()


async def _load_packages(package_type: str | None, include_inactive: bool):
    from billing.db.session import async_session_factory, engine
    from billing.services.package_service import list_packages

    try:
        async with async_session_factory() as db:
            return await list_packages(db, package_type, include_inactive)
    finally:
        await engine.dispose()


async def _load_package(package_id: str):
    from billing.db.session import async_session_factory, engine
    from billing.services.package_service import get_package

    try:
        async with async_session_factory() as db:
            return await get_package(db, package_id)
    finally:
        await engine.dispose()


@app.command()
def packages(
    package_type: Annotated[Optional[str], typer.Option("--type", help="Business or Influencer")] = None,
    all_: Annotated[bool, typer.Option("--all", help="Include inactive packages")] = False,
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """List subscription packages in the catalog."""
    setup_logging(verbose)
    rows = asyncio.run(_load_packages(package_type, all_))

    if not rows:
        console.print(f"[{STYLE_WARNING}]No packages found.[/{STYLE_WARNING}]")
        raise typer.Exit(0)

    table = Table(title="Subscription packages", header_style=STYLE_HEADER)
    table.add_column("ID")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Payment")
    table.add_column("Cycle")
    table.add_column("Price", justify="right")
    table.add_column("Setup fee", justify="right")
    table.add_column("Active")
    for pkg in rows:
        table.add_row(
            pkg.id,
            pkg.title,
            pkg.type,
            pkg.payment_type,
            pkg.billing_cycle or "-",
            f"{pkg.price:,.2f}",
            f"{pkg.setup_fee or 0:,.2f}",
            "yes" if pkg.is_active else "no",
        )
    console.print(table)


@app.command()
def quote(
    package_id: Annotated[str, typer.Argument(help="Package ID")],
    autopay: Annotated[bool, typer.Option("--autopay/--no-autopay", help="Collect the remainder by mandate")] = True,
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """Show what a subscriber pays now and later for a package."""
    from billing.errors import PackageNotFoundError
    from billing.services import pricing

    setup_logging(verbose)
    try:
        package = asyncio.run(_load_package(package_id))
    except PackageNotFoundError as e:
        console.print(f"[{STYLE_ERROR}]{e.message}[/{STYLE_ERROR}]")
        raise typer.Exit(1)

    price = pricing.quote(package, autopay)
    console.print(f"[{STYLE_HEADER}]{package.title}[/{STYLE_HEADER}] ({package.payment_type})")
    console.print(f"  Due now:          {price.initial_amount:,.2f}")
    console.print(f"  Setup fee:        {price.setup_fee:,.2f}")
    console.print(f"  Total:            {price.total_amount:,.2f}")
    console.print(f"  Remaining:        {price.remaining_amount:,.2f}")
    if not price.is_one_time:
        console.print(f"  Per cycle:        {price.recurring_amount:,.2f} x {price.recurring_count}")


@app.command("autopay-check")
def autopay_check(
    verbose: Annotated[bool, typer.Option(help="Verbose output")] = False,
):
    """Run one autopay pass now and report what was charged."""
    from billing.db.session import async_session_factory, engine
    from billing.services.autopay_service import charge_due_subscriptions
    from billing.services.gateway import get_gateway

    setup_logging(verbose)

    async def _run():
        try:
            return await charge_due_subscriptions(async_session_factory, get_gateway())
        finally:
            await engine.dispose()

    report = asyncio.run(_run())
    console.print(f"[{STYLE_SUCCESS}]Charged: {len(report.charged)}[/{STYLE_SUCCESS}]")
    if report.skipped:
        console.print(f"[{STYLE_WARNING}]Skipped: {', '.join(report.skipped)}[/{STYLE_WARNING}]")
    if report.failed:
        console.print(f"[{STYLE_ERROR}]Failed: {', '.join(report.failed)}[/{STYLE_ERROR}]")
        raise typer.Exit(1)


@app.command("seed-admin")
def seed_admin():
    """Create a local admin user and print a session token for it."""
    from billing.admin_seed import main

    asyncio.run(main())


if __name__ == "__main__":
    app()
