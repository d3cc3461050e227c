"""CLI entry point for the court booker."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Config, Credentials, Job, Settings, load_config, load_credentials
from .errors import ConfigError
from .notify import MultiNotifier, build_notifier
from .outcome import OutcomeKind
from .scheduler import plan, wait_until
from .session import BookingSession, book_court

console = Console()


def _banner() -> None:
    console.print(Panel(
        "[bold cyan]🎾  CourtReserve Court Booker[/]\n"
        "[dim]Books the court the moment the window opens[/]",
        border_style="cyan",
    ))


def _credentials() -> Credentials:
    try:
        return load_credentials()
    except ConfigError as e:
        console.print(f"[bold red]✗ {e}[/]")
        sys.exit(1)


def _notifier_for(cfg: Config, job: Job) -> MultiNotifier:
    n = cfg.notifications
    if not job.notify:
        return build_notifier(console_enabled=True)
    return build_notifier(console_enabled=n.console, desktop=n.desktop, ntfy_topic=n.ntfy_topic)


@click.group()
def cli() -> None:
    """Automated tennis court booking on CourtReserve.

    Credentials come from USTA_EMAIL / USTA_PASSWORD (a .env file works).
    Set HEADLESS=false to watch the browser and DEBUG=1 for screenshots.
    """


@cli.command()
def login() -> None:
    """Check that the stored credentials can log in."""
    _banner()
    session = BookingSession(_credentials(), settings=Settings.from_env())
    try:
        session.initialize()
        ok = session.login()
    finally:
        session.close()

    if not ok:
        console.print("[bold red]✗ Login test failed[/]")
        sys.exit(1)
    console.print("[bold green]✓ Login test passed[/]")


@cli.command()
@click.option(
    "-c", "--config",
    default="config.yaml",
    type=click.Path(exists=True),
    help="Path to YAML config file.",
)
@click.option("--job", "job_names", multiple=True, help="Only run the named job(s).")
@click.option("--now", is_flag=True, help="Run immediately instead of waiting for the booking window.")
def book(config: str, job_names: tuple[str, ...], now: bool) -> None:
    """Book every configured job when its booking window opens."""
    _banner()
    try:
        cfg = load_config(config)
    except ConfigError as e:
        console.print(f"[bold red]✗ Invalid config: {e}[/]")
        sys.exit(1)

    jobs = [j for j in cfg.jobs if not job_names or j.name in job_names]
    if not jobs:
        console.print("[yellow]No matching jobs.[/]")
        sys.exit(1)

    credentials = _credentials()
    settings = Settings.from_env()
    failures = 0

    for when, job in plan(jobs, cfg.lead_hours):
        console.rule(f"[bold cyan]{job.name}[/]")
        if not now:
            wait_until(when)

        outcome = book_court(
            credentials,
            target_date=job.date,
            target_time=job.target_time,
            duration=job.duration_label,
            portal=cfg.portal,
            facility=job.facility,
            notifier=_notifier_for(cfg, job),
            settings=settings,
        )
        if outcome.kind is not OutcomeKind.BOOKED:
            failures += 1

    if failures:
        console.print(f"\n[bold red]✗ {failures} of {len(jobs)} job(s) failed.[/]")
        sys.exit(1)
    console.print("\n[bold green]✓ All jobs booked.[/]")


@cli.command("plan")
@click.option(
    "-c", "--config",
    default="config.yaml",
    type=click.Path(exists=True),
    help="Path to YAML config file.",
)
def show_plan(config: str) -> None:
    """List jobs and when their booking windows open."""
    try:
        cfg = load_config(config)
    except ConfigError as e:
        console.print(f"[bold red]✗ Invalid config: {e}[/]")
        sys.exit(1)

    table = Table(title=f"Booking plan ({cfg.lead_hours}h lead)")
    table.add_column("Job")
    table.add_column("Facility")
    table.add_column("Slot")
    table.add_column("Duration")
    table.add_column("Runs at", style="cyan")
    for when, job in plan(cfg.jobs, cfg.lead_hours):
        slot = f"{job.start:%a %d %b %Y %I:%M %p}" + ("" if job.exact_time else " (next available)")
        table.add_row(job.name, job.facility, slot, job.duration_label, f"{when:%a %d %b %H:%M}")
    console.print(table)


if __name__ == "__main__":
    cli()
