"""
campus-fetch CLI, the `campus` command.

Commands:
  campus config show|set|unset     Endpoint URL, transport, retry settings
  campus fetch [ACTION] -p k=v     Raw read against the endpoint
  campus dashboard                 Submissions / rooms / fees overview
  campus students search|show      Student lookup
  campus fees list                 Fee transactions
  campus hostel rooms|assign       Hostel allocation
  campus library list|issue|return Library lending
  campus admissions submit         Admission applications
"""

import asyncio
import logging
from typing import Optional

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install campus-fetch[cli]")

from campus_fetch.client import AsyncCampusClient
from campus_fetch.config import Settings
from campus_fetch.errors import CampusFetchError

console = Console()


def _load_settings() -> Settings:
    try:
        return Settings.load()
    except CampusFetchError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)


def _get_client(transport: Optional[str] = None) -> AsyncCampusClient:
    settings = _load_settings()
    if not settings.apps_script_url:
        console.print("[red]No Apps Script URL configured. Run `campus config set apps_script_url <url>`.[/red]")
        raise SystemExit(1)
    if transport:
        return AsyncCampusClient.from_settings(settings, transport=transport)
    return AsyncCampusClient.from_settings(settings)


def _run(coro):
    try:
        return asyncio.run(coro)
    except CampusFetchError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)


@click.group()
@click.version_option("0.1.0")
@click.option("-v", "--verbose", is_flag=True, help="Log attempts and session transitions.")
def main(verbose: bool):
    """campus-fetch CLI: college admin records from the Apps Script backend."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# Register subcommands from separate modules
from campus_fetch.cli.config import config
from campus_fetch.cli.fetch import dashboard_cmd, fetch_cmd
from campus_fetch.cli.students import students
from campus_fetch.cli.fees import fees
from campus_fetch.cli.hostel import hostel
from campus_fetch.cli.library import library
from campus_fetch.cli.admissions import admissions

main.add_command(config)
main.add_command(fetch_cmd)
main.add_command(dashboard_cmd)
main.add_command(students)
main.add_command(fees)
main.add_command(hostel)
main.add_command(library)
main.add_command(admissions)


if __name__ == "__main__":
    main()
