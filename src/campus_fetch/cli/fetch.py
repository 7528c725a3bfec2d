"""CLI: campus fetch, campus dashboard"""

import asyncio
import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from campus_fetch.fallback import SampleFallback
from campus_fetch.models.session import FetchResult
from campus_fetch.records import is_paid, normalize_dashboard, pick_list

console = Console()

DASHBOARD_SLOT = "dashboard"
HOSTELS_SLOT = "dashboard-hostels"


def _load_settings():
    from campus_fetch.cli.main import _load_settings
    return _load_settings()


def _get_client(transport=None):
    from campus_fetch.cli.main import _get_client
    return _get_client(transport)


def _run(coro):
    from campus_fetch.cli.main import _run
    return _run(coro)


def _parse_params(pairs: tuple[str, ...]) -> dict[str, str]:
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="-p/--param")
        params[key] = value
    return params


@click.command("fetch")
@click.argument("action", required=False)
@click.option("-p", "--param", "params", multiple=True, help="Query parameter as key=value (repeatable).")
@click.option("-t", "--transport", type=click.Choice(["jsonp", "http"]), default=None)
def fetch_cmd(action: Optional[str], params: tuple[str, ...], transport: Optional[str]):
    """Read ACTION (or the bare endpoint) and print the JSON payload."""
    query = _parse_params(params)

    async def _fetch():
        async with _get_client(transport) as client:
            with console.status(f"Fetching {action or 'dashboard'}..."):
                payload = await client.request(action, query)
        click.echo(json.dumps(payload, indent=2))

    _run(_fetch())


@click.command("dashboard")
@click.option("--json-output", "--json", is_flag=True)
def dashboard_cmd(json_output: bool):
    """Overview of submissions, hostel rooms and fees."""

    async def _dashboard():
        settings = _load_settings()
        fallback = SampleFallback(settings.sample_dir, settings.enable_sample_fallback)
        results: dict[str, FetchResult] = {}

        def collect(result: FetchResult) -> None:
            results[result.slot] = result

        async with _get_client() as client:
            client.on_result(DASHBOARD_SLOT, fallback.wrap(collect, "submissions"))
            client.on_result(HOSTELS_SLOT, fallback.wrap(collect, "rooms"))
            ids = [
                client.fetch(DASHBOARD_SLOT),
                client.fetch(HOSTELS_SLOT, "getStudentsAndHostels"),
            ]
            with console.status("Loading dashboard..."):
                await asyncio.gather(*(client.sessions.wait(i) for i in ids))

        main_result = results.get(DASHBOARD_SLOT)
        hostel_result = results.get(HOSTELS_SLOT)
        data = {"submissions": [], "rooms": [], "fees": []}
        if main_result is not None and main_result.ok:
            if main_result.from_fallback:
                data["submissions"] = pick_list(main_result.payload, "submissions")
            else:
                data = normalize_dashboard(main_result.payload)
        if not data["rooms"] and hostel_result is not None and hostel_result.ok:
            data["rooms"] = pick_list(hostel_result.payload, "rooms")

        if json_output:
            click.echo(json.dumps(data, indent=2))
            return

        for result in (main_result, hostel_result):
            if result is not None and not result.ok:
                console.print(f"[yellow]{result.slot}: live data failed to load ({result.error})[/yellow]")
            elif result is not None and result.from_fallback:
                console.print(f"[dim]{result.slot}: showing sample data[/dim]")

        rooms = data["rooms"]
        occupied = sum(1 for r in rooms if str(r.get("Status", "")).lower() == "occupied")
        vacant = sum(1 for r in rooms if str(r.get("Status", "")).lower() == "available")
        paid = sum(1 for f in data["fees"] if isinstance(f, dict) and is_paid(f.get("Status")))

        table = Table(title="Dashboard")
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Total submissions", str(len(data["submissions"])))
        table.add_row("Rooms occupied", str(occupied))
        table.add_row("Rooms vacant", str(vacant))
        table.add_row("Paid transactions", str(paid))
        console.print(table)

    _run(_dashboard())
