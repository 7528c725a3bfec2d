"""CLI: campus students search|show"""

import json

import click
from rich.console import Console
from rich.table import Table

from campus_fetch.records import pick, pick_list

console = Console()


def _get_client():
    from campus_fetch.cli.main import _get_client
    return _get_client()


def _run(coro):
    from campus_fetch.cli.main import _run
    return _run(coro)


def _full_name(student: dict) -> str:
    name = student.get("name") or " ".join(
        p for p in (student.get("firstName"), student.get("lastName")) if p
    )
    return (name or "Unknown").strip()


@click.group()
def students():
    """Student lookup."""


@students.command("search")
@click.argument("query")
@click.option("--json-output", "--json", is_flag=True)
def students_search(query: str, json_output: bool):
    """Search by application id, name, email or mobile."""
    if not query.strip():
        console.print("[red]Enter name, email, mobile or application id[/red]")
        raise SystemExit(1)

    async def _search():
        async with _get_client() as client:
            with console.status("Searching..."):
                result = await client.records.search_students(query)
        if json_output:
            click.echo(json.dumps(result, indent=2))
            return
        matches = pick_list(result, "results", "students", "matches")
        if not matches and isinstance(result, dict) and result.get("student"):
            matches = [result["student"]]
        if not matches:
            console.print("[yellow]No students found.[/yellow]")
            return
        table = Table(title=f"Students ({len(matches)})")
        table.add_column("Application ID", style="bold")
        table.add_column("Name")
        table.add_column("Email")
        table.add_column("Mobile")
        for s in matches:
            if not isinstance(s, dict):
                continue
            table.add_row(
                str(pick(s, ("ApplicationId", "applicationId", "ApplicationID")) or "-"),
                _full_name(s),
                str(pick(s, ("email", "Email")) or "-"),
                str(pick(s, ("mobile", "Mobile", "phone", "Phone")) or "-"),
            )
        console.print(table)

    _run(_search())


@students.command("show")
@click.argument("application_id")
def students_show(application_id: str):
    """Show one student's details as JSON."""

    async def _show():
        async with _get_client() as client:
            with console.status("Loading student..."):
                details = await client.records.student_details(application_id)
        click.echo(json.dumps(details, indent=2))

    _run(_show())
