"""CLI: campus hostel rooms|assign"""

import click
from rich.console import Console
from rich.table import Table

console = Console()


def _get_client():
    from campus_fetch.cli.main import _get_client
    return _get_client()


def _run(coro):
    from campus_fetch.cli.main import _run
    return _run(coro)


@click.group()
def hostel():
    """Hostel allocation."""


@hostel.command("rooms")
@click.option("--vacant", is_flag=True, help="Only rooms with status Available.")
def hostel_rooms(vacant: bool):
    """List hostel rooms."""

    async def _rooms():
        async with _get_client() as client:
            with console.status("Loading rooms..."):
                data = await client.records.students_and_hostels()
        rooms = [r for r in data["rooms"] if isinstance(r, dict)]
        if vacant:
            rooms = [r for r in rooms if str(r.get("Status", "")).lower() == "available"]
        table = Table(title=f"Rooms ({len(rooms)})")
        table.add_column("Room", style="bold")
        table.add_column("Status")
        table.add_column("Occupant")
        for r in rooms:
            table.add_row(
                str(r.get("RoomNumber", "-")),
                str(r.get("Status", "-")),
                str(r.get("StudentName") or r.get("AssignedTo") or r.get("StudentId") or r.get("ApplicationId") or "-"),
            )
        console.print(table)

    _run(_rooms())


@hostel.command("assign")
@click.argument("student_id")
@click.argument("room_number")
def hostel_assign(student_id: str, room_number: str):
    """Assign ROOM_NUMBER to STUDENT_ID."""

    async def _assign():
        async with _get_client() as client:
            with console.status("Assigning room..."):
                await client.records.assign_hostel_room(student_id, room_number)
        console.print(f"[green]Assigned Room {room_number} to {student_id}.[/green]")

    _run(_assign())
