"""CLI: campus library list|issue|return"""

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
def library():
    """Library lending."""


@library.command("list")
def library_list():
    """List books and who holds them."""

    async def _list():
        async with _get_client() as client:
            with console.status("Loading library..."):
                data = await client.records.students_and_library()
        table = Table(title=f"Books ({len(data['books'])})")
        table.add_column("Book ID", style="bold")
        table.add_column("Title")
        table.add_column("Status")
        table.add_column("Issued to")
        for b in data["books"]:
            if not isinstance(b, dict):
                continue
            table.add_row(
                str(b.get("BookId") or b.get("BookID") or "-"),
                str(b.get("Title", "-")),
                str(b.get("Status", "-")),
                str(b.get("AssignedToStudentId") or "-"),
            )
        console.print(table)

    _run(_list())


@library.command("issue")
@click.argument("student_id")
@click.argument("book_id")
def library_issue(student_id: str, book_id: str):
    """Issue BOOK_ID to STUDENT_ID."""

    async def _issue():
        async with _get_client() as client:
            with console.status("Issuing book..."):
                result = await client.records.issue_book(student_id, book_id)
        console.print(f"[green]{result.get('message') or 'Book issued successfully.'}[/green]")

    _run(_issue())


@library.command("return")
@click.argument("book_id")
def library_return(book_id: str):
    """Mark BOOK_ID as returned."""

    async def _return():
        async with _get_client() as client:
            with console.status("Returning book..."):
                result = await client.records.return_book(book_id)
        console.print(f"[green]{result.get('message') or 'Book returned successfully.'}[/green]")

    _run(_return())
