"""CLI: campus fees list"""

import json
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from campus_fetch.records import APPLICATION_ID_KEYS, NAME_KEYS, pick

console = Console()

TXN_ID_KEYS = ("TransactionID", "transactionId", "txnId", "TransactionId")
METHOD_KEYS = ("PaymentMethod", "paymentMethod", "method")


def _get_client():
    from campus_fetch.cli.main import _get_client
    return _get_client()


def _run(coro):
    from campus_fetch.cli.main import _run
    return _run(coro)


def _matches(txn: dict, search: Optional[str], method: Optional[str], status: Optional[str]) -> bool:
    if status and str(txn.get("Status", "")).lower() != status.lower():
        return False
    if method and method.lower() not in str(pick(txn, METHOD_KEYS) or "").lower():
        return False
    if search:
        haystack = " ".join(str(v) for v in txn.values()).lower()
        if search.lower() not in haystack:
            return False
    return True


@click.group()
def fees():
    """Fee collection."""


@fees.command("list")
@click.option("-s", "--search", default=None)
@click.option("--method", default=None)
@click.option("--status", default=None)
@click.option("--json-output", "--json", is_flag=True)
def fees_list(search: Optional[str], method: Optional[str], status: Optional[str], json_output: bool):
    """List fee transactions."""

    async def _list():
        async with _get_client() as client:
            with console.status("Loading fees..."):
                transactions = await client.records.fees()
                names = await client.records.fee_student_names(transactions)
        rows = [t for t in transactions if isinstance(t, dict) and _matches(t, search, method, status)]
        if json_output:
            click.echo(json.dumps(rows, indent=2))
            return
        table = Table(title=f"Fee transactions ({len(rows)})")
        table.add_column("Transaction ID", style="bold")
        table.add_column("Student")
        table.add_column("Amount", justify="right")
        table.add_column("Method")
        table.add_column("Status")
        table.add_column("Date")
        for idx, t in enumerate(rows):
            app_id = pick(t, APPLICATION_ID_KEYS)
            name = pick(t, NAME_KEYS) or names.get(str(app_id), "-")
            table.add_row(
                str(pick(t, TXN_ID_KEYS) or f"TX-{idx + 1}"),
                str(name),
                str(t.get("Amount", "-")),
                str(pick(t, METHOD_KEYS) or "-"),
                str(t.get("Status", "-")),
                str(t.get("PaymentDate") or t.get("Date") or "-"),
            )
        console.print(table)

    _run(_list())
