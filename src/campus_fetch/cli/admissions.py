"""CLI: campus admissions submit"""

import json
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

console = Console()

FORM_DEFAULTS = {
    "nationality": "Indian",
    "category": "General",
    "course": "Computer Science",
    "hostel": "No",
    "transport": "No",
    "feeStatus": "To Be Paid at Counter",
}

REQUIRED_FIELDS = (
    "firstName", "lastName", "dob", "gender", "nationality", "category",
    "guardianName", "guardianMobile", "email", "mobile", "address", "city",
    "state", "zip", "previousInstitute", "yearOfPassing", "percentage",
)


def _get_client():
    from campus_fetch.cli.main import _get_client
    return _get_client()


def _run(coro):
    from campus_fetch.cli.main import _run
    return _run(coro)


def build_form(pairs: tuple[str, ...], form_file: Optional[Path]) -> dict[str, str]:
    """Defaults, then the JSON file, then -f key=value pairs."""
    form = dict(FORM_DEFAULTS)
    if form_file is not None:
        try:
            data = json.loads(form_file.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise click.BadParameter(f"cannot read form: {e}", param_hint="--file")
        if not isinstance(data, dict):
            raise click.BadParameter("form file must hold a JSON object", param_hint="--file")
        form.update({k: "" if v is None else str(v) for k, v in data.items()})
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="-f/--field")
        form[key] = value
    return form


@click.group()
def admissions():
    """Admission applications."""


@admissions.command("submit")
@click.option("-f", "--field", "fields", multiple=True, help="Form field as key=value (repeatable).")
@click.option("--file", "form_file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="JSON object with form fields.")
def admissions_submit(fields: tuple[str, ...], form_file: Optional[Path]):
    """Submit an admission form; fees are collected at the counter."""
    form = build_form(fields, form_file)
    missing = [name for name in REQUIRED_FIELDS if not str(form.get(name, "")).strip()]
    if missing:
        console.print(f"[red]Missing required fields: {', '.join(missing)}[/red]")
        raise SystemExit(1)

    async def _submit():
        async with _get_client() as client:
            with console.status("Submitting application..."):
                application_id = await client.records.submit_admission(form)
        console.print(f"[green]Application submitted. Application ID: {application_id}[/green]")

    _run(_submit())
