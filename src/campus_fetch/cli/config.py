"""CLI: campus config show|set|unset"""

import click
from rich.console import Console
from rich.table import Table

from campus_fetch.config import CONFIG_FILE, Settings, load_config, save_config
from campus_fetch.errors import ConfigError

console = Console()


@click.group()
def config():
    """Endpoint and retry settings."""


@config.command("show")
def config_show():
    """Show effective settings (file + CAMPUS_* environment)."""
    try:
        settings = Settings.load()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise SystemExit(1)
    table = Table(title=f"Settings ({CONFIG_FILE})")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key, value in settings.model_dump().items():
        table.add_row(key, "" if value is None else str(value))
    console.print(table)


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str):
    """Save a setting to the config file."""
    if key not in Settings.model_fields:
        console.print(f"[red]Unknown setting {key!r}. Known: {', '.join(Settings.model_fields)}[/red]")
        raise SystemExit(1)
    cfg = load_config()
    cfg[key] = value
    try:
        Settings.model_validate(cfg)
    except ValueError as e:
        console.print(f"[red]Invalid value for {key}: {e}[/red]")
        raise SystemExit(1)
    save_config(cfg)
    console.print(f"[green]{key} saved.[/green]")


@config.command("unset")
@click.argument("key")
def config_unset(key: str):
    """Remove a setting from the config file."""
    cfg = load_config()
    if key not in cfg:
        console.print(f"[yellow]{key} was not set.[/yellow]")
        return
    del cfg[key]
    save_config(cfg)
    console.print(f"[green]{key} removed.[/green]")
