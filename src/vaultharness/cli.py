"""
vaultharness CLI - inspect registered harnesses and check backend credentials.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import json
import logging
import os

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from vaultharness import __version__
from vaultharness.config import HarnessSettings
from vaultharness.errors import FatalSetupError, UnknownBackend
from vaultharness.registry import HARNESS_MAP, available_backends, create_harness

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="vaultharness")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """vaultharness - Vault backend conformance harnesses

    Lists the secret-storage backends a test suite can drive and checks that
    their credentials are in place.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["console"] = console


@main.command("backends")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def backends(as_json: bool) -> None:
    """List registered backends."""
    rows = []
    for backend, harness_class in HARNESS_MAP.items():
        rows.append({
            "name": backend.value,
            "harness": harness_class.__name__,
            "config": dict(harness_class.DEFAULT_CONFIG),
            "env": {var: bool(os.environ.get(var)) for var in harness_class.REQUIRED_ENV},
        })

    if as_json:
        click.echo(json.dumps(rows, indent=2))
        return

    table = Table(title="Vault Backends")
    table.add_column("Name", style="cyan")
    table.add_column("Harness")
    table.add_column("Default Config")
    table.add_column("Environment")

    for row in rows:
        env = ", ".join(
            f"[green]{var}[/green]" if present else f"[red]{var}[/red]"
            for var, present in row["env"].items()
        )
        config = ", ".join(f"{k}={v}" for k, v in row["config"].items())
        table.add_row(row["name"], row["harness"], config or "-", env or "-")

    console.print(table)


@main.command("check")
@click.argument("backend")
def check(backend: str) -> None:
    """Run setup and teardown for BACKEND to validate its credentials."""
    settings = HarnessSettings.from_env()

    try:
        harness = create_harness(backend, settings=settings)
    except UnknownBackend as e:
        console.print(f"[red]{e}[/red]")
        console.print(f"Available: {', '.join(available_backends())}")
        raise SystemExit(2)

    try:
        harness.setup()
    except FatalSetupError as e:
        console.print(f"[red]Setup failed for {backend}: {e}[/red]")
        raise SystemExit(1)
    finally:
        harness.teardown()

    if harness.teardown_errors:
        console.print(f"[yellow]Teardown reported {len(harness.teardown_errors)} error(s)[/yellow]")

    console.print(f"[green]{backend} harness is ready[/green]")
    for key, value in harness.config.items():
        if key == "token":
            value = "********"
        console.print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
