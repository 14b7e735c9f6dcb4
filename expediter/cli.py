# expediter/cli.py

import json
import logging

import click
from flask.cli import with_appcontext

from expediter.store import current_store


@click.group("store")
def store_cli() -> None:
    """Domain store maintenance commands."""


@store_cli.command("reset")
@click.option("--empty", is_flag=True, help="Clear every collection instead of reseeding")
@with_appcontext
def reset_command(empty: bool) -> None:
    current_store().reset(seed=not empty)
    logging.info("store reset (empty=%s)", empty)
    click.echo("Store cleared." if empty else "Store reset to sample data.")


@store_cli.command("export")
@click.option("--output", "-o", type=click.File("w"), default="-", help="Target file (default stdout)")
@with_appcontext
def export_command(output) -> None:
    json.dump(current_store().export(), output, indent=2, sort_keys=True)
    output.write("\n")


@store_cli.command("next-number")
@with_appcontext
def next_number_command() -> None:
    """Show the permit number the next new permit will receive."""
    click.echo(current_store().peek_permit_number())
