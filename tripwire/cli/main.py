"""Tripwire command-line entry point."""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(__version__, prog_name="tripwire")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging.")
def main(verbose: bool) -> None:
    """Learn from build and test failures and generate regression tests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from . import learn  # noqa: E402,F401
