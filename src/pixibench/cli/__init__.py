"""CLI module for PixiBench commands.

This module re-exports all command functions so the console entry point can
register them on a single group.
"""

import click

from .. import __version__
from .compare_cmd import compare_results
from .run_cmd import run
from .scaffold_cmd import scaffold


@click.group()
@click.version_option(version=__version__, prog_name="pixibench")
def main() -> None:
    """🎮 PixiBench — browser rendering benchmarks and FPS regression checks."""
    pass


main.add_command(run)
main.add_command(compare_results)
main.add_command(scaffold)

__all__ = [
    "compare_results",
    "main",
    "run",
    "scaffold",
]
