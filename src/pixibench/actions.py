"""GitHub Actions workflow commands (log groups and error annotations)."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager

import click

logger = logging.getLogger(__name__)


def in_github_actions() -> bool:
    return os.getenv("GITHUB_ACTIONS", "").lower() == "true"


@contextmanager
def log_group(title: str):
    """Fold everything logged inside the block under *title* in the Actions log."""
    if in_github_actions():
        click.echo(f"::group::{title}")
    else:
        logger.info(f"▶️  {title}")
    try:
        yield
    finally:
        if in_github_actions():
            click.echo("::endgroup::")


def annotate_error(message: str) -> None:
    """Surface *message* as a workflow error annotation when running in Actions."""
    if in_github_actions():
        # Workflow commands are line based
        click.echo(f"::error::{message.splitlines()[0] if message else ''}")
