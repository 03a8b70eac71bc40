"""Create missing harness pages next to each benchmark scenario."""

from pathlib import Path

import click

from ..discovery import discover_scenarios, ensure_harness_pages, library_sources
from .utils import configure_logging, handle_generic_error, logging_options


@click.command()
@click.argument(
    "benchmark_path",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("benchmarks"),
)
@click.option(
    "--dist-path",
    type=click.Path(path_type=Path),
    default=Path("dist"),
    help="Directory holding the locally built library (default: dist)",
)
@click.option(
    "--serve-root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=Path("."),
    help="Directory the pages will be served from (default: .)",
)
@logging_options
def scaffold(
    benchmark_path: Path,
    dist_path: Path,
    serve_root: Path,
    log_level: str,
    log_dir: Path | None,
) -> None:
    """Write dev.html / local.html for every scenario in BENCHMARK_PATH.

    Existing pages are left untouched.
    """
    configure_logging(log_level, log_dir)

    try:
        entries = discover_scenarios(benchmark_path)
        created = ensure_harness_pages(entries, library_sources(dist_path, serve_root))
    except Exception as e:
        handle_generic_error("Scaffold", e)

    click.echo(f"📝 {len(created)} page(s) created for {len(entries)} scenario(s)")
