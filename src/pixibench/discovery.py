"""Benchmark scenario discovery and harness page synthesis.

A scenario is any directory below the benchmark root holding an ``index.mjs``
entry point. Each scenario is served through one harness page per variant;
the pages differ only in where the graphics library is loaded from.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from .config import DEFAULT_HARNESS_CONFIG
from .error_handling import ConfigurationError, DiscoveryError
from .models import ScenarioEntry, Variant

logger = logging.getLogger(__name__)

HARNESS_TEMPLATE = """<!doctype html>
<html>
<head>
<meta charset="utf-8" />
<title>PixiJS Benchmark</title>
<script type="importmap">
{{
  "imports": {{ "{specifier}": "{source}" }}
}}
</script>
</head>
<body>
<script type="module" src="./{entry_point}"></script>
</body>
</html>
"""


def find_entry_points(root: Path, entry_point: str | None = None) -> list[Path]:
    """Walk *root* and return every entry-point file in traversal order."""
    entry_point = entry_point or DEFAULT_HARNESS_CONFIG.ENTRY_POINT
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Sorting in place makes os.walk descend deterministically
        dirnames.sort()
        if entry_point in filenames:
            found.append(Path(dirpath) / entry_point)
    return found


def discover_scenarios(root: Path, required: bool = True) -> list[ScenarioEntry]:
    """Discover benchmark scenarios below *root*.

    Args:
        root: Benchmark root directory
        required: Raise when no scenario is found

    Returns:
        Scenarios ordered by traversal order, named by their relative path

    Raises:
        DiscoveryError: If root does not exist or holds no scenario while required
    """
    root = Path(root)
    if not root.is_dir():
        raise DiscoveryError(
            f"Benchmark path not found: {root}", context={"benchmark_path": str(root)}
        )

    entries = []
    for entry_file in find_entry_points(root):
        directory = entry_file.parent
        name = directory.relative_to(root).as_posix()
        if name == ".":
            name = root.resolve().name
        entries.append(ScenarioEntry(name=name, directory_path=directory))

    if not entries and required:
        raise DiscoveryError(
            f"No {DEFAULT_HARNESS_CONFIG.ENTRY_POINT} benchmark entrypoints found in {root}",
            context={"benchmark_path": str(root)},
        )

    logger.info(f"🔍 Discovered {len(entries)} benchmark scenario(s) in {root}")
    return entries


def render_harness_page(library_source: str) -> str:
    """Render the harness page loading the library from *library_source*."""
    return HARNESS_TEMPLATE.format(
        specifier=DEFAULT_HARNESS_CONFIG.LIBRARY_SPECIFIER,
        source=library_source,
        entry_point=DEFAULT_HARNESS_CONFIG.ENTRY_POINT,
    )


def library_sources(dist_path: Path, serve_root: Path) -> dict[Variant, str]:
    """Map each variant to the URL its harness page loads the library from.

    The candidate loads the local build through the static server, so the
    dist directory must live below the served root.
    """
    library = Path(dist_path).resolve() / DEFAULT_HARNESS_CONFIG.LIBRARY_FILE
    try:
        relative = library.relative_to(Path(serve_root).resolve())
    except ValueError as e:
        raise ConfigurationError(
            f"dist path {dist_path} is not inside the served directory {serve_root}",
            cause=e,
        ) from e
    return {
        Variant.BASELINE: DEFAULT_HARNESS_CONFIG.REFERENCE_SOURCE,
        Variant.CANDIDATE: f"/{relative.as_posix()}",
    }


def ensure_harness_pages(
    entries: list[ScenarioEntry], sources: dict[Variant, str]
) -> list[Path]:
    """Write missing harness pages for every scenario and variant.

    Existing pages are never overwritten, so running this twice is harmless.

    Returns:
        Paths of the pages created by this call
    """
    created = []
    for entry in entries:
        for variant, source in sources.items():
            page = Path(entry.directory_path) / variant.page_name
            if page.exists():
                continue
            page.write_text(render_harness_page(source), encoding="utf-8")
            logger.info(f"📝 Created {page}")
            created.append(page)
    return created


def scenario_url(
    base_url: str, serve_root: Path, entry: ScenarioEntry, variant: Variant
) -> str:
    """Build the URL the static server exposes the scenario's harness page at."""
    directory = Path(entry.directory_path).resolve()
    try:
        relative = directory.relative_to(Path(serve_root).resolve()).as_posix()
    except ValueError as e:
        raise ConfigurationError(
            f"Scenario {entry.name} is outside the served directory {serve_root}",
            cause=e,
        ) from e

    base = base_url.rstrip("/")
    if relative == ".":
        return f"{base}/{variant.page_name}"
    return f"{base}/{relative}/{variant.page_name}"
