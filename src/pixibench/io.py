"""I/O utilities for logging setup, atomic writes and results files."""

from __future__ import annotations

import json
import logging
import math
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from shutil import move
from typing import Any, Iterable

from .error_handling import ConfigurationError
from .models import AggregatedMetric, Variant

logger = logging.getLogger(__name__)


def setup_logging(log_dir: Path | None = None, log_level: str = "INFO") -> logging.Logger:
    """Set up logging configuration for PixiBench.

    Args:
        log_dir: Directory to store a timestamped log file (None logs to stderr only)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance
    """
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        handlers.append(logging.FileHandler(log_dir / f"pixibench_{timestamp}.log"))

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )

    return logging.getLogger("pixibench")


@contextmanager
def atomic_write(target_path: Path, mode: str = "w"):
    """Context manager for atomic file writes using temporary files.

    Example:
        with atomic_write(Path("results.json")) as f:
            json.dump(data, f)
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.NamedTemporaryFile(
        mode=mode,
        dir=target_path.parent,
        delete=False,
        suffix=f".tmp_{target_path.name}",
        encoding="utf-8" if "b" not in mode else None,
    ) as temp_file:
        try:
            yield temp_file
            temp_file.flush()
        except Exception:
            Path(temp_file.name).unlink(missing_ok=True)
            raise
    move(temp_file.name, target_path)


def _json_safe(value: Any) -> Any:
    """Replace NaN/inf with None so the file stays valid JSON."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    return value


def write_results(metrics: Iterable[AggregatedMetric], output_file: Path) -> Path:
    """Write results as a JSON array in execution order, replacing any previous file."""
    entries = [_json_safe(metric.to_dict()) for metric in metrics]
    with atomic_write(Path(output_file)) as f:
        json.dump(entries, f, indent=2)
        f.write("\n")
    logger.info(f"💾 Wrote {len(entries)} result(s) to {output_file}")
    return Path(output_file)


def load_results(
    results_file: Path,
    variant: Variant = Variant.CANDIDATE,
    as_variant: Variant = Variant.BASELINE,
) -> dict[str, AggregatedMetric]:
    """Load a results file keyed by scenario name.

    Entries carrying a ``variant`` field are filtered to *variant*; the
    loaded metrics are tagged as *as_variant* (by default the baseline side
    of a comparison).

    Raises:
        ConfigurationError: If the file is unreadable, malformed, or repeats a name
    """
    results_file = Path(results_file)
    try:
        data = json.loads(results_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot read results file {results_file}: {e}", cause=e
        ) from e

    if not isinstance(data, list):
        raise ConfigurationError(f"Results file {results_file} must hold a JSON array")

    metrics: dict[str, AggregatedMetric] = {}
    for entry in data:
        if not isinstance(entry, dict) or "name" not in entry:
            raise ConfigurationError(
                f"Results file {results_file} has an entry without a name: {entry!r}"
            )
        if "variant" in entry and entry["variant"] != variant.value:
            continue
        name = str(entry["name"])
        if name in metrics:
            raise ConfigurationError(
                f"Results file {results_file} lists scenario {name!r} more than once"
            )
        metrics[name] = AggregatedMetric.from_dict(entry, variant=as_variant)

    logger.info(f"📂 Loaded {len(metrics)} result(s) from {results_file}")
    return metrics
