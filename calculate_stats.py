"""
Calculate chart series from parsed histograms.

Two shapes are produced:
  - line:    latency as a function of percentile, one curve per histogram
  - density: smoothed per-latency count increments, drawn as violins

Usage:
    python calculate_stats.py <parsed.json> [--renderer line|violin]

Output:
    stats JSON on stdout (the payload consumed by render_stats_html.py)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from itertools import groupby
from pathlib import Path
from typing import List, Optional
import argparse
import json
import sys

import numpy as np
from scipy.interpolate import make_smoothing_spline

from hgrm_types import Histogram, HistogramCollection, dict_to_collection


RENDERERS = ("line", "violin")
DEFAULT_RENDERER = "line"

# Source latencies are microseconds; charts are in milliseconds.
US_PER_MS = 1000.0

# Percentiles that get a labelled tick on the line chart x axis.
KEY_PERCENTILES = (0.1, 0.5, 0.9, 0.95, 0.99, 0.999, 0.9999)

# Widest violin takes 90% of its row.
DENSITY_FILL = 0.9
DEFAULT_SMOOTH = 0.99
_MIN_SPLINE_POINTS = 5


# ---------------------------------------------------------------------------
# Series dataclasses
# ---------------------------------------------------------------------------

@dataclass
class LineSeries:
    label: str
    percentiles: list[float]
    latencies_ms: list[float]


@dataclass
class DensitySeries:
    label: str
    latencies_ms: list[float]
    widths: list[float]


# ---------------------------------------------------------------------------
# Line chart
# ---------------------------------------------------------------------------

def line_series(histogram: Histogram) -> LineSeries:
    """
    Percentile/latency points of one histogram.

    The 1.0 row is dropped: the x axis is 1/(1-p), which is infinite there.
    """
    rows = [p for p in histogram.percentiles if p.percentile < 1.0]
    return LineSeries(
        label=histogram.label(),
        percentiles=[p.percentile for p in rows],
        latencies_ms=[p.value / US_PER_MS for p in rows],
    )


def percentile_axis_ticks() -> tuple[list[float], list[str]]:
    """Tick positions on the 1/(1-p) axis and their percent labels."""
    positions = [1.0 / (1.0 - p) for p in KEY_PERCENTILES]
    labels = [f"{p * 100:g}%" for p in KEY_PERCENTILES]
    return positions, labels


# ---------------------------------------------------------------------------
# Density (violin) chart
# ---------------------------------------------------------------------------

def count_increments(histogram: Histogram) -> np.ndarray:
    """Per-row count, i.e. total_count minus the previous row's (first row vs 0)."""
    totals = np.array([p.total_count for p in histogram.percentiles], dtype=np.float64)
    return np.diff(totals, prepend=0.0)


def _smooth(xs: np.ndarray, ys: np.ndarray, smooth: float) -> np.ndarray:
    """
    Cubic smoothing spline evaluated at xs.

    ``smooth`` follows the csaps convention (1.0 = interpolate, 0.0 = straight
    line), mapped onto scipy's penalty weight.
    """
    if len(xs) < _MIN_SPLINE_POINTS or np.any(np.diff(xs) <= 0):
        return ys
    if smooth >= 1.0:
        return ys
    lam = (1.0 - smooth) / smooth
    spline = make_smoothing_spline(xs, ys, lam=lam)
    return spline(xs)


def density_series(histogram: Histogram, smooth: float = DEFAULT_SMOOTH) -> DensitySeries:
    """
    Violin outline of one histogram.

    Rows sharing a latency (consecutive duplicates, as HdrHistogram prints
    for coarse buckets) are merged by summing their increments.
    """
    increments = count_increments(histogram)
    peak = float(increments.max()) if len(increments) else 0.0

    points: list[tuple[float, float]] = []
    pairs = zip((p.value / US_PER_MS for p in histogram.percentiles), increments)
    for x, group in groupby(pairs, key=lambda pair: pair[0]):
        total = sum(float(inc) for _, inc in group)
        width = (total / peak) * DENSITY_FILL if peak > 0 else 0.0
        points.append((x, width))

    points.sort(key=lambda point: point[0])
    xs = np.array([x for x, _ in points], dtype=np.float64)
    ys = np.array([y for _, y in points], dtype=np.float64)

    return DensitySeries(
        label=histogram.label(),
        latencies_ms=xs.tolist(),
        widths=_smooth(xs, ys, smooth).tolist(),
    )


# ---------------------------------------------------------------------------
# Payload
# ---------------------------------------------------------------------------

def build_stats_payload(collection: HistogramCollection, renderer: str = DEFAULT_RENDERER) -> dict:
    """JSON-ready chart data for render_stats_html.py."""
    if renderer not in RENDERERS:
        raise ValueError(f"unknown renderer {renderer!r}, expected one of {', '.join(RENDERERS)}")

    payload: dict[str, object] = {
        "renderer": renderer,
        "max_latency_ms": collection.max_latency() / US_PER_MS,
        "labels": [h.label() for h in collection],
    }
    if renderer == "line":
        positions, labels = percentile_axis_ticks()
        payload["ticks"] = {"positions": positions, "labels": labels}
        payload["series"] = [asdict(line_series(h)) for h in collection]
    else:
        payload["series"] = [asdict(density_series(h)) for h in collection]
    return payload


def load_collection_from_json(path: Path) -> HistogramCollection:
    """Load histograms written by ``parse_hgrm.py --out``."""
    if not path.exists():
        raise FileNotFoundError(
            f"parsed histograms not found: {path}\n"
            f"Run 'python parse_hgrm.py <log_file> --out {path}' first."
        )
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return dict_to_collection(data)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    """Print chart series for a parsed histogram JSON file."""
    parser = argparse.ArgumentParser(description="Compute chart series from parsed histograms.")
    parser.add_argument("parsed_json", help="Output of parse_hgrm.py --out")
    parser.add_argument("--renderer", choices=RENDERERS, default=DEFAULT_RENDERER)
    args = parser.parse_args(argv)

    try:
        collection = load_collection_from_json(Path(args.parsed_json))
    except (FileNotFoundError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    json.dump(build_stats_payload(collection, args.renderer), sys.stdout, indent=2)
    print()


if __name__ == "__main__":
    main()
