"""
Shared types and utilities for the histogram log tools.

This module contains:
- Percentile / Histogram / HistogramCollection dataclasses for parsed logs
- OnePercentile sum type for the 1/(1-Percentile) column
- ANSI color helpers for terminal output
- JSON serialization helpers
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Union
import os
import sys


# ---------------------------------------------------------------------------
# ANSI color helpers
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR") is not None:
        return False
    try:
        return sys.stdout.isatty()
    except Exception:
        return False


_COLOR = _use_color()


def _c(text: str, code: str) -> str:
    if not _COLOR:
        return text
    return f"\033[{code}m{text}\033[0m"


def c_label(text: str) -> str:
    return _c(text, "1;36")  # bold cyan


def c_value(text: str) -> str:
    return _c(text, "1;37")  # bold white


def c_ok(text: str) -> str:
    return _c(text, "1;32")  # bold green


def c_warn(text: str) -> str:
    return _c(text, "1;33")  # bold yellow


def c_dim(text: str) -> str:
    return _c(text, "2")  # dim


# ---------------------------------------------------------------------------
# 1/(1-Percentile) column
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OnePercentileValue:
    value: float


@dataclass(frozen=True)
class OnePercentileInf:
    """The 100th percentile row, where 1/(1-p) divides by zero."""

    def __repr__(self) -> str:
        return "INF"


INF = OnePercentileInf()

OnePercentile = Union[OnePercentileValue, OnePercentileInf]


# ---------------------------------------------------------------------------
# Histogram dataclasses
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Percentile:
    value: float                    # latency, unit as printed (usually microseconds)
    percentile: float               # plain fraction, 0.0 .. 1.0
    total_count: int                # cumulative count at or below value
    one_percentile: OnePercentile


@dataclass(frozen=True)
class Histogram:
    """
    One section of a histogram log: the percentile table plus the three
    ``#[...]`` summary lines, optionally named by a ``=== name ===`` header.
    """
    name: Optional[str]
    percentiles: tuple[Percentile, ...]
    mean: float
    std_deviation: float
    max: float
    total_count: int
    buckets: int
    sub_buckets: int

    def max_latency(self) -> float:
        """Largest ``value`` over all percentile rows."""
        return max(p.value for p in self.percentiles)

    def label(self) -> str:
        """Series label used by the chart renderers."""
        if self.name is not None:
            return f"{self.name}, {self.total_count} Total"
        return f"{self.total_count} Total"


@dataclass(frozen=True)
class HistogramCollection:
    histograms: tuple[Histogram, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "histograms", tuple(self.histograms))

    def __len__(self) -> int:
        return len(self.histograms)

    def __getitem__(self, idx: int) -> Histogram:
        """0-based lookup; negative indices and slices are not supported."""
        if isinstance(idx, bool) or not isinstance(idx, int):
            raise TypeError(f"histogram index must be an int, not {type(idx).__name__}")
        if idx < 0 or idx >= len(self.histograms):
            raise IndexError(f"histogram index {idx} out of range")
        return self.histograms[idx]

    def __iter__(self) -> Iterator[Histogram]:
        return iter(self.histograms)

    def max_latency(self) -> float:
        """Largest latency value across every contained histogram."""
        return max(h.max_latency() for h in self.histograms)


# ---------------------------------------------------------------------------
# JSON serialization helpers
# ---------------------------------------------------------------------------

def _one_percentile_to_json(op: OnePercentile) -> Union[float, str]:
    if isinstance(op, OnePercentileInf):
        return "inf"
    return op.value


def _one_percentile_from_json(raw: Union[float, int, str]) -> OnePercentile:
    if raw == "inf":
        return INF
    return OnePercentileValue(float(raw))


def histogram_to_dict(hist: Histogram) -> dict:
    """Convert a Histogram to a JSON-serializable dictionary."""
    return {
        "name": hist.name,
        "mean": hist.mean,
        "std_deviation": hist.std_deviation,
        "max": hist.max,
        "total_count": hist.total_count,
        "buckets": hist.buckets,
        "sub_buckets": hist.sub_buckets,
        # [value, percentile, total_count, one_percentile]
        "percentiles": [
            [p.value, p.percentile, p.total_count, _one_percentile_to_json(p.one_percentile)]
            for p in hist.percentiles
        ],
    }


def dict_to_histogram(d: dict) -> Histogram:
    """Convert a dictionary (from JSON) back to a Histogram."""
    if not d["percentiles"]:
        raise ValueError("Histogram has no percentile rows")
    return Histogram(
        name=d.get("name"),
        percentiles=tuple(
            Percentile(
                value=float(value),
                percentile=float(percentile),
                total_count=int(total_count),
                one_percentile=_one_percentile_from_json(one_percentile),
            )
            for value, percentile, total_count, one_percentile in d["percentiles"]
        ),
        mean=float(d["mean"]),
        std_deviation=float(d["std_deviation"]),
        max=float(d["max"]),
        total_count=int(d["total_count"]),
        buckets=int(d["buckets"]),
        sub_buckets=int(d["sub_buckets"]),
    )


def collection_to_dict(collection: HistogramCollection) -> dict:
    return {
        "version": 1,
        "histograms": [histogram_to_dict(h) for h in collection],
    }


def dict_to_collection(d: dict) -> HistogramCollection:
    histograms: List[Histogram] = [dict_to_histogram(h) for h in d["histograms"]]
    if not histograms:
        raise ValueError("No histograms in payload")
    return HistogramCollection(tuple(histograms))
