"""
Parse HdrHistogram percentile logs.

Reads the text printed by HdrHistogram based tools (wrk2 --latency,
hdr_percentiles, ...), one or more sections of the form:

    === optional name ===
           Value   Percentile   TotalCount 1/(1-Percentile)

           0.189     0.000000            1         1.00
          64.767     1.000000      3477000          inf
    #[Mean    =        4.881, StdDeviation   =        1.777]
    #[Max     =       64.736, Total count    =      3477000]
    #[Buckets =           27, SubBuckets     =         2048]

and turns them into a HistogramCollection.

Usage:
    python parse_hgrm.py <log_file> [--out parsed.json]
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional, Tuple, TypeVar
import argparse
import json
import re
import sys

from hgrm_types import (
    INF,
    Histogram,
    HistogramCollection,
    OnePercentile,
    OnePercentileValue,
    Percentile,
    c_label,
    c_ok,
    c_value,
    c_warn,
    collection_to_dict,
)


T = TypeVar("T")
L = TypeVar("L")
R = TypeVar("R")
Match = Optional[Tuple[T, int]]

U64_MAX = (1 << 64) - 1
_U64_MAX_DIGITS = len(str(U64_MAX))

COLUMN_HEADER = ("Value", "Percentile", "TotalCount", "1/(1-Percentile)")


class ParseFailure(ValueError):
    """The text is not a histogram log. Carries no location information."""

    def __init__(self, message: str = "unable to parse histogram log") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Token patterns
# ---------------------------------------------------------------------------

# [0-9] rather than \d: only ASCII digits are numbers here.
_DECIMAL_RE = re.compile(r"[0-9]+\.[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")
_MULTISPACE_RE = re.compile(r"[ \t\r\n]*")


# ---------------------------------------------------------------------------
# Primitive rules
#
# Every rule takes (text, pos) and returns either None (no match, nothing
# consumed) or (value, new_pos). Callers keep their own copy of pos, so
# backtracking is just reusing it.
# ---------------------------------------------------------------------------

def _skip_ws(text: str, pos: int) -> int:
    return _MULTISPACE_RE.match(text, pos).end()


def _tag(text: str, pos: int, literal: str) -> Optional[int]:
    if text.startswith(literal, pos):
        return pos + len(literal)
    return None


def _ws_tag(text: str, pos: int, literal: str) -> Optional[int]:
    """Literal with optional surrounding whitespace."""
    end = _tag(text, _skip_ws(text, pos), literal)
    if end is None:
        return None
    return _skip_ws(text, end)


def _line_ending(text: str, pos: int) -> Optional[int]:
    if text.startswith("\n", pos):
        return pos + 1
    if text.startswith("\r\n", pos):
        return pos + 2
    return None


def _line_endings(text: str, pos: int) -> int:
    """Zero or more line endings."""
    while True:
        end = _line_ending(text, pos)
        if end is None:
            return pos
        pos = end


def _decimal(text: str, pos: int) -> Match[float]:
    m = _DECIMAL_RE.match(text, pos)
    if not m:
        return None
    return float(m.group(0)), m.end()


def _uint64(text: str, pos: int) -> Match[int]:
    m = _UINT_RE.match(text, pos)
    if not m:
        return None
    # leading zeros are allowed; int() refuses very long digit strings
    digits = m.group(0).lstrip("0") or "0"
    if len(digits) > _U64_MAX_DIGITS:
        return None
    value = int(digits)
    if value > U64_MAX:
        return None
    return value, m.end()


def _ws(rule: Callable[[str, int], Match[T]]) -> Callable[[str, int], Match[T]]:
    """Wrap a rule so it skips whitespace on both sides."""
    def wrapped(text: str, pos: int) -> Match[T]:
        res = rule(text, _skip_ws(text, pos))
        if res is None:
            return None
        value, end = res
        return value, _skip_ws(text, end)
    return wrapped


def _one_percentile(text: str, pos: int) -> Match[OnePercentile]:
    res = _decimal(text, pos)
    if res is not None:
        return OnePercentileValue(res[0]), res[1]
    end = _tag(text, pos, "inf")
    if end is not None:
        return INF, end
    return None


# ---------------------------------------------------------------------------
# Section rules
# ---------------------------------------------------------------------------

def _name_header(text: str, pos: int) -> Tuple[Optional[str], int]:
    """
    Optional ``=== name ===`` header.

    Never fails: when the opening run, the name or the closing run is
    missing, the header is absent and ``pos`` is returned unchanged.
    """
    start = _skip_ws(text, pos)
    end = start
    while end < len(text) and text[end] == "=":
        end += 1
    if end == start:
        return None, pos

    close = text.find("=", end)
    if close == -1 or close == end:
        return None, pos
    name = text[end:close]

    # the closing run is at least the "=" found above
    end = close
    while end < len(text) and text[end] == "=":
        end += 1
    return name.strip(), end


def _column_header(text: str, pos: int) -> Optional[int]:
    *leading, last = COLUMN_HEADER
    for literal in leading:
        pos = _ws_tag(text, pos, literal)
        if pos is None:
            return None
    return _tag(text, pos, last)


_ws_decimal = _ws(_decimal)
_ws_uint64 = _ws(_uint64)


def _percentile_row(text: str, pos: int) -> Match[Percentile]:
    res = _ws_decimal(text, pos)
    if res is None:
        return None
    value, pos = res

    res = _ws_decimal(text, pos)
    if res is None:
        return None
    percentile, pos = res

    res = _ws_uint64(text, pos)
    if res is None:
        return None
    total_count, pos = res

    res = _one_percentile(text, pos)
    if res is None:
        return None
    one_percentile, pos = res

    return Percentile(value, percentile, total_count, one_percentile), pos


def _percentile_rows(text: str, pos: int) -> Match[List[Percentile]]:
    """One or more rows separated by single line endings."""
    res = _percentile_row(text, pos)
    if res is None:
        return None
    row, pos = res
    rows = [row]

    while True:
        sep_end = _line_ending(text, pos)
        if sep_end is None:
            break
        res = _percentile_row(text, sep_end)
        if res is None:
            # leave the separator for the blank-line rule that follows
            break
        row, pos = res
        rows.append(row)

    return rows, pos


def _aggregate(
    text: str,
    pos: int,
    left_title: str,
    left: Callable[[str, int], Match[L]],
    right_title: str,
    right: Callable[[str, int], Match[R]],
) -> Optional[Tuple[L, R, int]]:
    """``#[LEFT = value, RIGHT = value]`` with fixed titles."""
    pos = _tag(text, pos, "#[")
    if pos is None:
        return None

    pos = _tag(text, pos, left_title)
    if pos is None:
        return None
    pos = _ws_tag(text, pos, "=")
    if pos is None:
        return None
    res = left(text, pos)
    if res is None:
        return None
    left_value, pos = res

    pos = _ws_tag(text, pos, ",")
    if pos is None:
        return None

    pos = _tag(text, pos, right_title)
    if pos is None:
        return None
    pos = _ws_tag(text, pos, "=")
    if pos is None:
        return None
    res = right(text, pos)
    if res is None:
        return None
    right_value, pos = res

    pos = _tag(text, pos, "]")
    if pos is None:
        return None
    return left_value, right_value, pos


def _blank_lines(text: str, pos: int) -> Optional[int]:
    """One or more line endings."""
    end = _line_endings(text, pos)
    if end == pos:
        return None
    return end


def _section(text: str, pos: int) -> Match[Histogram]:
    name, pos = _name_header(text, pos)

    pos = _column_header(text, pos)
    if pos is None:
        return None
    pos = _line_endings(text, pos)

    res = _percentile_rows(text, pos)
    if res is None:
        return None
    percentiles, pos = res

    pos = _blank_lines(text, pos)
    if pos is None:
        return None
    agg = _aggregate(text, pos, "Mean", _decimal, "StdDeviation", _decimal)
    if agg is None:
        return None
    mean, std_deviation, pos = agg

    pos = _blank_lines(text, pos)
    if pos is None:
        return None
    agg = _aggregate(text, pos, "Max", _decimal, "Total count", _uint64)
    if agg is None:
        return None
    max_value, total_count, pos = agg

    pos = _blank_lines(text, pos)
    if pos is None:
        return None
    agg = _aggregate(text, pos, "Buckets", _uint64, "SubBuckets", _uint64)
    if agg is None:
        return None
    buckets, sub_buckets, pos = agg

    histogram = Histogram(
        name=name,
        percentiles=tuple(percentiles),
        mean=mean,
        std_deviation=std_deviation,
        max=max_value,
        total_count=total_count,
        buckets=buckets,
        sub_buckets=sub_buckets,
    )
    return histogram, pos


# ---------------------------------------------------------------------------
# Main parsing functions
# ---------------------------------------------------------------------------

def parse_with_leftover(text: str) -> Tuple[HistogramCollection, str]:
    """
    Parse as many consecutive sections as possible.

    Returns the collection and whatever text follows the last matched
    section. Raises ParseFailure if not even the first section matches.
    """
    histograms: List[Histogram] = []
    pos = 0
    while pos < len(text):
        res = _section(text, pos)
        if res is None:
            break
        histogram, pos = res
        histograms.append(histogram)

    if not histograms:
        raise ParseFailure()
    return HistogramCollection(tuple(histograms)), text[pos:]


def parse(text: str) -> HistogramCollection:
    """
    Parse a histogram log into a HistogramCollection.

    Text left over after the last complete section is ignored.
    """
    collection, _ = parse_with_leftover(text)
    return collection


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def die(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Parse an HdrHistogram percentile log.")
    parser.add_argument("log_file", help="Plain text log (.hgrm / wrk2 --latency output)")
    parser.add_argument("--out", help="Write the parsed histograms as JSON to this path")
    return parser.parse_args(argv)


def print_summary(collection: HistogramCollection) -> None:
    print(f"{c_label('Histograms:')} {c_value(str(len(collection)))}")
    for idx, hist in enumerate(collection):
        name = hist.name if hist.name is not None else f"#{idx}"
        print(f"\n{c_label('Histogram')} {c_value(name)}")
        print(f"  rows={len(hist.percentiles)} total_count={hist.total_count}")
        print(f"  mean={hist.mean} std_deviation={hist.std_deviation}")
        print(f"  max_latency={hist.max_latency()}")


def main(argv: Optional[List[str]] = None) -> None:
    """Parse a histogram log and print (optionally save) the result."""
    args = parse_args(argv)
    log_path = Path(args.log_file)
    if not log_path.exists():
        die(f"log file not found: {log_path}")

    text = log_path.read_text(encoding="utf-8", errors="replace")
    try:
        collection, leftover = parse_with_leftover(text)
    except ParseFailure as e:
        die(f"{log_path}: {e}")

    print_summary(collection)
    if leftover.strip():
        print(f"\n{c_warn('WARNING:')} ignored {len(leftover)} characters after the last histogram")

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(collection_to_dict(collection), indent=2), encoding="utf-8")
        print(f"\n{c_ok('Done.')} Histograms written to {c_value(str(out_path))}")


if __name__ == "__main__":
    main()
