#!/usr/bin/env python3
"""
Plot HdrHistogram percentile logs.

Takes a histogram log, either as a base64(gzip(text)) payload on the command
line or as a file, and writes an HTML latency chart.

Usage:
  python3 hdr2plot.py <payload> --filename chart.html [--renderer line|violin]
  python3 hdr2plot.py --input-file run.hgrm --filename chart.html
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from calculate_stats import DEFAULT_RENDERER, RENDERERS
from decode_payload import PayloadError, decode_base64, gunzip_text, read_text_file
from hgrm_types import c_label, c_ok, c_value, c_warn
from parse_hgrm import ParseFailure, parse_with_leftover
from render_stats_html import open_report, render_collection, write_report


def die(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render HdrHistogram percentile logs as latency charts.")
    parser.add_argument("data", nargs="?", help="base64 encoded, gzip compressed histogram log")
    parser.add_argument("-i", "--input-file", help="Read the log from a plain or .gz file instead of <data>")
    parser.add_argument("-f", "--filename", required=True, help="Output HTML file")
    parser.add_argument(
        "-r",
        "--renderer",
        choices=RENDERERS,
        default=DEFAULT_RENDERER,
        help=f"Chart type (default: {DEFAULT_RENDERER})",
    )
    parser.add_argument("--title", default="Latency", help="Page title (default: Latency)")
    parser.add_argument("--open", action="store_true", help="Open the chart when done")
    args = parser.parse_args(argv)
    if not args.data and not args.input_file:
        parser.error("either <data> or --input-file is required")
    if args.data and args.input_file:
        parser.error("<data> and --input-file are mutually exclusive")
    return args


def load_text(args: argparse.Namespace) -> str:
    if args.input_file:
        return read_text_file(Path(args.input_file))
    print("Decoding...")
    compressed = decode_base64(args.data)
    print("Uncompressing...")
    return gunzip_text(compressed)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)

    try:
        text = load_text(args)
    except (PayloadError, FileNotFoundError) as e:
        die(str(e))

    try:
        collection, leftover = parse_with_leftover(text)
    except ParseFailure:
        print("Unable to parse data!", file=sys.stderr)
        sys.exit(1)

    print(f"{c_label('Histograms:')} {c_value(str(len(collection)))}")
    if leftover.strip():
        print(f"{c_warn('WARNING:')} ignored {len(leftover)} characters after the last histogram")

    html = render_collection(collection, args.renderer, title=args.title)
    out_path = write_report(Path(args.filename), html)
    print(f"{c_ok('Done.')} {args.renderer} chart written to {c_value(str(out_path))}")

    if args.open:
        open_report(out_path)


if __name__ == "__main__":
    main()
