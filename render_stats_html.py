#!/usr/bin/env python3
"""
Render an HTML latency chart from parsed histograms.

Usage:
  python3 render_stats_html.py <parsed.json> [--renderer line|violin] [--out chart.html] [--open]

Outputs:
  renders/<parsed stem>.html unless --out is given
"""
from __future__ import annotations

import argparse
import html as html_lib
import json
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from calculate_stats import DEFAULT_RENDERER, RENDERERS, build_stats_payload, load_collection_from_json
from hgrm_types import HistogramCollection


PLOTLY_CDN = "https://cdn.plot.ly/plotly-2.26.2.min.js"

LINE_SIZE = (960, 480)
VIOLIN_WIDTH = 960
VIOLIN_BASE_HEIGHT = 300
VIOLIN_ROW_HEIGHT = 18


def to_js(o: Any) -> str:
    # Use separators to reduce size a bit; "</" would close the script tag
    return json.dumps(o, ensure_ascii=False, separators=(",", ":")).replace("</", "<\\/")


def chart_size(payload: Dict[str, Any]) -> tuple[int, int]:
    if payload["renderer"] == "violin":
        rows = len(payload["series"])
        return VIOLIN_WIDTH, VIOLIN_BASE_HEIGHT + VIOLIN_ROW_HEIGHT * rows
    return LINE_SIZE


def build_html(title: str, payload: Dict[str, Any]) -> str:
    width, height = chart_size(payload)
    labels_html = "".join(
        f"<li>{html_lib.escape(label)}</li>" for label in payload["labels"]
    )
    safe_title = html_lib.escape(title)

    html = f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{safe_title}</title>
  <script src="{PLOTLY_CDN}"></script>
  <style>
    body {{
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, Oxygen,
                   Ubuntu, Cantarell, "Fira Sans", "Droid Sans", "Helvetica Neue",
                   Arial, sans-serif;
      margin: 0;
      padding: 0 16px 48px 16px;
      color: #1f2937;
      background: #f9fafb;
    }}
    h1 {{
      margin: 16px 0 12px 0;
      font-size: 22px;
    }}
    .card {{
      background: white;
      border-radius: 8px;
      box-shadow: 0 1px 3px rgba(0,0,0,0.08), 0 1px 2px rgba(0,0,0,0.06);
      padding: 16px;
      margin: 16px 0;
    }}
    .inputs {{
      font-size: 14px;
      color: #374151;
    }}
    #chart {{
      width: {width}px;
      height: {height}px;
    }}
  </style>
</head>
<body>
  <h1>{safe_title}</h1>

  <div class="card">
    <div id="chart"></div>
  </div>

  <div class="card inputs">
    <h2 style="margin-top:0; font-size:16px">Inputs</h2>
    <ul>{labels_html}</ul>
  </div>
"""

    html += "<script>\n"
    html += "const PAYLOAD = " + to_js(payload) + ";\n"
    html += r"""
const DARK_BLUE = 'rgb(31,120,180)';

function renderLine() {
  // x is 1/(1-p) so the tail percentiles get most of the width
  const traces = PAYLOAD.series.map(s => ({
    type: 'scatter',
    mode: 'lines',
    name: s.label,
    x: s.percentiles.map(p => 1 / (1 - p)),
    y: s.latencies_ms,
    customdata: s.percentiles.map(p => (p * 100).toFixed(4) + '%'),
    hovertemplate: '%{customdata}: %{y:.3f} ms<extra>%{fullData.name}</extra>',
  }));
  const layout = {
    title: 'Latency',
    margin: {l: 60, r: 20, t: 40, b: 35},
    xaxis: {
      title: 'Percentile',
      type: 'log',
      tickvals: PAYLOAD.ticks.positions,
      ticktext: PAYLOAD.ticks.labels,
    },
    yaxis: {title: 'Milliseconds', range: [0, PAYLOAD.max_latency_ms]},
    legend: {bgcolor: 'rgba(255,255,255,0.8)', bordercolor: 'black', borderwidth: 1},
  };
  Plotly.newPlot('chart', traces, layout, {responsive: true});
}

function renderViolin() {
  const traces = [];
  PAYLOAD.series.forEach((s, idx) => {
    // closed outline: upper half left to right, lower half back
    const xs = s.latencies_ms.concat(s.latencies_ms.slice().reverse());
    const upper = s.widths.map(w => idx + w / 2);
    const lower = s.widths.map(w => idx - w / 2).reverse();
    traces.push({
      type: 'scatter',
      mode: 'lines',
      fill: 'toself',
      name: s.label,
      x: xs,
      y: upper.concat(lower),
      line: {color: DARK_BLUE, width: 1},
      fillcolor: DARK_BLUE,
      hoverinfo: 'name',
      showlegend: false,
    });
  });
  const layout = {
    title: 'Latency',
    margin: {l: 160, r: 20, t: 40, b: 40},
    xaxis: {title: 'Latency (ms)', range: [0, PAYLOAD.max_latency_ms], showgrid: false},
    yaxis: {
      title: 'Input',
      range: [-0.5, PAYLOAD.series.length - 0.5],
      tickvals: PAYLOAD.series.map((_, idx) => idx),
      ticktext: PAYLOAD.labels,
      showgrid: false,
      zeroline: false,
    },
  };
  Plotly.newPlot('chart', traces, layout, {responsive: true});
}

if (PAYLOAD.renderer === 'violin') {
  renderViolin();
} else {
  renderLine();
}
</script>
</body>
</html>
"""
    return html


def render_collection(
    collection: HistogramCollection,
    renderer: str = DEFAULT_RENDERER,
    title: str = "Latency",
) -> str:
    """Build the full HTML page for a parsed collection."""
    payload = build_stats_payload(collection, renderer)
    return build_html(title, payload)


def write_report(out_path: Path, html: str) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(html)
    return out_path


def open_report(out_path: Path) -> None:
    """Ask the desktop to open the report; failures are only reported."""
    for opener in ("open", "xdg-open"):
        try:
            subprocess.run([opener, str(out_path)], check=True)
            print(f"Opened {out_path} in default browser")
            return
        except subprocess.CalledProcessError:
            print(f"Failed to open {out_path}")
            return
        except FileNotFoundError:
            continue
    print("Note: no 'open' or 'xdg-open' command available on this system")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Render parsed histograms as an HTML chart.")
    parser.add_argument("parsed_json", help="Output of parse_hgrm.py --out")
    parser.add_argument("--renderer", choices=RENDERERS, default=DEFAULT_RENDERER)
    parser.add_argument("--out", help="Output HTML path (default: renders/<name>.html)")
    parser.add_argument("--open", action="store_true", help="Open the report when done")
    args = parser.parse_args(argv)

    json_path = Path(args.parsed_json)
    try:
        collection = load_collection_from_json(json_path)
    except (FileNotFoundError, ValueError, KeyError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    html = render_collection(collection, args.renderer, title=f"Latency - {json_path.stem}")
    out_path = Path(args.out) if args.out else Path("renders") / f"{json_path.stem}.html"
    write_report(out_path, html)
    print(f"Wrote HTML report to {out_path}")

    if args.open:
        open_report(out_path)


if __name__ == "__main__":
    main()
