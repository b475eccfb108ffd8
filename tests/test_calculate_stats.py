from __future__ import annotations

import json
import math

import numpy as np
import pytest

from conftest import make_reference_histogram
from hgrm_types import INF, Histogram, HistogramCollection, OnePercentileValue, Percentile, collection_to_dict
import calculate_stats
from calculate_stats import (
    build_stats_payload,
    count_increments,
    density_series,
    line_series,
    percentile_axis_ticks,
)


def _histogram(rows, name=None) -> Histogram:
    """Histogram from (value, percentile, total_count) rows; summary fields are filler."""
    percentiles = tuple(
        Percentile(value, pct, count, INF if pct == 1.0 else OnePercentileValue(1.0 / (1.0 - pct)))
        for value, pct, count in rows
    )
    return Histogram(
        name=name,
        percentiles=percentiles,
        mean=0.0,
        std_deviation=0.0,
        max=0.0,
        total_count=rows[-1][2],
        buckets=1,
        sub_buckets=1,
    )


def test_line_series_drops_full_percentile_and_converts_to_ms(reference_histogram):
    series = line_series(reference_histogram)
    assert series.label == "3477000 Total"
    assert len(series.percentiles) == 7
    assert 1.0 not in series.percentiles
    assert series.latencies_ms[0] == pytest.approx(0.000189)
    assert series.latencies_ms[-1] == pytest.approx(0.005095)


def test_percentile_axis_ticks():
    positions, labels = percentile_axis_ticks()
    assert labels == ["10%", "50%", "90%", "95%", "99%", "99.9%", "99.99%"]
    assert positions[1] == pytest.approx(2.0)
    assert positions[-1] == pytest.approx(10000.0)
    assert positions == sorted(positions)


def test_count_increments_start_from_zero(reference_histogram):
    increments = count_increments(reference_histogram)
    assert increments[0] == 1
    assert increments[1] == 348248 - 1
    assert increments[-1] == 3477000 - 1914665


def test_density_widths_unsmoothed(reference_histogram):
    series = density_series(reference_histogram, smooth=1.0)
    increments = count_increments(reference_histogram)
    expected = increments / increments.max() * calculate_stats.DENSITY_FILL
    assert series.widths == pytest.approx(expected.tolist())
    assert max(series.widths) == pytest.approx(0.9)
    assert series.latencies_ms == sorted(series.latencies_ms)


def test_density_merges_consecutive_equal_latencies():
    hist = _histogram([(1.0, 0.1, 10), (1.0, 0.5, 30), (2.0, 1.0, 40)])
    series = density_series(hist, smooth=1.0)
    assert series.latencies_ms == [0.001, 0.002]
    # merged row may exceed the fill ratio; peak is taken per row before merging
    assert series.widths == pytest.approx([30 / 20 * 0.9, 10 / 20 * 0.9])


def test_density_smoothing_keeps_shape(reference_histogram):
    series = density_series(reference_histogram)
    assert len(series.widths) == len(series.latencies_ms) == 8
    assert all(math.isfinite(w) for w in series.widths)


def test_density_skips_spline_for_short_series():
    hist = _histogram([(1.0, 0.5, 5), (3.0, 1.0, 10)])
    series = density_series(hist)
    assert series.widths == pytest.approx([0.9, 0.9])


def test_smooth_returns_input_for_unsorted_x():
    xs = np.array([1.0, 3.0, 2.0, 4.0, 5.0])
    ys = np.array([0.1, 0.2, 0.3, 0.4, 0.5])
    assert calculate_stats._smooth(xs, ys, 0.5) is ys


def test_build_line_payload(reference_histogram):
    collection = HistogramCollection((reference_histogram, make_reference_histogram(name="b")))
    payload = build_stats_payload(collection, "line")

    assert payload["renderer"] == "line"
    assert payload["max_latency_ms"] == pytest.approx(0.064767)
    assert payload["labels"] == ["3477000 Total", "b, 3477000 Total"]
    assert len(payload["series"]) == 2
    assert payload["ticks"]["labels"][0] == "10%"
    json.dumps(payload)


def test_build_violin_payload(reference_histogram):
    payload = build_stats_payload(HistogramCollection((reference_histogram,)), "violin")
    assert payload["renderer"] == "violin"
    assert "ticks" not in payload
    assert set(payload["series"][0]) == {"label", "latencies_ms", "widths"}
    json.dumps(payload)


def test_unknown_renderer(reference_histogram):
    with pytest.raises(ValueError, match="unknown renderer"):
        build_stats_payload(HistogramCollection((reference_histogram,)), "pie")


def test_cli_prints_payload(tmp_path, capsys, reference_histogram):
    parsed = tmp_path / "parsed.json"
    parsed.write_text(json.dumps(collection_to_dict(HistogramCollection((reference_histogram,)))), encoding="utf-8")

    calculate_stats.main([str(parsed), "--renderer", "violin"])

    payload = json.loads(capsys.readouterr().out)
    assert payload["renderer"] == "violin"


def test_cli_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit) as exc:
        calculate_stats.main([str(tmp_path / "nope.json")])
    assert exc.value.code == 1
    assert "parse_hgrm.py" in capsys.readouterr().err
