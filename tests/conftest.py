"""Shared fixtures: the reference histogram log and its expected parse."""

from __future__ import annotations

import pytest

from hgrm_types import INF, Histogram, OnePercentileValue, Percentile


REFERENCE_LOG = """
       Value   Percentile   TotalCount 1/(1-Percentile)

       0.189     0.000000            1         1.00
       2.845     0.100000       348248         1.11
       3.603     0.200000       695644         1.25
       4.135     0.300000      1043796         1.43
       4.551     0.400000      1391678         1.67
       4.919     0.500000      1740028         2.00
       5.095     0.550000      1914665         2.22
      64.767     1.000000      3477000          inf
#[Mean    =        4.881, StdDeviation   =        1.777]
#[Max     =       64.736, Total count    =      3477000]
#[Buckets =           27, SubBuckets     =         2048]
"""


def make_reference_histogram(name=None) -> Histogram:
    return Histogram(
        name=name,
        percentiles=(
            Percentile(0.189, 0.000000, 1, OnePercentileValue(1.00)),
            Percentile(2.845, 0.100000, 348248, OnePercentileValue(1.11)),
            Percentile(3.603, 0.200000, 695644, OnePercentileValue(1.25)),
            Percentile(4.135, 0.300000, 1043796, OnePercentileValue(1.43)),
            Percentile(4.551, 0.400000, 1391678, OnePercentileValue(1.67)),
            Percentile(4.919, 0.500000, 1740028, OnePercentileValue(2.00)),
            Percentile(5.095, 0.550000, 1914665, OnePercentileValue(2.22)),
            Percentile(64.767, 1.000000, 3477000, INF),
        ),
        mean=4.881,
        std_deviation=1.777,
        max=64.736,
        total_count=3477000,
        buckets=27,
        sub_buckets=2048,
    )


@pytest.fixture()
def reference_log() -> str:
    return REFERENCE_LOG


@pytest.fixture()
def named_log() -> str:
    return "\n=== Name 1 ===" + REFERENCE_LOG


@pytest.fixture()
def reference_histogram() -> Histogram:
    return make_reference_histogram()
