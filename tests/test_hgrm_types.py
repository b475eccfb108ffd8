from __future__ import annotations

import dataclasses
import json

import pytest

from conftest import make_reference_histogram
from hgrm_types import (
    INF,
    HistogramCollection,
    OnePercentileInf,
    OnePercentileValue,
    collection_to_dict,
    dict_to_collection,
)


def test_histogram_max_latency(reference_histogram):
    assert reference_histogram.max_latency() == 64.767


def test_collection_sequence_protocol(reference_histogram):
    named = make_reference_histogram(name="b")
    collection = HistogramCollection((reference_histogram, named))

    assert len(collection) == 2
    assert collection[0] is reference_histogram
    assert collection[1].name == "b"
    assert list(collection) == [reference_histogram, named]
    with pytest.raises(IndexError):
        collection[2]
    with pytest.raises(IndexError):
        collection[-1]
    with pytest.raises(TypeError):
        collection[0:1]


def test_collection_stores_a_tuple(reference_histogram):
    collection = HistogramCollection([reference_histogram])
    assert isinstance(collection.histograms, tuple)
    assert collection == HistogramCollection((reference_histogram,))


def test_collection_max_latency_takes_largest_member(reference_histogram):
    rows = reference_histogram.percentiles
    faster = dataclasses.replace(
        reference_histogram,
        percentiles=tuple(dataclasses.replace(p, value=p.value / 2) for p in rows),
    )
    collection = HistogramCollection((faster, reference_histogram))
    assert collection.max_latency() == 64.767


def test_values_are_immutable(reference_histogram):
    with pytest.raises(dataclasses.FrozenInstanceError):
        reference_histogram.mean = 1.0
    with pytest.raises(dataclasses.FrozenInstanceError):
        reference_histogram.percentiles[0].value = 1.0


def test_equality_is_order_sensitive(reference_histogram):
    rows = reference_histogram.percentiles
    reordered = dataclasses.replace(reference_histogram, percentiles=rows[::-1])
    assert reordered != reference_histogram
    assert make_reference_histogram() == reference_histogram


def test_one_percentile_variants_are_distinct():
    assert INF == OnePercentileInf()
    assert OnePercentileValue(2.22) == OnePercentileValue(2.22)
    assert OnePercentileValue(float("inf")) != INF
    assert repr(INF) == "INF"


def test_labels(reference_histogram):
    assert reference_histogram.label() == "3477000 Total"
    assert make_reference_histogram(name="api").label() == "api, 3477000 Total"


def test_json_round_trip(reference_histogram):
    collection = HistogramCollection((reference_histogram, make_reference_histogram(name="x")))
    payload = json.loads(json.dumps(collection_to_dict(collection)))

    assert payload["histograms"][0]["percentiles"][-1] == [64.767, 1.0, 3477000, "inf"]
    restored = dict_to_collection(payload)
    assert restored == collection
    assert restored[0].percentiles[-1].one_percentile is INF


def test_dict_to_collection_rejects_empty():
    with pytest.raises(ValueError):
        dict_to_collection({"version": 1, "histograms": []})


def test_dict_to_histogram_rejects_empty_percentiles(reference_histogram):
    payload = collection_to_dict(HistogramCollection((reference_histogram,)))
    payload["histograms"][0]["percentiles"] = []
    with pytest.raises(ValueError, match="no percentile rows"):
        dict_to_collection(payload)
