"""Tests for FeatureSegmentCounter."""

import pytest

from topoqa.checks.segment_counter import FeatureSegmentCounter
from topoqa.core.errors import SegmentNotFoundError
from topoqa.core.features import Feature, FeatureSegment, feature_segments
from topoqa.core.geometry import Envelope, LineSegment
from topoqa.utils.feature_io import features_from_wkt


def test_shared_edge_is_counted_twice(clean_coverage):
    counter = FeatureSegmentCounter()
    assert counter.add_collection(clean_coverage)

    shared = LineSegment((1, 0), (1, 1))
    assert counter.get_count(shared) == 2
    assert counter.get_count(shared.reversed()) == 2
    assert counter.get_count(LineSegment((0, 0), (1, 0))) == 1
    assert len(counter) == 7


def test_unique_segments_exclude_shared_edges(clean_coverage):
    counter = FeatureSegmentCounter()
    counter.add_collection(clean_coverage)

    unique = counter.get_unique_segments()
    assert len(unique) == 6
    assert all(isinstance(seg, FeatureSegment) for seg in unique)
    assert ((1.0, 0.0), (1.0, 1.0)) not in {seg.key() for seg in unique}


def test_unique_segments_in_insertion_order(clean_coverage):
    counter = FeatureSegmentCounter()
    counter.add_collection(clean_coverage)
    fids = [seg.fid for seg in counter.get_unique_segments()]
    assert fids == sorted(fids)


def test_key_normalization_matches_reversed_rings():
    ccw = features_from_wkt({1: "LINESTRING (0 0, 1 0, 1 1)"})
    cw = features_from_wkt({2: "LINESTRING (1 1, 1 0, 0 0)"})
    counter = FeatureSegmentCounter()
    counter.add_collection(ccw)
    counter.add_collection(cw)
    assert counter.get_unique_segments() == []
    assert len(counter) == 2


def test_get_count_of_unknown_segment_raises():
    counter = FeatureSegmentCounter()
    with pytest.raises(SegmentNotFoundError):
        counter.get_count(LineSegment((0, 0), (1, 1)))
    with pytest.raises(KeyError):
        counter.get_count(LineSegment((0, 0), (1, 1)))


def test_zero_length_segments_are_optional():
    collection = features_from_wkt({1: "POLYGON ((0 0, 1 0, 1 0, 1 1, 0 1, 0 0))"})

    counting = FeatureSegmentCounter(count_zero_length_segments=True)
    counting.add_collection(collection)
    assert len(counting) == 5
    assert counting.get_count(LineSegment((1, 0), (1, 0))) == 1

    ignoring = FeatureSegmentCounter(count_zero_length_segments=False)
    ignoring.add_collection(collection)
    assert len(ignoring) == 4
    assert all(not seg.is_zero_length for seg in ignoring.get_unique_segments())


def test_fence_restricts_features_and_segments(clean_coverage):
    counter = FeatureSegmentCounter(fence=Envelope(0, 0, 0.5, 1))
    counter.add_collection(clean_coverage)

    unique = counter.get_unique_segments()
    assert {seg.fid for seg in unique} == {1}
    assert len(unique) == 3


def test_add_feature_skips_null_geometry():
    counter = FeatureSegmentCounter()
    counter.add_feature(Feature(1, None))
    assert len(counter) == 0


def test_first_added_segment_is_kept():
    feature_a = Feature("a", None)
    feature_b = Feature("b", None)
    counter = FeatureSegmentCounter()
    counter.add_segment(FeatureSegment(feature_a, (0, 0), (1, 0)))
    counter.add_segment(FeatureSegment(feature_b, (1, 0), (0, 0)))
    counter.add_segment(FeatureSegment(feature_b, (5, 5), (6, 6)))

    assert counter.get_count(LineSegment((0, 0), (1, 0))) == 2
    assert [seg.fid for seg in counter.get_unique_segments()] == ["b"]


def test_cancellation_stops_adding(clean_coverage, cancelling_monitor):
    monitor = cancelling_monitor(1)
    counter = FeatureSegmentCounter(monitor=monitor)

    assert not counter.add_collection(clean_coverage)
    assert counter.was_cancelled
    assert monitor.cancellation_allowed
    assert {seg.fid for seg in counter.get_unique_segments()} == {1}


def test_feature_segments_number_rings_and_positions():
    polygon = features_from_wkt({
        7: "POLYGON ((0 0, 10 0, 10 10, 0 10, 0 0), (2 2, 2 4, 4 4, 4 2, 2 2))"
    })[0]
    segments = list(feature_segments(polygon))
    assert len(segments) == 8
    assert [seg.shell_index for seg in segments] == [0] * 4 + [1] * 4
    assert [seg.segment_index for seg in segments] == [0, 1, 2, 3] * 2
    assert segments[5].identity == (7, 1, 1)
