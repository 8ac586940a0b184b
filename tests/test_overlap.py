"""Tests for overlap detection and overlap indicators."""

import logging

import pytest
from shapely import wkt
from shapely.errors import GEOSException

from topoqa.checks.overlap import finder as finder_module
from topoqa.checks.overlap import indicators as indicators_module
from topoqa.checks.overlap.finder import OverlapFinder, run_overlap_check
from topoqa.checks.overlap.indicators import (
    IndicatorResult,
    IndicatorSource,
    OverlapBoundaryIndicators,
    OverlapSegmentIndicators,
    compute_overlap_indicators,
)
from topoqa.core.config import ExecutionConfig
from topoqa.core.errors import ConfigurationError
from topoqa.core.geometry import Envelope
from topoqa.utils.feature_io import features_from_wkt

SQUARE_A = "POLYGON ((0 0, 2 0, 2 2, 0 2, 0 0))"
SQUARE_B = "POLYGON ((1 1, 3 1, 3 3, 1 3, 1 1))"


@pytest.fixture
def partial_overlap():
    return features_from_wkt({1: SQUARE_A, 2: SQUARE_B}, name="partial")


# ============================================================================
# Indicators
# ============================================================================


def test_partial_overlap_uses_boundary_indicators():
    result = compute_overlap_indicators(wkt.loads(SQUARE_A), wkt.loads(SQUARE_B))

    assert result.source is IndicatorSource.BOUNDARY
    assert result.found
    assert len(result.overlap_indicators) == 2
    assert len(result.size_indicators) == 1
    assert result.size_indicators[0].length == pytest.approx(1.0)


def test_contained_polygon_falls_back_to_segment_indicators():
    outer = wkt.loads("POLYGON ((0 0, 10 0, 10 10, 0 10, 0 0))")
    inner = wkt.loads("POLYGON ((2 2, 4 2, 4 4, 2 4, 2 2))")
    result = compute_overlap_indicators(outer, inner)

    assert result.source is IndicatorSource.SEGMENT
    assert len(result.overlap_indicators) == 4
    assert sorted((p.x, p.y) for p in result.size_indicators) == [
        (2.0, 2.0), (2.0, 4.0), (4.0, 2.0), (4.0, 4.0)
    ]


def test_boundary_indicators_of_contained_polygon_are_incomplete():
    outer = wkt.loads("POLYGON ((0 0, 10 0, 10 10, 0 10, 0 0))")
    inner = wkt.loads("POLYGON ((2 2, 4 2, 4 4, 2 4, 2 2))")
    boundary = OverlapBoundaryIndicators(outer, inner)
    assert not boundary.failed
    assert len(boundary.overlap_indicators) == 1
    assert boundary.size_indicators == []


def test_overlapping_boundary_ignores_shared_linework():
    left = wkt.loads("POLYGON ((0 0, 2 0, 2 2, 0 2, 0 0))")
    right = wkt.loads("POLYGON ((1 0, 3 0, 3 2, 1 2, 1 0))")
    lines = OverlapBoundaryIndicators.overlapping_boundary(left, right)
    assert lines.length == pytest.approx(2.0)


def test_segment_indicators():
    segment = OverlapSegmentIndicators(wkt.loads(SQUARE_A), wkt.loads(SQUARE_B))
    assert not segment.failed
    assert len(segment.overlap_indicators) == 4
    assert sorted((p.x, p.y) for p in segment.size_indicators) == [(1.0, 1.0), (2.0, 2.0)]


def test_overlay_failure_falls_back_to_segments(monkeypatch):
    def failing_intersection(geom_a, geom_b):
        raise GEOSException("TopologyException: side location conflict")

    monkeypatch.setattr(indicators_module, "robust_intersection", failing_intersection)
    boundary = OverlapBoundaryIndicators(wkt.loads(SQUARE_A), wkt.loads(SQUARE_B))
    assert boundary.failed
    assert isinstance(boundary.error, GEOSException)

    result = compute_overlap_indicators(wkt.loads(SQUARE_A), wkt.loads(SQUARE_B))
    assert result.source is IndicatorSource.SEGMENT
    assert len(result.size_indicators) == 2


def test_indicator_result_found():
    assert not IndicatorResult(IndicatorSource.NONE).found
    assert IndicatorResult(IndicatorSource.SEGMENT).found


# ============================================================================
# Finder
# ============================================================================


def test_contained_feature_is_an_overlap(nested_polygons):
    finder = OverlapFinder(nested_polygons)

    assert len(finder.get_pairs()) == 1
    assert set(finder.get_pairs()[0]) == {1, 2}
    assert finder.get_overlapping_features().ids() == [1, 2]
    assert len(finder.get_overlap_indicators()) == 4
    assert all(ind.kind == "OVERLAP" for ind in finder.get_overlap_indicators())
    assert len(finder.get_overlap_size_indicators()) == 4
    assert finder.get_unresolved_pairs() == []


def test_touching_features_do_not_overlap(clean_coverage):
    finder = OverlapFinder(clean_coverage)
    assert finder.get_pairs() == []
    assert finder.get_overlapping_features().ids() == []


def test_each_pair_is_tested_once(partial_overlap):
    finder = OverlapFinder(partial_overlap)
    assert len(finder.get_pairs()) == 1
    assert len(finder.get_overlap_size_indicators()) == 1
    assert finder.get_overlap_size_indicators()[0].kind == "OVERLAP_SIZE"


def test_incomparable_ids_still_test_each_pair_once():
    collection = features_from_wkt({1: SQUARE_A, "a": SQUARE_B})
    finder = OverlapFinder(collection)
    assert len(finder.get_pairs()) == 1
    assert finder.get_overlapping_features().ids() == [1, "a"]

    _, stats = run_overlap_check(collection)
    assert stats["overlapping_pairs"] == 1
    assert stats["overlapping_features"] == 2


def test_two_collection_mode():
    indexed = features_from_wkt({1: "POLYGON ((0 0, 10 0, 10 10, 0 10, 0 0))"}, name="outer")
    scanned = features_from_wkt({2: "POLYGON ((2 2, 4 2, 4 4, 2 4, 2 2))"}, name="inner")
    finder = OverlapFinder(indexed, scanned)

    assert not finder.is_single_input
    assert finder.get_pairs() == [(1, 2)]
    assert finder.get_overlapping_features(0).ids() == [1]
    assert finder.get_overlapping_features(1).ids() == [2]


def test_two_collection_mode_tests_features_with_equal_ids():
    collection0 = features_from_wkt({1: SQUARE_A})
    collection1 = features_from_wkt({1: SQUARE_A})
    assert OverlapFinder(collection0, collection1).get_pairs() == [(1, 1)]


def test_fence_limits_scanned_features():
    collection = features_from_wkt({
        1: SQUARE_A,
        2: SQUARE_B,
        3: "POLYGON ((100 0, 102 0, 102 2, 100 2, 100 0))",
        4: "POLYGON ((101 1, 103 1, 103 3, 101 3, 101 1))",
    })
    finder = OverlapFinder(collection)
    finder.set_fence(Envelope(99, -1, 104, 4))
    pairs = finder.get_pairs()
    assert len(pairs) == 1
    assert set(pairs[0]) == {3, 4}


def test_unresolved_pair_is_logged_and_kept(partial_overlap, monkeypatch, caplog):
    monkeypatch.setattr(
        finder_module,
        "compute_overlap_indicators",
        lambda g0, g1: IndicatorResult(IndicatorSource.NONE),
    )
    caplog.set_level(logging.WARNING)
    finder = OverlapFinder(partial_overlap)

    assert len(finder.get_unresolved_pairs()) == 1
    assert finder.get_overlapping_features().ids() == [1, 2]
    assert finder.get_overlap_indicators() == []
    assert "Could not compute overlap indicators" in caplog.text
    assert "POLYGON" in caplog.text


def test_parallel_query_matches_serial(partial_overlap):
    serial = OverlapFinder(partial_overlap)
    parallel = OverlapFinder(partial_overlap, execution_config=ExecutionConfig(max_workers=3))
    assert parallel.get_pairs() == serial.get_pairs()
    assert [i.geometry.wkt for i in parallel.get_overlap_indicators()] == \
        [i.geometry.wkt for i in serial.get_overlap_indicators()]


def test_cancellation_discards_pairs(partial_overlap, cancelling_monitor):
    finder = OverlapFinder(partial_overlap, monitor=cancelling_monitor(1))
    finder.compute_overlaps()
    assert finder.was_cancelled
    assert finder.get_pairs() == []


def test_missing_collection_fails_fast():
    with pytest.raises(ConfigurationError):
        OverlapFinder(None)


def test_run_overlap_check(nested_polygons):
    finder, stats = run_overlap_check(nested_polygons)
    assert finder.is_computed
    assert stats["total_features"] == 2
    assert stats["overlapping_pairs"] == 1
    assert stats["overlapping_features"] == 2
    assert stats["unresolved_pairs"] == 0
    assert stats["size_indicators"] == 4
