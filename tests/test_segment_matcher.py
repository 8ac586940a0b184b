"""Tests for the segment matching predicate."""

import itertools

import pytest

from topoqa.checks.segment_matcher import SegmentMatcher, segment_projection_distance
from topoqa.core.config import Orientation, SegmentMatchConfig
from topoqa.core.errors import ConfigurationError
from topoqa.core.geometry import LineSegment


@pytest.fixture
def opposite_matcher() -> SegmentMatcher:
    return SegmentMatcher(1.0, 5.0, Orientation.OPPOSITE)


def test_abutting_collinear_segments_do_not_match():
    matcher = SegmentMatcher(1.0, 22.5, Orientation.EITHER)
    seg0 = LineSegment((0, 0), (10, 0))
    seg1 = LineSegment((10, 0), (20, 0))
    assert not matcher.is_match(seg0, seg1)
    assert not matcher.is_match(seg0, seg1.reversed())


def test_offset_anti_parallel_segments_match(opposite_matcher):
    seg0 = LineSegment((0, 0), (10, 0))
    seg1 = LineSegment((10, 0.4), (0, 0.5))
    assert opposite_matcher.is_match(seg0, seg1)
    assert opposite_matcher.is_match(seg1, seg0)
    assert segment_projection_distance(seg0, seg1) <= 0.5


def test_orientation_modes():
    forward = LineSegment((0, 0), (10, 0))
    same_dir = LineSegment((0, 0.5), (10, 0.4))
    same = SegmentMatcher(1.0, 5.0, Orientation.SAME)
    opposite = SegmentMatcher(1.0, 5.0, Orientation.OPPOSITE)
    either = SegmentMatcher(1.0, 5.0, Orientation.EITHER)

    assert same.is_match(forward, same_dir)
    assert not opposite.is_match(forward, same_dir)
    assert either.is_match(forward, same_dir)
    assert either.is_match(forward, same_dir.reversed())
    assert not same.is_match(forward, same_dir.reversed())


def test_distance_tolerance_exceeded(opposite_matcher):
    seg0 = LineSegment((0, 0), (10, 0))
    seg1 = LineSegment((10, 2), (0, 2))
    assert not opposite_matcher.is_match(seg0, seg1)
    assert SegmentMatcher(2.5, 5.0).is_match(seg0, seg1)


def test_angle_tolerance_exceeded():
    seg0 = LineSegment((0, 0), (10, 0))
    tilted = LineSegment((10, 0.5), (0, -0.5))
    assert not SegmentMatcher(1.0, 5.0).is_match(seg0, tilted)
    assert SegmentMatcher(1.0, 10.0).is_match(seg0, tilted)


def test_zero_length_segments_never_match():
    matcher = SegmentMatcher(1.0, 180.0, Orientation.EITHER)
    point_seg = LineSegment((5, 0), (5, 0))
    seg = LineSegment((0, 0), (10, 0))
    assert not matcher.is_match(point_seg, seg)
    assert not matcher.is_match(seg, point_seg)
    assert not matcher.is_match(point_seg, point_seg)


def test_is_match_is_symmetric():
    coords = [(0, 0), (10, 0), (10, 0.4), (0, 0.5), (5, -0.3), (12, 0.2), (3, 1.2), (7, 0)]
    segments = [
        LineSegment(p, q) for p, q in itertools.permutations(coords, 2)
    ]
    for orientation in Orientation:
        matcher = SegmentMatcher(1.0, 22.5, orientation)
        for a in segments:
            for b in segments:
                assert matcher.is_match(a, b) == matcher.is_match(b, a)


def test_is_match_coords(opposite_matcher):
    assert opposite_matcher.is_match_coords((0, 0), (10, 0), (10, 0.4), (0, 0.5))
    assert not opposite_matcher.is_match_coords((0, 0), (10, 0), (10, 0), (20, 0))


def test_projects_onto_and_mutual_overlap(opposite_matcher):
    base = LineSegment((0, 0), (10, 0))
    abutting = LineSegment((10, 0), (20, 0))
    shifted = LineSegment((5, 1), (15, 1))
    assert not SegmentMatcher.projects_onto(abutting, base)
    assert not opposite_matcher.has_mutual_overlap(base, abutting)
    assert SegmentMatcher.projects_onto(shifted, base)
    assert opposite_matcher.has_mutual_overlap(base, shifted)


def test_is_close_to():
    seg = LineSegment((0, 0), (10, 0))
    assert SegmentMatcher.is_close_to((0.5, 0), seg, 1.0)
    assert SegmentMatcher.is_close_to((10, 0.5), seg, 1.0)
    assert not SegmentMatcher.is_close_to((5, 0), seg, 1.0)


def test_from_config():
    config = SegmentMatchConfig(distance_tolerance=0.5, angle_tolerance=10, orientation=Orientation.SAME)
    matcher = SegmentMatcher.from_config(config)
    assert matcher.distance_tolerance == 0.5
    assert matcher.angle_tolerance == 10
    assert matcher.orientation is Orientation.SAME


@pytest.mark.parametrize("distance, angle", [(-1.0, 10.0), (1.0, -5.0), (1.0, 181.0), (None, 10.0)])
def test_invalid_tolerances_fail_fast(distance, angle):
    with pytest.raises(ConfigurationError):
        SegmentMatcher(distance, angle)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        SegmentMatcher(-0.1, 10.0)
