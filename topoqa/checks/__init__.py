# -*- coding: utf-8 -*-
"""
TopoQA - Checks Module

This package contains the QA check engines and their run_* convenience
functions.
"""

from topoqa.checks.segment_matcher import SegmentMatcher
from topoqa.checks.segment_counter import FeatureSegmentCounter
from topoqa.checks.coverage_gaps import (
    InternalMatchedSegmentFinder,
    run_coverage_gap_check
)
from topoqa.checks.matched_segments import (
    MatchedSegmentFinder,
    run_matched_segment_check
)
from topoqa.checks.overlap import (
    OverlapFinder,
    run_overlap_check
)
from topoqa.checks.close_vertices import (
    CloseVertexFinder,
    run_close_vertex_check
)

__all__ = [
    "SegmentMatcher",
    "FeatureSegmentCounter",
    "InternalMatchedSegmentFinder",
    "run_coverage_gap_check",
    "MatchedSegmentFinder",
    "run_matched_segment_check",
    "OverlapFinder",
    "run_overlap_check",
    "CloseVertexFinder",
    "run_close_vertex_check"
]
