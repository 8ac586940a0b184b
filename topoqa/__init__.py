# -*- coding: utf-8 -*-
"""
TopoQA

Topology quality checks for polygonal and linear map data: coverage gaps
and slivers, misaligned boundary segments, overlapping features, and
near-but-unequal vertices.
"""

__version__ = "1.0.0"

from topoqa.checks import (
    CloseVertexFinder,
    InternalMatchedSegmentFinder,
    MatchedSegmentFinder,
    OverlapFinder,
    SegmentMatcher,
)
from topoqa.core.config import Orientation
from topoqa.core.features import Feature, FeatureCollection

__all__ = [
    "__version__",
    "CloseVertexFinder",
    "InternalMatchedSegmentFinder",
    "MatchedSegmentFinder",
    "OverlapFinder",
    "SegmentMatcher",
    "Orientation",
    "Feature",
    "FeatureCollection",
]
