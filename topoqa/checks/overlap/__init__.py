# -*- coding: utf-8 -*-
"""
TopoQA - Overlap Check

Overlap detection between features and the indicator strategies that
locate each overlap.
"""

from topoqa.checks.overlap.indicators import (
    IndicatorResult,
    IndicatorSource,
    OverlapBoundaryIndicators,
    OverlapSegmentIndicators,
    compute_overlap_indicators
)
from topoqa.checks.overlap.finder import OverlapFinder, run_overlap_check

__all__ = [
    "IndicatorResult",
    "IndicatorSource",
    "OverlapBoundaryIndicators",
    "OverlapSegmentIndicators",
    "compute_overlap_indicators",
    "OverlapFinder",
    "run_overlap_check"
]
