# -*- coding: utf-8 -*-
"""
TopoQA - Core Module

This package contains the configuration, error types, geometry
primitives, feature model and spatial indexing shared by the checks.
"""

from topoqa.core.config import (
    Orientation,
    SegmentMatchConfig,
    CoverageGapConfig,
    MatchedSegmentConfig,
    CloseVertexConfig,
    IndexConfig,
    ExecutionConfig,
    OutputConfig,
    DEFAULT_SEGMENT_MATCH_CONFIG,
    DEFAULT_COVERAGE_GAP_CONFIG,
    DEFAULT_MATCHED_SEGMENT_CONFIG,
    DEFAULT_CLOSE_VERTEX_CONFIG,
    DEFAULT_INDEX_CONFIG,
    DEFAULT_EXECUTION_CONFIG,
    DEFAULT_OUTPUT_CONFIG
)
from topoqa.core.errors import (
    TopoQAError,
    ConfigurationError,
    SegmentNotFoundError,
    IndicatorComputationError
)
from topoqa.core.geometry import Envelope, LineSegment
from topoqa.core.features import (
    Feature,
    FeatureCollection,
    FeatureSegment,
    Indicator,
    feature_segments,
    assign_ordinals,
    sorted_by_id
)
from topoqa.core.spatial_ops import (
    SpatialIndex,
    STRtreeIndex,
    GridIndex,
    BruteForceIndex,
    create_index,
    run_query_units
)

__all__ = [
    # Configuration
    "Orientation",
    "SegmentMatchConfig",
    "CoverageGapConfig",
    "MatchedSegmentConfig",
    "CloseVertexConfig",
    "IndexConfig",
    "ExecutionConfig",
    "OutputConfig",
    "DEFAULT_SEGMENT_MATCH_CONFIG",
    "DEFAULT_COVERAGE_GAP_CONFIG",
    "DEFAULT_MATCHED_SEGMENT_CONFIG",
    "DEFAULT_CLOSE_VERTEX_CONFIG",
    "DEFAULT_INDEX_CONFIG",
    "DEFAULT_EXECUTION_CONFIG",
    "DEFAULT_OUTPUT_CONFIG",
    # Errors
    "TopoQAError",
    "ConfigurationError",
    "SegmentNotFoundError",
    "IndicatorComputationError",
    # Geometry and features
    "Envelope",
    "LineSegment",
    "Feature",
    "FeatureCollection",
    "FeatureSegment",
    "Indicator",
    "feature_segments",
    "assign_ordinals",
    "sorted_by_id",
    # Spatial index
    "SpatialIndex",
    "STRtreeIndex",
    "GridIndex",
    "BruteForceIndex",
    "create_index",
    "run_query_units"
]
