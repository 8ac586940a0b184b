# -*- coding: utf-8 -*-
"""
TopoQA - Configuration Constants

This module contains all configuration objects, default values, and
tolerance settings used throughout the TopoQA checks. Every config is a
frozen dataclass validated on construction, so a bad tolerance fails
before any computation phase begins.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from topoqa.core.errors import ConfigurationError


class Orientation(Enum):
    """Allowed relative orientation of two matching segments."""

    SAME = 1
    OPPOSITE = 2
    EITHER = 3


INDEX_KINDS = ("strtree", "grid", "brute")


def _check_tolerances(distance_tolerance: float, angle_tolerance: Optional[float] = None) -> None:
    if distance_tolerance is None or distance_tolerance < 0:
        raise ConfigurationError(
            f"distance_tolerance must be >= 0, got {distance_tolerance!r}"
        )
    if angle_tolerance is not None and not 0 <= angle_tolerance <= 180:
        raise ConfigurationError(
            f"angle_tolerance must be within [0, 180] degrees, got {angle_tolerance!r}"
        )


@dataclass(frozen=True)
class SegmentMatchConfig:
    """Tolerances for deciding whether two segments match."""

    # Maximum Hausdorff distance between the mutual projections (map units)
    distance_tolerance: float = 1.0

    # Maximum angle between matching segments (degrees)
    angle_tolerance: float = 22.5

    orientation: Orientation = Orientation.OPPOSITE

    def __post_init__(self):
        _check_tolerances(self.distance_tolerance, self.angle_tolerance)
        if not isinstance(self.orientation, Orientation):
            raise ConfigurationError(f"Unknown orientation: {self.orientation!r}")


@dataclass(frozen=True)
class CoverageGapConfig:
    """Configuration for gap and sliver detection inside one coverage."""

    distance_tolerance: float = 1.0
    angle_tolerance: float = 22.5

    # When False only matched segments are recorded, no indicator geometry
    create_indicators: bool = True

    def __post_init__(self):
        _check_tolerances(self.distance_tolerance, self.angle_tolerance)

    def to_match_config(self) -> SegmentMatchConfig:
        # Coverage polygons are wound consistently, so neighbours
        # traverse a shared edge in opposite directions.
        return SegmentMatchConfig(
            distance_tolerance=self.distance_tolerance,
            angle_tolerance=self.angle_tolerance,
            orientation=Orientation.OPPOSITE,
        )


@dataclass(frozen=True)
class MatchedSegmentConfig:
    """Configuration for matching segments between two collections."""

    distance_tolerance: float = 1.0
    angle_tolerance: float = 22.5
    orientation: Orientation = Orientation.OPPOSITE

    def __post_init__(self):
        _check_tolerances(self.distance_tolerance, self.angle_tolerance)
        if not isinstance(self.orientation, Orientation):
            raise ConfigurationError(f"Unknown orientation: {self.orientation!r}")

    def to_match_config(self) -> SegmentMatchConfig:
        return SegmentMatchConfig(
            distance_tolerance=self.distance_tolerance,
            angle_tolerance=self.angle_tolerance,
            orientation=self.orientation,
        )


@dataclass(frozen=True)
class CloseVertexConfig:
    """Configuration for near-vertex detection."""

    # Vertices closer than this (and not equal) are reported
    distance_tolerance: float = 1.0

    def __post_init__(self):
        _check_tolerances(self.distance_tolerance)


@dataclass(frozen=True)
class IndexConfig:
    """Spatial index selection."""

    # One of "strtree", "grid", "brute"
    kind: str = "strtree"

    # STRtree node capacity
    node_capacity: int = 10

    # Grid cell size in map units; derived from item sizes when None
    cell_size: Optional[float] = None

    def __post_init__(self):
        if self.kind not in INDEX_KINDS:
            raise ConfigurationError(
                f"Unknown index kind {self.kind!r}, expected one of {INDEX_KINDS}"
            )
        if self.node_capacity < 2:
            raise ConfigurationError("node_capacity must be at least 2")
        if self.cell_size is not None and self.cell_size <= 0:
            raise ConfigurationError("cell_size must be positive")


@dataclass(frozen=True)
class ExecutionConfig:
    """Query phase execution settings."""

    # 1 runs the query phase serially
    max_workers: int = 1

    def __post_init__(self):
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")


@dataclass(frozen=True)
class OutputConfig:
    """Attribute names used when indicators are turned into features."""

    field_length: str = "LENGTH"
    field_kind: str = "KIND"
    field_source_ids: str = "SOURCE_IDS"

    # Indicator kind values
    kind_matched_segment: str = "MATCHED_SEGMENT"
    kind_gap_size: str = "GAP_SIZE"
    kind_overlap: str = "OVERLAP"
    kind_overlap_size: str = "OVERLAP_SIZE"
    kind_close_vertex: str = "CLOSE_VERTEX"


# Default configuration instances
DEFAULT_SEGMENT_MATCH_CONFIG = SegmentMatchConfig()
DEFAULT_COVERAGE_GAP_CONFIG = CoverageGapConfig()
DEFAULT_MATCHED_SEGMENT_CONFIG = MatchedSegmentConfig()
DEFAULT_CLOSE_VERTEX_CONFIG = CloseVertexConfig()
DEFAULT_INDEX_CONFIG = IndexConfig()
DEFAULT_EXECUTION_CONFIG = ExecutionConfig()
DEFAULT_OUTPUT_CONFIG = OutputConfig()
