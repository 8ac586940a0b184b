# -*- coding: utf-8 -*-
"""
TopoQA - Utilities Module

This package contains utility functions for feature input and output,
messaging, progress reporting, and task monitoring.
"""

from topoqa.utils.feature_io import (
    features_from_wkt,
    features_from_geojson,
    read_geometries_to_dict,
    count_features,
    fence_geometry,
    iterate_features,
    validate_feature_collection,
    indicators_to_features,
    collection_to_geojson
)

from topoqa.utils.messaging import (
    ToolMessenger,
    ProgressTracker,
    TaskMonitor,
    DummyTaskMonitor,
    LoggingTaskMonitor,
    format_number
)

__all__ = [
    # Feature input/output
    "features_from_wkt",
    "features_from_geojson",
    "read_geometries_to_dict",
    "count_features",
    "fence_geometry",
    "iterate_features",
    "validate_feature_collection",
    "indicators_to_features",
    "collection_to_geojson",
    # Messaging
    "ToolMessenger",
    "ProgressTracker",
    "TaskMonitor",
    "DummyTaskMonitor",
    "LoggingTaskMonitor",
    "format_number"
]
