"""Shared pytest fixtures for topoqa tests."""

import pytest

from topoqa.core.features import FeatureCollection
from topoqa.utils.feature_io import features_from_wkt
from topoqa.utils.messaging import TaskMonitor


class RecordingMonitor(TaskMonitor):
    """Monitor recording every call; cancels after ``cancel_after`` progress reports."""

    def __init__(self, cancel_after=None):
        self.cancel_after = cancel_after
        self.cancellation_allowed = False
        self.messages = []
        self.progress = []

    def allow_cancellation_requests(self):
        self.cancellation_allowed = True

    def report(self, message):
        self.messages.append(message)

    def report_progress(self, current, total, unit_label):
        self.progress.append((current, total, unit_label))

    def is_cancel_requested(self):
        if self.cancel_after is None:
            return False
        return len(self.progress) >= self.cancel_after


@pytest.fixture
def recording_monitor():
    return RecordingMonitor()


@pytest.fixture
def cancelling_monitor():
    """Factory for monitors that request cancellation after N progress reports."""
    return lambda cancel_after: RecordingMonitor(cancel_after=cancel_after)


# ============================================================================
# Coverage Fixtures
# ============================================================================


@pytest.fixture
def clean_coverage() -> FeatureCollection:
    """Two unit squares sharing the edge x=1 exactly."""
    return features_from_wkt({
        1: "POLYGON ((0 0, 1 0, 1 1, 0 1, 0 0))",
        2: "POLYGON ((1 0, 2 0, 2 1, 1 1, 1 0))",
    }, name="clean")


@pytest.fixture
def gap_coverage() -> FeatureCollection:
    """Two squares separated by a 0.1 wide gap along x=1."""
    return features_from_wkt({
        1: "POLYGON ((0 0, 1 0, 1 1, 0 1, 0 0))",
        2: "POLYGON ((1.1 0, 2 0, 2 1, 1.1 1, 1.1 0))",
    }, name="gap")


@pytest.fixture
def offset_coverage() -> FeatureCollection:
    """Two squares whose shared edge is offset by 0.1 and shifted by 0.5."""
    return features_from_wkt({
        1: "POLYGON ((0 0, 1 0, 1 1, 0 1, 0 0))",
        2: "POLYGON ((1.1 0.5, 2 0.5, 2 1.5, 1.1 1.5, 1.1 0.5))",
    }, name="offset")


@pytest.fixture
def nested_polygons() -> FeatureCollection:
    """A small square entirely inside a large one."""
    return features_from_wkt({
        1: "POLYGON ((0 0, 10 0, 10 10, 0 10, 0 0))",
        2: "POLYGON ((2 2, 4 2, 4 4, 2 4, 2 2))",
    }, name="nested")
