# -*- coding: utf-8 -*-
"""
TopoQA - Exceptions

Exception types raised by the QA engines. Geometric robustness failures
coming out of shapely are not wrapped here; they are handled where they
occur (see topoqa.checks.overlap.indicators).
"""


class TopoQAError(Exception):
    """Base class for all TopoQA errors."""


class ConfigurationError(TopoQAError, ValueError):
    """Raised when a tolerance or required input is invalid."""


class SegmentNotFoundError(TopoQAError, KeyError):
    """Raised when the count of a segment that was never added is requested."""


class IndicatorComputationError(TopoQAError):
    """Raised by an overlap indicator strategy that cannot produce a result."""
