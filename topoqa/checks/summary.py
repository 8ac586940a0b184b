# -*- coding: utf-8 -*-
"""
TopoQA - Check Summaries

Statistics shared by the ``run_*_check`` convenience functions.
"""

from typing import Any, Dict, Optional, Sequence

from topoqa.core.features import Indicator
from topoqa.utils.messaging import ToolMessenger


def calculate_length_stats(indicators: Optional[Sequence[Indicator]], prefix: str) -> Dict[str, Any]:
    """
    Count and length statistics of a list of indicators.

    Args:
        indicators: Indicators (None counts as empty)
        prefix: Key prefix, e.g. "size_indicators"

    Returns:
        Dictionary with ``<prefix>``, ``<prefix>_min_length``,
        ``<prefix>_max_length`` and ``<prefix>_total_length``
    """
    indicators = indicators or []
    lengths = [ind.length for ind in indicators]
    return {
        prefix: len(indicators),
        f"{prefix}_min_length": min(lengths) if lengths else 0.0,
        f"{prefix}_max_length": max(lengths) if lengths else 0.0,
        f"{prefix}_total_length": sum(lengths),
    }


def report_check_summary(
    messenger: ToolMessenger,
    total_features: int,
    violations_found: int,
    stats: Dict[str, Any]
) -> None:
    """Log a summary block, turning stat keys into readable labels."""
    additional = {}
    for key, value in stats.items():
        if key == "total_features" or (key == "cancelled" and not value):
            continue
        additional[key.replace("_", " ").capitalize()] = value
    messenger.report_summary(
        total_features=total_features,
        violations_found=violations_found,
        additional_stats=additional,
    )
