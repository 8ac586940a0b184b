# -*- coding: utf-8 -*-
"""
TopoQA - Messaging Utilities

This module provides user feedback and logging utilities for the
TopoQA checks: a logger-backed messenger, a throttled progress tracker,
and the task monitor contract the checks use to report progress and to
poll for cancellation.
"""

import datetime
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional


class ToolMessenger:
    """
    Utility class for sending messages about a running check.

    Wraps a ``topoqa.<tool_name>`` logger with consistent formatting.
    """

    def __init__(self, tool_name: str = "TopoQA", logger: Optional[logging.Logger] = None):
        """
        Initialize the messenger.

        Args:
            tool_name: Name prefix for messages
            logger: Logger to write to (default: ``topoqa.<tool_name>``)
        """
        self.tool_name = tool_name
        self.logger = logger or logging.getLogger(f"topoqa.{tool_name}")
        self.start_time: Optional[datetime.datetime] = None

    def info(self, message: str) -> None:
        """
        Send an informational message.

        Args:
            message: Message text
        """
        self.logger.info("[%s] %s", self.tool_name, message)

    def warning(self, message: str) -> None:
        """
        Send a warning message.

        Args:
            message: Warning text
        """
        self.logger.warning("[%s] %s", self.tool_name, message)

    def error(self, message: str) -> None:
        """
        Send an error message.

        Args:
            message: Error text
        """
        self.logger.error("[%s] %s", self.tool_name, message)

    def debug(self, message: str, verbose: bool = False) -> None:
        """
        Send a debug message.

        Args:
            message: Debug text
            verbose: Promote the message to INFO so it shows without
                DEBUG logging enabled
        """
        if verbose:
            self.logger.info("[%s DEBUG] %s", self.tool_name, message)
        else:
            self.logger.debug("[%s] %s", self.tool_name, message)

    def start_timer(self) -> None:
        """Start the execution timer."""
        self.start_time = datetime.datetime.now()

    def get_elapsed_time(self) -> str:
        """
        Get elapsed time since timer started.

        Returns:
            Formatted elapsed time string
        """
        if self.start_time is None:
            return "N/A"

        elapsed = datetime.datetime.now() - self.start_time
        total_seconds = elapsed.total_seconds()

        if total_seconds < 60:
            return f"{total_seconds:.1f} seconds"
        elif total_seconds < 3600:
            minutes = int(total_seconds // 60)
            seconds = int(total_seconds % 60)
            return f"{minutes}m {seconds}s"
        else:
            hours = int(total_seconds // 3600)
            minutes = int((total_seconds % 3600) // 60)
            return f"{hours}h {minutes}m"

    def report_summary(
        self,
        total_features: int,
        violations_found: int,
        additional_stats: Optional[dict] = None
    ) -> None:
        """
        Report a summary of processing results.

        Args:
            total_features: Number of features processed
            violations_found: Number of indicators produced
            additional_stats: Optional dictionary of additional statistics
        """
        self.info("-" * 50)
        self.info("PROCESSING SUMMARY")
        self.info("-" * 50)
        self.info(f"Total features analyzed: {total_features:,}")
        self.info(f"Indicators produced: {violations_found:,}")

        if additional_stats:
            for key, value in additional_stats.items():
                if isinstance(value, bool):
                    self.info(f"{key}: {value}")
                elif isinstance(value, float):
                    self.info(f"{key}: {value:,.4f}")
                elif isinstance(value, int):
                    self.info(f"{key}: {value:,}")
                else:
                    self.info(f"{key}: {value}")

        self.info(f"Execution time: {self.get_elapsed_time()}")
        self.info("-" * 50)


class ProgressTracker:
    """
    Utility class for tracking and reporting progress.

    Logs the position at most once every ``step_size`` units.
    """

    def __init__(
        self,
        label: str,
        total: int,
        step_size: int = 1,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize progress tracker.

        Args:
            label: Progress label
            total: Total number of steps
            step_size: How often to report (default: every step)
            logger: Logger to write to
        """
        self.label = label
        self.total = total
        self.step_size = max(1, step_size)
        self.current = 0
        self._last_reported = 0
        self.logger = logger or logging.getLogger("topoqa.progress")

    def start(self) -> None:
        """Reset the position and announce the phase."""
        self.current = 0
        self._last_reported = 0
        self.logger.debug("%s: 0 of %d", self.label, self.total)

    def update(self, current: Optional[int] = None, status: Optional[str] = None) -> bool:
        """
        Update progress.

        Args:
            current: Current step number (auto-increment if None)
            status: Optional status message

        Returns:
            True if the position was reported
        """
        if current is not None:
            self.current = current
        else:
            self.current += 1

        # Only report periodically to avoid flooding the log
        if self.current - self._last_reported >= self.step_size or self.current == self.total:
            self.logger.debug(
                "%s: %d of %d%s",
                self.label,
                self.current,
                self.total,
                f" ({status})" if status else "",
            )
            self._last_reported = self.current
            return True
        return False

    def finish(self) -> None:
        """Log completion."""
        self.logger.debug("%s: done", self.label)


class TaskMonitor(ABC):
    """
    Progress and cancellation contract for long-running checks.

    A check calls ``allow_cancellation_requests`` before it starts,
    ``report`` at each major phase, ``report_progress`` per unit of work,
    and polls ``is_cancel_requested`` after each unit.
    """

    @abstractmethod
    def allow_cancellation_requests(self) -> None:
        ...

    @abstractmethod
    def report(self, message: str) -> None:
        ...

    @abstractmethod
    def report_progress(self, current: int, total: int, unit_label: str) -> None:
        ...

    @abstractmethod
    def is_cancel_requested(self) -> bool:
        ...


class DummyTaskMonitor(TaskMonitor):
    """Monitor for headless use: reports nothing and never cancels."""

    def allow_cancellation_requests(self) -> None:
        pass

    def report(self, message: str) -> None:
        pass

    def report_progress(self, current: int, total: int, unit_label: str) -> None:
        pass

    def is_cancel_requested(self) -> bool:
        return False


class LoggingTaskMonitor(TaskMonitor):
    """
    Monitor that logs phases through a ToolMessenger.

    Progress is throttled to roughly one message per percent. Another
    thread may call ``request_cancel``; the request is only honoured once
    the check has allowed cancellation.
    """

    def __init__(self, messenger: Optional[ToolMessenger] = None, step_fraction: float = 0.01):
        self.messenger = messenger or ToolMessenger("TopoQA")
        self.step_fraction = step_fraction
        self._cancel_event = threading.Event()
        self._cancellable = False
        self._tracker: Optional[ProgressTracker] = None
        self._phase = ""

    def allow_cancellation_requests(self) -> None:
        self._cancellable = True

    def request_cancel(self) -> None:
        self._cancel_event.set()

    def report(self, message: str) -> None:
        if self._tracker is not None:
            self._tracker.finish()
        self._phase = message
        self._tracker = None
        self.messenger.info(message)

    def report_progress(self, current: int, total: int, unit_label: str) -> None:
        tracker = self._tracker
        if tracker is None or tracker.total != total or tracker.label != unit_label:
            tracker = ProgressTracker(
                unit_label,
                total,
                step_size=int(total * self.step_fraction),
                logger=self.messenger.logger,
            )
            tracker.start()
            self._tracker = tracker
        tracker.update(current, self._phase or None)

    def is_cancel_requested(self) -> bool:
        return self._cancellable and self._cancel_event.is_set()


def format_number(value: float, decimals: int = 2) -> str:
    """
    Format a number for display with thousands separators.

    Args:
        value: Number to format
        decimals: Number of decimal places

    Returns:
        Formatted string
    """
    if decimals == 0:
        return f"{int(value):,}"
    return f"{value:,.{decimals}f}"
