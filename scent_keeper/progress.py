"""
Progress reporting for the backup pipelines.

A progress sink is any callable accepting a ProgressEvent. Sinks belong to the
caller (a progress bar, a log line, a queue); a sink that raises is logged and
ignored so it can never abort an export or import.
"""

import logging
from typing import Callable, Optional

from .schemas import ProgressEvent

logger = logging.getLogger(__name__)

ProgressSink = Callable[[ProgressEvent], None]


def compute_percentage(step: int, total: int) -> int:
    if total <= 0:
        return 0
    return max(0, min(100, round(step / total * 100)))


def emit_progress(
    sink: Optional[ProgressSink],
    percentage: int,
    message: str,
    step: Optional[int] = None,
    total: Optional[int] = None,
) -> Optional[ProgressEvent]:
    """Delivers a percentage-based event. Without a sink this is a no-op."""
    if sink is None:
        return None

    event = ProgressEvent(
        step=step,
        total=total,
        message=message,
        percentage=max(0, min(100, percentage)),
    )
    try:
        sink(event)
    except Exception:
        logger.exception(f"Progress sink failed on '{message}'")
    return event


def report_progress(
    sink: Optional[ProgressSink], step: int, total: int, message: str
) -> Optional[ProgressEvent]:
    """Delivers a step-based event: percentage = round(step / total * 100)."""
    return emit_progress(
        sink, compute_percentage(step, total), message, step=step, total=total
    )


class StepCounter:
    """Counts pipeline steps and reports each one as it happens."""

    def __init__(self, sink: Optional[ProgressSink], total: int):
        self.sink = sink
        self.total = total
        self.current = 0

    def advance(self, message: str) -> Optional[ProgressEvent]:
        self.current = min(self.current + 1, self.total)
        return report_progress(self.sink, self.current, self.total, message)

    def finish(self, message: str) -> Optional[ProgressEvent]:
        self.current = self.total
        return report_progress(self.sink, self.current, self.total, message)
