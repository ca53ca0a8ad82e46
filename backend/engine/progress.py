"""
progress.py — Timeline progress calculator.

Scoring: completed = 1 point, in-progress = 0.5, pending = 0.
progress = round(100 * points / steps), halves rounded up.

Status message priority:
  1. label of the first in-progress step
  2. "Pending: <label>" of the first pending step
  3. "Service Completed" (progress forced to 100)
"""

from dataclasses import dataclass
from fractions import Fraction
from math import floor
from typing import Optional

from engine.records import TimelineStatus

SERVICE_COMPLETED = "Service Completed"
PENDING_PREFIX = "Pending: "

_POINTS = {
    TimelineStatus.completed:   Fraction(1),
    TimelineStatus.in_progress: Fraction(1, 2),
    TimelineStatus.pending:     Fraction(0),
}


@dataclass(frozen=True)
class ProgressResult:
    """None in either field means "leave the record's value as it is"."""

    progress: Optional[int] = None
    status_message: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.progress is None and self.status_message is None


def compute_progress(timeline) -> ProgressResult:
    if not timeline:
        return ProgressResult()

    points = sum(_POINTS[step.status] for step in timeline)
    progress = floor(points * 100 / len(timeline) + Fraction(1, 2))

    active = next((s for s in timeline if s.status is TimelineStatus.in_progress), None)
    if active is not None:
        return ProgressResult(progress, active.label)

    upcoming = next((s for s in timeline if s.status is TimelineStatus.pending), None)
    if upcoming is not None:
        return ProgressResult(progress, PENDING_PREFIX + upcoming.label)

    return ProgressResult(100, SERVICE_COMPLETED)
