"""Anxiety and guilt trend over recent check-ins.

Compares the average of the newest ``window`` entries with the average of the
``window`` entries before them. A trend is only computed when both windows are
full; otherwise the direction is STABLE and the report says it is not
computable. With fewer than ``2 * window`` check-ins the result carries no
signal.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from journey.shared.models import CheckInEntry

DEFAULT_WINDOW = 3
CHANGE_THRESHOLD = 1.0


class TrendDirection(Enum):
    IMPROVING = "improving"     # Levels went down
    WORSENING = "worsening"     # Levels went up
    STABLE = "stable"


@dataclass(frozen=True)
class MetricTrend:
    """Trend of one 0-10 metric."""
    metric: str
    recent_average: Optional[float]
    previous_average: Optional[float]
    direction: TrendDirection

    @property
    def computable(self) -> bool:
        return self.recent_average is not None and self.previous_average is not None

    @property
    def delta(self) -> Optional[float]:
        if not self.computable:
            return None
        return self.recent_average - self.previous_average

    def to_dict(self) -> dict:
        return {
            "metric": self.metric,
            "recent_average": _rounded(self.recent_average),
            "previous_average": _rounded(self.previous_average),
            "delta": _rounded(self.delta),
            "direction": self.direction.value,
            "computable": self.computable,
        }


@dataclass(frozen=True)
class TrendReport:
    window: int
    entry_count: int
    anxiety: MetricTrend
    guilt: MetricTrend

    def to_dict(self) -> dict:
        return {
            "window": self.window,
            "entry_count": self.entry_count,
            "anxiety": self.anxiety.to_dict(),
            "guilt": self.guilt.to_dict(),
        }


def _rounded(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


def newest_first(entries: Iterable[CheckInEntry]) -> List[CheckInEntry]:
    """Entries ordered by completed_at descending. Ties keep input order."""
    return sorted(entries, key=lambda e: e.completed_at, reverse=True)


def window_average(values: Sequence[float], offset: int, window: int) -> Optional[float]:
    """Mean of values[offset:offset + window], None unless the slice is full."""
    chunk = values[offset:offset + window]
    if len(chunk) < window:
        return None
    return sum(chunk) / window


def classify_change(
    recent: Optional[float],
    previous: Optional[float],
    threshold: float = CHANGE_THRESHOLD,
) -> TrendDirection:
    """IMPROVING when recent is at least ``threshold`` below previous,
    WORSENING when at least ``threshold`` above, otherwise STABLE."""
    if recent is None or previous is None:
        return TrendDirection.STABLE

    # Rounded so 1.0 - 1e-15 from float division still counts as a full point
    delta = round(recent - previous, 9)
    if delta <= -threshold:
        return TrendDirection.IMPROVING
    if delta >= threshold:
        return TrendDirection.WORSENING
    return TrendDirection.STABLE


def metric_trend(
    metric: str,
    values: Sequence[float],
    window: int = DEFAULT_WINDOW,
    threshold: float = CHANGE_THRESHOLD,
) -> MetricTrend:
    """Trend of a newest-first series of values."""
    recent = window_average(values, 0, window)
    previous = window_average(values, window, window)
    return MetricTrend(
        metric=metric,
        recent_average=recent,
        previous_average=previous,
        direction=classify_change(recent, previous, threshold),
    )


def calculate_trend(
    entries: Iterable[CheckInEntry],
    window: int = DEFAULT_WINDOW,
    threshold: float = CHANGE_THRESHOLD,
) -> TrendReport:
    """Anxiety and guilt trends over the newest check-ins.

    Args:
        entries: Check-ins, expected newest first (re-sorted here regardless)
        window: Entries per comparison window
        threshold: Minimum change of the average to leave STABLE

    Raises:
        ValueError: If window < 1
    """
    if window < 1:
        raise ValueError(f"Trend window must be >= 1, got {window}")

    ordered = newest_first(entries)
    return TrendReport(
        window=window,
        entry_count=len(ordered),
        anxiety=metric_trend("anxiety", [e.anxiety_level for e in ordered], window, threshold),
        guilt=metric_trend("guilt", [e.guilt_level for e in ordered], window, threshold),
    )
