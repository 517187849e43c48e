"""Red flags for the admin dashboard.

Three rules, reported in this order when they match:
1. No login for ``inactivity_days`` or more whole days
2. Fewer than ``min_completions`` completed check-ins this week
3. Mean anxiety of the newest ``anxiety_sample`` check-ins above
   ``anxiety_threshold``
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from journey.shared.models import CheckInEntry
from .completion import average
from .trends import newest_first


@dataclass(frozen=True)
class RedFlagRules:
    """Thresholds for red-flag evaluation."""
    inactivity_days: int = 3
    min_completions: int = 2
    anxiety_sample: int = 3
    anxiety_threshold: float = 7.0

    def __post_init__(self):
        if self.inactivity_days < 1:
            raise ValueError(f"inactivity_days must be >= 1, got {self.inactivity_days}")
        if self.anxiety_sample < 1:
            raise ValueError(f"anxiety_sample must be >= 1, got {self.anxiety_sample}")


DEFAULT_RULES = RedFlagRules()


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def days_since(then: datetime, now: datetime) -> int:
    """Whole days elapsed (floor). Aware datetimes are compared in UTC."""
    elapsed = _as_naive_utc(now) - _as_naive_utc(then)
    return elapsed.days


def evaluate_red_flags(
    last_login: Optional[datetime],
    current_week_entries: Iterable[CheckInEntry],
    now: Optional[datetime] = None,
    rules: RedFlagRules = DEFAULT_RULES,
) -> List[str]:
    """Human-readable red flags, empty when nothing is concerning.

    Args:
        last_login: Most recent login, None when the subject never logged in
        current_week_entries: Check-ins of the subject's current week
        now: Reference time (defaults to utcnow)
        rules: Thresholds
    """
    now = now or datetime.utcnow()
    entries = newest_first(current_week_entries)
    flags: List[str] = []

    if last_login is not None:
        idle_days = days_since(last_login, now)
        if idle_days >= rules.inactivity_days:
            flags.append(f"No login for {idle_days} days")

    completed = sum(1 for e in entries if e.completed)
    if completed < rules.min_completions:
        flags.append(f"Low completion rate: {completed} days this week")

    if len(entries) >= rules.anxiety_sample:
        recent_anxiety = average([e.anxiety_level for e in entries[:rules.anxiety_sample]])
        if recent_anxiety > rules.anxiety_threshold:
            flags.append(f"High anxiety levels: average {recent_anxiety:.1f}/10")

    return flags
