"""Completion counts and rates for check-ins.

Rates are whole percentages rounded half up (1 of 8 is 13%), and an empty
input always yields zeros rather than a division error.
"""
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from journey.shared.models import CheckInEntry, Task
from .trends import newest_first


def percent(part: int, whole: int) -> int:
    """round(part * 100 / whole) with halves rounded up; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return math.floor(part * 100 / whole + 0.5)


def average(values: Sequence[float]) -> Optional[float]:
    if not values:
        return None
    return sum(values) / len(values)


@dataclass(frozen=True)
class CompletionSummary:
    completed_count: int
    total_count: int
    rate_percent: int

    def meets_goal(self, goal_days: int) -> bool:
        return self.completed_count >= goal_days

    def to_dict(self) -> dict:
        return {
            "completed_count": self.completed_count,
            "total_count": self.total_count,
            "rate_percent": self.rate_percent,
        }


@dataclass(frozen=True)
class WeeklyStats:
    """Averages and completion for one week of check-ins."""
    week_number: int
    average_anxiety: Optional[float]
    average_guilt: Optional[float]
    completion: CompletionSummary

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "average_anxiety": None if self.average_anxiety is None else round(self.average_anxiety, 1),
            "average_guilt": None if self.average_guilt is None else round(self.average_guilt, 1),
            **self.completion.to_dict(),
        }


def summarize_completion(entries: Iterable[CheckInEntry]) -> CompletionSummary:
    entries = list(entries)
    completed = sum(1 for e in entries if e.completed)
    total = len(entries)
    return CompletionSummary(
        completed_count=completed,
        total_count=total,
        rate_percent=percent(completed, total),
    )


def completion_by_week(entries: Iterable[CheckInEntry]) -> Dict[int, CompletionSummary]:
    """Completion summary per week number, in week order."""
    grouped: Dict[int, List[CheckInEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.week_number, []).append(entry)

    return {week: summarize_completion(grouped[week]) for week in sorted(grouped)}


def weeks_meeting_goal(
    by_week: Dict[int, CompletionSummary],
    tasks: Iterable[Task],
) -> List[int]:
    """Weeks whose completed count reached the task's goal days.

    Weeks without a task never count as met.
    """
    goals = {task.week_number: task.goal_days for task in tasks}
    return [
        week for week, summary in by_week.items()
        if week in goals and summary.meets_goal(goals[week])
    ]


def completion_streak(entries: Iterable[CheckInEntry]) -> int:
    """Consecutive completed check-ins counting back from the newest."""
    streak = 0
    for entry in newest_first(entries):
        if not entry.completed:
            break
        streak += 1
    return streak


def weekly_stats(entries: Iterable[CheckInEntry], week_number: int) -> WeeklyStats:
    """Stats for ``week_number``; entries from other weeks are ignored."""
    week_entries = [e for e in entries if e.week_number == week_number]
    return WeeklyStats(
        week_number=week_number,
        average_anxiety=average([e.anxiety_level for e in week_entries]),
        average_guilt=average([e.guilt_level for e in week_entries]),
        completion=summarize_completion(week_entries),
    )
