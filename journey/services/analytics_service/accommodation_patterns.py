"""Accommodation log patterns: when accommodations happen and whether the
dependent could have managed alone.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable

from journey.shared.models import AccommodationLog, CouldDoAlone
from .completion import percent

DEFAULT_HOUR = 12
AFTERNOON_START = 12
EVENING_START = 17

MORNING = "Morning"
AFTERNOON = "Afternoon"
EVENING = "Evening"
TIME_BUCKETS = (MORNING, AFTERNOON, EVENING)

_LEADING_HOUR = re.compile(r"^\s*(\d+)")


def parse_hour(time_of_day: str) -> int:
    """Hour from an "HH:MM" string; DEFAULT_HOUR when it has no leading digits."""
    match = _LEADING_HOUR.match(time_of_day or "")
    if match is None:
        return DEFAULT_HOUR
    return int(match.group(1))


def time_bucket(hour: int) -> str:
    if hour < AFTERNOON_START:
        return MORNING
    if hour < EVENING_START:
        return AFTERNOON
    return EVENING


@dataclass(frozen=True)
class AccommodationPatterns:
    by_time_of_day: Dict[str, int]
    total: int
    yes_count: int
    no_count: int
    maybe_count: int
    could_do_alone_percent: int

    def to_dict(self) -> dict:
        return {
            "by_time_of_day": dict(self.by_time_of_day),
            "total": self.total,
            "could_have_done_alone": {
                "yes": self.yes_count,
                "no": self.no_count,
                "maybe": self.maybe_count,
            },
            "could_do_alone_percent": self.could_do_alone_percent,
        }


def analyze_accommodations(logs: Iterable[AccommodationLog]) -> AccommodationPatterns:
    """Bucket logs by time of day and count the could-do-alone answers.

    Never raises on malformed time strings; they count as midday.
    """
    buckets = {bucket: 0 for bucket in TIME_BUCKETS}
    answers = {answer: 0 for answer in CouldDoAlone}
    total = 0

    for log in logs:
        buckets[time_bucket(parse_hour(log.time_of_day))] += 1
        answers[log.could_have_done_alone] += 1
        total += 1

    return AccommodationPatterns(
        by_time_of_day=buckets,
        total=total,
        yes_count=answers[CouldDoAlone.YES],
        no_count=answers[CouldDoAlone.NO],
        maybe_count=answers[CouldDoAlone.MAYBE],
        could_do_alone_percent=percent(answers[CouldDoAlone.YES], total),
    )
