"""Tests for red-flag evaluation."""
from datetime import datetime, timedelta, timezone

import pytest

from journey.shared.models import CheckInEntry
from journey.services.analytics_service.red_flags import (
    RedFlagRules,
    days_since,
    evaluate_red_flags,
)

NOW = datetime(2026, 3, 10, 9, 0)


def make_entries(anxiety, completed):
    """Entries newest first, one day apart."""
    return [
        CheckInEntry(
            subject_id=1,
            task_id=3,
            week_number=3,
            completed=c,
            anxiety_level=a,
            guilt_level=4,
            completed_at=NOW - timedelta(days=i),
        )
        for i, (a, c) in enumerate(zip(anxiety, completed))
    ]


class TestEvaluateRedFlags:
    """Tests for evaluate_red_flags."""

    def test_all_three_rules_match(self):
        entries = make_entries([8, 9, 7], [True, False, False])

        flags = evaluate_red_flags(NOW - timedelta(days=4), entries, now=NOW)

        assert flags == [
            "No login for 4 days",
            "Low completion rate: 1 days this week",
            "High anxiety levels: average 8.0/10",
        ]

    def test_engaged_subject_has_no_flags(self):
        entries = make_entries([2, 3, 5, 4, 1], [True] * 5)

        assert evaluate_red_flags(NOW, entries, now=NOW) == []

    def test_no_login_record_skips_inactivity_rule(self):
        flags = evaluate_red_flags(None, [], now=NOW)

        assert flags == ["Low completion rate: 0 days this week"]

    def test_inactivity_counts_whole_days(self):
        entries = make_entries([1, 1], [True, True])

        assert evaluate_red_flags(NOW - timedelta(days=3), entries, now=NOW) == [
            "No login for 3 days",
        ]
        assert evaluate_red_flags(NOW - timedelta(days=2, hours=23), entries, now=NOW) == []

    def test_anxiety_exactly_at_threshold_is_not_flagged(self):
        entries = make_entries([7, 7, 7], [True] * 3)

        assert evaluate_red_flags(NOW, entries, now=NOW) == []

    def test_anxiety_uses_only_newest_three(self):
        entries = make_entries([8, 8, 8, 0, 0], [True] * 5)
        entries.reverse()

        flags = evaluate_red_flags(NOW, entries, now=NOW)

        assert flags == ["High anxiety levels: average 8.0/10"]

    def test_anxiety_needs_three_entries(self):
        entries = make_entries([10, 10], [True, True])

        assert evaluate_red_flags(NOW, entries, now=NOW) == []

    def test_anxiety_average_formatting(self):
        entries = make_entries([8, 8, 9], [True] * 3)

        assert evaluate_red_flags(NOW, entries, now=NOW) == [
            "High anxiety levels: average 8.3/10",
        ]

    def test_aware_now_with_naive_login(self):
        aware_now = NOW.replace(tzinfo=timezone.utc)
        entries = make_entries([1, 1], [True, True])

        flags = evaluate_red_flags(NOW - timedelta(days=5), entries, now=aware_now)

        assert flags == ["No login for 5 days"]

    def test_custom_rules(self):
        rules = RedFlagRules(inactivity_days=7, min_completions=1)
        entries = make_entries([1], [True])

        assert evaluate_red_flags(NOW - timedelta(days=5), entries, now=NOW, rules=rules) == []

    def test_repeated_calls_give_identical_results(self):
        entries = make_entries([8, 9, 7], [True, False, False])
        last_login = NOW - timedelta(days=4)

        assert (
            evaluate_red_flags(last_login, entries, now=NOW)
            == evaluate_red_flags(last_login, entries, now=NOW)
        )


class TestRedFlagRules:
    """Tests for rule validation and day arithmetic."""

    def test_invalid_rules_raise(self):
        with pytest.raises(ValueError):
            RedFlagRules(inactivity_days=0)
        with pytest.raises(ValueError):
            RedFlagRules(anxiety_sample=0)

    def test_days_since_floors(self):
        assert days_since(NOW - timedelta(hours=47), NOW) == 1
        assert days_since(NOW, NOW) == 0
