"""Tests for prompt context assembly."""
import pytest
from datetime import datetime, timedelta

from journey.shared.models import (
    AccommodationLog,
    CheckInEntry,
    CouldDoAlone,
    JournalEntry,
    Reflection,
)
from journey.services.companion_service.context_builder import (
    ContextBuilder,
    accommodation_insight,
)

NOW = datetime(2026, 3, 10, 9, 0)


def make_entries(anxiety, week=3, completed=None, guilt=5, start=NOW):
    """Check-ins newest first, one per day going back from ``start``."""
    completed = completed or [True] * len(anxiety)
    return [
        CheckInEntry(
            id=i + 1,
            subject_id=1,
            task_id=week,
            week_number=week,
            completed=c,
            anxiety_level=a,
            guilt_level=guilt,
            completed_at=start - timedelta(days=i),
        )
        for i, (a, c) in enumerate(zip(anxiety, completed))
    ]


def make_log(answer, days_ago=0):
    return AccommodationLog(
        subject_id=1,
        logged_at=NOW - timedelta(days=days_ago),
        time_of_day="08:00",
        what_did="Made his breakfast",
        could_have_done_alone=answer,
        felt_during="Rushed",
    )


@pytest.fixture
def builder():
    return ContextBuilder()


class TestAffirmationContext:
    """Tests for affirmation context."""

    def test_starts_with_phase_and_focus(self, builder):
        lines = builder.affirmation(3, [], [])

        assert lines[0].startswith("Current phase: The 15-Minute Exit (Week 3)")
        assert "taking 15-minute breaks away from home" in lines[0]

    def test_optional_levels(self, builder):
        lines = builder.affirmation(3, [], [], recent_anxiety=6, recent_guilt=2, completed_days=4)

        assert "Her recent anxiety level: 6/10" in lines
        assert "Her recent guilt level: 2/10" in lines
        assert "Days completed this week: 4/7" in lines

    def test_zero_levels_are_kept(self, builder):
        lines = builder.affirmation(3, [], [], recent_anxiety=0)

        assert "Her recent anxiety level: 0/10" in lines

    def test_improving_trend(self, builder):
        lines = builder.affirmation(3, make_entries([3, 3, 3, 6, 6, 6]), [])

        assert any("improving recently" in line for line in lines)

    def test_worsening_trend(self, builder):
        lines = builder.affirmation(3, make_entries([8, 8, 8, 5, 5, 5]), [])

        assert any("extra encouragement" in line for line in lines)

    def test_no_trend_below_two_full_windows(self, builder):
        lines = builder.affirmation(3, make_entries([2, 2, 2, 8, 8]), [])

        assert not any(line.startswith("Trend observation") for line in lines)

    def test_stable_trend_adds_nothing(self, builder):
        lines = builder.affirmation(3, make_entries([5, 5, 5, 5, 5, 5]), [])

        assert not any(line.startswith("Trend observation") for line in lines)

    def test_accommodation_insight_in_awareness_weeks(self, builder):
        logs = [make_log(CouldDoAlone.YES), make_log(CouldDoAlone.NO), make_log(CouldDoAlone.YES)]

        lines = builder.affirmation(2, [], logs)

        assert (
            "Accommodation insight: She has logged 3 accommodations, 2 of which "
            "her son could have done himself."
        ) in lines

    def test_no_accommodation_insight_after_week_two(self, builder):
        lines = builder.affirmation(3, [], [make_log(CouldDoAlone.YES)])

        assert not any("Accommodation insight" in line for line in lines)

    def test_no_accommodation_insight_without_logs(self, builder):
        lines = builder.affirmation(1, [], [])

        assert len(lines) == 1


class TestWeeklySummaryContext:
    """Tests for weekly summary context."""

    def test_stats_from_the_week_only(self, builder):
        entries = (
            make_entries([4, 5], week=3, completed=[True, False])
            + make_entries([9, 9, 9], week=2, start=NOW - timedelta(days=7))
        )

        lines = builder.weekly_summary(3, entries)

        assert "Check-ins this week: 2, 1 with the task completed" in lines
        assert "Completion rate: 50%" in lines
        assert "Average anxiety: 4.5/10" in lines
        assert "Average guilt: 5.0/10" in lines

    def test_no_checkins(self, builder):
        lines = builder.weekly_summary(4, [])

        assert "No check-ins were recorded this week" in lines
        assert not any(line.startswith("Completion rate") for line in lines)

    def test_reflection_answers_joined(self, builder):
        reflection = Reflection(
            subject_id=1,
            week_number=3,
            answer_1="He seemed calmer",
            answer_3="Walked by the river",
        )

        lines = builder.weekly_summary(3, [], reflection)

        assert "Her reflections: He seemed calmer | Walked by the river" in lines

    def test_empty_reflection_is_skipped(self, builder):
        lines = builder.weekly_summary(3, [], Reflection(subject_id=1, week_number=3))

        assert not any(line.startswith("Her reflections") for line in lines)


class TestCheckinFeedbackContext:
    """Tests for check-in feedback context."""

    def entry(self, completed=True, anxiety=5, guilt=5):
        return CheckInEntry(
            id=10,
            subject_id=1,
            task_id=3,
            week_number=3,
            completed=completed,
            anxiety_level=anxiety,
            guilt_level=guilt,
            completed_at=NOW + timedelta(days=1),
        )

    def test_elevated_anxiety_tag(self, builder):
        lines = builder.checkin_feedback(self.entry(anxiety=7), [])

        assert "Anxiety today: 7/10 (elevated)" in lines

    def test_low_levels_tags(self, builder):
        lines = builder.checkin_feedback(self.entry(anxiety=3, guilt=3), [])

        assert "Anxiety today: 3/10 (low - encouraging!)" in lines
        assert "Guilt today: 3/10 (low - great progress!)" in lines

    def test_mid_levels_untagged(self, builder):
        lines = builder.checkin_feedback(self.entry(anxiety=5, guilt=6), [])

        assert "Anxiety today: 5/10" in lines
        assert "Guilt today: 6/10" in lines

    def test_progress_and_streak(self, builder):
        earlier = make_entries([5, 5], week=3) + make_entries([5], week=2, start=NOW - timedelta(days=2))

        lines = builder.checkin_feedback(self.entry(), earlier)

        assert "This is her 3 completed day this week out of 3 check-ins." in lines
        assert "She's on a 4-day streak of completing her tasks!" in lines

    def test_no_progress_line_without_earlier_completions(self, builder):
        earlier = make_entries([5], week=3, completed=[False])

        lines = builder.checkin_feedback(self.entry(), earlier)

        assert not any(line.startswith("This is her") for line in lines)

    def test_no_streak_when_today_not_completed(self, builder):
        earlier = make_entries([5, 5, 5], week=3)

        lines = builder.checkin_feedback(self.entry(completed=False), earlier)

        assert "She did not complete today's task" in lines
        assert "This is her 3 completed day this week out of 4 check-ins." in lines
        assert not any("streak" in line for line in lines)

    def test_no_streak_below_two(self, builder):
        lines = builder.checkin_feedback(self.entry(), make_entries([5], week=3))

        assert not any("streak" in line for line in lines)


class TestChatContext:
    """Tests for chat context and history."""

    def test_progress_lines(self, builder):
        entries = make_entries([2, 4, 6, 8, 10, 1], week=3, completed=[True, True, False, True, True, True])

        lines = builder.chat(3, entries, [])

        assert "Days completed this week: 5/7" in lines
        assert "Total check-ins: 6" in lines
        assert "Recent average anxiety: 6.0/10" in lines
        assert "Recent average guilt: 5.0/10" in lines

    def test_no_checkins(self, builder):
        lines = builder.chat(1, [], [])

        assert "Recent average anxiety: N/A" in lines
        assert "Total check-ins: 0" in lines

    def test_accommodations_and_journal(self, builder):
        journal = [JournalEntry(subject_id=1, content="A quiet evening")]

        lines = builder.chat(1, [], [make_log(CouldDoAlone.NO)], journal)

        assert any(line.startswith("Accommodations: She has logged 1 accommodations") for line in lines)
        assert "Journal entries written: 1" in lines

    def test_history_keeps_newest_ten(self, builder):
        history = [{"role": "user" if i % 2 == 0 else "assistant", "content": str(i)} for i in range(14)]

        trimmed = builder.chat_history(history)

        assert len(trimmed) == 10
        assert trimmed[0]["content"] == "4"
        assert trimmed[-1]["content"] == "13"

    def test_short_history_unchanged(self, builder):
        history = [{"role": "user", "content": "Hi"}]

        assert builder.chat_history(history) == history


class TestHelpers:
    """Tests for small helpers."""

    def test_accommodation_insight_empty(self):
        assert accommodation_insight([]) is None

    def test_journal_prompt_includes_mood(self, builder):
        prompt = builder.journal(JournalEntry(subject_id=1, content="Slept well", mood="calm"))

        assert "Slept well" in prompt
        assert "Mood: calm" in prompt
