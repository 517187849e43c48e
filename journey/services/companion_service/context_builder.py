"""Turns stored records into prompt context lines.

Every number quoted to the model is computed here from stored records with the
same functions the progress view uses, so the companion and the dashboard
never disagree.
"""
import logging
from typing import Dict, List, Optional, Sequence

from journey.shared.models import (
    AccommodationLog,
    CheckInEntry,
    CouldDoAlone,
    JournalEntry,
    Reflection,
    resolve_phase,
    week_plan,
)
from journey.services.analytics_service.completion import average, completion_streak, weekly_stats
from journey.services.analytics_service.trends import (
    DEFAULT_WINDOW,
    TrendDirection,
    calculate_trend,
    newest_first,
)

logger = logging.getLogger(__name__)

ELEVATED_LEVEL = 7
LOW_LEVEL = 3
DAYS_PER_WEEK = 7
RECENT_SAMPLE = 5
HISTORY_LIMIT = 10


def _level(value: Optional[float]) -> str:
    return "N/A" if value is None else f"{value:.1f}/10"


def accommodation_insight(logs: Sequence[AccommodationLog]) -> Optional[str]:
    if not logs:
        return None
    could = sum(1 for log in logs if log.could_have_done_alone == CouldDoAlone.YES)
    return (
        f"She has logged {len(logs)} accommodations, {could} of which "
        "her son could have done himself."
    )


class ContextBuilder:
    """Builds context lines for each companion feature."""

    def __init__(self, trend_window: int = DEFAULT_WINDOW, history_limit: int = HISTORY_LIMIT):
        self.trend_window = trend_window
        self.history_limit = history_limit

    def phase_line(self, week_number: int) -> str:
        phase = resolve_phase(week_number)
        plan = week_plan(week_number)
        return f"Current phase: {phase.name} (Week {week_number}), focused on {plan.focus}"

    def trend_line(self, entries: Sequence[CheckInEntry]) -> Optional[str]:
        """Anxiety trend sentence, or None while there is too little data."""
        trend = calculate_trend(entries, window=self.trend_window).anxiety
        if not trend.computable:
            return None
        if trend.direction == TrendDirection.IMPROVING:
            return "Her anxiety has been improving recently, which shows her progress!"
        if trend.direction == TrendDirection.WORSENING:
            return "Her anxiety has been higher recently, so she may need extra encouragement."
        return None

    def affirmation(
        self,
        week_number: int,
        entries: Sequence[CheckInEntry],
        accommodations: Sequence[AccommodationLog],
        recent_anxiety: Optional[int] = None,
        recent_guilt: Optional[int] = None,
        completed_days: Optional[int] = None,
    ) -> List[str]:
        lines = [self.phase_line(week_number)]

        if recent_anxiety is not None:
            lines.append(f"Her recent anxiety level: {recent_anxiety}/10")
        if recent_guilt is not None:
            lines.append(f"Her recent guilt level: {recent_guilt}/10")
        if completed_days is not None:
            lines.append(f"Days completed this week: {completed_days}/{DAYS_PER_WEEK}")

        trend = self.trend_line(entries)
        if trend:
            lines.append(f"Trend observation: {trend}")

        if week_plan(week_number).uses_accommodation_log:
            insight = accommodation_insight(accommodations)
            if insight:
                lines.append(f"Accommodation insight: {insight}")

        return lines

    def weekly_summary(
        self,
        week_number: int,
        entries: Sequence[CheckInEntry],
        reflection: Optional[Reflection] = None,
    ) -> List[str]:
        """Context for the end-of-week summary. Entries from other weeks are ignored."""
        stats = weekly_stats(entries, week_number)
        lines = [self.phase_line(week_number)]

        if stats.completion.total_count:
            lines.append(
                f"Check-ins this week: {stats.completion.total_count}, "
                f"{stats.completion.completed_count} with the task completed"
            )
            lines.append(f"Completion rate: {stats.completion.rate_percent}%")
            lines.append(f"Average anxiety: {_level(stats.average_anxiety)}")
            lines.append(f"Average guilt: {_level(stats.average_guilt)}")
        else:
            lines.append("No check-ins were recorded this week")

        if reflection is not None and reflection.given_answers:
            lines.append(f"Her reflections: {' | '.join(reflection.given_answers)}")

        return lines

    def checkin_feedback(
        self,
        entry: CheckInEntry,
        earlier_entries: Sequence[CheckInEntry],
    ) -> List[str]:
        """Context for feedback on ``entry``.

        Args:
            entry: The check-in just recorded
            earlier_entries: The subject's check-ins before ``entry``
        """
        lines = [self.phase_line(entry.week_number)]

        anxiety = f"Anxiety today: {entry.anxiety_level}/10"
        if entry.anxiety_level >= ELEVATED_LEVEL:
            anxiety += " (elevated)"
        elif entry.anxiety_level <= LOW_LEVEL:
            anxiety += " (low - encouraging!)"
        lines.append(anxiety)

        guilt = f"Guilt today: {entry.guilt_level}/10"
        if entry.guilt_level <= LOW_LEVEL:
            guilt += " (low - great progress!)"
        lines.append(guilt)

        lines.append(
            "She completed today's task" if entry.completed
            else "She did not complete today's task"
        )

        week_before = [e for e in earlier_entries if e.week_number == entry.week_number]
        completed_before = sum(1 for e in week_before if e.completed)
        if completed_before > 0:
            completed_now = completed_before + (1 if entry.completed else 0)
            lines.append(
                f"This is her {completed_now} completed day this week "
                f"out of {len(week_before) + 1} check-ins."
            )

        streak_before = completion_streak(earlier_entries)
        if entry.completed and streak_before >= 2:
            lines.append(f"She's on a {streak_before + 1}-day streak of completing her tasks!")

        return lines

    def chat(
        self,
        week_number: int,
        entries: Sequence[CheckInEntry],
        accommodations: Sequence[AccommodationLog],
        journal: Sequence[JournalEntry] = (),
    ) -> List[str]:
        ordered = newest_first(entries)
        recent = ordered[:RECENT_SAMPLE]
        stats = weekly_stats(ordered, week_number)

        lines = [
            self.phase_line(week_number),
            f"Days completed this week: {stats.completion.completed_count}/{DAYS_PER_WEEK}",
            f"Total check-ins: {len(ordered)}",
            f"Recent average anxiety: {_level(average([e.anxiety_level for e in recent]))}",
            f"Recent average guilt: {_level(average([e.guilt_level for e in recent]))}",
        ]

        if week_plan(week_number).uses_accommodation_log:
            insight = accommodation_insight(accommodations)
            if insight:
                lines.append(f"Accommodations: {insight}")

        if journal:
            lines.append(f"Journal entries written: {len(journal)}")

        return lines

    def chat_history(self, history: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
        """The newest ``history_limit`` turns, oldest first."""
        trimmed = list(history)[-self.history_limit:] if self.history_limit else []
        if len(trimmed) < len(history):
            logger.debug(
                "CHAT_HISTORY_TRIMMED",
                extra={"received": len(history), "kept": len(trimmed)}
            )
        return [{"role": turn["role"], "content": turn["content"]} for turn in trimmed]

    def journal(self, entry: JournalEntry) -> str:
        """User prompt carrying the journal entry itself."""
        prompt = f"Journal entry:\n{entry.content}"
        if entry.mood:
            prompt += f"\n\nMood: {entry.mood}"
        return prompt
