"""The nine-week program: phases, weekly tasks and reflection questions.

This is the single table every service reads for phase names, task goals,
AI focus text and reflection questions. Weeks past the last defined week stay
in the terminal phase and reuse the last week's plan.
"""
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .records import Task


@dataclass(frozen=True)
class Phase:
    """A named multi-week segment of the program."""
    key: str
    name: str
    description: str
    first_week: int
    last_week: int          # Inclusive; the terminal phase is open-ended

    def contains(self, week_number: int) -> bool:
        return self.first_week <= week_number <= self.last_week

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "first_week": self.first_week,
            "last_week": self.last_week,
        }


@dataclass(frozen=True)
class WeekPlan:
    """Everything the program defines for one week."""
    week_number: int
    task_name: str
    task_description: str
    goal_days: int
    focus: str                          # Short phrase used in AI prompts
    reflection_questions: Tuple[str, str, str]
    uses_accommodation_log: bool = False

    def to_task(self) -> Task:
        return Task(
            week_number=self.week_number,
            name=self.task_name,
            description=self.task_description,
            goal_days=self.goal_days,
        )

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "task_name": self.task_name,
            "task_description": self.task_description,
            "goal_days": self.goal_days,
            "focus": self.focus,
            "reflection_questions": list(self.reflection_questions),
            "uses_accommodation_log": self.uses_accommodation_log,
        }


PHASES: Tuple[Phase, ...] = (
    Phase(
        key="accommodation_awareness",
        name="Accommodation Awareness",
        description=(
            "Notice and log the things you do for your son that he could do himself. "
            "Just observe - no pressure to change yet."
        ),
        first_week=1,
        last_week=2,
    ),
    Phase(
        key="fifteen_minute_exit",
        name="The 15-Minute Exit",
        description=(
            "Give yourself 15 minutes away from home each day. "
            "A short walk, a coffee run - just a small break for you."
        ),
        first_week=3,
        last_week=4,
    ),
    Phase(
        key="self_care_hour",
        name="Self-Care Hour",
        description=(
            "Take one hour for yourself daily. Do something that fills YOUR cup - "
            "reading, a bath, calling a friend."
        ),
        first_week=5,
        last_week=6,
    ),
    Phase(
        key="validation_practice",
        name="Validation Practice",
        description=(
            "When your son expresses worry, acknowledge his feelings once, then gently "
            "move on. You don't need to fix everything."
        ),
        first_week=7,
        last_week=8,
    ),
    Phase(
        key="reclaiming_your_space",
        name="Reclaiming Your Space",
        description=(
            "Sleep in your own bed. Your son can learn to manage nighttime worries, "
            "and you need proper rest."
        ),
        first_week=9,
        last_week=9,
    ),
)

PROGRAM_WEEKS: Dict[int, WeekPlan] = {
    plan.week_number: plan
    for plan in (
        WeekPlan(
            week_number=1,
            task_name="The Accommodation Log",
            task_description=(
                "Log every accommodation throughout the day. An accommodation is doing "
                "something FOR your son that he could do himself."
            ),
            goal_days=5,
            focus="noticing and logging the accommodations she makes",
            reflection_questions=(
                "What patterns do you notice in when and how you help your son?",
                "What feelings come up most often when you step in to help?",
                "What do you imagine might happen if you stepped back in those moments?",
            ),
            uses_accommodation_log=True,
        ),
        WeekPlan(
            week_number=2,
            task_name="The Accommodation Log",
            task_description=(
                "Continue logging every accommodation throughout the day to build "
                "awareness of patterns."
            ),
            goal_days=5,
            focus="continuing to build awareness of accommodation patterns",
            reflection_questions=(
                "How has your awareness changed this week?",
                "Which situations feel hardest to step back from?",
                "What did you learn about yourself this week?",
            ),
            uses_accommodation_log=True,
        ),
        WeekPlan(
            week_number=3,
            task_name="The 15-Minute Exit",
            task_description=(
                "Leave the house for 15 minutes daily. Don't announce where or why, "
                "just say 'I'm going out for 15 minutes'."
            ),
            goal_days=4,
            focus="taking 15-minute breaks away from home",
            reflection_questions=(
                "What did you notice about your son when you returned from your 15-minute break?",
                "How did your feelings change while you were away?",
                "What did you do during your time for yourself?",
            ),
        ),
        WeekPlan(
            week_number=4,
            task_name="The 15-Minute Exit",
            task_description=(
                "Continue leaving the house for 15 minutes daily to break the continuous "
                "presence pattern."
            ),
            goal_days=4,
            focus="establishing her 15-minute exit routine",
            reflection_questions=(
                "Is taking your break getting easier or harder?",
                "How has your son been responding to your time away?",
                "How do you feel about giving yourself this time?",
            ),
        ),
        WeekPlan(
            week_number=5,
            task_name="The Self-Care Hour",
            task_description=(
                "Take 1 hour daily for a self-care activity. This is non-negotiable time, "
                "not 'if he is okay'."
            ),
            goal_days=4,
            focus="carving out one hour daily for self-care",
            reflection_questions=(
                "How did taking time for yourself affect your mood?",
                "What self-care activities did you enjoy most?",
                "How did your son respond to you taking an hour for yourself?",
            ),
        ),
        WeekPlan(
            week_number=6,
            task_name="The Self-Care Hour",
            task_description=(
                "Continue taking 1 hour daily for self-care to reclaim personal time and "
                "model healthy behavior."
            ),
            goal_days=4,
            focus="making her self-care hour non-negotiable",
            reflection_questions=(
                "Is self-care feeling more natural now?",
                "What got in the way this week?",
                "How has your relationship with your son changed?",
            ),
        ),
        WeekPlan(
            week_number=7,
            task_name="The Validation Practice",
            task_description=(
                "Practice 'validate and move on' 3x daily. When your son says 'I feel "
                "anxious', respond 'That sounds uncomfortable' then move on."
            ),
            goal_days=5,
            focus="practicing validation without over-involvement",
            reflection_questions=(
                "How did your son respond when you acknowledged his feelings without stepping in?",
                "What was the hardest part of 'acknowledge and let go'?",
                "What did you notice about your son's ability to manage?",
            ),
        ),
        WeekPlan(
            week_number=8,
            task_name="The Validation Practice",
            task_description=(
                "Continue practicing validation without accommodation to support your son "
                "emotionally without enabling."
            ),
            goal_days=5,
            focus="mastering the 'validate and move on' technique",
            reflection_questions=(
                "Is this practice getting easier?",
                "How has your son's worry level changed?",
                "What have you learned about what your son can handle?",
            ),
        ),
        WeekPlan(
            week_number=9,
            task_name="The Bedroom Return",
            task_description=(
                "Sleep in your own bed. Announce it once, then do it consistently "
                "without negotiation."
            ),
            goal_days=6,
            focus="reclaiming her bedroom and sleep space",
            reflection_questions=(
                "How is your relationship with your son changing?",
                "How does it feel to sleep in your own bed?",
                "What progress are you most proud of?",
            ),
        ),
    )
}

LAST_PROGRAM_WEEK = max(PROGRAM_WEEKS)


def resolve_phase(week_number: int) -> Phase:
    """Map a week number to its program phase.

    Weeks past the last range stay in the terminal phase; weeks below 1 map
    to the first phase. Never raises.
    """
    for phase in PHASES:
        if phase.contains(week_number):
            return phase
    if week_number < PHASES[0].first_week:
        return PHASES[0]
    return PHASES[-1]


def week_plan(week_number: int) -> WeekPlan:
    """Plan for a week, clamped to the defined weeks."""
    clamped = min(max(week_number, 1), LAST_PROGRAM_WEEK)
    return PROGRAM_WEEKS[clamped]


def program_tasks() -> List[Task]:
    """Task reference rows, ordered by week."""
    return [PROGRAM_WEEKS[week].to_task() for week in sorted(PROGRAM_WEEKS)]


def program_overview() -> List[str]:
    """One line per phase, e.g. 'Week 1-2: Accommodation Awareness'."""
    lines = []
    for index, phase in enumerate(PHASES):
        if index == len(PHASES) - 1:
            weeks = f"Week {phase.first_week}+"
        else:
            weeks = f"Week {phase.first_week}-{phase.last_week}"
        lines.append(f"{weeks}: {phase.name}")
    return lines
