"""Analytics Service: Progress aggregation and admin monitoring.

Pure aggregators over records already fetched from the database:
- Trend of anxiety and guilt between the newest check-in windows
- Completion rates per week, goal milestones and streaks
- Accommodation patterns by time of day
- Red flags for disengagement and high anxiety

Endpoints:
- GET /health - Health check
- GET /ready - Readiness check
- GET /phase - Phase and plan for a week
- GET /progress - Progress overview for a subject
- GET /admin/subjects, /admin/activity, /admin/logins,
  /admin/red-flags, /admin/export - Admin dashboard
"""

from .trends import (
    TrendDirection,
    MetricTrend,
    TrendReport,
    calculate_trend,
    DEFAULT_WINDOW,
    CHANGE_THRESHOLD,
)
from .completion import (
    CompletionSummary,
    WeeklyStats,
    summarize_completion,
    completion_by_week,
    weeks_meeting_goal,
    completion_streak,
    weekly_stats,
)
from .accommodation_patterns import AccommodationPatterns, analyze_accommodations
from .red_flags import RedFlagRules, evaluate_red_flags
from .handler import AnalyticsHandler, AnalyticsConfig, app

__all__ = [
    "TrendDirection",
    "MetricTrend",
    "TrendReport",
    "calculate_trend",
    "DEFAULT_WINDOW",
    "CHANGE_THRESHOLD",
    "CompletionSummary",
    "WeeklyStats",
    "summarize_completion",
    "completion_by_week",
    "weeks_meeting_goal",
    "completion_streak",
    "weekly_stats",
    "AccommodationPatterns",
    "analyze_accommodations",
    "RedFlagRules",
    "evaluate_red_flags",
    "AnalyticsHandler",
    "AnalyticsConfig",
    "app",
]
