"""Core business logic.

Modules:
- results: ServiceResult returned by every service operation
- catalog: Courses, units, topics and questions
- progress: Users, course progress and test history
- flashcards: Flashcards, decks and card reviews
- spaced_repetition: Review scheduling for catalog questions
- study_sessions: Logged study sessions and streaks
- study_goals: Study goals and automatic goal progress
- analytics: Aggregated learning analytics
"""

__all__ = [
    "results",
    "catalog",
    "progress",
    "flashcards",
    "spaced_repetition",
    "study_sessions",
    "study_goals",
    "analytics",
]
