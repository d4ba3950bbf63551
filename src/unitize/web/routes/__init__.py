"""Route handlers for the Web API."""

from unitize.web.routes.health import router as health_router
from unitize.web.routes.units import router as units_router
from unitize.web.routes.practice import router as practice_router
from unitize.web.routes.progress import router as progress_router
from unitize.web.routes.recommendations import router as recommendations_router
from unitize.web.routes.decks import router as decks_router
from unitize.web.routes.flashcards import router as flashcards_router
from unitize.web.routes.spaced_repetition import router as spaced_repetition_router
from unitize.web.routes.goals import router as goals_router
from unitize.web.routes.study_sessions import router as study_sessions_router
from unitize.web.routes.analytics import router as analytics_router

__all__ = [
    "health_router",
    "units_router",
    "practice_router",
    "progress_router",
    "recommendations_router",
    "decks_router",
    "flashcards_router",
    "spaced_repetition_router",
    "goals_router",
    "study_sessions_router",
    "analytics_router",
]
