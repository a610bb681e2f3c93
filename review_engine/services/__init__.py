"""Services that coordinate the engines with persistence."""

from .review_service import ReviewService, ReviewSummary
from .stats_service import LearnerStats, get_learner_stats

__all__ = ["ReviewService", "ReviewSummary", "LearnerStats", "get_learner_stats"]
