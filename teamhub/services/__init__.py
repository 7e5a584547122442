"""
Service layer: domain rules for onboarding, events, results, posts and visibility.
Services take an open sqlite connection and delegate persistence to repositories.
"""
from .errors import ForbiddenError, InvalidArgumentError, NotFoundError, TeamHubError
from .events import EventService
from .onboarding import OnboardingService
from .posts import PostService
from .result_engine import ResultService
from .visibility import EventWindow, VisibilityService

__all__ = [
    "TeamHubError",
    "NotFoundError",
    "ForbiddenError",
    "InvalidArgumentError",
    "EventService",
    "OnboardingService",
    "PostService",
    "ResultService",
    "EventWindow",
    "VisibilityService",
]
