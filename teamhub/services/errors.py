"""
Domain errors raised by services. The API maps them to HTTP status codes:
NotFoundError -> 404, ForbiddenError -> 403, InvalidArgumentError -> 400.
All are raised before any write.
"""
from __future__ import annotations


class TeamHubError(Exception):
    """Base class for domain errors."""


class NotFoundError(TeamHubError, LookupError):
    """Referenced fixture, team, club, player or post does not exist."""


class ForbiddenError(TeamHubError, PermissionError):
    """Caller lacks the role or ownership required for the mutation."""


class InvalidArgumentError(TeamHubError, ValueError):
    """Structurally valid but semantically inconsistent input."""
