"""
Persistence layer for TeamHub data.
No business logic, only read/write interfaces.
"""
from .db import get_connection, init_db, transaction
from .repositories import (
    UserRepository,
    ClubRepository,
    TeamRepository,
    PlayerRepository,
    EventRepository,
    MatchResultRepository,
    PostRepository,
    AwardRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "transaction",
    "UserRepository",
    "ClubRepository",
    "TeamRepository",
    "PlayerRepository",
    "EventRepository",
    "MatchResultRepository",
    "PostRepository",
    "AwardRepository",
]
