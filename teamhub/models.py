"""
Data models for the TeamHub backend.
Domain objects only; no persistence or API logic.

Clubs contain teams; teams contain players (dependents) owned by parent users
and administered by coach users. Events belong to a team; a match event has at
most one MatchResult.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


# ---------- Enums ----------
class Role(str, Enum):
    COACH = "coach"
    PARENT = "parent"


class AgeGroup(str, Enum):
    U7 = "U7"
    U8 = "U8"
    U9 = "U9"
    U10 = "U10"
    U11 = "U11"
    U12 = "U12"
    U13 = "U13"
    U14 = "U14"
    U15 = "U15"
    U16 = "U16"
    U17 = "U17"
    U18 = "U18"
    U19 = "U19"
    U20 = "U20"
    U21 = "U21"


class EventType(str, Enum):
    MATCH = "match"
    TOURNAMENT = "tournament"
    TRAINING = "training"
    SOCIAL = "social"


class HomeAway(str, Enum):
    HOME = "home"
    AWAY = "away"


class Availability(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    PENDING = "pending"


class Outcome(str, Enum):
    """Match outcome from the owning team's perspective."""
    WIN = "win"
    LOSE = "lose"
    DRAW = "draw"


class PostType(str, Enum):
    KIT_REQUEST = "kit_request"
    PLAYER_REQUEST = "player_request"
    ANNOUNCEMENT = "announcement"
    EVENT = "event"


class PostScope(str, Enum):
    TEAM = "team"
    CLUB = "club"


# ---------- User ----------
@dataclass
class User:
    """
    An account holder. roles is a set over {coach, parent}.
    team_ids are the teams this user manages (coach only). A parent's teams are
    derived from their players and never stored here.
    """
    id: str
    email: str
    created_at: datetime
    name: str | None = None
    password_hash: str | None = None
    roles: set[str] = field(default_factory=set)
    club_id: str | None = None
    team_ids: list[str] = field(default_factory=list)

    def has_role(self, role: Role | str) -> bool:
        return Role(role).value in self.roles

    @property
    def is_coach(self) -> bool:
        return self.has_role(Role.COACH)

    @property
    def is_parent(self) -> bool:
        return self.has_role(Role.PARENT)

    def manages(self, team_id: str) -> bool:
        """True when this user is a coach administering team_id."""
        return self.is_coach and team_id in self.team_ids

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "email": self.email,
            "roles": sorted(self.roles),
            "club_id": self.club_id,
            "team_ids": list(self.team_ids),
            "created_at": self.created_at.isoformat(),
        }
        if self.name is not None:
            d["name"] = self.name
        return d


# ---------- Club ----------
@dataclass
class Club:
    """Top-level tenant. code is the 8-character join code."""
    id: str
    name: str
    code: str
    created_at: datetime
    established: str | None = None
    total_teams: int = 0
    total_players: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "established": self.established,
            "total_teams": self.total_teams,
            "total_players": self.total_players,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Team ----------
@dataclass
class Team:
    """
    A team within a club.
    wins/draws/losses are a derived cache of the team's match results;
    only the result engine writes them.
    """
    id: str
    name: str
    age_group: str  # AgeGroup value
    code: str
    club_id: str
    created_at: datetime
    manager_id: str | None = None
    player_ids: list[str] = field(default_factory=list)
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @property
    def games_played(self) -> int:
        return self.wins + self.draws + self.losses

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "age_group": self.age_group,
            "code": self.code,
            "club_id": self.club_id,
            "manager_id": self.manager_id,
            "player_ids": list(self.player_ids),
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Player (dependent) ----------
@dataclass
class Player:
    id: str
    name: str
    date_of_birth: date
    team_id: str
    parent_id: str
    created_at: datetime
    attendance: int = 0
    total_events: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "date_of_birth": self.date_of_birth.isoformat(),
            "team_id": self.team_id,
            "parent_id": self.parent_id,
            "attendance": self.attendance,
            "total_events": self.total_events,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Event / Fixture ----------
@dataclass
class Event:
    """
    A scheduled occurrence owned by a team. opponent and home_away apply to
    matches only. availability maps player_id -> Availability value.
    result is the legacy embedded score, kept for older records.
    """
    id: str
    type: str  # EventType value
    location: str
    start_time: datetime
    end_time: datetime
    team_id: str
    created_at: datetime
    name: str | None = None
    friendly: bool = False
    opponent: str | None = None
    home_away: str | None = None  # HomeAway value
    additional_info: str | None = None
    availability: dict[str, str] = field(default_factory=dict)
    result: dict[str, Any] | None = None

    @property
    def is_match(self) -> bool:
        return self.type == EventType.MATCH

    @property
    def is_home(self) -> bool:
        return self.home_away == HomeAway.HOME

    def is_completed(self, now: datetime) -> bool:
        return self.end_time <= now

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "friendly": self.friendly,
            "name": self.name,
            "opponent": self.opponent,
            "location": self.location,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "team_id": self.team_id,
            "home_away": self.home_away,
            "additional_info": self.additional_info,
            "availability": dict(self.availability),
            "created_at": self.created_at.isoformat(),
        }
        if self.result is not None:
            d["result"] = self.result
        return d


# ---------- MatchResult ----------
@dataclass
class PlayerStat:
    goals: int = 0
    assists: int = 0

    @property
    def is_empty(self) -> bool:
        return self.goals == 0 and self.assists == 0

    def to_dict(self) -> dict[str, int]:
        return {"goals": self.goals, "assists": self.assists}


@dataclass
class MatchResult:
    """
    One per fixture. result is derived from the owning team's perspective;
    is_home_fixture is copied from the fixture at submission time.
    """
    id: str
    fixture_id: str
    team_id: str
    home_team_goals: int
    away_team_goals: int
    is_home_fixture: bool
    result: str  # Outcome value
    created_at: datetime
    updated_at: datetime
    player_stats: dict[str, PlayerStat] = field(default_factory=dict)

    @property
    def team_goals(self) -> int:
        return self.home_team_goals if self.is_home_fixture else self.away_team_goals

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fixture_id": self.fixture_id,
            "team_id": self.team_id,
            "home_team_goals": self.home_team_goals,
            "away_team_goals": self.away_team_goals,
            "is_home_fixture": self.is_home_fixture,
            "result": self.result,
            "player_stats": {pid: s.to_dict() for pid, s in self.player_stats.items()},
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


# ---------- Post ----------
@dataclass
class Post:
    """Announcement or request. Exactly one of team_id / club_id is set."""
    id: str
    type: str  # PostType value
    title: str
    content: str
    author_id: str
    author_name: str
    author_role: str
    created_at: datetime
    team_id: str | None = None
    club_id: str | None = None

    @property
    def scope(self) -> str:
        return PostScope.TEAM.value if self.team_id is not None else PostScope.CLUB.value

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "content": self.content,
            "author_id": self.author_id,
            "author_name": self.author_name,
            "author_role": self.author_role,
            "scope": self.scope,
            "team_id": self.team_id,
            "club_id": self.club_id,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Award ----------
@dataclass
class Award:
    id: str
    title: str
    recipient: str
    recipient_id: str
    team_id: str
    month: str
    year: int
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "recipient": self.recipient,
            "recipient_id": self.recipient_id,
            "team_id": self.team_id,
            "month": self.month,
            "year": self.year,
            "created_at": self.created_at.isoformat(),
        }
