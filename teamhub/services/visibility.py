"""
Role-based visibility for list endpoints.

Each role contributes an eligibility rule (coach: managed teams; parent: the
teams their players are on). For a given collection kind the eligible team-id
sets of all roles the user holds are unioned, candidates are filtered by
membership and de-duplicated by id. Club-wide posts are added for any user with
at least one role and a club. A user without roles, or without any club, team
or player, sees nothing.

Eligibility is recomputed on every call; nothing here is cached.
"""
from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Mapping, Sequence, TypeVar

from teamhub.models import Event, MatchResult, Post, Role, Team, User, ensure_utc, utcnow
from teamhub.persistence.repositories import (
    EventRepository,
    MatchResultRepository,
    PlayerRepository,
    PostRepository,
    TeamRepository,
)


class CollectionKind(str, Enum):
    TEAMS = "teams"
    EVENTS = "events"
    POSTS = "posts"
    MATCH_RESULTS = "match_results"


class EventWindow(str, Enum):
    UPCOMING = "upcoming"
    RECENT = "recent"
    ALL = "all"


# ---------- Viewer context ----------


@dataclass(frozen=True)
class ViewerContext:
    """
    Snapshot of what a user is attached to, built fresh per request.
    player_team_ids: teams of the user's players (parent role).
    club_team_ids: every team in the user's club (coach result rule).
    """
    user: User
    player_team_ids: frozenset[str] = frozenset()
    club_team_ids: frozenset[str] = frozenset()

    @property
    def managed_team_ids(self) -> frozenset[str]:
        return frozenset(self.user.team_ids)


# ---------- Eligibility rules (one per role) ----------


class EligibilityRule(ABC):
    """Team ids a role makes visible, per collection kind."""

    role: Role

    @abstractmethod
    def team_ids(self, ctx: ViewerContext, kind: CollectionKind) -> frozenset[str]:
        ...


class CoachEligibility(EligibilityRule):
    role = Role.COACH

    def team_ids(self, ctx: ViewerContext, kind: CollectionKind) -> frozenset[str]:
        if kind == CollectionKind.MATCH_RESULTS:
            return ctx.club_team_ids
        return ctx.managed_team_ids


class ParentEligibility(EligibilityRule):
    role = Role.PARENT

    def team_ids(self, ctx: ViewerContext, kind: CollectionKind) -> frozenset[str]:
        return ctx.player_team_ids


ELIGIBILITY_RULES: dict[Role, EligibilityRule] = {
    rule.role: rule for rule in (CoachEligibility(), ParentEligibility())
}


def active_rules(user: User) -> list[EligibilityRule]:
    return [rule for rule in ELIGIBILITY_RULES.values() if user.has_role(rule.role)]


def eligible_team_ids(ctx: ViewerContext, kind: CollectionKind) -> frozenset[str]:
    """Union of the eligible team ids of every role the user holds."""
    ids: set[str] = set()
    for rule in active_rules(ctx.user):
        ids |= rule.team_ids(ctx, kind)
    return frozenset(ids)


def sees_club_posts(ctx: ViewerContext) -> bool:
    return ctx.user.club_id is not None and bool(active_rules(ctx.user))


# ---------- Filtering ----------

T = TypeVar("T", Team, Event, Post, MatchResult)


def dedupe_by_id(items: Iterable[T]) -> list[T]:
    """Keep the first occurrence of each id, preserving order."""
    seen: set[str] = set()
    out: list[T] = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out


def filter_teams(ctx: ViewerContext, teams: Iterable[Team]) -> list[Team]:
    allowed = eligible_team_ids(ctx, CollectionKind.TEAMS)
    return dedupe_by_id(t for t in teams if t.id in allowed)


def filter_events(
    ctx: ViewerContext,
    events: Iterable[Event],
    window: EventWindow = EventWindow.ALL,
    now: datetime | None = None,
) -> list[Event]:
    """
    upcoming: start_time after now, soonest first.
    recent: already finished, latest start first.
    all: every visible event, by start_time ascending.
    """
    allowed = eligible_team_ids(ctx, CollectionKind.EVENTS)
    visible = dedupe_by_id(e for e in events if e.team_id in allowed)
    now = ensure_utc(now) if now is not None else utcnow()
    if window == EventWindow.UPCOMING:
        return sorted((e for e in visible if e.start_time > now), key=lambda e: e.start_time)
    if window == EventWindow.RECENT:
        return sorted(
            (e for e in visible if e.is_completed(now)),
            key=lambda e: e.start_time,
            reverse=True,
        )
    return sorted(visible, key=lambda e: e.start_time)


def filter_posts(ctx: ViewerContext, posts: Iterable[Post]) -> list[Post]:
    """Club-wide posts of the user's club plus team posts of eligible teams, newest first."""
    allowed = eligible_team_ids(ctx, CollectionKind.POSTS)
    club_ok = sees_club_posts(ctx)

    def _visible(p: Post) -> bool:
        if p.team_id is not None:
            return p.team_id in allowed
        return club_ok and p.club_id == ctx.user.club_id

    visible = dedupe_by_id(p for p in posts if _visible(p))
    return sorted(visible, key=lambda p: p.created_at, reverse=True)


def filter_match_results(
    ctx: ViewerContext,
    results: Iterable[MatchResult],
    fixtures: Mapping[str, Event] | None = None,
) -> list[MatchResult]:
    """Most recent first: by fixture start_time, else by the result's created_at."""
    allowed = eligible_team_ids(ctx, CollectionKind.MATCH_RESULTS)
    visible = dedupe_by_id(r for r in results if r.team_id in allowed)
    fixtures = fixtures or {}

    def _when(r: MatchResult) -> datetime:
        fixture = fixtures.get(r.fixture_id)
        return fixture.start_time if fixture is not None else r.created_at

    return sorted(visible, key=_when, reverse=True)


# ---------- VisibilityService (loads candidates, applies filters) ----------


class VisibilityService:
    """Builds a ViewerContext from the store and returns filtered collections."""

    def __init__(self) -> None:
        self._team_repo = TeamRepository()
        self._player_repo = PlayerRepository()
        self._event_repo = EventRepository()
        self._post_repo = PostRepository()
        self._result_repo = MatchResultRepository()

    def build_context(self, conn: sqlite3.Connection, user: User) -> ViewerContext:
        player_team_ids: frozenset[str] = frozenset()
        club_team_ids: frozenset[str] = frozenset()
        if user.is_parent:
            player_team_ids = frozenset(p.team_id for p in self._player_repo.list_by_parent(conn, user.id))
        if user.is_coach and user.club_id:
            club_team_ids = frozenset(t.id for t in self._team_repo.list_by_club(conn, user.club_id))
        return ViewerContext(user=user, player_team_ids=player_team_ids, club_team_ids=club_team_ids)

    def visible_teams(self, conn: sqlite3.Connection, user: User) -> list[Team]:
        ctx = self.build_context(conn, user)
        candidates = self._team_repo.list_by_ids(conn, sorted(eligible_team_ids(ctx, CollectionKind.TEAMS)))
        return filter_teams(ctx, candidates)

    def can_view_team(self, conn: sqlite3.Connection, user: User, team_id: str) -> bool:
        ctx = self.build_context(conn, user)
        return team_id in eligible_team_ids(ctx, CollectionKind.TEAMS)

    def visible_events(
        self,
        conn: sqlite3.Connection,
        user: User,
        window: EventWindow = EventWindow.ALL,
        now: datetime | None = None,
    ) -> list[Event]:
        ctx = self.build_context(conn, user)
        team_ids = eligible_team_ids(ctx, CollectionKind.EVENTS)
        if window == EventWindow.UPCOMING:
            candidates: Sequence[Event] = [
                e for tid in sorted(team_ids) for e in self._event_repo.list_upcoming(conn, tid, now=now)
            ]
        else:
            candidates = self._event_repo.list_by_teams(conn, team_ids)
        return filter_events(ctx, candidates, window=window, now=now)

    def can_view_event(self, conn: sqlite3.Connection, user: User, event: Event) -> bool:
        ctx = self.build_context(conn, user)
        return event.team_id in eligible_team_ids(ctx, CollectionKind.EVENTS)

    def visible_posts(self, conn: sqlite3.Connection, user: User) -> list[Post]:
        ctx = self.build_context(conn, user)
        candidates: list[Post] = []
        if sees_club_posts(ctx) and user.club_id:
            candidates.extend(self._post_repo.list_by_club(conn, user.club_id))
        candidates.extend(self._post_repo.list_by_teams(conn, eligible_team_ids(ctx, CollectionKind.POSTS)))
        return filter_posts(ctx, candidates)

    def visible_match_results(
        self, conn: sqlite3.Connection, user: User
    ) -> tuple[list[MatchResult], dict[str, Event]]:
        """Visible results plus their fixtures keyed by id (for display and ordering)."""
        ctx = self.build_context(conn, user)
        team_ids = eligible_team_ids(ctx, CollectionKind.MATCH_RESULTS)
        candidates = self._result_repo.list_by_teams(conn, team_ids)
        fixtures = {e.id: e for e in self._event_repo.list_by_teams(conn, team_ids)}
        return filter_match_results(ctx, candidates, fixtures), fixtures
