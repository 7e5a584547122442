"""
Match result engine: outcome derivation, goal-attribution validation,
one-result-per-fixture upsert and team W/D/L recomputation.

The team record is always recomputed by rescanning every stored result for the
team, never incremented, so a previously drifted record heals on the next
submission. Upsert and recompute run in one transaction.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from teamhub.models import MatchResult, Outcome, PlayerStat, Team, User
from teamhub.persistence.db import transaction
from teamhub.persistence.repositories import (
    EventRepository,
    MatchResultRepository,
    TeamRepository,
)
from teamhub.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

# Accepted range for team goals and per-player goals/assists
GOALS_MIN = 0
GOALS_MAX = 50


# ---------- Pure helpers ----------


def compute_outcome(home_team_goals: int, away_team_goals: int, is_home_fixture: bool) -> Outcome:
    """Outcome from the owning team's perspective. Equal scores are a draw either way."""
    ours, theirs = (
        (home_team_goals, away_team_goals) if is_home_fixture else (away_team_goals, home_team_goals)
    )
    if ours > theirs:
        return Outcome.WIN
    if ours < theirs:
        return Outcome.LOSE
    return Outcome.DRAW


def coerce_player_stats(raw: Mapping[str, Any] | None) -> dict[str, PlayerStat]:
    """Accept PlayerStat values or {"goals": .., "assists": ..} mappings."""
    stats: dict[str, PlayerStat] = {}
    for player_id, value in (raw or {}).items():
        if isinstance(value, PlayerStat):
            stats[player_id] = PlayerStat(goals=value.goals, assists=value.assists)
        else:
            stats[player_id] = PlayerStat(
                goals=value.get("goals", 0) or 0,
                assists=value.get("assists", 0) or 0,
            )
    return stats


def prune_player_stats(stats: Mapping[str, PlayerStat]) -> dict[str, PlayerStat]:
    """Drop entries with zero goals and zero assists."""
    return {pid: s for pid, s in stats.items() if not s.is_empty}


def _check_range(label: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{label} must be an integer")
    if not GOALS_MIN <= value <= GOALS_MAX:
        raise InvalidArgumentError(f"{label} must be between {GOALS_MIN} and {GOALS_MAX}")


def validate_scoreline(
    home_team_goals: int,
    away_team_goals: int,
    player_stats: Mapping[str, PlayerStat],
    is_home_fixture: bool,
) -> None:
    """Range checks, then player goal sum must not exceed the team's own goals."""
    _check_range("home_team_goals", home_team_goals)
    _check_range("away_team_goals", away_team_goals)
    for pid, s in player_stats.items():
        _check_range(f"goals for player {pid}", s.goals)
        _check_range(f"assists for player {pid}", s.assists)
    team_goals = home_team_goals if is_home_fixture else away_team_goals
    player_goals = sum(s.goals for s in player_stats.values())
    if player_goals > team_goals:
        raise InvalidArgumentError(
            f"Player goals exceed team total ({player_goals} > {team_goals})"
        )


@dataclass
class TeamRecord:
    wins: int = 0
    draws: int = 0
    losses: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"wins": self.wins, "draws": self.draws, "losses": self.losses}


def tally_record(results: Iterable[MatchResult]) -> TeamRecord:
    record = TeamRecord()
    for r in results:
        if r.result == Outcome.WIN:
            record.wins += 1
        elif r.result == Outcome.LOSE:
            record.losses += 1
        elif r.result == Outcome.DRAW:
            record.draws += 1
    return record


def aggregate_player_stats(results: Iterable[MatchResult]) -> dict[str, PlayerStat]:
    """Season totals of goals and assists per player."""
    totals: dict[str, PlayerStat] = {}
    for r in results:
        for pid, s in r.player_stats.items():
            t = totals.setdefault(pid, PlayerStat())
            t.goals += s.goals
            t.assists += s.assists
    return totals


# ---------- ResultService ----------


class ResultService:
    """
    Submits and removes match results and keeps the team record in step.
    Persistence is delegated to repositories.
    """

    def __init__(self) -> None:
        self._event_repo = EventRepository()
        self._team_repo = TeamRepository()
        self._result_repo = MatchResultRepository()

    def submit_result(
        self,
        conn: sqlite3.Connection,
        user: User,
        fixture_id: str,
        team_id: str,
        home_team_goals: int,
        away_team_goals: int,
        player_stats: Mapping[str, Any] | None = None,
    ) -> tuple[MatchResult, Team]:
        """
        Validate, upsert the fixture's result and recompute the team record.
        Raises NotFoundError, ForbiddenError or InvalidArgumentError before any write.
        """
        fixture = self._event_repo.get(conn, fixture_id)
        if fixture is None:
            raise NotFoundError(f"Fixture not found: {fixture_id}")
        if not user.manages(team_id):
            logger.warning("User %s tried to submit a result for unmanaged team %s", user.id, team_id)
            raise ForbiddenError("Only the team's coach can submit a result")
        if fixture.team_id != team_id:
            raise InvalidArgumentError("Team mismatch: fixture belongs to another team")

        is_home_fixture = fixture.is_home
        stats = coerce_player_stats(player_stats)
        validate_scoreline(home_team_goals, away_team_goals, stats, is_home_fixture)

        outcome = compute_outcome(home_team_goals, away_team_goals, is_home_fixture)
        fields = {
            "home_team_goals": home_team_goals,
            "away_team_goals": away_team_goals,
            "is_home_fixture": is_home_fixture,
            "result": outcome.value,
            "player_stats": prune_player_stats(stats),
        }
        with transaction(conn):
            stored = self._result_repo.upsert(conn, fixture_id, team_id, fields, commit=False)
            team = self.recompute_team_record(conn, team_id, commit=False)
        logger.info(
            "Result %s-%s (%s) stored for fixture %s; team %s now W%d D%d L%d",
            home_team_goals, away_team_goals, outcome.value, fixture_id,
            team_id, team.wins, team.draws, team.losses,
        )
        return stored, team

    def recompute_team_record(
        self, conn: sqlite3.Connection, team_id: str, commit: bool = True
    ) -> Team:
        """Rescan all of the team's results and overwrite wins/draws/losses."""
        record = tally_record(self._result_repo.list_by_team(conn, team_id))
        team = self._team_repo.update(conn, team_id, record.to_dict(), commit=commit)
        if team is None:
            raise NotFoundError(f"Team not found: {team_id}")
        return team

    def delete_result(self, conn: sqlite3.Connection, user: User, fixture_id: str) -> Team:
        """Remove the fixture's result (managing coach only) and recompute the record."""
        existing = self._result_repo.get_by_fixture(conn, fixture_id)
        if existing is None:
            raise NotFoundError(f"No result for fixture: {fixture_id}")
        if not user.manages(existing.team_id):
            raise ForbiddenError("Only the team's coach can delete a result")
        with transaction(conn):
            self._result_repo.delete_by_fixture(conn, fixture_id, commit=False)
            team = self.recompute_team_record(conn, existing.team_id, commit=False)
        logger.info("Result for fixture %s deleted; team %s record recomputed", fixture_id, team.id)
        return team

    def get_result_for_fixture(self, conn: sqlite3.Connection, fixture_id: str) -> MatchResult | None:
        return self._result_repo.get_by_fixture(conn, fixture_id)

    def player_season_stats(self, conn: sqlite3.Connection, team_id: str) -> dict[str, PlayerStat]:
        return aggregate_player_stats(self._result_repo.list_by_team(conn, team_id))
