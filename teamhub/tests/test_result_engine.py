"""
Tests for the match result engine: perspective, goal attribution, idempotent
upsert and team record recomputation.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from teamhub.models import Outcome, PlayerStat
from teamhub.persistence.db import get_connection, init_db, set_db_path
from teamhub.persistence.repositories import (
    ClubRepository,
    EventRepository,
    MatchResultRepository,
    PlayerRepository,
    TeamRepository,
    UserRepository,
)
from teamhub.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError
from teamhub.services.result_engine import (
    ResultService,
    compute_outcome,
    prune_player_stats,
    tally_record,
    validate_scoreline,
)

KICKOFF = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "results_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def svc():
    return ResultService()


@pytest.fixture
def world(db_conn):
    """One club, two teams, a coach of team A, one parent's player on A, home and away fixtures."""
    club = ClubRepository().create(db_conn, "Riverside FC", "CLUB0001")
    teams = TeamRepository()
    team_a = teams.create(db_conn, "Riverside U10", "U10", "TEAMA001", club.id)
    team_b = teams.create(db_conn, "Riverside U12", "U12", "TEAMB001", club.id)
    users = UserRepository()
    coach = users.create(db_conn, "coach@example.com", roles=["coach"])
    coach = users.update(db_conn, coach.id, {"club_id": club.id, "team_ids": [team_a.id]})
    parent = users.create(db_conn, "parent@example.com", roles=["parent"])
    p1 = PlayerRepository().create(db_conn, "Sam", date(2015, 5, 1), team_a.id, parent.id)
    p2 = PlayerRepository().create(db_conn, "Alex", date(2015, 7, 9), team_a.id, parent.id)
    events = EventRepository()
    home = events.create(
        db_conn, team_a.id, "match", "Home Ground", KICKOFF, KICKOFF + timedelta(hours=2),
        opponent="Hilltop", home_away="home",
    )
    away = events.create(
        db_conn, team_a.id, "match", "Hilltop Park", KICKOFF + timedelta(days=7),
        KICKOFF + timedelta(days=7, hours=2), opponent="Hilltop", home_away="away",
    )
    other = events.create(
        db_conn, team_b.id, "match", "Home Ground", KICKOFF, KICKOFF + timedelta(hours=2),
        opponent="Valley", home_away="home",
    )
    return {
        "club": club, "team_a": team_a, "team_b": team_b, "coach": coach, "parent": parent,
        "p1": p1, "p2": p2, "home": home, "away": away, "other": other,
    }


# ---------- Pure helpers ----------


@pytest.mark.parametrize(
    "home,away,is_home,expected",
    [
        (3, 1, True, Outcome.WIN),
        (3, 1, False, Outcome.LOSE),
        (1, 3, False, Outcome.WIN),
        (1, 3, True, Outcome.LOSE),
        (2, 2, True, Outcome.DRAW),
        (2, 2, False, Outcome.DRAW),
        (0, 0, True, Outcome.DRAW),
    ],
)
def test_compute_outcome_perspective(home, away, is_home, expected):
    assert compute_outcome(home, away, is_home) == expected


def test_validate_scoreline_uses_owning_team_goals():
    stats = {"p1": PlayerStat(goals=3)}
    validate_scoreline(3, 0, stats, is_home_fixture=True)
    with pytest.raises(InvalidArgumentError, match="exceed"):
        validate_scoreline(3, 0, stats, is_home_fixture=False)


def test_validate_scoreline_bounds():
    with pytest.raises(InvalidArgumentError):
        validate_scoreline(51, 0, {}, True)
    with pytest.raises(InvalidArgumentError):
        validate_scoreline(0, -1, {}, True)
    with pytest.raises(InvalidArgumentError):
        validate_scoreline(1, 0, {"p1": PlayerStat(goals=0, assists=51)}, True)
    validate_scoreline(50, 50, {}, True)


def test_prune_player_stats_drops_empty_entries():
    stats = {"a": PlayerStat(0, 0), "b": PlayerStat(1, 0), "c": PlayerStat(0, 2)}
    assert set(prune_player_stats(stats)) == {"b", "c"}


# ---------- Submission ----------


def test_away_draw_scenario(db_conn, svc, world):
    """Away fixture, 2-2, p1 scores both: draw from the team's view, stats kept."""
    result, team = svc.submit_result(
        db_conn, world["coach"], world["away"].id, world["team_a"].id, 2, 2,
        {world["p1"].id: {"goals": 2, "assists": 0}},
    )
    assert result.is_home_fixture is False
    assert result.result == Outcome.DRAW
    assert result.player_stats[world["p1"].id].goals == 2
    assert (team.wins, team.draws, team.losses) == (0, 1, 0)


def test_home_win_and_away_loss(db_conn, svc, world):
    svc.submit_result(db_conn, world["coach"], world["home"].id, world["team_a"].id, 3, 1)
    result, team = svc.submit_result(db_conn, world["coach"], world["away"].id, world["team_a"].id, 3, 1)
    assert result.result == Outcome.LOSE
    assert (team.wins, team.draws, team.losses) == (1, 0, 1)


def test_over_attribution_rejected_without_writes(db_conn, svc, world):
    with pytest.raises(InvalidArgumentError, match="exceed"):
        svc.submit_result(
            db_conn, world["coach"], world["away"].id, world["team_a"].id, 2, 2,
            {world["p1"].id: {"goals": 3}},
        )
    assert MatchResultRepository().get_by_fixture(db_conn, world["away"].id) is None
    team = TeamRepository().get(db_conn, world["team_a"].id)
    assert (team.wins, team.draws, team.losses) == (0, 0, 0)


def test_submit_is_idempotent(db_conn, svc, world):
    args = (db_conn, world["coach"], world["home"].id, world["team_a"].id, 2, 1, {world["p1"].id: {"goals": 1}})
    first, _ = svc.submit_result(*args)
    second, team = svc.submit_result(*args)
    repo = MatchResultRepository()
    assert len(repo.list_by_team(db_conn, world["team_a"].id)) == 1
    assert second.id == first.id
    assert second.result == first.result
    assert second.player_stats == first.player_stats
    assert (team.wins, team.draws, team.losses) == (1, 0, 0)


def test_resubmission_replaces_and_recomputes(db_conn, svc, world):
    svc.submit_result(db_conn, world["coach"], world["home"].id, world["team_a"].id, 3, 0)
    result, team = svc.submit_result(db_conn, world["coach"], world["home"].id, world["team_a"].id, 0, 1)
    assert result.result == Outcome.LOSE
    assert (team.wins, team.draws, team.losses) == (0, 0, 1)


def test_zero_stats_are_pruned(db_conn, svc, world):
    result, _ = svc.submit_result(
        db_conn, world["coach"], world["home"].id, world["team_a"].id, 1, 0,
        {world["p1"].id: {"goals": 1, "assists": 0}, world["p2"].id: {"goals": 0, "assists": 0}},
    )
    assert set(result.player_stats) == {world["p1"].id}


def test_record_matches_stored_results_after_each_submission(db_conn, svc, world):
    repo = MatchResultRepository()
    for home_goals, away_goals in [(1, 0), (0, 0), (0, 4)]:
        _, team = svc.submit_result(
            db_conn, world["coach"], world["home"].id, world["team_a"].id, home_goals, away_goals
        )
        expected = tally_record(repo.list_by_team(db_conn, world["team_a"].id))
        assert (team.wins, team.draws, team.losses) == (expected.wins, expected.draws, expected.losses)
    for r in repo.list_by_team(db_conn, world["team_a"].id):
        assert sum(s.goals for s in r.player_stats.values()) <= r.team_goals


def test_recompute_heals_drifted_record(db_conn, svc, world):
    TeamRepository().update(db_conn, world["team_a"].id, {"wins": 9, "draws": 9, "losses": 9})
    _, team = svc.submit_result(db_conn, world["coach"], world["home"].id, world["team_a"].id, 1, 1)
    assert (team.wins, team.draws, team.losses) == (0, 1, 0)


def test_missing_fixture_is_not_found(db_conn, svc, world):
    with pytest.raises(NotFoundError):
        svc.submit_result(db_conn, world["coach"], "no-such-fixture", world["team_a"].id, 1, 0)


def test_coach_of_other_team_is_forbidden(db_conn, svc, world):
    with pytest.raises(ForbiddenError):
        svc.submit_result(db_conn, world["coach"], world["other"].id, world["team_b"].id, 1, 0)


def test_parent_cannot_submit(db_conn, svc, world):
    with pytest.raises(ForbiddenError):
        svc.submit_result(db_conn, world["parent"], world["home"].id, world["team_a"].id, 1, 0)


def test_team_mismatch_is_invalid(db_conn, svc, world):
    users = UserRepository()
    coach = users.update(
        db_conn, world["coach"].id, {"team_ids": [world["team_a"].id, world["team_b"].id]}
    )
    with pytest.raises(InvalidArgumentError, match="mismatch"):
        svc.submit_result(db_conn, coach, world["other"].id, world["team_a"].id, 1, 0)


# ---------- Deletion ----------


def test_delete_result_recomputes(db_conn, svc, world):
    svc.submit_result(db_conn, world["coach"], world["home"].id, world["team_a"].id, 2, 0)
    svc.submit_result(db_conn, world["coach"], world["away"].id, world["team_a"].id, 1, 1)
    team = svc.delete_result(db_conn, world["coach"], world["home"].id)
    assert (team.wins, team.draws, team.losses) == (0, 1, 0)
    assert svc.get_result_for_fixture(db_conn, world["home"].id) is None


def test_delete_missing_result_is_not_found(db_conn, svc, world):
    with pytest.raises(NotFoundError):
        svc.delete_result(db_conn, world["coach"], world["home"].id)


def test_player_season_stats(db_conn, svc, world):
    p1 = world["p1"].id
    svc.submit_result(db_conn, world["coach"], world["home"].id, world["team_a"].id, 2, 0, {p1: {"goals": 2, "assists": 0}})
    svc.submit_result(db_conn, world["coach"], world["away"].id, world["team_a"].id, 0, 1, {p1: {"goals": 1, "assists": 1}})
    totals = svc.player_season_stats(db_conn, world["team_a"].id)
    assert totals[p1].goals == 3
    assert totals[p1].assists == 1
