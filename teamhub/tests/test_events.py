"""
Tests for event lifecycle: coach-only mutations, match-only fields, cascading
delete, availability ownership and attendance counters.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from teamhub.models import EventType
from teamhub.persistence.db import get_connection, init_db, set_db_path
from teamhub.persistence.repositories import (
    ClubRepository,
    PlayerRepository,
    TeamRepository,
    UserRepository,
)
from teamhub.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError
from teamhub.services.events import EventService, normalize_event_type
from teamhub.services.result_engine import ResultService

START = datetime(2025, 5, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "events_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def svc():
    return EventService()


@pytest.fixture
def world(db_conn):
    club = ClubRepository().create(db_conn, "Riverside FC", "CLUB0001")
    teams = TeamRepository()
    team = teams.create(db_conn, "U10 Reds", "U10", "TEAMA001", club.id)
    other_team = teams.create(db_conn, "U12 Blues", "U12", "TEAMB001", club.id)
    users = UserRepository()
    coach = users.create(db_conn, "coach@example.com", roles=["coach"])
    coach = users.update(db_conn, coach.id, {"club_id": club.id, "team_ids": [team.id]})
    parent = users.create(db_conn, "parent@example.com", roles=["parent"])
    stranger = users.create(db_conn, "other@example.com", roles=["parent"])
    players = PlayerRepository()
    kid = players.create(db_conn, "Sam", date(2015, 5, 1), team.id, parent.id)
    teams.add_player(db_conn, team.id, kid.id)
    other_kid = players.create(db_conn, "Jo", date(2013, 5, 1), other_team.id, parent.id)
    return {
        "team": teams.get(db_conn, team.id), "other_team": other_team, "coach": coach,
        "parent": parent, "stranger": stranger, "kid": kid, "other_kid": other_kid,
    }


def _match(svc, conn, world, **overrides):
    kwargs = dict(
        team_id=world["team"].id, type="match", location="Home Ground",
        start_time=START, end_time=START + timedelta(hours=2),
        opponent="Hilltop", home_away="home",
    )
    kwargs.update(overrides)
    return svc.create_event(conn, world["coach"], **kwargs)


def test_normalize_legacy_friendly():
    assert normalize_event_type("friendly") == ("match", True)
    assert normalize_event_type("training", friendly=True) == ("training", False)
    with pytest.raises(InvalidArgumentError):
        normalize_event_type("party")


def test_create_match_seeds_pending_availability(db_conn, svc, world):
    event = _match(svc, db_conn, world)
    assert event.type == EventType.MATCH
    assert event.is_home
    assert event.availability == {world["kid"].id: "pending"}


def test_create_legacy_friendly(db_conn, svc, world):
    event = _match(svc, db_conn, world, type="friendly")
    assert event.type == "match"
    assert event.friendly is True


def test_parent_cannot_create_event(db_conn, svc, world):
    with pytest.raises(ForbiddenError):
        svc.create_event(
            db_conn, world["parent"], world["team"].id, "training", "Pitch",
            START, START + timedelta(hours=1),
        )


def test_coach_cannot_create_for_unmanaged_team(db_conn, svc, world):
    with pytest.raises(ForbiddenError):
        _match(svc, db_conn, world, team_id=world["other_team"].id)


def test_opponent_only_for_matches(db_conn, svc, world):
    with pytest.raises(InvalidArgumentError, match="only allowed for matches"):
        _match(svc, db_conn, world, type="training")


def test_end_must_follow_start(db_conn, svc, world):
    with pytest.raises(InvalidArgumentError, match="end_time"):
        _match(svc, db_conn, world, end_time=START)


def test_update_event(db_conn, svc, world):
    event = _match(svc, db_conn, world)
    updated = svc.update_event(db_conn, world["coach"], event.id, {"location": "Away Park", "home_away": "away"})
    assert updated.location == "Away Park"
    assert not updated.is_home
    with pytest.raises(InvalidArgumentError):
        svc.update_event(db_conn, world["coach"], event.id, {"end_time": START - timedelta(hours=1)})
    with pytest.raises(ForbiddenError):
        svc.update_event(db_conn, world["parent"], event.id, {"location": "Elsewhere"})


def test_delete_event_removes_result_and_recomputes(db_conn, svc, world):
    event = _match(svc, db_conn, world)
    results = ResultService()
    results.submit_result(db_conn, world["coach"], event.id, world["team"].id, 2, 0)
    assert TeamRepository().get(db_conn, world["team"].id).wins == 1
    svc.delete_event(db_conn, world["coach"], event.id)
    assert svc.get_event(db_conn, event.id) is None
    assert results.get_result_for_fixture(db_conn, event.id) is None
    assert TeamRepository().get(db_conn, world["team"].id).wins == 0


def test_delete_missing_event(db_conn, svc, world):
    with pytest.raises(NotFoundError):
        svc.delete_event(db_conn, world["coach"], "missing")


def test_set_availability_owner_checks(db_conn, svc, world):
    event = _match(svc, db_conn, world)
    updated = svc.set_availability(db_conn, world["parent"], event.id, world["kid"].id, "available")
    assert updated.availability[world["kid"].id] == "available"
    with pytest.raises(ForbiddenError):
        svc.set_availability(db_conn, world["stranger"], event.id, world["kid"].id, "unavailable")
    with pytest.raises(InvalidArgumentError, match="not on this event's team"):
        svc.set_availability(db_conn, world["parent"], event.id, world["other_kid"].id, "available")
    with pytest.raises(InvalidArgumentError):
        svc.set_availability(db_conn, world["parent"], event.id, world["kid"].id, "maybe")


def test_attendance_counts_completed_events(db_conn, svc, world):
    first = _match(svc, db_conn, world)
    second = svc.create_event(
        db_conn, world["coach"], world["team"].id, "training", "Pitch",
        START + timedelta(days=1), START + timedelta(days=1, hours=1),
    )
    future = svc.create_event(
        db_conn, world["coach"], world["team"].id, "training", "Pitch",
        START + timedelta(days=30), START + timedelta(days=30, hours=1),
    )
    now = START + timedelta(days=2)
    svc.set_availability(db_conn, world["parent"], first.id, world["kid"].id, "available", now=now)
    svc.set_availability(db_conn, world["parent"], second.id, world["kid"].id, "unavailable", now=now)
    svc.set_availability(db_conn, world["parent"], future.id, world["kid"].id, "available", now=now)
    kid = PlayerRepository().get(db_conn, world["kid"].id)
    assert kid.total_events == 2
    assert kid.attendance == 1
