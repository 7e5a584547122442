"""
Tests for the sqlite repositories: uniqueness, post scope constraint,
result upsert and transactional rollback.
"""
from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from teamhub.models import PlayerStat
from teamhub.persistence.db import get_connection, init_db, set_db_path, transaction
from teamhub.persistence.repositories import (
    ClubRepository,
    EventRepository,
    MatchResultRepository,
    PostRepository,
    TeamRepository,
    UserRepository,
)

START = datetime(2025, 1, 5, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def db_conn(tmp_path):
    db_path = tmp_path / "repo_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def team(db_conn):
    club = ClubRepository().create(db_conn, "Riverside FC", "CLUB0001")
    return TeamRepository().create(db_conn, "U10 Reds", "U10", "TEAMA001", club.id)


def _fields(home, away, stats=None):
    return {
        "home_team_goals": home,
        "away_team_goals": away,
        "is_home_fixture": True,
        "result": "win" if home > away else ("lose" if home < away else "draw"),
        "player_stats": stats or {},
    }


def test_user_email_is_unique_case_insensitive(db_conn):
    users = UserRepository()
    users.create(db_conn, "Sam@Example.com")
    assert users.get_by_email(db_conn, "sam@example.com") is not None
    with pytest.raises(sqlite3.IntegrityError):
        users.create(db_conn, "sam@example.com")


def test_user_update_rejects_unknown_columns(db_conn):
    users = UserRepository()
    user = users.create(db_conn, "a@example.com")
    with pytest.raises(ValueError):
        users.update(db_conn, user.id, {"email": "b@example.com"})


def test_upsert_keeps_one_row_per_fixture(db_conn, team):
    event = EventRepository().create(db_conn, team.id, "match", "Pitch", START, START + timedelta(hours=2))
    repo = MatchResultRepository()
    first = repo.upsert(db_conn, event.id, team.id, _fields(1, 0, {"p1": PlayerStat(goals=1)}))
    second = repo.upsert(db_conn, event.id, team.id, _fields(0, 2))
    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.result == "lose"
    assert second.player_stats == {}
    assert len(repo.list_by_team(db_conn, team.id)) == 1
    assert repo.delete_by_fixture(db_conn, event.id) is True
    assert repo.delete_by_fixture(db_conn, event.id) is False


def test_post_requires_exactly_one_scope(db_conn, team):
    posts = PostRepository()
    with pytest.raises(sqlite3.IntegrityError):
        posts.create(db_conn, "announcement", "t", "c", "u1", "U", "coach")
    with pytest.raises(sqlite3.IntegrityError):
        posts.create(db_conn, "announcement", "t", "c", "u1", "U", "coach", team_id=team.id, club_id=team.club_id)


def test_event_round_trips_utc_and_availability(db_conn, team):
    events = EventRepository()
    naive_start = datetime(2025, 1, 5, 10, 0)
    event = events.create(
        db_conn, team.id, "match", "Pitch", naive_start, naive_start + timedelta(hours=1),
        friendly=True, availability={"p1": "pending"},
    )
    loaded = events.get(db_conn, event.id)
    assert loaded.start_time == START
    assert loaded.friendly is True
    events.set_availability(db_conn, event.id, "p1", "available")
    assert events.get(db_conn, event.id).availability == {"p1": "available"}
    assert events.list_upcoming(db_conn, team.id, now=START - timedelta(minutes=1))[0].id == event.id
    assert events.list_upcoming(db_conn, team.id, now=START) == []


def test_transaction_rolls_back_on_error(db_conn, team):
    teams = TeamRepository()
    with pytest.raises(RuntimeError):
        with transaction(db_conn):
            teams.update(db_conn, team.id, {"wins": 5}, commit=False)
            raise RuntimeError("boom")
    assert teams.get(db_conn, team.id).wins == 0


def test_init_db_migrates_legacy_friendly_events(tmp_path):
    db_path = tmp_path / "legacy.db"
    conn = sqlite3.connect(str(db_path))
    conn.executescript(
        """
        CREATE TABLE events (
            id TEXT PRIMARY KEY, type TEXT NOT NULL, name TEXT, opponent TEXT,
            location TEXT NOT NULL, start_time TEXT NOT NULL, end_time TEXT NOT NULL,
            additional_info TEXT, team_id TEXT NOT NULL,
            availability TEXT NOT NULL DEFAULT '{}', result TEXT, created_at TEXT NOT NULL
        );
        INSERT INTO events (id, type, location, start_time, end_time, team_id, created_at)
        VALUES ('e1', 'friendly', 'Pitch', '2025-01-05T10:00:00.000000+00:00',
                '2025-01-05T11:00:00.000000+00:00', 't1', '2025-01-01T00:00:00.000000+00:00');
        """
    )
    conn.commit()
    conn.close()

    init_db(db_path=db_path)
    conn = get_connection(db_path)
    try:
        event = EventRepository().get(conn, "e1")
        assert event.type == "match"
        assert event.friendly is True
        assert event.home_away is None
    finally:
        conn.close()
