"""
SQLite schema for TeamHub entities.
Migration-friendly: each table created with IF NOT EXISTS.
List and map fields (roles, team_ids, player_ids, availability, player_stats)
are stored as JSON text.
"""
from __future__ import annotations


def users_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT NOT NULL,
        name TEXT,
        password_hash TEXT,
        roles TEXT NOT NULL DEFAULT '[]',
        club_id TEXT,
        team_ids TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        FOREIGN KEY (club_id) REFERENCES clubs(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_users_email ON users(email);
    CREATE INDEX IF NOT EXISTS ix_users_club ON users(club_id);
    """


def clubs_schema() -> str:
    """code is the 8-character join code."""
    return """
    CREATE TABLE IF NOT EXISTS clubs (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        code TEXT NOT NULL,
        established TEXT,
        total_teams INTEGER NOT NULL DEFAULT 0,
        total_players INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_clubs_code ON clubs(code);
    """


def teams_schema() -> str:
    """wins/draws/losses are recomputed from match_results; never incremented in place."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        age_group TEXT NOT NULL,
        code TEXT NOT NULL,
        club_id TEXT NOT NULL,
        manager_id TEXT,
        player_ids TEXT NOT NULL DEFAULT '[]',
        wins INTEGER NOT NULL DEFAULT 0,
        draws INTEGER NOT NULL DEFAULT 0,
        losses INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (club_id) REFERENCES clubs(id),
        FOREIGN KEY (manager_id) REFERENCES users(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_teams_code ON teams(code);
    CREATE INDEX IF NOT EXISTS ix_teams_club ON teams(club_id);
    """


def players_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS players (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        date_of_birth TEXT NOT NULL,
        team_id TEXT NOT NULL,
        parent_id TEXT NOT NULL,
        attendance INTEGER NOT NULL DEFAULT 0,
        total_events INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        FOREIGN KEY (team_id) REFERENCES teams(id),
        FOREIGN KEY (parent_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_players_team ON players(team_id);
    CREATE INDEX IF NOT EXISTS ix_players_parent ON players(parent_id);
    """


def events_schema() -> str:
    """Fixtures and other team events. opponent/home_away only for matches."""
    return """
    CREATE TABLE IF NOT EXISTS events (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        friendly INTEGER NOT NULL DEFAULT 0,
        name TEXT,
        opponent TEXT,
        location TEXT NOT NULL,
        start_time TEXT NOT NULL,
        end_time TEXT NOT NULL,
        additional_info TEXT,
        team_id TEXT NOT NULL,
        home_away TEXT,
        availability TEXT NOT NULL DEFAULT '{}',
        result TEXT,
        created_at TEXT NOT NULL,
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_events_team ON events(team_id);
    CREATE INDEX IF NOT EXISTS ix_events_start ON events(start_time);
    """


def match_results_schema() -> str:
    """At most one result per fixture (unique fixture_id)."""
    return """
    CREATE TABLE IF NOT EXISTS match_results (
        id TEXT PRIMARY KEY,
        fixture_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        home_team_goals INTEGER NOT NULL,
        away_team_goals INTEGER NOT NULL,
        is_home_fixture INTEGER NOT NULL,
        result TEXT NOT NULL,
        player_stats TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (fixture_id) REFERENCES events(id),
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_match_results_fixture ON match_results(fixture_id);
    CREATE INDEX IF NOT EXISTS ix_match_results_team ON match_results(team_id);
    """


def posts_schema() -> str:
    """Exactly one of team_id / club_id is set."""
    return """
    CREATE TABLE IF NOT EXISTS posts (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL,
        title TEXT NOT NULL,
        content TEXT NOT NULL,
        author_id TEXT NOT NULL,
        author_name TEXT NOT NULL,
        author_role TEXT NOT NULL,
        team_id TEXT,
        club_id TEXT,
        created_at TEXT NOT NULL,
        CHECK ((team_id IS NULL) <> (club_id IS NULL)),
        FOREIGN KEY (author_id) REFERENCES users(id)
    );
    CREATE INDEX IF NOT EXISTS ix_posts_team ON posts(team_id);
    CREATE INDEX IF NOT EXISTS ix_posts_club ON posts(club_id);
    """


def awards_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS awards (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        recipient TEXT NOT NULL,
        recipient_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        month TEXT NOT NULL,
        year INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE INDEX IF NOT EXISTS ix_awards_team ON awards(team_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Order: clubs, users, teams, players, events, match_results, posts, awards."""
    return "\n".join([
        clubs_schema(),
        users_schema(),
        teams_schema(),
        players_schema(),
        events_schema(),
        match_results_schema(),
        posts_schema(),
        awards_schema(),
    ])
