"""
Repository interfaces for TeamHub data.
No business logic, only read/write operations.

Write methods take commit=True; services pass commit=False when several writes
must land in one transaction and commit (or roll back) themselves.
"""
from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import date, datetime
from typing import Any, Iterable

from teamhub.models import (
    Award,
    Club,
    Event,
    MatchResult,
    Player,
    PlayerStat,
    Post,
    Team,
    User,
    ensure_utc,
    utcnow,
)


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return ensure_utc(datetime.fromisoformat(s.replace("Z", "+00:00")))


def _iso(dt: datetime) -> str:
    """Fixed-width UTC text so that ORDER BY / comparisons on the column are chronological."""
    return ensure_utc(dt).isoformat(timespec="microseconds")


def _loads(s: str | None, default: Any) -> Any:
    if not s:
        return default
    return json.loads(s)


def _enum_values(items: Iterable[Any]) -> list[str]:
    return sorted({str(getattr(i, "value", i)) for i in items})


def _placeholders(n: int) -> str:
    return ", ".join("?" for _ in range(n))


def _apply_updates(
    conn: sqlite3.Connection,
    table: str,
    row_id: str,
    updates: dict[str, Any],
    allowed: set[str],
) -> None:
    unknown = set(updates) - allowed
    if unknown:
        raise ValueError(f"Cannot update {table} columns: {sorted(unknown)}")
    if not updates:
        return
    cols = list(updates)
    assignments = ", ".join(f"{c} = ?" for c in cols)
    conn.execute(
        f"UPDATE {table} SET {assignments} WHERE id = ?",
        [updates[c] for c in cols] + [row_id],
    )


# ---------- UserRepository ----------


def _row_to_user(r: sqlite3.Row) -> User:
    return User(
        id=r["id"],
        email=r["email"],
        name=r["name"],
        password_hash=r["password_hash"],
        roles=set(_loads(r["roles"], [])),
        club_id=r["club_id"],
        team_ids=list(_loads(r["team_ids"], [])),
        created_at=_parse_datetime(r["created_at"]),
    )


class UserRepository:
    """CRUD for users. roles and team_ids are JSON lists."""

    _COLS = "id, email, name, password_hash, roles, club_id, team_ids, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        email: str,
        password_hash: str | None = None,
        name: str | None = None,
        roles: Iterable[str] = (),
        id: str | None = None,
        commit: bool = True,
    ) -> User:
        uid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        conn.execute(
            f"INSERT INTO users ({self._COLS}) VALUES ({_placeholders(8)})",
            (uid, email.strip().lower(), name, password_hash, json.dumps(_enum_values(roles)), None, "[]", now),
        )
        if commit:
            conn.commit()
        return User(
            id=uid, email=email.strip().lower(), name=name, password_hash=password_hash,
            roles=set(_enum_values(roles)), created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, user_id: str) -> User | None:
        row = conn.execute(f"SELECT {self._COLS} FROM users WHERE id = ?", (user_id,)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_email(self, conn: sqlite3.Connection, email: str) -> User | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM users WHERE email = ?", (email.strip().lower(),)
        ).fetchone()
        return _row_to_user(row) if row is not None else None

    def update(
        self,
        conn: sqlite3.Connection,
        user_id: str,
        updates: dict[str, Any],
        commit: bool = True,
    ) -> User | None:
        """Partial update. Accepts name, roles (iterable), club_id, team_ids (list)."""
        cols = dict(updates)
        if "roles" in cols:
            cols["roles"] = json.dumps(_enum_values(cols["roles"]))
        if "team_ids" in cols:
            cols["team_ids"] = json.dumps(list(cols["team_ids"]))
        _apply_updates(conn, "users", user_id, cols, {"name", "roles", "club_id", "team_ids", "password_hash"})
        if commit:
            conn.commit()
        return self.get(conn, user_id)


# ---------- ClubRepository ----------


def _row_to_club(r: sqlite3.Row) -> Club:
    return Club(
        id=r["id"],
        name=r["name"],
        code=r["code"],
        established=r["established"],
        total_teams=r["total_teams"],
        total_players=r["total_players"],
        created_at=_parse_datetime(r["created_at"]),
    )


class ClubRepository:
    """CRUD for clubs. total_teams/total_players are informational counters."""

    _COLS = "id, name, code, established, total_teams, total_players, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        code: str,
        established: str | None = None,
        id: str | None = None,
        commit: bool = True,
    ) -> Club:
        cid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        conn.execute(
            f"INSERT INTO clubs ({self._COLS}) VALUES ({_placeholders(7)})",
            (cid, name, code, established, 0, 0, now),
        )
        if commit:
            conn.commit()
        return Club(id=cid, name=name, code=code, established=established, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, club_id: str) -> Club | None:
        row = conn.execute(f"SELECT {self._COLS} FROM clubs WHERE id = ?", (club_id,)).fetchone()
        return _row_to_club(row) if row is not None else None

    def get_by_code(self, conn: sqlite3.Connection, code: str) -> Club | None:
        row = conn.execute(f"SELECT {self._COLS} FROM clubs WHERE code = ?", (code,)).fetchone()
        return _row_to_club(row) if row is not None else None

    def increment_counts(
        self,
        conn: sqlite3.Connection,
        club_id: str,
        teams: int = 0,
        players: int = 0,
        commit: bool = True,
    ) -> None:
        conn.execute(
            "UPDATE clubs SET total_teams = total_teams + ?, total_players = total_players + ? WHERE id = ?",
            (teams, players, club_id),
        )
        if commit:
            conn.commit()


# ---------- TeamRepository ----------


def _row_to_team(r: sqlite3.Row) -> Team:
    return Team(
        id=r["id"],
        name=r["name"],
        age_group=r["age_group"],
        code=r["code"],
        club_id=r["club_id"],
        manager_id=r["manager_id"],
        player_ids=list(_loads(r["player_ids"], [])),
        wins=r["wins"],
        draws=r["draws"],
        losses=r["losses"],
        created_at=_parse_datetime(r["created_at"]),
    )


class TeamRepository:
    """CRUD for teams. player_ids is a JSON list (roster order)."""

    _COLS = "id, name, age_group, code, club_id, manager_id, player_ids, wins, draws, losses, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        age_group: str,
        code: str,
        club_id: str,
        manager_id: str | None = None,
        id: str | None = None,
        commit: bool = True,
    ) -> Team:
        tid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        conn.execute(
            f"INSERT INTO teams ({self._COLS}) VALUES ({_placeholders(11)})",
            (tid, name, age_group, code, club_id, manager_id, "[]", 0, 0, 0, now),
        )
        if commit:
            conn.commit()
        return Team(
            id=tid, name=name, age_group=age_group, code=code, club_id=club_id,
            manager_id=manager_id, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        row = conn.execute(f"SELECT {self._COLS} FROM teams WHERE id = ?", (team_id,)).fetchone()
        return _row_to_team(row) if row is not None else None

    def get_by_code(self, conn: sqlite3.Connection, code: str) -> Team | None:
        row = conn.execute(f"SELECT {self._COLS} FROM teams WHERE code = ?", (code,)).fetchone()
        return _row_to_team(row) if row is not None else None

    def list_by_club(self, conn: sqlite3.Connection, club_id: str) -> list[Team]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM teams WHERE club_id = ? ORDER BY created_at",
            (club_id,),
        ).fetchall()
        return [_row_to_team(r) for r in rows]

    def list_by_ids(self, conn: sqlite3.Connection, team_ids: Iterable[str]) -> list[Team]:
        """Teams for the given ids, in the order given; unknown ids are skipped."""
        ids = list(dict.fromkeys(team_ids))
        if not ids:
            return []
        rows = conn.execute(
            f"SELECT {self._COLS} FROM teams WHERE id IN ({_placeholders(len(ids))})",
            ids,
        ).fetchall()
        by_id = {r["id"]: _row_to_team(r) for r in rows}
        return [by_id[i] for i in ids if i in by_id]

    def update(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        updates: dict[str, Any],
        commit: bool = True,
    ) -> Team | None:
        """Partial update (name, age_group, manager_id, player_ids, wins, draws, losses)."""
        cols = dict(updates)
        if "player_ids" in cols:
            cols["player_ids"] = json.dumps(list(cols["player_ids"]))
        _apply_updates(
            conn, "teams", team_id, cols,
            {"name", "age_group", "manager_id", "player_ids", "wins", "draws", "losses"},
        )
        if commit:
            conn.commit()
        return self.get(conn, team_id)

    def add_player(
        self, conn: sqlite3.Connection, team_id: str, player_id: str, commit: bool = True
    ) -> Team | None:
        team = self.get(conn, team_id)
        if team is None:
            return None
        if player_id in team.player_ids:
            return team
        return self.update(conn, team_id, {"player_ids": team.player_ids + [player_id]}, commit=commit)


# ---------- PlayerRepository ----------


def _row_to_player(r: sqlite3.Row) -> Player:
    return Player(
        id=r["id"],
        name=r["name"],
        date_of_birth=date.fromisoformat(r["date_of_birth"]),
        team_id=r["team_id"],
        parent_id=r["parent_id"],
        attendance=r["attendance"],
        total_events=r["total_events"],
        created_at=_parse_datetime(r["created_at"]),
    )


class PlayerRepository:
    """CRUD for players (dependents). One team per player."""

    _COLS = "id, name, date_of_birth, team_id, parent_id, attendance, total_events, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        date_of_birth: date,
        team_id: str,
        parent_id: str,
        id: str | None = None,
        commit: bool = True,
    ) -> Player:
        pid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        conn.execute(
            f"INSERT INTO players ({self._COLS}) VALUES ({_placeholders(8)})",
            (pid, name, date_of_birth.isoformat(), team_id, parent_id, 0, 0, now),
        )
        if commit:
            conn.commit()
        return Player(
            id=pid, name=name, date_of_birth=date_of_birth, team_id=team_id,
            parent_id=parent_id, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, player_id: str) -> Player | None:
        row = conn.execute(f"SELECT {self._COLS} FROM players WHERE id = ?", (player_id,)).fetchone()
        return _row_to_player(row) if row is not None else None

    def list_by_parent(self, conn: sqlite3.Connection, parent_id: str) -> list[Player]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM players WHERE parent_id = ? ORDER BY created_at",
            (parent_id,),
        ).fetchall()
        return [_row_to_player(r) for r in rows]

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[Player]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM players WHERE team_id = ? ORDER BY name",
            (team_id,),
        ).fetchall()
        return [_row_to_player(r) for r in rows]

    def update_counters(
        self,
        conn: sqlite3.Connection,
        player_id: str,
        attendance: int,
        total_events: int,
        commit: bool = True,
    ) -> None:
        conn.execute(
            "UPDATE players SET attendance = ?, total_events = ? WHERE id = ?",
            (attendance, total_events, player_id),
        )
        if commit:
            conn.commit()


# ---------- EventRepository ----------


def _row_to_event(r: sqlite3.Row) -> Event:
    return Event(
        id=r["id"],
        type=r["type"],
        friendly=bool(r["friendly"]),
        name=r["name"],
        opponent=r["opponent"],
        location=r["location"],
        start_time=_parse_datetime(r["start_time"]),
        end_time=_parse_datetime(r["end_time"]),
        additional_info=r["additional_info"],
        team_id=r["team_id"],
        home_away=r["home_away"],
        availability=dict(_loads(r["availability"], {})),
        result=_loads(r["result"], None),
        created_at=_parse_datetime(r["created_at"]),
    )


class EventRepository:
    """CRUD for events (fixtures). availability is a JSON map player_id -> status."""

    _COLS = (
        "id, type, friendly, name, opponent, location, start_time, end_time, "
        "additional_info, team_id, home_away, availability, result, created_at"
    )
    _UPDATABLE = {
        "type", "friendly", "name", "opponent", "location", "start_time", "end_time",
        "additional_info", "home_away", "availability", "result",
    }

    def create(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        type: str,
        location: str,
        start_time: datetime,
        end_time: datetime,
        name: str | None = None,
        friendly: bool = False,
        opponent: str | None = None,
        home_away: str | None = None,
        additional_info: str | None = None,
        availability: dict[str, str] | None = None,
        id: str | None = None,
        commit: bool = True,
    ) -> Event:
        eid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        avail = dict(availability or {})
        conn.execute(
            f"INSERT INTO events ({self._COLS}) VALUES ({_placeholders(14)})",
            (
                eid, type, 1 if friendly else 0, name, opponent, location,
                _iso(start_time), _iso(end_time), additional_info, team_id,
                home_away, json.dumps(avail), None, now,
            ),
        )
        if commit:
            conn.commit()
        return Event(
            id=eid, type=type, friendly=friendly, name=name, opponent=opponent,
            location=location, start_time=ensure_utc(start_time), end_time=ensure_utc(end_time),
            additional_info=additional_info, team_id=team_id, home_away=home_away,
            availability=avail, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, event_id: str) -> Event | None:
        row = conn.execute(f"SELECT {self._COLS} FROM events WHERE id = ?", (event_id,)).fetchone()
        return _row_to_event(row) if row is not None else None

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[Event]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM events WHERE team_id = ? ORDER BY start_time",
            (team_id,),
        ).fetchall()
        return [_row_to_event(r) for r in rows]

    def list_by_teams(self, conn: sqlite3.Connection, team_ids: Iterable[str]) -> list[Event]:
        ids = list(dict.fromkeys(team_ids))
        if not ids:
            return []
        rows = conn.execute(
            f"SELECT {self._COLS} FROM events WHERE team_id IN ({_placeholders(len(ids))}) ORDER BY start_time",
            ids,
        ).fetchall()
        return [_row_to_event(r) for r in rows]

    def list_upcoming(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        now: datetime | None = None,
    ) -> list[Event]:
        """Events of team_id starting after now, soonest first."""
        rows = conn.execute(
            f"SELECT {self._COLS} FROM events WHERE team_id = ? AND start_time > ? ORDER BY start_time",
            (team_id, _iso(now or utcnow())),
        ).fetchall()
        return [_row_to_event(r) for r in rows]

    def update(
        self,
        conn: sqlite3.Connection,
        event_id: str,
        updates: dict[str, Any],
        commit: bool = True,
    ) -> Event | None:
        cols = dict(updates)
        for key in ("start_time", "end_time"):
            if key in cols and cols[key] is not None:
                cols[key] = _iso(cols[key])
        if "friendly" in cols:
            cols["friendly"] = 1 if cols["friendly"] else 0
        if "availability" in cols:
            cols["availability"] = json.dumps(dict(cols["availability"]))
        if "result" in cols and cols["result"] is not None:
            cols["result"] = json.dumps(cols["result"])
        _apply_updates(conn, "events", event_id, cols, self._UPDATABLE)
        if commit:
            conn.commit()
        return self.get(conn, event_id)

    def set_availability(
        self,
        conn: sqlite3.Connection,
        event_id: str,
        player_id: str,
        status: str,
        commit: bool = True,
    ) -> Event | None:
        """Add or overwrite one player's availability entry."""
        event = self.get(conn, event_id)
        if event is None:
            return None
        availability = dict(event.availability)
        availability[player_id] = status
        return self.update(conn, event_id, {"availability": availability}, commit=commit)

    def delete(self, conn: sqlite3.Connection, event_id: str, commit: bool = True) -> bool:
        cur = conn.execute("DELETE FROM events WHERE id = ?", (event_id,))
        if commit:
            conn.commit()
        return cur.rowcount > 0


# ---------- MatchResultRepository ----------


def _row_to_match_result(r: sqlite3.Row) -> MatchResult:
    stats = _loads(r["player_stats"], {})
    return MatchResult(
        id=r["id"],
        fixture_id=r["fixture_id"],
        team_id=r["team_id"],
        home_team_goals=r["home_team_goals"],
        away_team_goals=r["away_team_goals"],
        is_home_fixture=bool(r["is_home_fixture"]),
        result=r["result"],
        player_stats={
            pid: PlayerStat(goals=int(s.get("goals", 0)), assists=int(s.get("assists", 0)))
            for pid, s in stats.items()
        },
        created_at=_parse_datetime(r["created_at"]),
        updated_at=_parse_datetime(r["updated_at"]),
    )


class MatchResultRepository:
    """CRUD for match_results. One row per fixture_id (unique index)."""

    _COLS = (
        "id, fixture_id, team_id, home_team_goals, away_team_goals, "
        "is_home_fixture, result, player_stats, created_at, updated_at"
    )

    def get_by_fixture(self, conn: sqlite3.Connection, fixture_id: str) -> MatchResult | None:
        row = conn.execute(
            f"SELECT {self._COLS} FROM match_results WHERE fixture_id = ?", (fixture_id,)
        ).fetchone()
        return _row_to_match_result(row) if row is not None else None

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[MatchResult]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM match_results WHERE team_id = ? ORDER BY created_at",
            (team_id,),
        ).fetchall()
        return [_row_to_match_result(r) for r in rows]

    def list_by_teams(self, conn: sqlite3.Connection, team_ids: Iterable[str]) -> list[MatchResult]:
        ids = list(dict.fromkeys(team_ids))
        if not ids:
            return []
        rows = conn.execute(
            f"SELECT {self._COLS} FROM match_results WHERE team_id IN ({_placeholders(len(ids))}) ORDER BY created_at",
            ids,
        ).fetchall()
        return [_row_to_match_result(r) for r in rows]

    def upsert(
        self,
        conn: sqlite3.Connection,
        fixture_id: str,
        team_id: str,
        fields: dict[str, Any],
        commit: bool = True,
    ) -> MatchResult:
        """
        Insert the result for fixture_id, or overwrite every field of the existing row.
        id and created_at of an existing row are kept.
        fields: home_team_goals, away_team_goals, is_home_fixture, result, player_stats.
        """
        now = _iso(utcnow())
        stats = {
            pid: (s.to_dict() if isinstance(s, PlayerStat) else dict(s))
            for pid, s in fields.get("player_stats", {}).items()
        }
        conn.execute(
            f"""INSERT INTO match_results ({self._COLS}) VALUES ({_placeholders(10)})
                ON CONFLICT(fixture_id) DO UPDATE SET
                    team_id = excluded.team_id,
                    home_team_goals = excluded.home_team_goals,
                    away_team_goals = excluded.away_team_goals,
                    is_home_fixture = excluded.is_home_fixture,
                    result = excluded.result,
                    player_stats = excluded.player_stats,
                    updated_at = excluded.updated_at""",
            (
                str(uuid.uuid4()),
                fixture_id,
                team_id,
                int(fields["home_team_goals"]),
                int(fields["away_team_goals"]),
                1 if fields["is_home_fixture"] else 0,
                str(fields["result"]),
                json.dumps(stats, sort_keys=True),
                now,
                now,
            ),
        )
        if commit:
            conn.commit()
        stored = self.get_by_fixture(conn, fixture_id)
        if stored is None:
            raise RuntimeError(f"Upsert of result for fixture {fixture_id} did not persist")
        return stored

    def delete_by_fixture(self, conn: sqlite3.Connection, fixture_id: str, commit: bool = True) -> bool:
        cur = conn.execute("DELETE FROM match_results WHERE fixture_id = ?", (fixture_id,))
        if commit:
            conn.commit()
        return cur.rowcount > 0


# ---------- PostRepository ----------


def _row_to_post(r: sqlite3.Row) -> Post:
    return Post(
        id=r["id"],
        type=r["type"],
        title=r["title"],
        content=r["content"],
        author_id=r["author_id"],
        author_name=r["author_name"],
        author_role=r["author_role"],
        team_id=r["team_id"],
        club_id=r["club_id"],
        created_at=_parse_datetime(r["created_at"]),
    )


class PostRepository:
    """CRUD for posts. Table CHECK enforces team_id XOR club_id."""

    _COLS = "id, type, title, content, author_id, author_name, author_role, team_id, club_id, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        type: str,
        title: str,
        content: str,
        author_id: str,
        author_name: str,
        author_role: str,
        team_id: str | None = None,
        club_id: str | None = None,
        id: str | None = None,
        commit: bool = True,
    ) -> Post:
        pid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        conn.execute(
            f"INSERT INTO posts ({self._COLS}) VALUES ({_placeholders(10)})",
            (pid, type, title, content, author_id, author_name, author_role, team_id, club_id, now),
        )
        if commit:
            conn.commit()
        return Post(
            id=pid, type=type, title=title, content=content, author_id=author_id,
            author_name=author_name, author_role=author_role, team_id=team_id,
            club_id=club_id, created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, post_id: str) -> Post | None:
        row = conn.execute(f"SELECT {self._COLS} FROM posts WHERE id = ?", (post_id,)).fetchone()
        return _row_to_post(row) if row is not None else None

    def list_by_teams(self, conn: sqlite3.Connection, team_ids: Iterable[str]) -> list[Post]:
        ids = list(dict.fromkeys(team_ids))
        if not ids:
            return []
        rows = conn.execute(
            f"SELECT {self._COLS} FROM posts WHERE team_id IN ({_placeholders(len(ids))}) ORDER BY created_at DESC",
            ids,
        ).fetchall()
        return [_row_to_post(r) for r in rows]

    def list_by_club(self, conn: sqlite3.Connection, club_id: str) -> list[Post]:
        """Club-wide posts only (team posts carry no club_id)."""
        rows = conn.execute(
            f"SELECT {self._COLS} FROM posts WHERE club_id = ? ORDER BY created_at DESC",
            (club_id,),
        ).fetchall()
        return [_row_to_post(r) for r in rows]

    def update(
        self,
        conn: sqlite3.Connection,
        post_id: str,
        updates: dict[str, Any],
        commit: bool = True,
    ) -> Post | None:
        _apply_updates(conn, "posts", post_id, updates, {"type", "title", "content"})
        if commit:
            conn.commit()
        return self.get(conn, post_id)

    def delete(self, conn: sqlite3.Connection, post_id: str, commit: bool = True) -> bool:
        cur = conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        if commit:
            conn.commit()
        return cur.rowcount > 0


# ---------- AwardRepository ----------


class AwardRepository:
    """Team-scoped awards. Read-only through the API."""

    _COLS = "id, title, recipient, recipient_id, team_id, month, year, created_at"

    def create(
        self,
        conn: sqlite3.Connection,
        title: str,
        recipient: str,
        recipient_id: str,
        team_id: str,
        month: str,
        year: int,
        id: str | None = None,
        commit: bool = True,
    ) -> Award:
        aid = id or str(uuid.uuid4())
        now = _iso(utcnow())
        conn.execute(
            f"INSERT INTO awards ({self._COLS}) VALUES ({_placeholders(8)})",
            (aid, title, recipient, recipient_id, team_id, month, year, now),
        )
        if commit:
            conn.commit()
        return Award(
            id=aid, title=title, recipient=recipient, recipient_id=recipient_id,
            team_id=team_id, month=month, year=year, created_at=_parse_datetime(now),
        )

    def list_by_team(self, conn: sqlite3.Connection, team_id: str) -> list[Award]:
        rows = conn.execute(
            f"SELECT {self._COLS} FROM awards WHERE team_id = ? ORDER BY year DESC, created_at DESC",
            (team_id,),
        ).fetchall()
        return [
            Award(
                id=r["id"],
                title=r["title"],
                recipient=r["recipient"],
                recipient_id=r["recipient_id"],
                team_id=r["team_id"],
                month=r["month"],
                year=r["year"],
                created_at=_parse_datetime(r["created_at"]),
            )
            for r in rows
        ]
