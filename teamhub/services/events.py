"""
Team events: creation and edits by the managing coach, availability by parents,
attendance counters derived from completed events.
"""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any

from teamhub.models import Availability, Event, EventType, HomeAway, User, ensure_utc, utcnow
from teamhub.persistence.db import transaction
from teamhub.persistence.repositories import (
    EventRepository,
    MatchResultRepository,
    PlayerRepository,
    TeamRepository,
)
from teamhub.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError
from teamhub.services.result_engine import ResultService

logger = logging.getLogger(__name__)

# Legacy clients send friendlies as their own event type
LEGACY_FRIENDLY_TYPE = "friendly"

_MATCH_ONLY_FIELDS = ("opponent", "home_away")
_REQUIRED_FIELDS = ("type", "location", "start_time", "end_time", "friendly")


def normalize_event_type(event_type: str, friendly: bool = False) -> tuple[str, bool]:
    """Return (type, friendly). 'friendly' becomes a friendly match."""
    if event_type == LEGACY_FRIENDLY_TYPE:
        return EventType.MATCH.value, True
    try:
        value = EventType(event_type).value
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid event type: {event_type}") from e
    return value, friendly and value == EventType.MATCH


def _validate_fields(fields: dict[str, Any]) -> None:
    """Checks on a complete set of event fields (after merging an update)."""
    start, end = fields["start_time"], fields["end_time"]
    if ensure_utc(end) <= ensure_utc(start):
        raise InvalidArgumentError("end_time must be after start_time")
    if fields["type"] != EventType.MATCH:
        for key in _MATCH_ONLY_FIELDS:
            if fields.get(key):
                raise InvalidArgumentError(f"{key} is only allowed for matches")
    home_away = fields.get("home_away")
    if home_away is not None:
        try:
            HomeAway(home_away)
        except ValueError as e:
            raise InvalidArgumentError(f"home_away must be 'home' or 'away' (got {home_away})") from e
    if not str(fields.get("location") or "").strip():
        raise InvalidArgumentError("location is required")


class EventService:
    """Event lifecycle. Persistence is delegated to repositories."""

    def __init__(self) -> None:
        self._event_repo = EventRepository()
        self._team_repo = TeamRepository()
        self._player_repo = PlayerRepository()
        self._result_repo = MatchResultRepository()
        self._results = ResultService()

    def _get_managed_event(self, conn: sqlite3.Connection, user: User, event_id: str) -> Event:
        event = self._event_repo.get(conn, event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        if not user.manages(event.team_id):
            raise ForbiddenError("Only the team's coach can change this event")
        return event

    def get_event(self, conn: sqlite3.Connection, event_id: str) -> Event | None:
        return self._event_repo.get(conn, event_id)

    def create_event(
        self,
        conn: sqlite3.Connection,
        user: User,
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
    ) -> Event:
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFoundError(f"Team not found: {team_id}")
        if not user.manages(team_id):
            raise ForbiddenError("Only the team's coach can create events")
        event_type, is_friendly = normalize_event_type(type, friendly)
        fields = {
            "type": event_type,
            "location": location,
            "start_time": start_time,
            "end_time": end_time,
            "opponent": opponent,
            "home_away": home_away,
        }
        _validate_fields(fields)
        event = self._event_repo.create(
            conn,
            team_id=team_id,
            type=event_type,
            location=location.strip(),
            start_time=start_time,
            end_time=end_time,
            name=name,
            friendly=is_friendly,
            opponent=opponent,
            home_away=home_away,
            additional_info=additional_info,
            availability={pid: Availability.PENDING.value for pid in team.player_ids},
        )
        logger.info("Event %s (%s) created for team %s", event.id, event_type, team_id)
        return event

    def update_event(
        self, conn: sqlite3.Connection, user: User, event_id: str, updates: dict[str, Any]
    ) -> Event:
        event = self._get_managed_event(conn, user, event_id)
        changes = {k: v for k, v in updates.items() if k not in ("availability", "result")}
        for key in _REQUIRED_FIELDS:
            if key in changes and changes[key] is None:
                del changes[key]
        if "type" in changes:
            changes["type"], changes["friendly"] = normalize_event_type(
                changes["type"], changes.get("friendly", event.friendly)
            )
        elif changes.get("friendly"):
            changes["friendly"] = event.type == EventType.MATCH
        merged = {
            "type": event.type,
            "location": event.location,
            "start_time": event.start_time,
            "end_time": event.end_time,
            "opponent": event.opponent,
            "home_away": event.home_away,
        }
        merged.update({k: v for k, v in changes.items() if k in merged})
        _validate_fields(merged)
        updated = self._event_repo.update(conn, event_id, changes)
        if updated is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return updated

    def delete_event(self, conn: sqlite3.Connection, user: User, event_id: str) -> None:
        """Deleting a fixture also deletes its result and recomputes the team record."""
        event = self._get_managed_event(conn, user, event_id)
        with transaction(conn):
            had_result = self._result_repo.delete_by_fixture(conn, event_id, commit=False)
            self._event_repo.delete(conn, event_id, commit=False)
            if had_result:
                self._results.recompute_team_record(conn, event.team_id, commit=False)
        logger.info("Event %s deleted (result removed: %s)", event_id, had_result)

    def set_availability(
        self,
        conn: sqlite3.Connection,
        user: User,
        event_id: str,
        player_id: str,
        status: str,
        now: datetime | None = None,
    ) -> Event:
        """Parent sets one of their own players' availability. Allowed before or after the event."""
        try:
            value = Availability(status).value
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid availability: {status}") from e
        event = self._event_repo.get(conn, event_id)
        if event is None:
            raise NotFoundError(f"Event not found: {event_id}")
        player = self._player_repo.get(conn, player_id)
        if player is None:
            raise NotFoundError(f"Player not found: {player_id}")
        if player.parent_id != user.id:
            raise ForbiddenError("You can only set availability for your own players")
        if player.team_id != event.team_id:
            raise InvalidArgumentError("Player is not on this event's team")
        with transaction(conn):
            updated = self._event_repo.set_availability(conn, event_id, player_id, value, commit=False)
            self.refresh_attendance(conn, event.team_id, now=now, commit=False)
        if updated is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return updated

    def refresh_attendance(
        self,
        conn: sqlite3.Connection,
        team_id: str,
        now: datetime | None = None,
        commit: bool = True,
    ) -> None:
        """
        For every player on the team: total_events = completed team events,
        attendance = those completed events marked available for the player.
        """
        now = ensure_utc(now) if now is not None else utcnow()
        completed = [e for e in self._event_repo.list_by_team(conn, team_id) if e.is_completed(now)]
        for player in self._player_repo.list_by_team(conn, team_id):
            attended = sum(
                1 for e in completed if e.availability.get(player.id) == Availability.AVAILABLE
            )
            self._player_repo.update_counters(
                conn, player.id, attendance=attended, total_events=len(completed), commit=False
            )
        if commit:
            conn.commit()
