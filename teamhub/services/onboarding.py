"""
Accounts, roles and join-by-code onboarding.

Clubs and teams carry an 8-character join code. Coaches create teams inside
their club (the team id is appended to their team_ids); parents register
players onto a team by its code.
"""
from __future__ import annotations

import logging
import secrets
import sqlite3
import string
from datetime import date
from typing import Callable, Iterable

from teamhub.auth import PASSWORD_MIN_LENGTH, check_password, hash_password
from teamhub.models import AgeGroup, Club, Player, Role, Team, User
from teamhub.persistence.db import transaction
from teamhub.persistence.repositories import (
    ClubRepository,
    PlayerRepository,
    TeamRepository,
    UserRepository,
)
from teamhub.services.errors import ForbiddenError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

CODE_LENGTH = 8
CODE_ALPHABET = string.ascii_uppercase + string.digits
_MAX_CODE_ATTEMPTS = 20


def generate_code(exists: Callable[[str], bool], length: int = CODE_LENGTH) -> str:
    """Random join code not already taken according to exists()."""
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
        if not exists(code):
            return code
    raise RuntimeError("Could not generate a unique join code")


def normalize_code(code: str) -> str:
    return code.strip().upper()


class OnboardingService:
    """Registration, role selection, clubs, teams and players."""

    def __init__(self) -> None:
        self._user_repo = UserRepository()
        self._club_repo = ClubRepository()
        self._team_repo = TeamRepository()
        self._player_repo = PlayerRepository()

    # ---------- Accounts ----------

    def register(
        self, conn: sqlite3.Connection, email: str, password: str, name: str | None = None
    ) -> User:
        email = email.strip().lower()
        if "@" not in email:
            raise InvalidArgumentError("A valid email is required")
        if len(password) < PASSWORD_MIN_LENGTH:
            raise InvalidArgumentError(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if self._user_repo.get_by_email(conn, email) is not None:
            raise InvalidArgumentError("Email already in use")
        user = self._user_repo.create(conn, email, hash_password(password), name=name)
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, conn: sqlite3.Connection, email: str, password: str) -> User | None:
        user = self._user_repo.get_by_email(conn, email)
        if user is None:
            return None
        ok, new_hash = check_password(password, user.password_hash)
        if not ok:
            logger.info("Failed login for %s", user.id)
            return None
        if new_hash:
            user = self._user_repo.update(conn, user.id, {"password_hash": new_hash}) or user
        return user

    def select_roles(self, conn: sqlite3.Connection, user: User, roles: Iterable[str]) -> User:
        try:
            chosen = {Role(r).value for r in roles}
        except ValueError as e:
            raise InvalidArgumentError(f"Unknown role: {e}") from e
        if not chosen:
            raise InvalidArgumentError("Please select at least one role")
        updated = self._user_repo.update(conn, user.id, {"roles": chosen})
        if updated is None:
            raise NotFoundError(f"User not found: {user.id}")
        return updated

    # ---------- Clubs ----------

    def create_club(
        self, conn: sqlite3.Connection, user: User, name: str, established: str | None = None
    ) -> tuple[Club, User]:
        """Create a club and associate the creator with it."""
        if not name.strip():
            raise InvalidArgumentError("Club name is required")
        code = generate_code(lambda c: self._club_repo.get_by_code(conn, c) is not None)
        with transaction(conn):
            club = self._club_repo.create(conn, name.strip(), code, established=established, commit=False)
            updated = self._user_repo.update(conn, user.id, {"club_id": club.id}, commit=False)
        if updated is None:
            raise NotFoundError(f"User not found: {user.id}")
        logger.info("Club %s created by %s", club.id, user.id)
        return club, updated

    def join_club(self, conn: sqlite3.Connection, user: User, club_code: str) -> tuple[User, Club]:
        club = self._club_repo.get_by_code(conn, normalize_code(club_code))
        if club is None:
            raise NotFoundError("No club found with that code")
        updated = self._user_repo.update(conn, user.id, {"club_id": club.id})
        if updated is None:
            raise NotFoundError(f"User not found: {user.id}")
        logger.info("User %s joined club %s", user.id, club.id)
        return updated, club

    # ---------- Teams ----------

    def create_team(
        self, conn: sqlite3.Connection, user: User, name: str, age_group: str
    ) -> tuple[Team, User]:
        """Coach with a club creates a team; it joins the coach's team_ids."""
        if not user.is_coach:
            raise ForbiddenError("Only coaches can create teams")
        if not user.club_id:
            raise ForbiddenError("Join a club before creating a team")
        try:
            group = AgeGroup(age_group).value
        except ValueError as e:
            raise InvalidArgumentError(f"Invalid age group: {age_group}") from e
        if not name.strip():
            raise InvalidArgumentError("Team name is required")
        code = generate_code(lambda c: self._team_repo.get_by_code(conn, c) is not None)
        with transaction(conn):
            team = self._team_repo.create(
                conn, name.strip(), group, code, user.club_id, manager_id=user.id, commit=False
            )
            updated = self._user_repo.update(
                conn, user.id, {"team_ids": user.team_ids + [team.id]}, commit=False
            )
            self._club_repo.increment_counts(conn, user.club_id, teams=1, commit=False)
        if updated is None:
            raise NotFoundError(f"User not found: {user.id}")
        logger.info("Team %s (%s) created in club %s by %s", team.id, group, user.club_id, user.id)
        return team, updated

    def join_team_as_coach(
        self, conn: sqlite3.Connection, user: User, team_code: str
    ) -> tuple[User, Team]:
        """Attach an existing team of the coach's own club to their team_ids."""
        if not user.is_coach:
            raise ForbiddenError("Only coaches can manage teams")
        team = self._team_repo.get_by_code(conn, normalize_code(team_code))
        if team is None:
            raise NotFoundError("No team found with that code")
        if team.club_id != user.club_id:
            raise ForbiddenError("Team belongs to another club")
        if team.id in user.team_ids:
            return user, team
        updated = self._user_repo.update(conn, user.id, {"team_ids": user.team_ids + [team.id]})
        if updated is None:
            raise NotFoundError(f"User not found: {user.id}")
        return updated, team

    def update_team(
        self,
        conn: sqlite3.Connection,
        user: User,
        team_id: str,
        name: str | None = None,
        age_group: str | None = None,
    ) -> Team:
        """Managing coach renames a team or changes its age group. The record is untouched."""
        team = self._team_repo.get(conn, team_id)
        if team is None:
            raise NotFoundError(f"Team not found: {team_id}")
        if not user.manages(team_id):
            raise ForbiddenError("Only the team's coach can edit this team")
        changes: dict[str, str] = {}
        if name is not None:
            if not name.strip():
                raise InvalidArgumentError("Team name is required")
            changes["name"] = name.strip()
        if age_group is not None:
            try:
                changes["age_group"] = AgeGroup(age_group).value
            except ValueError as e:
                raise InvalidArgumentError(f"Invalid age group: {age_group}") from e
        if not changes:
            return team
        updated = self._team_repo.update(conn, team_id, changes)
        if updated is None:
            raise NotFoundError(f"Team not found: {team_id}")
        logger.info("Team %s updated by %s: %s", team_id, user.id, sorted(changes))
        return updated

    # ---------- Players ----------

    def add_player(
        self,
        conn: sqlite3.Connection,
        user: User,
        name: str,
        date_of_birth: date,
        team_code: str,
    ) -> tuple[Player, Team]:
        """Parent registers a dependent onto the team identified by team_code."""
        if not user.is_parent:
            raise ForbiddenError("Only parents can add players")
        if not name.strip():
            raise InvalidArgumentError("Player name is required")
        team = self._team_repo.get_by_code(conn, normalize_code(team_code))
        if team is None:
            raise NotFoundError(f"No team found with code {team_code}")
        with transaction(conn):
            player = self._player_repo.create(
                conn, name.strip(), date_of_birth, team.id, user.id, commit=False
            )
            updated_team = self._team_repo.add_player(conn, team.id, player.id, commit=False)
            self._club_repo.increment_counts(conn, team.club_id, players=1, commit=False)
        logger.info("Player %s added to team %s by parent %s", player.id, team.id, user.id)
        return player, updated_team or team

    def list_players(self, conn: sqlite3.Connection, user: User) -> list[Player]:
        return self._player_repo.list_by_parent(conn, user.id)
